"""JSON:API documents exchanged by the resource endpoints.

Resource mutations take a ``{"data": {"type", "attributes"}}`` body and
resource reads return ``data`` plus optional ``meta``/``links``. Bulk
deletes answer with a meta-only document, and every failure (domain,
HTTP or validation) is rendered as an ``errors`` document.

Action endpoints (login, signup, OTP) use plain bodies and are not
wrapped.
"""

from datetime import date, datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")

ERROR_TITLES = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    409: "Conflict",
    413: "Payload Too Large",
    429: "Too Many Requests",
    500: "Internal Server Error",
}


def iso(value: date | datetime | None) -> str | None:
    """ISO-8601 text for an optional date or timestamp attribute."""
    return value.isoformat() if value else None


# ---------------------------------------------------------------------------
# Request wrappers
# ---------------------------------------------------------------------------


class JSONAPIRequestData(BaseModel, Generic[T]):
    type: str
    attributes: T


class JSONAPIRequest(BaseModel, Generic[T]):
    """Body of a resource create/update: ``{ data: { type, attributes } }``."""

    data: JSONAPIRequestData[T]


# ---------------------------------------------------------------------------
# Resource documents
# ---------------------------------------------------------------------------


class JSONAPIResource(BaseModel):
    type: str
    id: str
    attributes: dict[str, Any]
    relationships: dict[str, Any] | None = None


class JSONAPISingleResponse(BaseModel):
    data: JSONAPIResource
    meta: dict[str, Any] | None = None


class JSONAPIListResponse(BaseModel):
    """A page of resources; ``meta`` carries totals or cursor state, ``links`` the next page."""

    data: list[JSONAPIResource]
    meta: dict[str, Any] | None = None
    links: dict[str, Any] | None = None


class JSONAPIMetaResponse(BaseModel):
    """Meta-only document, e.g. ``{"meta": {"deleted_count": 3}}`` after a clear-all."""

    meta: dict[str, Any]


# ---------------------------------------------------------------------------
# Error documents
# ---------------------------------------------------------------------------


class JSONAPIError(BaseModel):
    status: str
    title: str
    detail: str | None = None
    source: dict[str, str] | None = None


class JSONAPIErrorResponse(BaseModel):
    errors: list[JSONAPIError]


def error_document(status_code: int, detail: str | None, title: str | None = None) -> dict:
    """Single-error document for ``status_code``; the title defaults from the status."""
    error = JSONAPIError(
        status=str(status_code),
        title=title or ERROR_TITLES.get(status_code, "Error"),
        detail=detail,
    )
    return JSONAPIErrorResponse(errors=[error]).model_dump(exclude_none=True)


def validation_document(errors: list[dict[str, Any]]) -> dict:
    """One error object per failing field, each pointing at the field's location."""
    return JSONAPIErrorResponse(
        errors=[
            JSONAPIError(
                status="400",
                title="Invalid request data",
                detail=e["msg"],
                source={"pointer": "/" + "/".join(str(loc) for loc in e["loc"])},
            )
            for e in errors
        ]
    ).model_dump(exclude_none=True)
