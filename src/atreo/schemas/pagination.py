"""Cursor-based pagination utilities and models.

Provides encoding/decoding of opaque cursors for JSON:API-style
pagination, plus Pydantic models for pagination metadata and links.
A cursor captures the sort key and id of the last item on a page; the
sort key is a timestamp for chronological lists and a string for
alphabetical ones.
"""

from __future__ import annotations

import base64
import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel
from starlette.datastructures import URL


class PaginationMeta(BaseModel):
    """Pagination metadata for JSON:API list responses."""

    has_next: bool
    has_prev: bool
    total: int | None = None


class PaginationLinks(BaseModel):
    """Pagination links for JSON:API list responses."""

    first: str
    last: str | None = None
    next: str | None = None
    prev: str | None = None


def encode_cursor(sort_value: datetime | str, id: str) -> str:
    """Encode a pagination cursor from a sort key and resource id.

    Args:
        sort_value: The sort key of the boundary resource (a timestamp or
            a string).
        id: The UUID of the boundary resource.

    Returns:
        A URL-safe base64-encoded cursor string.
    """
    if isinstance(sort_value, datetime):
        payload = {"c": sort_value.isoformat(), "t": "d", "i": id}
    else:
        payload = {"c": sort_value, "t": "s", "i": id}
    return base64.urlsafe_b64encode(json.dumps(payload).encode()).decode()


def decode_cursor(cursor: str) -> tuple[datetime | str, str]:
    """Decode a pagination cursor back into its components.

    Args:
        cursor: A URL-safe base64-encoded cursor string.

    Returns:
        A tuple of (sort_value, id).

    Raises:
        ValueError: If the cursor is malformed or contains invalid data.
    """
    try:
        payload = json.loads(base64.urlsafe_b64decode(cursor.encode()).decode())
        if not isinstance(payload, dict):
            raise TypeError("cursor payload is not an object")
        if payload.get("t", "d") == "d":
            return datetime.fromisoformat(payload["c"]), payload["i"]
        return str(payload["c"]), payload["i"]
    except (json.JSONDecodeError, KeyError, ValueError, TypeError) as exc:
        msg = f"Invalid pagination cursor: {cursor}"
        raise ValueError(msg) from exc


def build_links(
    url: URL,
    items: list[Any],
    meta: PaginationMeta,
    page_size: int,
    sort_attr: str = "created_at",
) -> PaginationLinks:
    """Build first/next links for a page of ORM objects.

    Every query parameter of the request except the cursor is carried into
    the links, so filters survive paging.

    Args:
        url: The request URL.
        items: The page of objects, in response order.
        meta: Pagination metadata for the page.
        page_size: Page size requested by the client.
        sort_attr: Attribute of each item the list is ordered by.
    """
    first = url.remove_query_params("page[after]").include_query_params(
        **{"page[size]": page_size}
    )
    links = PaginationLinks(first=str(first))
    if meta.has_next and items:
        last = items[-1]
        next_cursor = encode_cursor(getattr(last, sort_attr), str(last.id))
        links.next = str(first.include_query_params(**{"page[after]": next_cursor}))
    return links
