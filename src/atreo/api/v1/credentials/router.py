"""Credential vault endpoints returning JSON:API responses.

Every route requires the ``credentials`` module. Listings mask secrets;
reading one credential decrypts it and is audited.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.api.deps import get_db, get_request_context, rate_limit, require_module_access
from atreo.models.tool import Tool
from atreo.models.user import User
from atreo.schemas.jsonapi import (
    JSONAPIListResponse,
    JSONAPIRequest,
    JSONAPIResource,
    JSONAPISingleResponse,
)
from atreo.schemas.pagination import build_links
from atreo.schemas.tool import CreateCredentialRequest, UpdateCredentialRequest
from atreo.security import decrypt_secret
from atreo.services.audit_service import RequestContext
from atreo.services.credential_service import MASK, CredentialService

router = APIRouter()

require_credentials = require_module_access("credentials")


# ---------------------------------------------------------------------------
# Attribute mapping helpers
# ---------------------------------------------------------------------------


def _credential_to_attrs(tool: Tool, reveal: bool = False) -> dict:
    attrs = {
        "name": tool.name,
        "service": tool.category,
        "username": tool.username,
        "notes": tool.notes,
        "tags": tool.tags or [],
        "created_at": tool.created_at.isoformat(),
        "updated_at": tool.updated_at.isoformat(),
    }
    if reveal:
        attrs["password"] = decrypt_secret(tool.password)
        attrs["api_key"] = decrypt_secret(tool.api_key)
    else:
        attrs["api_key"] = MASK if tool.api_key else None
    return attrs


def _credential_resource(tool: Tool, reveal: bool = False) -> JSONAPIResource:
    return JSONAPIResource(
        type="credentials", id=str(tool.id), attributes=_credential_to_attrs(tool, reveal)
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("")
async def list_credentials(
    request: Request,
    page_after: str | None = Query(default=None, alias="page[after]"),
    page_size: int = Query(default=20, ge=1, le=100, alias="page[size]"),
    _: User = Depends(require_credentials),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """List credentials by name with cursor pagination; secrets are masked."""
    tools, pagination_meta = await CredentialService(db).list_credentials(
        page_size=page_size, after=page_after
    )
    links = build_links(request.url, tools, pagination_meta, page_size, sort_attr="name")
    return JSONAPIListResponse(
        data=[_credential_resource(t) for t in tools],
        meta=pagination_meta.model_dump(),
        links=links.model_dump(exclude_none=True),
    )


@router.post("", status_code=201, dependencies=[Depends(rate_limit("write"))])
async def create_credential(
    body: JSONAPIRequest[CreateCredentialRequest],
    user: User = Depends(require_credentials),
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> JSONAPISingleResponse:
    """Store a new credential; secrets are encrypted at rest."""
    attrs = body.data.attributes
    tool = await CredentialService(db).create_credential(
        user,
        name=attrs.name,
        service=attrs.service,
        username=attrs.username,
        password=attrs.password,
        api_key=attrs.api_key,
        notes=attrs.notes,
        tags=attrs.tags,
        context=context,
    )
    return JSONAPISingleResponse(data=_credential_resource(tool))


@router.get("/{credential_id}")
async def get_credential(
    credential_id: str,
    user: User = Depends(require_credentials),
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> JSONAPISingleResponse:
    """Reveal a credential's secrets; the access is audited."""
    tool = await CredentialService(db).view_credential(user, credential_id, context)
    return JSONAPISingleResponse(data=_credential_resource(tool, reveal=True))


@router.put("/{credential_id}", dependencies=[Depends(rate_limit("write"))])
async def update_credential(
    credential_id: str,
    body: JSONAPIRequest[UpdateCredentialRequest],
    user: User = Depends(require_credentials),
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> JSONAPISingleResponse:
    """Update a credential; a masked password keeps the stored one."""
    update_data = body.data.attributes.model_dump(exclude_unset=True)
    tool = await CredentialService(db).update_credential(
        user, credential_id, context, **update_data
    )
    return JSONAPISingleResponse(data=_credential_resource(tool))


@router.delete("/{credential_id}", status_code=204)
async def delete_credential(
    credential_id: str,
    user: User = Depends(require_credentials),
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> None:
    await CredentialService(db).delete_credential(user, credential_id, context)
