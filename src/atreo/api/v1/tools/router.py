"""Tool and credential-sharing endpoints returning JSON:API responses.

Routes here need an authenticated user; ownership, admin role and shares
decide what each caller may see or change.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.api.deps import get_current_user, get_db, rate_limit, require_admin
from atreo.models.tool import Tool, ToolShare
from atreo.models.user import User
from atreo.schemas.jsonapi import (
    JSONAPIListResponse,
    JSONAPIMetaResponse,
    JSONAPIRequest,
    JSONAPIResource,
    JSONAPISingleResponse,
)
from atreo.schemas.pagination import build_links
from atreo.schemas.tool import CreateToolRequest, ShareToolRequest, UpdateToolRequest
from atreo.security import decrypt_secret
from atreo.services.tool_service import ToolService, ToolView

router = APIRouter()


# ---------------------------------------------------------------------------
# Attribute mapping helpers
# ---------------------------------------------------------------------------


def _tool_to_attrs(tool: Tool, include_secrets: bool = False) -> dict:
    attrs = {
        "name": tool.name,
        "description": tool.description,
        "category": tool.category,
        "username": tool.username,
        "notes": tool.notes,
        "tags": tool.tags or [],
        "is_paid": tool.is_paid,
        "has_autopay": tool.has_autopay,
        "price": tool.price,
        "billing_period": tool.billing_period,
        "payment_method": tool.payment_method,
        "card_last4": tool.card_last4,
        "has_2fa": tool.has_2fa,
        "two_factor_method": tool.two_factor_method,
        "status": tool.status,
        "created_by": tool.created_by,
        "organization_id": tool.organization_id,
        "created_at": tool.created_at.isoformat(),
        "updated_at": tool.updated_at.isoformat(),
    }
    if include_secrets:
        attrs["password"] = decrypt_secret(tool.password)
        attrs["api_key"] = decrypt_secret(tool.api_key)
    return attrs


def _tool_resource(view: ToolView, include_secrets: bool = False) -> JSONAPIResource:
    attrs = _tool_to_attrs(view.tool, include_secrets)
    attrs["is_shared"] = view.is_shared
    attrs["shared_by"] = view.shared_by
    attrs["permission"] = view.permission
    return JSONAPIResource(type="tools", id=str(view.tool.id), attributes=attrs)


def _share_resource(share: ToolShare) -> JSONAPIResource:
    return JSONAPIResource(
        type="tool-shares",
        id=str(share.id),
        attributes={
            "tool_id": share.tool_id,
            "shared_with": share.shared_with,
            "shared_by": share.shared_by,
            "permission": share.permission,
            "revoked_at": share.revoked_at.isoformat() if share.revoked_at else None,
            "created_at": share.created_at.isoformat(),
        },
    )


def _is_admin(user: User) -> bool:
    return user.role == "admin"


# ---------------------------------------------------------------------------
# Collection endpoints
# ---------------------------------------------------------------------------


@router.get("")
async def list_tools(
    request: Request,
    page_after: str | None = Query(default=None, alias="page[after]"),
    page_size: int = Query(default=20, ge=1, le=100, alias="page[size]"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """List own tools plus active shares (every tool for admins), newest first."""
    views, pagination_meta = await ToolService(db).list_tools(
        user, _is_admin(user), page_size=page_size, after=page_after
    )
    links = build_links(request.url, [view.tool for view in views], pagination_meta, page_size)
    return JSONAPIListResponse(
        data=[_tool_resource(view) for view in views],
        meta=pagination_meta.model_dump(),
        links=links.model_dump(exclude_none=True),
    )


@router.post("", status_code=201, dependencies=[Depends(rate_limit("write"))])
async def create_tool(
    body: JSONAPIRequest[CreateToolRequest],
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """Create a tool owned by the caller."""
    fields = {k: v for k, v in body.data.attributes.model_dump().items() if v is not None}
    tool = await ToolService(db).create_tool(user, **fields)
    return JSONAPISingleResponse(data=_tool_resource(ToolView(tool=tool), include_secrets=True))


@router.get("/share/users")
async def list_share_candidates(
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """Users a tool can be shared with, sorted by name."""
    users = await ToolService(db).share_candidates()
    return JSONAPIListResponse(
        data=[
            JSONAPIResource(
                type="users", id=str(u.id), attributes={"name": u.name, "email": u.email}
            )
            for u in users
        ],
        meta={"total": len(users)},
    )


@router.delete("/delete-all")
async def delete_all_tools(
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIMetaResponse:
    """Remove every tool and share."""
    count = await ToolService(db).delete_all()
    return JSONAPIMetaResponse(meta={"deleted_count": count})


# ---------------------------------------------------------------------------
# Single-tool endpoints
# ---------------------------------------------------------------------------


@router.get("/{tool_id}")
async def get_tool(
    tool_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """Get a tool with its decrypted secrets."""
    view = await ToolService(db).get_visible_tool(user, tool_id, _is_admin(user))
    return JSONAPISingleResponse(data=_tool_resource(view, include_secrets=True))


@router.patch("/{tool_id}", dependencies=[Depends(rate_limit("write"))])
async def update_tool(
    tool_id: str,
    body: JSONAPIRequest[UpdateToolRequest],
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """Partially update a tool."""
    update_data = body.data.attributes.model_dump(exclude_unset=True)
    tool = await ToolService(db).update_tool(user, tool_id, _is_admin(user), **update_data)
    return JSONAPISingleResponse(data=_tool_resource(ToolView(tool=tool), include_secrets=True))


@router.delete("/{tool_id}", status_code=204)
async def delete_tool(
    tool_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete a tool and its shares."""
    await ToolService(db).delete_tool(user, tool_id, _is_admin(user))


@router.post("/{tool_id}/share", dependencies=[Depends(rate_limit("write"))])
async def share_tool(
    tool_id: str,
    body: ShareToolRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """Share a tool's credentials with another user."""
    share = await ToolService(db).share_tool(
        user, tool_id, body.user_id, body.permission, _is_admin(user)
    )
    return JSONAPISingleResponse(data=_share_resource(share))


@router.delete("/{tool_id}/share/{user_id}")
async def revoke_share(
    tool_id: str,
    user_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """Revoke a user's access to a tool."""
    share = await ToolService(db).revoke_share(user, tool_id, user_id, _is_admin(user))
    return JSONAPISingleResponse(data=_share_resource(share))
