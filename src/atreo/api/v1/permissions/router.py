"""Module/page permission endpoints returning JSON:API responses."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.api.deps import get_current_user, get_db, get_request_context
from atreo.errors import PermissionDeniedError
from atreo.models.user import User
from atreo.schemas.jsonapi import JSONAPIRequest, JSONAPIResource, JSONAPISingleResponse
from atreo.schemas.permission import SetPermissionsRequest
from atreo.services.audit_service import AuditService, RequestContext
from atreo.services.permission_service import PermissionService

router = APIRouter()


def _permission_resource(user_id: str, modules: dict) -> JSONAPIResource:
    return JSONAPIResource(
        type="permissions",
        id=user_id,
        attributes={"user_id": user_id, "modules": modules},
    )


@router.get("/{user_id}")
async def get_permissions(
    user_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """Return a user's module map; callers may read their own or, as super-admin, anyone's."""
    service = PermissionService(db)
    if user.id != user_id and not await service.is_super_admin(user):
        raise PermissionDeniedError("Access denied")
    modules = await service.get_modules(user_id)
    return JSONAPISingleResponse(data=_permission_resource(user_id, modules))


@router.put("/{user_id}")
async def set_permissions(
    user_id: str,
    body: JSONAPIRequest[SetPermissionsRequest],
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> JSONAPISingleResponse:
    """Replace a user's module map (super-admin only)."""
    service = PermissionService(db)
    if not await service.is_super_admin(user):
        raise PermissionDeniedError("Only Super Admin can assign permissions")
    permission = await service.set_permissions(
        user_id, body.data.attributes.as_dict(), actor_id=user.id
    )
    await AuditService(db).log_permission_change(
        user, user_id, {"modules": permission.modules}, context=context
    )
    return JSONAPISingleResponse(data=_permission_resource(user_id, permission.modules))
