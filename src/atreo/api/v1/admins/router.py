"""Admin account endpoints returning JSON:API responses (super-admin only)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.api.deps import get_db, rate_limit, require_super_admin
from atreo.models.user import Admin, User
from atreo.schemas.jsonapi import (
    JSONAPIListResponse,
    JSONAPIMetaResponse,
    JSONAPIRequest,
    JSONAPIResource,
    JSONAPISingleResponse,
)
from atreo.schemas.user import AdminStatusRequest, CreateAdminRequest, UpdateAdminRequest
from atreo.services.admin_service import AdminService

router = APIRouter()


# ---------------------------------------------------------------------------
# Attribute mapping helpers
# ---------------------------------------------------------------------------


def _admin_to_attrs(admin: Admin, user: User | None) -> dict:
    return {
        "admin_id": admin.admin_id,
        "user_id": admin.user_id,
        "name": admin.name,
        "email": admin.email,
        "role": admin.role,
        "capabilities": admin.capabilities or {},
        "status": admin.status,
        "department": admin.department,
        "phone": admin.phone,
        "notes": admin.notes,
        "created_by": admin.created_by,
        "is_active": user.is_active if user else None,
        "last_login": user.last_login.isoformat() if user and user.last_login else None,
        "created_at": admin.created_at.isoformat(),
        "updated_at": admin.updated_at.isoformat(),
    }


def _admin_resource(admin: Admin, user: User | None = None) -> JSONAPIResource:
    return JSONAPIResource(type="admins", id=str(admin.id), attributes=_admin_to_attrs(admin, user))


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("")
async def list_admins(
    _: User = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """List admin accounts newest first."""
    rows = await AdminService(db).list_admins()
    return JSONAPIListResponse(
        data=[_admin_resource(admin, user) for admin, user in rows],
        meta={"total": len(rows)},
    )


@router.post("", status_code=201, dependencies=[Depends(rate_limit("write"))])
async def create_admin(
    body: JSONAPIRequest[CreateAdminRequest],
    actor: User = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """Create an admin or super-admin account."""
    attrs = body.data.attributes
    admin, user = await AdminService(db).create_admin(
        name=attrs.name,
        email=attrs.email,
        password=attrs.password,
        role=attrs.role,
        created_by=actor.id,
    )
    return JSONAPISingleResponse(data=_admin_resource(admin, user))


@router.delete("/clear-all")
async def clear_admins(
    actor: User = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIMetaResponse:
    """Delete every admin except the caller."""
    count = await AdminService(db).clear_all(keep_user_id=actor.id)
    return JSONAPIMetaResponse(meta={"deleted_count": count})


@router.get("/{admin_id}")
async def get_admin(
    admin_id: str,
    _: User = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    admin = await AdminService(db).get_admin(admin_id)
    if admin is None:
        raise HTTPException(status_code=404, detail="Admin not found")
    user = await db.get(User, admin.user_id)
    return JSONAPISingleResponse(data=_admin_resource(admin, user))


@router.patch("/{admin_id}")
async def update_admin(
    admin_id: str,
    body: JSONAPIRequest[UpdateAdminRequest],
    _: User = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """Update an admin's name, email or role."""
    attrs = body.data.attributes
    admin, user = await AdminService(db).update_admin(
        admin_id, name=attrs.name, email=attrs.email, role=attrs.role
    )
    return JSONAPISingleResponse(data=_admin_resource(admin, user))


@router.patch("/{admin_id}/status")
async def update_admin_status(
    admin_id: str,
    body: AdminStatusRequest,
    _: User = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """Set an admin ``active`` or ``inactive``."""
    admin = await AdminService(db).set_status(admin_id, body.status)
    user = await db.get(User, admin.user_id)
    return JSONAPISingleResponse(data=_admin_resource(admin, user))


@router.delete("/{admin_id}", status_code=204)
async def delete_admin(
    admin_id: str,
    _: User = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete an admin and its user account."""
    await AdminService(db).delete_admin(admin_id)
