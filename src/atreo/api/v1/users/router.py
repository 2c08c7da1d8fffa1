"""User management and self-service profile endpoints returning JSON:API responses.

Listing and reading users needs the ``users`` module; every mutation of
another account needs a super-admin. Profile routes act on the caller.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.api.deps import (
    get_current_user,
    get_db,
    get_request_context,
    rate_limit,
    require_module_access,
    require_super_admin,
)
from atreo.api.v1.employees.router import employee_to_attrs
from atreo.models.employee import Employee
from atreo.models.user import User
from atreo.schemas.jsonapi import (
    JSONAPIListResponse,
    JSONAPIMetaResponse,
    JSONAPIRequest,
    JSONAPIResource,
    JSONAPISingleResponse,
)
from atreo.schemas.pagination import build_links
from atreo.schemas.user import (
    AdminRoleUpdateRequest,
    CreateUserRequest,
    LegacyPermissionsRequest,
    RoleUpdateRequest,
    StatusUpdateRequest,
    UpdateProfileRequest,
    UpdateUserRequest,
)
from atreo.services.audit_service import RequestContext
from atreo.services.storage import (
    DOCUMENT_MIME_TYPES,
    Storage,
    build_destination,
    get_storage,
    read_upload,
)
from atreo.services.user_service import UserService

router = APIRouter()


# ---------------------------------------------------------------------------
# Attribute mapping helpers
# ---------------------------------------------------------------------------


def user_to_attrs(user: User) -> dict:
    """Map a User model to JSON:API attributes (never the password hash)."""
    return {
        "email": user.email,
        "name": user.name,
        "role": user.role,
        "employee_id": user.employee_id,
        "is_active": user.is_active,
        "email_verified": user.email_verified,
        "organization_id": user.organization_id,
        "phone": user.phone,
        "address": user.address,
        "bank_name": user.bank_name,
        "account_number": user.account_number,
        "swift_code": user.swift_code,
        "position": user.position,
        "permissions": user.permissions or [],
        "last_login": user.last_login.isoformat() if user.last_login else None,
        "created_at": user.created_at.isoformat(),
        "updated_at": user.updated_at.isoformat(),
    }


def user_resource(user: User) -> JSONAPIResource:
    """Build a JSON:API resource object from a User."""
    return JSONAPIResource(type="users", id=str(user.id), attributes=user_to_attrs(user))


def _profile_resource(user: User, employee: Employee | None) -> JSONAPIResource:
    attrs = user_to_attrs(user)
    if employee is not None:
        employee_attrs = employee_to_attrs(employee)
        for key in ("name", "email", "phone"):
            employee_attrs.pop(key, None)
        attrs.update({k: v for k, v in employee_attrs.items() if k not in attrs})
        attrs["employee_record_id"] = str(employee.id)
    else:
        attrs["documents"] = {}
    return JSONAPIResource(type="profiles", id=str(user.id), attributes=attrs)


# ---------------------------------------------------------------------------
# Collection endpoints
# ---------------------------------------------------------------------------


@router.get("", dependencies=[Depends(require_module_access("users"))])
async def list_users(
    request: Request,
    status: str | None = Query(default=None, pattern="^(active|inactive|all)$"),
    role: str | None = Query(default=None),
    page_after: str | None = Query(default=None, alias="page[after]"),
    page_size: int = Query(default=20, ge=1, le=100, alias="page[size]"),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """List users newest first with optional status and role filters."""
    users, pagination_meta = await UserService(db).list_users(
        status=status, role=role, page_size=page_size, after=page_after
    )
    links = build_links(request.url, users, pagination_meta, page_size)
    return JSONAPIListResponse(
        data=[user_resource(u) for u in users],
        meta=pagination_meta.model_dump(),
        links=links.model_dump(exclude_none=True),
    )


@router.post(
    "",
    status_code=201,
    dependencies=[Depends(require_module_access("users"))],
)
async def create_user(
    body: JSONAPIRequest[CreateUserRequest],
    actor: User = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> JSONAPISingleResponse:
    """Create a user account (super-admin only)."""
    attrs = body.data.attributes
    user = await UserService(db).create_user(
        actor,
        name=attrs.name,
        email=attrs.email,
        password=attrs.password,
        role=attrs.role,
        employee_id=attrs.employee_id,
        context=context,
    )
    return JSONAPISingleResponse(data=user_resource(user))


@router.delete("/clear-all")
async def clear_users(
    actor: User = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> JSONAPIMetaResponse:
    """Delete every regular user account except the caller's."""
    count = await UserService(db).clear_users(actor, context)
    return JSONAPIMetaResponse(meta={"deleted_count": count})


# ---------------------------------------------------------------------------
# Profile endpoints
# ---------------------------------------------------------------------------


@router.get("/profile/me")
async def get_profile(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """Return the caller's user record merged with their employee record."""
    employee = await UserService(db).get_employee_for(user)
    return JSONAPISingleResponse(data=_profile_resource(user, employee))


@router.put("/profile/me")
async def update_profile(
    body: JSONAPIRequest[UpdateProfileRequest],
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> JSONAPISingleResponse:
    """Update the caller's profile and sync their employee record."""
    data = body.data.attributes.model_dump(exclude_unset=True)
    user, employee = await UserService(db).update_profile(user, data, context)
    return JSONAPISingleResponse(data=_profile_resource(user, employee))


@router.post(
    "/profile/me/documents/{document_type}",
    dependencies=[Depends(rate_limit("upload"))],
)
async def upload_document(
    document_type: str,
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: Storage = Depends(get_storage),
    context: RequestContext = Depends(get_request_context),
) -> JSONAPISingleResponse:
    """Upload one of the caller's employee documents (PDF, Word or image)."""
    service = UserService(db)
    employee = await service.get_employee_for(user)
    data = await read_upload(file, DOCUMENT_MIME_TYPES)
    destination = build_destination(
        f"employee-documents/{employee.employee_id if employee else 'unknown'}/{document_type}",
        file.filename,
    )
    employee = await service.upload_document(
        user, document_type, data, file.filename, storage, destination, context
    )
    return JSONAPISingleResponse(data=_profile_resource(user, employee))


@router.delete("/profile/me/documents/{document_type}")
async def delete_document(
    document_type: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: Storage = Depends(get_storage),
    context: RequestContext = Depends(get_request_context),
) -> JSONAPISingleResponse:
    """Remove one of the caller's employee documents."""
    employee = await UserService(db).delete_document(user, document_type, storage, context)
    return JSONAPISingleResponse(data=_profile_resource(user, employee))


# ---------------------------------------------------------------------------
# Single-user endpoints
# ---------------------------------------------------------------------------


@router.get("/{user_id}", dependencies=[Depends(require_module_access("users"))])
async def get_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """Get a single user by UUID."""
    user = await UserService(db).get_user(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return JSONAPISingleResponse(data=user_resource(user))


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    body: JSONAPIRequest[UpdateUserRequest],
    actor: User = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> JSONAPISingleResponse:
    """Update another user's name, email, phone or active flag."""
    update_data = body.data.attributes.model_dump(exclude_unset=True)
    user = await UserService(db).update_user(actor, user_id, context, **update_data)
    return JSONAPISingleResponse(data=user_resource(user))


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: str,
    actor: User = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> None:
    """Delete a user and their admin record."""
    await UserService(db).delete_user(actor, user_id, context)


@router.patch("/{user_id}/role")
async def update_role(
    user_id: str,
    body: RoleUpdateRequest,
    actor: User = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> JSONAPISingleResponse:
    """Switch a user between the ``admin`` and ``user`` roles."""
    user = await UserService(db).set_role(actor, user_id, body.role, context)
    return JSONAPISingleResponse(data=user_resource(user))


@router.patch("/{user_id}/admin-role")
async def update_admin_role(
    user_id: str,
    body: AdminRoleUpdateRequest,
    actor: User = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> JSONAPISingleResponse:
    """Promote an admin to super-admin or demote them."""
    user, admin = await UserService(db).set_admin_role(actor, user_id, body.admin_role, context)
    resource = user_resource(user)
    resource.attributes["admin_role"] = admin.role
    return JSONAPISingleResponse(data=resource)


@router.patch("/{user_id}/status")
async def update_status(
    user_id: str,
    body: StatusUpdateRequest,
    actor: User = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> JSONAPISingleResponse:
    """Activate or deactivate a user."""
    user = await UserService(db).set_status(actor, user_id, body.is_active, context)
    return JSONAPISingleResponse(data=user_resource(user))


@router.patch("/{user_id}/permissions")
async def update_legacy_permissions(
    user_id: str,
    body: LegacyPermissionsRequest,
    actor: User = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> JSONAPISingleResponse:
    """Replace the user's flat list of sidebar pages."""
    user = await UserService(db).set_legacy_permissions(actor, user_id, body.permissions, context)
    return JSONAPISingleResponse(data=user_resource(user))


@router.post("/{user_id}/activate")
async def activate_user(
    user_id: str,
    actor: User = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> JSONAPISingleResponse:
    """Reactivate a deactivated user."""
    user = await UserService(db).set_status(actor, user_id, True, context)
    return JSONAPISingleResponse(data=user_resource(user))
