"""User account management and self-service profile operations."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.errors import InvalidRequestError, NotFoundError
from atreo.models.base import utcnow
from atreo.models.employee import DOCUMENT_TYPES, LIST_FIELDS, Employee
from atreo.models.user import USER_ROLES, Admin, User
from atreo.schemas.pagination import PaginationMeta
from atreo.security import hash_password
from atreo.services.admin_service import AdminService
from atreo.services.audit_service import AuditService, RequestContext
from atreo.services.pagination import paginate
from atreo.services.storage import Storage

logger = logging.getLogger(__name__)

LEGACY_PERMISSIONS = frozenset(
    {
        "dashboard", "payments", "customers", "messages", "organizations",
        "employees", "users", "admins", "products", "invoices", "assets",
        "credentials", "analytics", "ai-features", "automation", "settings",
        "security", "logs", "help", "tools", "submission", "profile",
    }
)
PROFILE_USER_FIELDS = (
    "name", "phone", "address", "bank_name", "account_number", "swift_code", "position",
)
PROFILE_EMPLOYEE_FIELDS = (
    "name", "position", "department", "phone", "whatsapp", "linkedin",
    "personal_email", "work_email", "current_address", "permanent_address",
    "emergency_contact", "profile_photo", "role_description",
)
BANK_DETAIL_FIELDS = (
    "bank_name", "account_number", "swift_code", "routing_number", "account_holder_name",
)


def snapshot(user: User) -> dict[str, Any]:
    """Audit-friendly view of the mutable user fields."""
    return {
        "name": user.name,
        "email": user.email,
        "phone": user.phone,
        "role": user.role,
        "is_active": user.is_active,
    }


def split_list(value: Any, separator: str = ",") -> list[str]:
    """Accept a list or a delimited string and return trimmed, non-empty items."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(separator)
    return [str(item).strip() for item in value if str(item).strip()]


class UserService:
    """Service for user CRUD, role changes and profiles.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.audit = AuditService(db)

    async def get_user(self, user_id: str) -> User | None:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def _require_user(self, user_id: str) -> User:
        user = await self.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def list_users(
        self,
        status: str | None = None,
        role: str | None = None,
        page_size: int = 20,
        after: str | None = None,
    ) -> tuple[list[User], PaginationMeta]:
        """List users newest first, optionally filtered by status and role."""
        query = select(User)
        if status == "active":
            query = query.where(User.is_active.is_(True))
        elif status == "inactive":
            query = query.where(User.is_active.is_(False))
        if role:
            query = query.where(User.role == role)
        return await paginate(
            self.db, query, User.created_at, User.id, page_size, after, descending=True
        )

    async def create_user(
        self,
        actor: User,
        name: str,
        email: str,
        password: str,
        role: str = "user",
        employee_id: str | None = None,
        context: RequestContext | None = None,
    ) -> User:
        """Create a user on behalf of a super-admin.

        Raises:
            InvalidRequestError: On a short password or an email already in use.
        """
        email = email.strip().lower()
        if role not in USER_ROLES:
            role = "user"
        if len(password) < 6:
            raise InvalidRequestError("Password must be at least 6 characters long")
        admins = AdminService(self.db)
        if await admins.email_taken(email):
            raise InvalidRequestError("User already exists with this email")

        user = User(
            email=email,
            name=name.strip(),
            password_hash=hash_password(password),
            role=role,
            employee_id=employee_id or None,
            email_verified=True,
        )
        self.db.add(user)
        await self.db.flush()
        if role == "admin":
            admins.build_admin(user, role="admin", created_by=actor.id)
        await self.db.commit()
        await self.db.refresh(user)

        await self.audit.log_data_change(
            actor, "user_created", "user", user.id, after=snapshot(user), context=context
        )
        return user

    async def clear_users(self, actor: User, context: RequestContext | None = None) -> int:
        """Delete every ``role=user`` account except the caller's.

        Returns:
            Number of deleted users.
        """
        result = await self.db.execute(
            delete(User)
            .where(User.role == "user", User.id != actor.id)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        count = result.rowcount
        await self.audit.record(
            "users_cleared",
            user=actor,
            resource="user",
            details={"deleted_count": count},
            context=context,
        )
        logger.info("Cleared %d user accounts", count)
        return count

    async def update_user(
        self,
        actor: User,
        user_id: str,
        context: RequestContext | None = None,
        **fields: Any,
    ) -> User:
        """Update name, email, phone or active flag of another user.

        Raises:
            NotFoundError: If the user does not exist.
            InvalidRequestError: If the new email belongs to another user.
        """
        user = await self._require_user(user_id)
        before = snapshot(user)

        email = fields.pop("email", None)
        if email is not None:
            email = email.strip().lower()
            if email != user.email:
                clash = await self.db.execute(
                    select(User.id).where(User.email == email, User.id != user.id)
                )
                if clash.first() is not None:
                    raise InvalidRequestError("Email already in use by another user")
                user.email = email
        for field, value in fields.items():
            if field in ("name", "phone", "is_active") and value is not None:
                setattr(user, field, value)

        await self.db.commit()
        await self.audit.log_data_change(
            actor,
            "user_updated",
            "user",
            user.id,
            before=before,
            after=snapshot(user),
            context=context,
        )
        return user

    async def delete_user(
        self,
        actor: User,
        user_id: str,
        context: RequestContext | None = None,
    ) -> None:
        """Delete a user and any Admin record attached to it.

        Raises:
            InvalidRequestError: If the caller tries to delete themselves.
            NotFoundError: If the user does not exist.
        """
        if user_id == actor.id:
            raise InvalidRequestError("You cannot delete your own account")
        user = await self._require_user(user_id)
        before = snapshot(user)

        await self.db.execute(delete(Admin).where(Admin.user_id == user.id))
        await self.db.delete(user)
        await self.db.commit()
        await self.audit.log_data_change(
            actor, "user_deleted", "user", user_id, before=before, context=context
        )

    async def set_role(
        self,
        actor: User,
        user_id: str,
        role: str,
        context: RequestContext | None = None,
    ) -> User:
        if role not in ("admin", "user"):
            raise InvalidRequestError("Invalid role. Must be admin or user")
        user = await self._require_user(user_id)
        previous = user.role
        user.role = role
        if role == "admin":
            result = await self.db.execute(select(Admin).where(Admin.user_id == user.id))
            if result.scalar_one_or_none() is None:
                AdminService(self.db).build_admin(user, created_by=actor.id)
        await self.db.commit()
        await self.audit.record(
            "user_role_updated",
            user=actor,
            resource="user",
            resource_id=user.id,
            details={"from": previous, "to": role},
            context=context,
        )
        return user

    async def set_admin_role(
        self,
        actor: User,
        user_id: str,
        admin_role: str,
        context: RequestContext | None = None,
    ) -> tuple[User, Admin]:
        if admin_role not in ("admin", "super-admin"):
            raise InvalidRequestError("Invalid admin role. Must be admin or super-admin")
        user = await self._require_user(user_id)
        if user.role != "admin":
            raise InvalidRequestError("User must be an admin to change admin role")

        result = await self.db.execute(select(Admin).where(Admin.user_id == user.id))
        admin = result.scalar_one_or_none()
        admins = AdminService(self.db)
        previous = admin.role if admin else None
        if admin is None:
            admin = admins.build_admin(user, role=admin_role, created_by=actor.id)
        else:
            admin.role = admin_role
            admin.capabilities = {
                **admin.capabilities,
                "can_manage_admins": admin_role == "super-admin",
            }
        await self.db.commit()
        await self.audit.record(
            "user_admin_role_updated",
            user=actor,
            resource="user",
            resource_id=user.id,
            details={"from": previous, "to": admin_role},
            context=context,
        )
        return user, admin

    async def set_status(
        self,
        actor: User,
        user_id: str,
        is_active: bool,
        context: RequestContext | None = None,
    ) -> User:
        user = await self._require_user(user_id)
        user.is_active = is_active
        await self.db.commit()
        await self.audit.record(
            "user_activated" if is_active else "user_deactivated",
            user=actor,
            resource="user",
            resource_id=user.id,
            context=context,
        )
        return user

    async def set_legacy_permissions(
        self,
        actor: User,
        user_id: str,
        permissions: list[str],
        context: RequestContext | None = None,
    ) -> User:
        invalid = sorted(set(permissions) - LEGACY_PERMISSIONS)
        if invalid:
            raise InvalidRequestError(f"Invalid permissions: {', '.join(invalid)}")
        user = await self._require_user(user_id)
        before = list(user.permissions or [])
        user.permissions = list(dict.fromkeys(permissions))
        await self.db.commit()
        await self.audit.record(
            "user_permissions_updated",
            user=actor,
            resource="user",
            resource_id=user.id,
            details={"before": before, "after": user.permissions},
            context=context,
        )
        return user

    # -- Profile ---------------------------------------------------------------

    async def get_employee_for(self, user: User) -> Employee | None:
        """Find the employee record linked to ``user`` (by id, then by email)."""
        result = await self.db.execute(select(Employee).where(Employee.user_id == user.id))
        employee = result.scalar_one_or_none()
        if employee is None:
            result = await self.db.execute(select(Employee).where(Employee.email == user.email))
            employee = result.scalar_one_or_none()
        return employee

    async def update_profile(
        self,
        user: User,
        data: dict[str, Any],
        context: RequestContext | None = None,
    ) -> tuple[User, Employee | None]:
        """Update the caller's own profile and sync their employee record."""
        for field in PROFILE_USER_FIELDS:
            if data.get(field) is not None:
                setattr(user, field, data[field])

        employee = await self.get_employee_for(user)
        if employee is not None:
            for field in PROFILE_EMPLOYEE_FIELDS:
                if data.get(field) is not None:
                    setattr(employee, field, data[field])
            bank_updates = {k: data[k] for k in BANK_DETAIL_FIELDS if data.get(k) is not None}
            if bank_updates:
                employee.bank_details = {**(employee.bank_details or {}), **bank_updates}
            for field in LIST_FIELDS:
                if data.get(field) is not None:
                    setattr(employee, field, split_list(data[field]))

        await self.db.commit()
        await self.audit.record(
            "profile_updated",
            user=user,
            resource="user",
            resource_id=user.id,
            details={"fields": sorted(k for k, v in data.items() if v is not None)},
            context=context,
        )
        return user, employee

    async def upload_document(
        self,
        user: User,
        document_type: str,
        data: bytes,
        filename: str | None,
        storage: Storage,
        destination: str,
        context: RequestContext | None = None,
    ) -> Employee:
        """Store an employee document and record it on the employee.

        Raises:
            InvalidRequestError: On an unknown document type.
            NotFoundError: If the caller has no employee record.
        """
        if document_type not in DOCUMENT_TYPES:
            raise InvalidRequestError("Invalid document type")
        employee = await self.get_employee_for(user)
        if employee is None:
            raise NotFoundError("Employee record not found")

        previous = (employee.documents or {}).get(document_type)
        url = await storage.upload_file(data, destination)
        employee.documents = {
            **(employee.documents or {}),
            document_type: {
                "url": url,
                "file_name": filename,
                "file_size": len(data),
                "uploaded_at": utcnow().isoformat(),
            },
        }
        await self.db.commit()
        if previous:
            await storage.delete_file(previous.get("url"))

        await self.audit.record(
            "document_uploaded",
            user=user,
            resource="employee_document",
            resource_id=employee.id,
            details={"document_type": document_type, "file_name": filename},
            context=context,
        )
        return employee

    async def delete_document(
        self,
        user: User,
        document_type: str,
        storage: Storage,
        context: RequestContext | None = None,
    ) -> Employee:
        if document_type not in DOCUMENT_TYPES:
            raise InvalidRequestError("Invalid document type")
        employee = await self.get_employee_for(user)
        if employee is None:
            raise NotFoundError("Employee record not found")
        documents = dict(employee.documents or {})
        existing = documents.pop(document_type, None)
        if existing is None:
            raise NotFoundError("Document not found")

        employee.documents = documents
        await self.db.commit()
        await storage.delete_file(existing.get("url"))
        await self.audit.record(
            "document_deleted",
            user=user,
            resource="employee_document",
            resource_id=employee.id,
            details={"document_type": document_type},
            context=context,
        )
        return employee
