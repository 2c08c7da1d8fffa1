"""Admin account management.

Admins are users with role ``admin`` plus an Admin record carrying the
admin-level role (``admin`` or ``super-admin``), capabilities and status.
"""

from __future__ import annotations

import logging
import secrets
import time

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.errors import InvalidRequestError, NotFoundError
from atreo.models.user import ADMIN_ROLES, Admin, User
from atreo.security import hash_password

logger = logging.getLogger(__name__)

BOOTSTRAP_ADMIN_ID = "ADM0001"


def generate_admin_id() -> str:
    """Return a fresh ``ADM<epoch-ms><nn>`` identifier."""
    return f"ADM{int(time.time() * 1000)}{secrets.randbelow(100):02d}"


def default_capabilities(role: str) -> dict[str, bool]:
    return {
        "can_manage_users": True,
        "can_manage_employees": True,
        "can_manage_admins": role == "super-admin",
        "can_manage_payroll": True,
        "can_view_reports": True,
        "can_export_data": True,
    }


class AdminService:
    """Service for admin CRUD operations.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    def build_admin(
        self,
        user: User,
        role: str = "admin",
        created_by: str | None = None,
        admin_id: str | None = None,
    ) -> Admin:
        """Create an (unsaved) Admin record for ``user`` and add it to the session."""
        admin = Admin(
            user_id=user.id,
            admin_id=admin_id or generate_admin_id(),
            name=user.name,
            email=user.email,
            role=role,
            capabilities=default_capabilities(role),
            status="active",
            created_by=created_by,
        )
        self.db.add(admin)
        return admin

    async def email_taken(self, email: str) -> bool:
        """Return True if ``email`` belongs to any user or admin record."""
        user = await self.db.execute(select(User.id).where(User.email == email))
        if user.first() is not None:
            return True
        admin = await self.db.execute(select(Admin.id).where(Admin.email == email))
        return admin.first() is not None

    async def list_admins(self) -> list[tuple[Admin, User]]:
        """List active admins joined with their user accounts."""
        result = await self.db.execute(
            select(Admin, User)
            .join(User, User.id == Admin.user_id)
            .where(Admin.status == "active")
            .order_by(Admin.created_at.desc())
        )
        return [(row.Admin, row.User) for row in result]

    async def get_admin(self, admin_id: str) -> Admin | None:
        result = await self.db.execute(select(Admin).where(Admin.id == admin_id))
        return result.scalar_one_or_none()

    async def create_admin(
        self,
        name: str,
        email: str,
        password: str,
        role: str,
        created_by: str,
    ) -> tuple[Admin, User]:
        """Create an admin user and its Admin record.

        Raises:
            InvalidRequestError: On a bad role, short password or duplicate email.
        """
        email = email.strip().lower()
        if role not in ADMIN_ROLES:
            raise InvalidRequestError("Invalid role value")
        if len(password) < 6:
            raise InvalidRequestError("Password must be at least 6 characters long")
        if await self.email_taken(email):
            raise InvalidRequestError("Email already exists")

        user = User(
            email=email,
            name=name,
            password_hash=hash_password(password),
            role="admin",
            email_verified=True,
        )
        self.db.add(user)
        await self.db.flush()
        admin = self.build_admin(user, role=role, created_by=created_by)
        await self.db.commit()
        await self.db.refresh(admin)
        logger.info("Admin %s created with role %s", email, role)
        return admin, user

    async def update_admin(
        self,
        admin_id: str,
        name: str | None = None,
        email: str | None = None,
        role: str | None = None,
    ) -> tuple[Admin, User]:
        """Update an admin's role and its user's name/email.

        Raises:
            NotFoundError: If the admin does not exist.
            InvalidRequestError: On an invalid role or an email already in use.
        """
        admin = await self.get_admin(admin_id)
        if admin is None:
            raise NotFoundError("Admin not found")
        user = await self.db.get(User, admin.user_id)
        if user is None:
            raise NotFoundError("Admin user not found")

        if role is not None:
            if role not in ADMIN_ROLES:
                raise InvalidRequestError("Invalid role value")
            admin.role = role
            admin.capabilities = default_capabilities(role)
        if email is not None:
            email = email.strip().lower()
            if email != user.email and await self.email_taken(email):
                raise InvalidRequestError("Email already exists")
            user.email = email
            admin.email = email
        if name is not None:
            user.name = name
            admin.name = name

        await self.db.commit()
        return admin, user

    async def set_status(self, admin_id: str, status: str) -> Admin:
        if status not in ("active", "inactive"):
            raise InvalidRequestError("Invalid status value")
        admin = await self.get_admin(admin_id)
        if admin is None:
            raise NotFoundError("Admin not found")
        admin.status = status
        await self.db.commit()
        return admin

    async def delete_admin(self, admin_id: str) -> None:
        """Delete an admin record and its user account.

        Raises:
            NotFoundError: If the admin does not exist.
        """
        admin = await self.get_admin(admin_id)
        if admin is None:
            raise NotFoundError("Admin not found")
        user = await self.db.get(User, admin.user_id)
        await self.db.delete(admin)
        if user is not None:
            await self.db.delete(user)
        await self.db.commit()

    async def clear_all(self, keep_user_id: str) -> int:
        """Delete every admin (and its user) except the caller's own account.

        Returns:
            Number of admins removed.
        """
        result = await self.db.execute(select(Admin).where(Admin.user_id != keep_user_id))
        admins = list(result.scalars().all())
        for admin in admins:
            user = await self.db.get(User, admin.user_id)
            await self.db.delete(admin)
            if user is not None:
                await self.db.delete(user)
        await self.db.commit()
        logger.info("Cleared %d admin accounts", len(admins))
        return len(admins)
