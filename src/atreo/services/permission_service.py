"""Three-layer access control: module, then page, then read/write.

Super-admins (users with role ``admin`` whose Admin record has role
``super-admin``) bypass every check. Accountants get a fixed read-only
allowlist of modules. Everyone else is governed by their Permission record.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.errors import NotFoundError
from atreo.models.permission import Permission
from atreo.models.user import Admin, User

logger = logging.getLogger(__name__)

ACCOUNTANT_MODULES = frozenset({"invoices", "dashboard", "users", "settings", "credentials"})
ACCESS_TYPES = ("read", "write")


def normalize_modules(modules: dict[str, Any]) -> dict[str, Any]:
    """Coerce a client-supplied module map to ``{m: {"pages": {p: {read, write}}}}``."""
    normalized: dict[str, Any] = {}
    for module, config in (modules or {}).items():
        pages = (config or {}).get("pages") or {}
        normalized[module] = {
            "pages": {
                page: {
                    "read": bool((access or {}).get("read", False)),
                    "write": bool((access or {}).get("write", False)),
                }
                for page, access in pages.items()
            }
        }
    return normalized


class PermissionService:
    """Evaluates and manages per-user permissions.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_admin(self, user: User) -> Admin | None:
        result = await self.db.execute(select(Admin).where(Admin.user_id == user.id))
        return result.scalar_one_or_none()

    async def get_admin_role(self, user: User) -> str | None:
        """Return ``admin``/``super-admin`` for admin users, else None."""
        if user.role != "admin":
            return None
        admin = await self.get_admin(user)
        return admin.role if admin else None

    async def is_super_admin(self, user: User | None) -> bool:
        if user is None or user.role != "admin":
            return False
        return await self.get_admin_role(user) == "super-admin"

    async def get_permission(self, user_id: str) -> Permission | None:
        result = await self.db.execute(select(Permission).where(Permission.user_id == user_id))
        return result.scalar_one_or_none()

    async def get_modules(self, user_id: str) -> dict[str, Any]:
        permission = await self.get_permission(user_id)
        return permission.modules if permission else {}

    async def has_module_access(self, user: User | None, module: str) -> bool:
        """Return True if ``user`` may enter ``module`` at all."""
        if user is None:
            return False
        if await self.is_super_admin(user):
            return True
        if user.role == "accountant":
            return module in ACCOUNTANT_MODULES
        modules = await self.get_modules(user.id)
        return module in modules

    async def has_page_access(
        self,
        user: User | None,
        module: str,
        page: str,
        access_type: str = "read",
    ) -> bool:
        """Return True if ``user`` holds ``access_type`` on ``module:page``.

        Write access implies read access.
        """
        if user is None:
            return False
        if await self.is_super_admin(user):
            return True
        if user.role == "accountant":
            return module in ACCOUNTANT_MODULES and access_type == "read"

        modules = await self.get_modules(user.id)
        pages = (modules.get(module) or {}).get("pages") or {}
        access = pages.get(page)
        if not access:
            return False
        if access_type == "write":
            return bool(access.get("write"))
        return bool(access.get("read") or access.get("write"))

    async def set_permissions(
        self,
        user_id: str,
        modules: dict[str, Any],
        actor_id: str,
    ) -> Permission:
        """Create or replace a user's module map.

        Args:
            user_id: UUID of the user receiving permissions.
            modules: Module map to store; leaves are coerced to booleans.
            actor_id: UUID of the super-admin making the change.

        Returns:
            The stored Permission record.

        Raises:
            NotFoundError: If the user does not exist.
        """
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")

        normalized = normalize_modules(modules)
        permission = await self.get_permission(user_id)
        if permission is None:
            permission = Permission(
                user_id=user_id,
                modules=normalized,
                created_by=actor_id,
                updated_by=actor_id,
            )
            self.db.add(permission)
        else:
            permission.modules = normalized
            permission.updated_by = actor_id

        await self.db.commit()
        await self.db.refresh(permission)
        logger.info("Permissions for user %s updated by %s", user_id, actor_id)
        return permission
