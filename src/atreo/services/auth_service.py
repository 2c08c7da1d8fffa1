"""Login, signup and token-to-user resolution."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.config import get_settings
from atreo.errors import AuthenticationError, InvalidRequestError
from atreo.models.base import utcnow
from atreo.models.user import Admin, User
from atreo.security import create_access_token, decode_access_token, hash_password, verify_password
from atreo.services.admin_service import BOOTSTRAP_ADMIN_ID, AdminService, default_capabilities
from atreo.services.audit_service import AuditService, RequestContext
from atreo.services.permission_service import PermissionService

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


@dataclass
class AuthResult:
    """Outcome of a successful login or signup."""

    user: User
    token: str
    admin_role: str | None = None
    modules: dict[str, Any] = field(default_factory=dict)


class AuthService:
    """Service for authenticating users and issuing access tokens.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.audit = AuditService(db)
        self.permissions = PermissionService(db)

    async def get_user_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == normalize_email(email)))
        return result.scalar_one_or_none()

    async def login(
        self,
        email: str,
        password: str,
        context: RequestContext | None = None,
    ) -> AuthResult:
        """Verify credentials and issue an access token.

        Args:
            email: Login email; normalized before lookup.
            password: Plaintext password.
            context: Client details for the audit trail.

        Returns:
            AuthResult with the user, token, admin role and permission modules.

        Raises:
            AuthenticationError: On unknown email, deactivated account or
                wrong password.
        """
        email = normalize_email(email)
        user = await self.get_user_by_email(email)
        if user is None:
            raise AuthenticationError("Invalid credentials")
        if not user.is_active:
            raise AuthenticationError("Account is deactivated")
        if not verify_password(password, user.password_hash):
            await self.audit.log_login_attempt(
                email, False, user_id=user.id, reason="Invalid password", context=context
            )
            raise AuthenticationError("Invalid credentials")

        user.last_login = utcnow()
        await self.db.commit()

        admin_role = None
        if user.role == "admin":
            admin_role = await self._ensure_admin_record(user)

        await self.audit.log_login_attempt(email, True, user_id=user.id, context=context)
        logger.info("User %s logged in", email)

        modules = await self.permissions.get_modules(user.id)
        token = create_access_token(user.id, user.email, user.role, admin_role)
        return AuthResult(user=user, token=token, admin_role=admin_role, modules=modules)

    async def _ensure_admin_record(self, user: User) -> str | None:
        """Return the admin role, bootstrapping the configured super-admin if needed."""
        admin = await self.permissions.get_admin(user)
        if admin is not None:
            return admin.role

        settings = get_settings()
        if not settings.admin_email or normalize_email(settings.admin_email) != user.email:
            return None

        result = await self.db.execute(select(Admin).where(Admin.admin_id == BOOTSTRAP_ADMIN_ID))
        admin = result.scalar_one_or_none()
        if admin is not None:
            admin.user_id = user.id
            admin.name = user.name
            admin.email = user.email
            admin.role = "super-admin"
            admin.capabilities = default_capabilities("super-admin")
            admin.status = "active"
        else:
            AdminService(self.db).build_admin(
                user, role="super-admin", admin_id=BOOTSTRAP_ADMIN_ID
            )
        await self.db.commit()
        logger.info("Bootstrapped super-admin %s", user.email)
        return "super-admin"

    async def signup(
        self,
        name: str,
        email: str,
        password: str,
        role: str | None = None,
        admin_role: str | None = None,
    ) -> AuthResult:
        """Register a new account and issue an access token.

        Admin self-registration is honoured only when ``allow_admin_signup``
        is enabled; otherwise every signup becomes a regular user.

        Raises:
            InvalidRequestError: On a short password or an email already in use.
        """
        email = normalize_email(email)
        if len(password) < 6:
            raise InvalidRequestError("Password must be at least 6 characters long")

        admins = AdminService(self.db)
        if await admins.email_taken(email):
            raise InvalidRequestError("User already exists with this email")

        settings = get_settings()
        user_role = "admin" if role == "admin" and settings.allow_admin_signup else "user"
        user = User(
            email=email,
            name=name.strip(),
            password_hash=hash_password(password),
            role=user_role,
            email_verified=True,
        )
        self.db.add(user)
        await self.db.flush()

        resolved_admin_role = None
        if user_role == "admin":
            resolved_admin_role = "super-admin" if admin_role == "super-admin" else "admin"
            admins.build_admin(user, role=resolved_admin_role)

        await self.db.commit()
        await self.db.refresh(user)
        logger.info("User %s signed up with role %s", email, user_role)

        token = create_access_token(user.id, user.email, user.role, resolved_admin_role)
        return AuthResult(user=user, token=token, admin_role=resolved_admin_role)

    async def resolve_token(self, token: str) -> User:
        """Return the active user a bearer token belongs to.

        Raises:
            AuthenticationError: If the token is invalid or the user is
                missing or deactivated.
        """
        payload = decode_access_token(token)
        user_id = payload.get("sub")
        if not user_id:
            raise AuthenticationError("Invalid token")
        user = await self.db.get(User, user_id)
        if user is None or not user.is_active:
            raise AuthenticationError("Invalid token")
        return user

    async def describe(self, user: User) -> AuthResult:
        """Build an AuthResult for an already-authenticated user (no new token)."""
        admin_role = await self.permissions.get_admin_role(user)
        modules = await self.permissions.get_modules(user.id)
        return AuthResult(user=user, token="", admin_role=admin_role, modules=modules)
