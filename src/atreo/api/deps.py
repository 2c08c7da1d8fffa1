"""Shared FastAPI dependencies for sessions, Redis, authentication and access control."""

import logging
from collections.abc import AsyncGenerator, Awaitable, Callable

from fastapi import Depends, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.config import get_settings
from atreo.errors import AuthenticationError, PermissionDeniedError, RateLimitedError
from atreo.models.user import User
from atreo.services.audit_service import RequestContext
from atreo.services.auth_service import AuthService
from atreo.services.permission_service import PermissionService
from atreo.services.rate_limiter import LIMIT_MESSAGE, RateLimiter, limit_for

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session from the app-level session factory.

    The session factory is stored on ``request.app.state.session_factory``
    by the application lifespan. The session auto-closes when the request ends.
    """
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        yield session


async def get_redis(request: Request) -> Redis | None:
    """Return the async Redis client stored on app state, if one was initialized."""
    return getattr(request.app.state, "redis", None)


async def get_request_context(request: Request) -> RequestContext:
    """Capture the client IP and user agent for audit entries."""
    return RequestContext.from_request(request)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the bearer token to an active user.

    Raises:
        AuthenticationError: If no token is supplied or it does not map to
            an active user.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authentication required")
    return await AuthService(db).resolve_token(credentials.credentials)


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Allow any user with role ``admin``."""
    if user.role != "admin":
        raise PermissionDeniedError("Admin access required")
    return user


async def require_super_admin(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Allow only admins whose Admin record has role ``super-admin``."""
    if user.role != "admin":
        raise PermissionDeniedError("Admin access required")
    if not await PermissionService(db).is_super_admin(user):
        raise PermissionDeniedError("Super-admin access required")
    return user


def require_module_access(module: str) -> Callable[..., Awaitable[User]]:
    """Build a dependency that requires access to ``module``."""

    async def _check(
        user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ) -> User:
        if not await PermissionService(db).has_module_access(user, module):
            raise PermissionDeniedError(f"Access denied: Module '{module}' is not accessible")
        return user

    return _check


def require_page_access(
    module: str,
    page: str,
    access_type: str = "read",
) -> Callable[..., Awaitable[User]]:
    """Build a dependency that requires ``access_type`` on ``module:page``."""

    async def _check(
        user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ) -> User:
        if not await PermissionService(db).has_page_access(user, module, page, access_type):
            raise PermissionDeniedError(
                f"Access denied: {access_type} access to '{module}:{page}' is not allowed"
            )
        return user

    return _check


def rate_limit(name: str) -> Callable[..., Awaitable[None]]:
    """Build a dependency enforcing the named per-IP quota.

    Limits are skipped when disabled in settings or when Redis is not
    available; a Redis error lets the request through.
    """

    async def _check(
        request: Request,
        response: Response,
        redis: Redis | None = Depends(get_redis),
    ) -> None:
        settings = get_settings()
        if not settings.rate_limit_enabled or redis is None:
            return
        rate = limit_for(name, settings)
        client_id = RequestContext.from_request(request).ip_address or "unknown"
        try:
            allowed, retry_after = await RateLimiter(redis).hit(rate, client_id)
        except Exception:
            logger.warning("Rate limiter unavailable for '%s'", name, exc_info=True)
            return
        response.headers["X-RateLimit-Limit"] = str(rate.limit)
        if not allowed:
            raise RateLimitedError(LIMIT_MESSAGE, retry_after=retry_after)

    return _check
