"""Authentication endpoints: login, signup, logout and current user.

Bodies are plain JSON (not JSON:API envelopes). Login and signup share the
``auth`` rate limit.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.api.deps import get_current_user, get_db, get_request_context, rate_limit
from atreo.config import get_settings
from atreo.models.user import User
from atreo.schemas.auth import (
    AuthResponse,
    AuthUser,
    LoginRequest,
    MeResponse,
    MessageResponse,
    SignupRequest,
)
from atreo.services.audit_service import RequestContext
from atreo.services.auth_service import AuthResult, AuthService

router = APIRouter()


def auth_user(result: AuthResult) -> AuthUser:
    """Map an AuthResult to the client-facing user shape."""
    user = result.user
    return AuthUser(
        id=str(user.id),
        email=user.email,
        name=user.name,
        role=user.role,
        admin_role=result.admin_role,
        is_active=user.is_active,
        email_verified=user.email_verified,
        organization_id=user.organization_id,
        employee_id=user.employee_id,
        last_login=user.last_login.isoformat() if user.last_login else None,
        permissions={"modules": result.modules},
    )


def _auth_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(
        token=result.token,
        expires_in=get_settings().jwt_expires_hours * 3600,
        user=auth_user(result),
    )


@router.post("/login", dependencies=[Depends(rate_limit("auth"))])
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> AuthResponse:
    """Exchange email and password for an access token."""
    result = await AuthService(db).login(body.email, body.password, context)
    return _auth_response(result)


@router.post("/signup", status_code=201, dependencies=[Depends(rate_limit("auth"))])
async def signup(
    body: SignupRequest,
    db: AsyncSession = Depends(get_db),
) -> AuthResponse:
    """Register a new account and return an access token."""
    result = await AuthService(db).signup(
        name=body.name,
        email=body.email,
        password=body.password,
        role=body.role,
        admin_role=body.admin_role,
    )
    return _auth_response(result)


@router.post("/logout")
async def logout() -> MessageResponse:
    """Tokens are stateless; the client discards its copy."""
    return MessageResponse(message="Logged out successfully")


@router.get("/me")
async def me(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MeResponse:
    """Return the authenticated user with admin role and permissions."""
    result = await AuthService(db).describe(user)
    return MeResponse(user=auth_user(result))
