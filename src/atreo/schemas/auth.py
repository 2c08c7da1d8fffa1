"""Pydantic v2 schemas for login, signup and OTP endpoints.

These are action endpoints, so bodies are plain JSON objects rather than
JSON:API envelopes.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, EmailStr, Field


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class SignupRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Literal["admin", "user"] | None = None
    admin_role: Literal["admin", "super-admin"] | None = None


class AuthUser(BaseModel):
    """The authenticated user as returned to the client."""

    id: str
    email: str
    name: str
    role: str
    admin_role: str | None = None
    is_active: bool
    email_verified: bool
    organization_id: str | None = None
    employee_id: str | None = None
    last_login: str | None = None
    permissions: dict[str, Any] = Field(default_factory=dict)


class AuthResponse(BaseModel):
    token: str
    token_type: str = "Bearer"
    expires_in: int
    user: AuthUser


class MeResponse(BaseModel):
    user: AuthUser


class MessageResponse(BaseModel):
    message: str


class SendOTPRequest(BaseModel):
    email: EmailStr
    purpose: Literal["email-verification", "password-reset", "login"] = "email-verification"


class SendOTPResponse(BaseModel):
    message: str
    expires_in: str


class VerifyOTPRequest(BaseModel):
    email: EmailStr
    otp: str = Field(..., min_length=1, max_length=10)
    purpose: Literal["email-verification", "password-reset", "login"] = "email-verification"
