"""Pydantic v2 schemas for users, admins and profiles."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, EmailStr, Field, StrictBool


class CreateUserRequest(BaseModel):
    """Request body for creating a user (super-admin only)."""

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Literal["admin", "user", "employee", "accountant"] = "user"
    employee_id: str | None = Field(default=None, max_length=50)


class UpdateUserRequest(BaseModel):
    """Partial update of another user's account."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=50)
    is_active: bool | None = None


class EmergencyContact(BaseModel):
    name: str | None = None
    phone: str | None = None
    relationship: str | None = None


class UpdateProfileRequest(BaseModel):
    """Self-service profile update; employee fields sync to the employee record.

    List fields accept either a list or a comma-separated string.
    """

    name: str | None = Field(default=None, min_length=1, max_length=255)
    phone: str | None = None
    address: str | None = None
    position: str | None = None
    department: str | None = None
    whatsapp: str | None = None
    linkedin: str | None = None
    personal_email: EmailStr | None = None
    work_email: EmailStr | None = None
    current_address: str | None = None
    permanent_address: str | None = None
    profile_photo: str | None = None
    role_description: str | None = None
    emergency_contact: EmergencyContact | None = None
    bank_name: str | None = None
    account_number: str | None = None
    swift_code: str | None = None
    routing_number: str | None = None
    account_holder_name: str | None = None
    core_responsibilities: list[str] | str | None = None
    kpis: list[str] | str | None = None
    weekly_deliverables: list[str] | str | None = None
    monthly_goals: list[str] | str | None = None
    client_accounts: list[str] | str | None = None
    tools_used: list[str] | str | None = None
    ai_tools_authorized: list[str] | str | None = None


class RoleUpdateRequest(BaseModel):
    role: str


class AdminRoleUpdateRequest(BaseModel):
    admin_role: str


class StatusUpdateRequest(BaseModel):
    is_active: StrictBool


class LegacyPermissionsRequest(BaseModel):
    permissions: list[str]


class CreateAdminRequest(BaseModel):
    """Request body for creating an admin account."""

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Literal["admin", "super-admin"]


class UpdateAdminRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    role: Literal["admin", "super-admin"] | None = None


class AdminStatusRequest(BaseModel):
    status: str

