"""Pydantic v2 schemas for tools, sharing and the credential vault."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

BillingPeriod = Literal["monthly", "yearly"]
PaymentMethod = Literal["card", "bank", "paypal", "other"]
TwoFactorMethod = Literal["mobile", "email"]


class ToolFields(BaseModel):
    description: str | None = None
    category: str | None = Field(default=None, max_length=255)
    username: str | None = Field(default=None, max_length=255)
    password: str | None = None
    api_key: str | None = None
    notes: str | None = None
    tags: list[str] | str | None = None
    is_paid: bool | None = None
    has_autopay: bool | None = None
    price: float | None = Field(default=None, ge=0)
    billing_period: BillingPeriod | None = None
    payment_method: PaymentMethod | None = None
    card_last4: str | None = Field(default=None, max_length=4)
    has_2fa: bool | None = None
    two_factor_method: TwoFactorMethod | None = None
    status: Literal["active", "inactive"] | None = None


class CreateToolRequest(ToolFields):
    """Request body for creating a tool; ``name`` is required."""

    name: str = Field(..., max_length=255)


class UpdateToolRequest(ToolFields):
    """Partial update request for an existing tool."""

    name: str | None = Field(default=None, max_length=255)


class ShareToolRequest(BaseModel):
    user_id: str
    permission: str = "view"


class CreateCredentialRequest(BaseModel):
    name: str = Field(..., max_length=255)
    service: str = Field(..., max_length=255)
    username: str | None = Field(default=None, max_length=255)
    password: str | None = None
    api_key: str | None = None
    notes: str | None = None
    tags: list[str] | str | None = None


class UpdateCredentialRequest(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    service: str | None = Field(default=None, max_length=255)
    username: str | None = Field(default=None, max_length=255)
    password: str | None = None
    api_key: str | None = None
    notes: str | None = None
    tags: list[str] | str | None = None
