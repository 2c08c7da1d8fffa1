"""Pydantic v2 schemas for invoices and payments."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from atreo.models.invoice import CURRENCIES


class InvoiceFields(BaseModel):
    """Invoice attributes accepted from the multipart create form."""

    invoice_number: str | None = Field(default=None, max_length=100)
    amount: float = Field(..., ge=0)
    currency: str = "USD"
    provider: str | None = Field(default=None, max_length=255)
    billing_date: datetime
    due_date: datetime | None = None
    category: str | None = Field(default=None, max_length=255)
    organization_id: str | None = None
    tool_ids: list[str] = Field(default_factory=list)

    @field_validator("currency")
    @classmethod
    def _known_currency(cls, value: str) -> str:
        value = value.strip().upper()
        if value not in CURRENCIES:
            raise ValueError(f"Unsupported currency: {value}")
        return value


class RejectInvoiceRequest(BaseModel):
    reason: str | None = None


class CreatePaymentRequest(BaseModel):
    """Request body for a payroll payment; ``month`` is free-form text."""

    name: str | None = Field(default=None, max_length=255)
    amount: float | None = Field(default=None, ge=0)
    month: str | None = None
    role: str | None = Field(default=None, max_length=255)
    contract_hours: float | None = Field(default=None, ge=0)
    fulfilled_hours: float | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
