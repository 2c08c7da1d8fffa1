"""Pydantic v2 schemas for payment submissions."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class SubmissionBankDetails(BaseModel):
    bank_name: str | None = None
    account_number: str | None = None
    full_account_number: str | None = None
    swift_code: str | None = None


class CreateSubmissionRequest(BaseModel):
    bank_details: SubmissionBankDetails = Field(default_factory=SubmissionBankDetails)
    work_period: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    total_amount: float = Field(..., ge=0)
    invoice_number: str | None = Field(default=None, max_length=100)


class SubmissionStatusRequest(BaseModel):
    status: Literal["pending", "approved", "rejected"]
    rejection_reason: str | None = None
    invoice_number: str | None = Field(default=None, max_length=100)
    payment_date: datetime | None = None
    payment_reference: str | None = Field(default=None, max_length=255)
