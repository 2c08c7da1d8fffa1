"""Pydantic v2 schemas for customers."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

CustomerStatus = Literal["active", "inactive", "prospect", "churned"]
CustomerType = Literal["individual", "business", "enterprise"]


class CustomerAddress(BaseModel):
    street: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    country: str | None = None


class CustomerFields(BaseModel):
    phone: str | None = Field(default=None, max_length=20)
    company: str | None = Field(default=None, max_length=100)
    address: CustomerAddress | None = None
    tags: list[str] | str | None = None
    notes: str | None = None
    assigned_to: str | None = None


class CreateCustomerRequest(CustomerFields):
    name: str | None = Field(default=None, max_length=100)
    email: str | None = Field(default=None, max_length=255)
    status: CustomerStatus = "active"
    customer_type: CustomerType = "individual"


class UpdateCustomerRequest(CustomerFields):
    """Partial update; only the fields sent are applied."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    email: str | None = Field(default=None, max_length=255)
    status: CustomerStatus | None = None
    customer_type: CustomerType | None = None
    total_revenue: float | None = Field(default=None, ge=0)
    last_contact_date: datetime | None = None
