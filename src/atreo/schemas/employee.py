"""Pydantic v2 schemas for employee CRUD.

List fields (responsibilities, KPIs, goals, ...) accept a list or a
newline-separated string.
"""

from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

EmploymentType = Literal["Full-time", "Intern", "Freelancer", "Consultant"]
WorkLocation = Literal["Remote", "Hybrid", "Office"]
EmploymentStatus = Literal["Active", "On Notice", "Exited"]
EmployeeStatus = Literal["active", "inactive", "terminated", "on-leave"]
SalaryType = Literal["Monthly", "Hourly", "Project-based"]
PayrollCycle = Literal["Weekly", "Monthly"]
ListField = list[str] | str | None


class BankDetails(BaseModel):
    bank_name: str | None = None
    account_number: str | None = None
    swift_code: str | None = None
    routing_number: str | None = None
    account_holder_name: str | None = None


class EmergencyContact(BaseModel):
    name: str | None = None
    phone: str | None = None
    relationship: str | None = None


class SalaryRevision(BaseModel):
    """One salary change. Serialized with a ``date`` key."""

    model_config = ConfigDict(populate_by_name=True)

    revision_date: date | None = Field(default=None, alias="date")
    amount: float = Field(..., ge=0)
    reason: str | None = None


class EmployeeFields(BaseModel):
    """Optional employee attributes shared by create and update."""

    profile_photo: str | None = None
    employment_type: EmploymentType | None = None
    work_location: WorkLocation | None = None
    reporting_manager: str | None = None
    personal_email: EmailStr | None = None
    work_email: EmailStr | None = None
    phone: str | None = None
    whatsapp: str | None = None
    linkedin: str | None = None
    current_address: str | None = None
    permanent_address: str | None = None
    emergency_contact: EmergencyContact | None = None
    hire_date: date | None = None
    date_of_joined: date | None = None
    confirmation_date: date | None = None
    last_working_date: date | None = None
    employment_status: EmploymentStatus | None = None
    status: EmployeeStatus | None = None
    salary: float | None = Field(default=None, ge=0)
    salary_type: SalaryType | None = None
    payment_currency: str | None = Field(default=None, min_length=3, max_length=3)
    payroll_cycle: PayrollCycle | None = None
    bank_details: BankDetails | None = None
    last_salary_paid_date: date | None = None
    salary_revision_history: list[SalaryRevision] | None = None
    bonus: float | None = Field(default=None, ge=0)
    incentives: float | None = Field(default=None, ge=0)
    deductions: float | None = Field(default=None, ge=0)
    role_description: str | None = None
    core_responsibilities: ListField = None
    kpis: ListField = None
    weekly_deliverables: ListField = None
    monthly_goals: ListField = None
    client_accounts: ListField = None
    tools_used: ListField = None
    ai_tools_authorized: ListField = None


class CreateEmployeeRequest(EmployeeFields):
    """Request body for creating an employee and its login."""

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6)
    position: str = Field(..., min_length=1, max_length=255)
    department: str = Field(..., min_length=1, max_length=255)
    employee_id: str = Field(..., min_length=1, max_length=50)


class UpdateEmployeeRequest(EmployeeFields):
    """Partial update; only provided fields are applied."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=6)
    position: str | None = Field(default=None, min_length=1, max_length=255)
    department: str | None = Field(default=None, min_length=1, max_length=255)
    employee_id: str | None = Field(default=None, min_length=1, max_length=50)
