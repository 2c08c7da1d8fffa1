"""Employee CRUD endpoints returning JSON:API responses (admin only)."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.api.deps import get_db, rate_limit, require_admin
from atreo.models.employee import Employee
from atreo.models.user import User
from atreo.schemas.employee import CreateEmployeeRequest, UpdateEmployeeRequest
from atreo.schemas.jsonapi import (
    JSONAPIListResponse,
    JSONAPIMetaResponse,
    JSONAPIRequest,
    JSONAPIResource,
    JSONAPISingleResponse,
    iso,
)
from atreo.services.employee_service import EmployeeService
from atreo.services.permission_service import PermissionService

router = APIRouter()

_JSON_FIELDS = ("emergency_contact", "bank_details", "salary_revision_history")


# ---------------------------------------------------------------------------
# Attribute mapping helpers
# ---------------------------------------------------------------------------


def employee_to_attrs(employee: Employee) -> dict:
    """Map an Employee model to JSON:API attributes."""
    return {
        "employee_id": employee.employee_id,
        "user_id": employee.user_id,
        "name": employee.name,
        "email": employee.email,
        "profile_photo": employee.profile_photo,
        "position": employee.position,
        "department": employee.department,
        "employment_type": employee.employment_type,
        "work_location": employee.work_location,
        "reporting_manager": employee.reporting_manager,
        "personal_email": employee.personal_email,
        "work_email": employee.work_email,
        "phone": employee.phone,
        "whatsapp": employee.whatsapp,
        "linkedin": employee.linkedin,
        "current_address": employee.current_address,
        "permanent_address": employee.permanent_address,
        "emergency_contact": employee.emergency_contact or {},
        "documents": employee.documents or {},
        "hire_date": iso(employee.hire_date),
        "date_of_joined": iso(employee.date_of_joined),
        "confirmation_date": iso(employee.confirmation_date),
        "last_working_date": iso(employee.last_working_date),
        "employment_status": employee.employment_status,
        "status": employee.status,
        "salary": employee.salary,
        "salary_type": employee.salary_type,
        "payment_currency": employee.payment_currency,
        "payroll_cycle": employee.payroll_cycle,
        "bank_details": employee.bank_details or {},
        "last_salary_paid_date": iso(employee.last_salary_paid_date),
        "salary_revision_history": employee.salary_revision_history or [],
        "bonus": employee.bonus,
        "incentives": employee.incentives,
        "deductions": employee.deductions,
        "role_description": employee.role_description,
        "core_responsibilities": employee.core_responsibilities or [],
        "kpis": employee.kpis or [],
        "weekly_deliverables": employee.weekly_deliverables or [],
        "monthly_goals": employee.monthly_goals or [],
        "client_accounts": employee.client_accounts or [],
        "tools_used": employee.tools_used or [],
        "ai_tools_authorized": employee.ai_tools_authorized or [],
        "created_at": employee.created_at.isoformat(),
        "updated_at": employee.updated_at.isoformat(),
    }


def _employee_resource(employee: Employee, user: User | None = None) -> JSONAPIResource:
    attrs = employee_to_attrs(employee)
    if user is not None:
        attrs["user"] = {"id": user.id, "email": user.email, "is_active": user.is_active}
    return JSONAPIResource(type="employees", id=str(employee.id), attributes=attrs)


def _column_values(attrs: BaseModel) -> dict[str, Any]:
    """Dump request attributes, with nested structures made JSON-safe."""
    data = attrs.model_dump(exclude_unset=True)
    json_data = attrs.model_dump(mode="json", by_alias=True, exclude_unset=True)
    for key in _JSON_FIELDS:
        if key in data:
            data[key] = json_data[key]
    return data


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("")
async def list_employees(
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """List active employees newest first."""
    rows = await EmployeeService(db).list_employees()
    return JSONAPIListResponse(
        data=[_employee_resource(employee, user) for employee, user in rows],
        meta={"total": len(rows)},
    )


@router.post("", status_code=201, dependencies=[Depends(rate_limit("write"))])
async def create_employee(
    body: JSONAPIRequest[CreateEmployeeRequest],
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """Create an employee together with its login account."""
    fields = {k: v for k, v in _column_values(body.data.attributes).items() if v is not None}
    password = fields.pop("password")
    employee = await EmployeeService(db).create_employee(password, **fields)
    return JSONAPISingleResponse(data=_employee_resource(employee))


@router.delete("/clear-all")
async def clear_employees(
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIMetaResponse:
    """Delete every employee and their linked accounts."""
    count = await EmployeeService(db).clear_all()
    return JSONAPIMetaResponse(meta={"deleted_count": count})


@router.get("/{employee_id}")
async def get_employee(
    employee_id: str,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """Get a single employee by UUID."""
    employee = await EmployeeService(db).get_employee(employee_id)
    if employee is None:
        raise HTTPException(status_code=404, detail="Employee not found")
    return JSONAPISingleResponse(data=_employee_resource(employee))


@router.patch("/{employee_id}", dependencies=[Depends(rate_limit("write"))])
async def update_employee(
    employee_id: str,
    body: JSONAPIRequest[UpdateEmployeeRequest],
    actor: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """Partially update an employee; only super-admins may reset the password."""
    is_super_admin = await PermissionService(db).is_super_admin(actor)
    employee = await EmployeeService(db).update_employee(
        employee_id, is_super_admin, **_column_values(body.data.attributes)
    )
    return JSONAPISingleResponse(data=_employee_resource(employee))


@router.delete("/{employee_id}", status_code=204)
async def delete_employee(
    employee_id: str,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete an employee and its linked user."""
    await EmployeeService(db).delete_employee(employee_id)
