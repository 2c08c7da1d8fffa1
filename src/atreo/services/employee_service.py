"""Employee CRUD service layer.

Every employee owns a linked user account (role ``user``) so they can sign
in. Name, email and password changes are mirrored onto that account.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.errors import InvalidRequestError, NotFoundError
from atreo.models.employee import LIST_FIELDS, Employee
from atreo.models.user import User
from atreo.security import hash_password
from atreo.services.admin_service import AdminService
from atreo.services.user_service import split_list

logger = logging.getLogger(__name__)


class EmployeeService:
    """Service for employee CRUD operations.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_employees(self) -> list[tuple[Employee, User | None]]:
        """List active employees newest first with their linked users."""
        result = await self.db.execute(
            select(Employee, User)
            .outerjoin(User, User.id == Employee.user_id)
            .where(Employee.status == "active")
            .order_by(Employee.created_at.desc())
        )
        return [(row.Employee, row.User) for row in result]

    async def get_employee(self, employee_id: str) -> Employee | None:
        result = await self.db.execute(select(Employee).where(Employee.id == employee_id))
        return result.scalar_one_or_none()

    async def create_employee(self, password: str, **fields: Any) -> Employee:
        """Create an employee and its linked user account.

        Args:
            password: Initial login password (>= 6 characters).
            **fields: Employee columns; ``name``, ``email``, ``position``,
                ``department`` and ``employee_id`` are required.

        Returns:
            The created Employee record.

        Raises:
            InvalidRequestError: On a short password or a duplicate email or
                employee id.
        """
        email = fields["email"].strip().lower()
        fields["email"] = email
        if len(password) < 6:
            raise InvalidRequestError("Password must be at least 6 characters long")
        if await AdminService(self.db).email_taken(email):
            raise InvalidRequestError("Email already exists")
        clash = await self.db.execute(
            select(Employee.id).where(Employee.employee_id == fields["employee_id"])
        )
        if clash.first() is not None:
            raise InvalidRequestError("Employee ID already exists")
        clash = await self.db.execute(select(Employee.id).where(Employee.email == email))
        if clash.first() is not None:
            raise InvalidRequestError("Email already exists")

        user = User(
            email=email,
            name=fields["name"],
            password_hash=hash_password(password),
            role="user",
            employee_id=fields["employee_id"],
            email_verified=True,
        )
        self.db.add(user)
        await self.db.flush()

        if fields.get("date_of_joined") and not fields.get("hire_date"):
            fields["hire_date"] = fields["date_of_joined"]
        for field in LIST_FIELDS:
            if field in fields:
                fields[field] = split_list(fields[field], "\n")

        employee = Employee(user_id=user.id, **fields)
        self.db.add(employee)
        await self.db.commit()
        await self.db.refresh(employee)
        logger.info("Employee %s created", fields["employee_id"])
        return employee

    async def update_employee(
        self,
        employee_id: str,
        actor_is_super_admin: bool,
        **fields: Any,
    ) -> Employee:
        """Partial update of an employee, mirrored onto the linked user.

        A password change is applied only for super-admins and silently
        ignored otherwise.

        Raises:
            NotFoundError: If the employee does not exist.
            InvalidRequestError: If the new email or employee id is taken.
        """
        employee = await self.get_employee(employee_id)
        if employee is None:
            raise NotFoundError("Employee not found")
        user = await self.db.get(User, employee.user_id) if employee.user_id else None

        password = fields.pop("password", None)
        if password is not None and not actor_is_super_admin:
            password = None
        if password is not None and len(password) < 6:
            raise InvalidRequestError("Password must be at least 6 characters long")

        email = fields.get("email")
        if email is not None:
            email = email.strip().lower()
            fields["email"] = email
            if email != employee.email:
                clash = await self.db.execute(
                    select(Employee.id).where(Employee.email == email, Employee.id != employee.id)
                )
                user_clash = await self.db.execute(
                    select(User.id).where(
                        User.email == email,
                        User.id != (user.id if user else None),
                    )
                )
                if clash.first() is not None or user_clash.first() is not None:
                    raise InvalidRequestError("Email already exists")

        new_code = fields.get("employee_id")
        if new_code is not None and new_code != employee.employee_id:
            clash = await self.db.execute(
                select(Employee.id).where(Employee.employee_id == new_code)
            )
            if clash.first() is not None:
                raise InvalidRequestError("Employee ID already exists")

        if fields.get("date_of_joined"):
            fields["hire_date"] = fields["date_of_joined"]
        for field in LIST_FIELDS:
            if fields.get(field) is not None:
                fields[field] = split_list(fields[field], "\n")

        for field, value in fields.items():
            if value is not None:
                setattr(employee, field, value)

        if user is not None:
            if fields.get("name") is not None:
                user.name = fields["name"]
            if email is not None:
                user.email = email
            if new_code is not None:
                user.employee_id = new_code
            if password is not None:
                user.password_hash = hash_password(password)

        await self.db.commit()
        await self.db.refresh(employee)
        return employee

    async def delete_employee(self, employee_id: str) -> None:
        """Delete an employee and its linked user.

        Raises:
            NotFoundError: If the employee does not exist.
        """
        employee = await self.get_employee(employee_id)
        if employee is None:
            raise NotFoundError("Employee not found")
        user = await self.db.get(User, employee.user_id) if employee.user_id else None
        await self.db.delete(employee)
        if user is not None:
            await self.db.delete(user)
        await self.db.commit()

    async def clear_all(self) -> int:
        """Delete every employee and their linked users.

        Returns:
            Number of employees removed.
        """
        result = await self.db.execute(select(Employee))
        employees = list(result.scalars().all())
        user_ids = [e.user_id for e in employees if e.user_id]
        for employee in employees:
            await self.db.delete(employee)
        if user_ids:
            users = await self.db.execute(select(User).where(User.id.in_(user_ids)))
            for user in users.scalars().all():
                await self.db.delete(user)
        await self.db.commit()
        logger.info("Cleared %d employees", len(employees))
        return len(employees)
