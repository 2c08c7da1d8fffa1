"""Customer records for the CRM module."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.errors import InvalidRequestError, NotFoundError
from atreo.models.customer import CUSTOMER_STATUSES, Customer
from atreo.models.user import User
from atreo.schemas.pagination import PaginationMeta
from atreo.services.audit_service import AuditService, RequestContext
from atreo.services.pagination import paginate
from atreo.services.user_service import split_list

logger = logging.getLogger(__name__)

# Fields applied only when the new value is truthy
_TRUTHY_FIELDS = ("name", "address", "status", "customer_type", "tags", "last_contact_date")
# Fields applied whenever they are sent, including null
_NULLABLE_FIELDS = ("phone", "company", "notes", "assigned_to")


class CustomerService:
    """Service for customer CRUD and summary statistics.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.audit = AuditService(db)

    async def list_customers(
        self,
        *,
        status: str | None = None,
        customer_type: str | None = None,
        search: str | None = None,
        assigned_to: str | None = None,
        page_size: int = 20,
        after: str | None = None,
    ) -> tuple[list[Customer], PaginationMeta]:
        """List customers newest first; ``search`` matches name, email or company."""
        query = select(Customer)
        if status:
            query = query.where(Customer.status == status)
        if customer_type:
            query = query.where(Customer.customer_type == customer_type)
        if assigned_to:
            query = query.where(Customer.assigned_to == assigned_to)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(
                    Customer.name.ilike(pattern),
                    Customer.email.ilike(pattern),
                    Customer.company.ilike(pattern),
                )
            )
        total = await self.db.scalar(select(func.count()).select_from(query.subquery()))
        customers, meta = await paginate(
            self.db, query, Customer.created_at, Customer.id, page_size, after, descending=True
        )
        meta.total = total
        return customers, meta

    async def get_customer(self, customer_id: str) -> Customer:
        result = await self.db.execute(select(Customer).where(Customer.id == customer_id))
        customer = result.scalar_one_or_none()
        if customer is None:
            raise NotFoundError("Customer not found")
        return customer

    async def people(self, customers: list[Customer]) -> dict[str, User]:
        """Load assignees and creators of ``customers`` keyed by user id."""
        ids = {c.assigned_to for c in customers} | {c.created_by for c in customers}
        ids.discard(None)
        if not ids:
            return {}
        result = await self.db.execute(select(User).where(User.id.in_(ids)))
        return {u.id: u for u in result.scalars().all()}

    async def _check_assignee(self, assigned_to: str | None) -> None:
        if assigned_to and await self.db.get(User, assigned_to) is None:
            raise InvalidRequestError("Assigned user not found")

    async def _email_taken(self, email: str, exclude_id: str | None = None) -> bool:
        query = select(Customer.id).where(Customer.email == email)
        if exclude_id is not None:
            query = query.where(Customer.id != exclude_id)
        return (await self.db.execute(query)).first() is not None

    async def create_customer(
        self,
        user: User,
        name: str | None,
        email: str | None,
        context: RequestContext | None = None,
        **fields: Any,
    ) -> Customer:
        """Create a customer owned by ``user``.

        Raises:
            InvalidRequestError: If name or email is missing, the email is
                already used by another customer, or the assignee is unknown.
        """
        name = (name or "").strip()
        email = (email or "").strip().lower()
        if not name or not email:
            raise InvalidRequestError("Name and email are required")
        if await self._email_taken(email):
            raise InvalidRequestError("Customer with this email already exists")
        await self._check_assignee(fields.get("assigned_to"))

        fields["tags"] = split_list(fields.get("tags"))
        fields["address"] = fields.get("address") or {}
        customer = Customer(
            name=name,
            email=email,
            created_by=user.id,
            **{k: v for k, v in fields.items() if v is not None},
        )
        self.db.add(customer)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise InvalidRequestError("Customer with this email already exists") from exc
        await self.db.refresh(customer)
        logger.info("Customer %s created by %s", customer.id, user.id)

        await self.audit.record(
            "customer_created",
            user=user,
            resource="customer",
            resource_id=customer.id,
            details={"name": name, "email": email, "company": customer.company},
            context=context,
        )
        return customer

    async def update_customer(
        self,
        user: User,
        customer_id: str,
        context: RequestContext | None = None,
        **fields: Any,
    ) -> Customer:
        """Apply a partial update to a customer.

        Raises:
            NotFoundError: If the customer does not exist.
            InvalidRequestError: If the new email belongs to another customer
                or the assignee is unknown.
        """
        customer = await self.get_customer(customer_id)
        updated_fields = list(fields)
        await self._check_assignee(fields.get("assigned_to"))

        email = (fields.pop("email", None) or "").strip().lower()
        if email and email != customer.email:
            if await self._email_taken(email, exclude_id=customer.id):
                raise InvalidRequestError("Email already in use by another customer")
            customer.email = email

        if "tags" in fields and fields["tags"] is not None:
            fields["tags"] = split_list(fields["tags"])
        for field, value in fields.items():
            if field == "total_revenue":
                customer.total_revenue = value or 0
            elif field in _NULLABLE_FIELDS or (field in _TRUTHY_FIELDS and value):
                setattr(customer, field, value)

        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise InvalidRequestError("Email already in use by another customer") from exc
        await self.db.refresh(customer)

        await self.audit.record(
            "customer_updated",
            user=user,
            resource="customer",
            resource_id=customer.id,
            details={
                "name": customer.name,
                "email": customer.email,
                "updated_fields": updated_fields,
            },
            context=context,
        )
        return customer

    async def delete_customer(
        self,
        user: User,
        customer_id: str,
        context: RequestContext | None = None,
    ) -> None:
        customer = await self.get_customer(customer_id)
        details = {"name": customer.name, "email": customer.email}
        await self.db.delete(customer)
        await self.db.commit()
        await self.audit.record(
            "customer_deleted",
            user=user,
            resource="customer",
            resource_id=customer_id,
            details=details,
            context=context,
        )

    async def stats_summary(self) -> dict[str, Any]:
        """Counts per status and type plus total and average revenue."""
        status_rows = await self.db.execute(
            select(Customer.status, func.count()).group_by(Customer.status)
        )
        status_breakdown = {status: count for status, count in status_rows}
        type_rows = await self.db.execute(
            select(Customer.customer_type, func.count()).group_by(Customer.customer_type)
        )
        revenue_total, revenue_average = (
            await self.db.execute(
                select(
                    func.coalesce(func.sum(Customer.total_revenue), 0),
                    func.coalesce(func.avg(Customer.total_revenue), 0),
                )
            )
        ).one()

        counts = {status: status_breakdown.get(status, 0) for status in CUSTOMER_STATUSES}
        return {
            "summary": {
                "total": sum(status_breakdown.values()),
                "active": counts["active"],
                "inactive": counts["inactive"],
                "prospects": counts["prospect"],
                "churned": counts["churned"],
            },
            "status_breakdown": status_breakdown,
            "type_breakdown": {kind: count for kind, count in type_rows},
            "revenue": {"total": float(revenue_total), "average": float(revenue_average)},
        }
