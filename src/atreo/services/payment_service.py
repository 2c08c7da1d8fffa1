"""Monthly payroll payments."""

from __future__ import annotations

import calendar
import logging
import re
from datetime import date, datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.errors import ConflictError, InvalidRequestError
from atreo.models.payment import Payment
from atreo.models.user import User
from atreo.schemas.pagination import PaginationMeta
from atreo.services.pagination import paginate

logger = logging.getLogger(__name__)

_MONTHS = {name.lower(): index for index, name in enumerate(calendar.month_name) if name}
_MONTHS.update({name.lower(): index for index, name in enumerate(calendar.month_abbr) if name})
_MONTHS["sept"] = 9
_TOKEN_SPLIT = re.compile(r"[\s,]+")


def parse_month(value: str | None, today: date | None = None) -> tuple[str, datetime]:
    """Parse free-form month text into ``("<Month> <YYYY>", 15th of that month)``.

    Accepts full or abbreviated month names and 4- or 2-digit years in any
    order, separated by spaces or commas. Other tokens are ignored and
    missing parts default to the current month and year.
    """
    today = today or datetime.now(timezone.utc).date()
    month, year = None, None
    for token in _TOKEN_SPLIT.split((value or "").strip()):
        if not token:
            continue
        lowered = token.lower()
        if lowered in _MONTHS:
            month = _MONTHS[lowered]
        elif token.isdigit() and len(token) == 4:
            year = int(token)
        elif token.isdigit() and len(token) == 2:
            year = 2000 + int(token)

    month = month or today.month
    year = year or today.year
    label = f"{calendar.month_name[month]} {year}"
    return label, datetime(year, month, 15, tzinfo=timezone.utc)


class PaymentService:
    """Service for payment operations.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_payments(
        self,
        user: User,
        is_admin: bool,
        page_size: int = 20,
        after: str | None = None,
    ) -> tuple[list[Payment], PaginationMeta]:
        """List payments newest billing date first; non-admins see their organization's."""
        query = select(Payment)
        if not is_admin:
            if user.organization_id:
                query = query.where(Payment.organization_id == user.organization_id)
            else:
                query = query.where(Payment.created_by == user.id)
        return await paginate(
            self.db,
            query,
            Payment.billing_date,
            Payment.id,
            page_size,
            after,
            descending=True,
        )

    async def create_payment(
        self,
        user: User,
        name: str,
        amount: float | None,
        month: str | None = None,
        **fields: object,
    ) -> Payment:
        """Record a payment for ``name`` in the given month.

        Raises:
            InvalidRequestError: If name or amount is missing.
            ConflictError: If the person already has a payment that month in
                the organization.
        """
        if not (name or "").strip() or amount is None:
            raise InvalidRequestError("Name and amount are required")
        label, billing_date = parse_month(month)
        name = name.strip()

        existing = await self.db.execute(
            select(Payment.id).where(
                Payment.name == name,
                Payment.month == label,
                Payment.organization_id == user.organization_id
                if user.organization_id
                else Payment.organization_id.is_(None),
            )
        )
        if existing.first() is not None:
            raise ConflictError(f"A payment for {name} in {label} already exists")

        payment = Payment(
            name=name,
            amount=amount,
            month=label,
            billing_date=billing_date,
            organization_id=user.organization_id,
            created_by=user.id,
            **{k: v for k, v in fields.items() if v is not None},
        )
        self.db.add(payment)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise ConflictError(f"A payment for {name} in {label} already exists") from exc
        await self.db.refresh(payment)
        return payment

    async def clear_all(self) -> int:
        result = await self.db.execute(delete(Payment))
        await self.db.commit()
        logger.info("Cleared %d payments", result.rowcount)
        return result.rowcount
