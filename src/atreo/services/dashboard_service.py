"""Aggregates behind the admin and user dashboards."""

from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.errors import InvalidRequestError
from atreo.models.asset import Asset
from atreo.models.base import ensure_utc, utcnow
from atreo.models.employee import Employee
from atreo.models.invoice import INVOICE_STATUSES, Invoice
from atreo.models.payment import Payment
from atreo.models.submission import Submission
from atreo.models.tool import Tool
from atreo.models.user import User

logger = logging.getLogger(__name__)

TIME_FRAMES = {"1month": 1, "3months": 3, "6months": 6, "1year": 12}


def month_starts(now: datetime, months: int) -> list[datetime]:
    """First instant of each of the last ``months`` months, oldest first."""
    year, month = now.year, now.month
    starts = []
    for _ in range(months):
        starts.append(
            now.replace(year=year, month=month, day=1, hour=0, minute=0, second=0, microsecond=0)
        )
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(starts))


def _bucket(rows: list[tuple[datetime, float]], starts: list[datetime]) -> list[dict[str, Any]]:
    totals: OrderedDict[str, float] = OrderedDict((s.strftime("%Y-%m"), 0.0) for s in starts)
    for when, amount in rows:
        key = ensure_utc(when).strftime("%Y-%m")
        if key in totals:
            totals[key] += float(amount or 0)
    return [{"month": key, "amount": amount} for key, amount in totals.items()]


class DashboardService:
    """Service computing dashboard statistics.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _count(self, model: Any, *where: Any) -> int:
        query = select(func.count()).select_from(model)
        if where:
            query = query.where(*where)
        return (await self.db.execute(query)).scalar_one()

    async def admin_stats(self, time_frame: str = "6months") -> dict[str, Any]:
        """Organization-wide totals plus monthly invoice and payment series.

        Raises:
            InvalidRequestError: On an unknown time frame.
        """
        if time_frame not in TIME_FRAMES:
            raise InvalidRequestError("Invalid time frame")
        now = utcnow()
        starts = month_starts(now, TIME_FRAMES[time_frame])
        since = starts[0]

        paid_tools = await self.db.execute(
            select(Tool.price, Tool.billing_period).where(
                Tool.is_paid.is_(True), Tool.status == "active"
            )
        )
        monthly_tool_spend = sum(
            (price or 0) / 12 if period == "yearly" else (price or 0)
            for price, period in paid_tools.all()
        )

        invoice_amounts = await self.db.execute(
            select(Invoice.status, func.coalesce(func.sum(Invoice.amount), 0))
            .group_by(Invoice.status)
        )
        amounts_by_status = {status: 0.0 for status in INVOICE_STATUSES}
        amounts_by_status.update({s: float(a) for s, a in invoice_amounts.all()})

        invoice_rows = await self.db.execute(
            select(Invoice.billing_date, Invoice.amount).where(Invoice.billing_date >= since)
        )
        payment_rows = await self.db.execute(
            select(Payment.billing_date, Payment.amount).where(Payment.billing_date >= since)
        )

        return {
            "time_frame": time_frame,
            "total_users": await self._count(User),
            "active_employees": await self._count(Employee, Employee.status == "active"),
            "total_tools": await self._count(Tool),
            "active_tools": await self._count(Tool, Tool.status == "active"),
            "inactive_tools": await self._count(Tool, Tool.status == "inactive"),
            "total_invoices": await self._count(Invoice),
            "pending_submissions": await self._count(Submission, Submission.status == "pending"),
            "approved_submissions": await self._count(Submission, Submission.status == "approved"),
            "total_assets": await self._count(Asset, Asset.is_active.is_(True)),
            "monthly_tool_spend": round(monthly_tool_spend, 2),
            "invoice_amounts_by_status": amounts_by_status,
            "monthly_invoices": _bucket(list(invoice_rows.all()), starts),
            "monthly_payments": _bucket(list(payment_rows.all()), starts),
            "generated_at": now.isoformat(),
        }

    async def user_stats(self, user: User) -> dict[str, Any]:
        """The caller's approved earnings and request counts."""
        earnings = await self.db.execute(
            select(func.coalesce(func.sum(Submission.total_amount), 0)).where(
                Submission.user_id == user.id, Submission.status == "approved"
            )
        )
        return {
            "total_earnings": float(earnings.scalar_one()),
            "pending_requests": await self._count(
                Submission, Submission.user_id == user.id, Submission.status == "pending"
            ),
            "approved_requests": await self._count(
                Submission, Submission.user_id == user.id, Submission.status == "approved"
            ),
        }
