from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from atreo.models.base import AuditMixin, Base, UUIDPrimaryKeyMixin


class Payment(Base, UUIDPrimaryKeyMixin, AuditMixin):
    """Monthly payroll line for one person within an organization.

    ``month`` is normalized to ``"<Month> <YYYY>"`` and ``billing_date`` is
    the 15th of that month.
    """

    __tablename__ = "payments"
    __table_args__ = (
        UniqueConstraint(
            "name", "month", "organization_id", name="uq_payment_name_month_org"
        ),
    )

    month: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contract_hours: Mapped[float] = mapped_column(
        Float, default=0, server_default="0", nullable=False
    )
    fulfilled_hours: Mapped[float] = mapped_column(
        Float, default=0, server_default="0", nullable=False
    )
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(
        String(3), default="USD", server_default="USD", nullable=False
    )
    billing_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    organization_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_by: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
