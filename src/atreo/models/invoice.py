from datetime import datetime

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from atreo.models.base import AuditMixin, Base, UUIDPrimaryKeyMixin

INVOICE_STATUSES = ("pending", "approved", "rejected")
CURRENCIES = (
    "USD", "INR", "EUR", "GBP", "CAD", "AUD", "JPY", "CNY", "SGD", "HKD",
    "CHF", "NZD", "SEK", "NOK", "DKK", "PLN", "ZAR", "BRL", "MXN", "AED",
    "SAR", "THB", "MYR", "IDR", "PHP", "KRW", "VND", "ILS", "TRY", "RUB",
    "PKR", "BDT", "LKR", "NPR",
)


class Invoice(Base, UUIDPrimaryKeyMixin, AuditMixin):
    """Vendor invoice with an optional uploaded document and approval state."""

    __tablename__ = "invoices"

    invoice_number: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(
        String(3), default="USD", server_default="USD", nullable=False
    )
    provider: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    billing_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    category: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default="pending", server_default="pending", nullable=False, index=True
    )
    file_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    tool_ids: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    organization_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    uploaded_by: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    approved_by: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
