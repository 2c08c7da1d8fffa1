from datetime import datetime

from sqlalchemy import JSON, DateTime, Float, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from atreo.models.base import AuditMixin, Base, UUIDPrimaryKeyMixin, utcnow

CUSTOMER_STATUSES = ("active", "inactive", "prospect", "churned")
CUSTOMER_TYPES = ("individual", "business", "enterprise")


class Customer(Base, UUIDPrimaryKeyMixin, AuditMixin):
    """CRM contact with an optional account owner."""

    __tablename__ = "customers"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    company: Mapped[str | None] = mapped_column(String(100), nullable=True)
    # street, city, state, zip_code, country
    address: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default="active", server_default="active", nullable=False, index=True
    )
    customer_type: Mapped[str] = mapped_column(
        String(20), default="individual", server_default="individual", nullable=False
    )
    tags: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_revenue: Mapped[float] = mapped_column(
        Float, default=0, server_default="0", nullable=False
    )
    last_contact_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    acquisition_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    assigned_to: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_by: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
