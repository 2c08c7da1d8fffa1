from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from atreo.models.base import AuditMixin, Base, UUIDPrimaryKeyMixin

BILLING_PERIODS = ("monthly", "yearly")
PAYMENT_METHODS = ("card", "bank", "paypal", "other")
TWO_FACTOR_METHODS = ("mobile", "email")
SHARE_PERMISSIONS = ("view", "edit")


class Tool(Base, UUIDPrimaryKeyMixin, AuditMixin):
    """A SaaS subscription and its login credentials.

    ``password`` and ``api_key`` hold Fernet ciphertext, never plaintext.
    """

    __tablename__ = "tools"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(String(255), nullable=True)
    username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    password: Mapped[str | None] = mapped_column(Text, nullable=True)
    api_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    is_paid: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    has_autopay: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    price: Mapped[float] = mapped_column(Float, default=0, server_default="0", nullable=False)
    billing_period: Mapped[str] = mapped_column(
        String(20), default="monthly", server_default="monthly", nullable=False
    )
    payment_method: Mapped[str | None] = mapped_column(String(20), nullable=True)
    card_last4: Mapped[str | None] = mapped_column(String(4), nullable=True)
    has_2fa: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    two_factor_method: Mapped[str | None] = mapped_column(String(20), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default="active", server_default="active", nullable=False
    )
    created_by: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    organization_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )


class ToolShare(Base, UUIDPrimaryKeyMixin, AuditMixin):
    """Grant of a tool's credentials to another user.

    A share is active while ``revoked_at`` is null. Re-sharing a revoked
    tool reuses the same row.
    """

    __tablename__ = "tool_shares"
    __table_args__ = (
        UniqueConstraint("tool_id", "shared_with", name="uq_tool_share_tool_user"),
    )

    tool_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("tools.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    shared_with: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    shared_by: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    permission: Mapped[str] = mapped_column(
        String(10), default="view", server_default="view", nullable=False
    )
    revoked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
