from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from atreo.models.base import AuditMixin, Base, UUIDPrimaryKeyMixin

MESSAGE_PRIORITIES = ("low", "normal", "high", "urgent")
MESSAGE_CATEGORIES = ("general", "payroll", "hr", "it", "announcement")


class Message(Base, UUIDPrimaryKeyMixin, AuditMixin):
    """Internal message from one user to another."""

    __tablename__ = "messages"

    from_user: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    to_user: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    subject: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    priority: Mapped[str] = mapped_column(
        String(10), default="normal", server_default="normal", nullable=False
    )
    category: Mapped[str] = mapped_column(
        String(20), default="general", server_default="general", nullable=False
    )
    attachments: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
