from sqlalchemy import JSON, String, Text, event
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from atreo.models.base import AuditMixin, Base, UUIDPrimaryKeyMixin

AUDIT_STATUSES = ("success", "failure", "error")


class AuditLog(Base, UUIDPrimaryKeyMixin, AuditMixin):
    """Append-only record of a security-relevant action.

    ``user_id`` carries no foreign key; entries outlive the
    users they describe. Rows cannot be updated or deleted through the ORM
    unit of work; retention cleanup issues a bulk DELETE statement instead.
    """

    __tablename__ = "audit_logs"

    user_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        nullable=True,
        index=True,
    )
    user_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    resource: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    resource_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(10), default="success", server_default="success", nullable=False, index=True
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)


class ImmutableAuditLogError(RuntimeError):
    """Raised when code attempts to modify or delete an audit log entry."""


@event.listens_for(AuditLog, "before_update")
def _prevent_update(mapper, connection, target) -> None:
    raise ImmutableAuditLogError("Audit logs cannot be modified")


@event.listens_for(AuditLog, "before_delete")
def _prevent_delete(mapper, connection, target) -> None:
    raise ImmutableAuditLogError("Audit logs cannot be deleted")
