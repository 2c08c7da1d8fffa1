from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from atreo.models.base import AuditMixin, Base, UUIDPrimaryKeyMixin


class Organization(Base, UUIDPrimaryKeyMixin, AuditMixin):
    """Tenant grouping users, tools, invoices and payments by email domain."""

    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    domain: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
