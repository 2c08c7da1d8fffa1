from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from atreo.models.base import AuditMixin, Base, UUIDPrimaryKeyMixin

OTP_PURPOSES = ("email-verification", "password-reset", "login")


class OTP(Base, UUIDPrimaryKeyMixin, AuditMixin):
    """One-time passcode issued to an email address. Only the bcrypt hash is stored."""

    __tablename__ = "otps"

    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    hashed_otp: Mapped[str] = mapped_column(String(255), nullable=False)
    purpose: Mapped[str] = mapped_column(
        String(30),
        default="email-verification",
        server_default="email-verification",
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    attempts: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    verified: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
