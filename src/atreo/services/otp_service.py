"""One-time passcode issuance and verification for email flows."""

from __future__ import annotations

import logging
import random
import secrets
from datetime import timedelta

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.config import get_settings
from atreo.errors import InvalidRequestError, NotFoundError, RateLimitedError, ServiceUnavailableError
from atreo.models.base import ensure_utc, utcnow
from atreo.models.otp import OTP, OTP_PURPOSES
from atreo.models.user import User
from atreo.security import hash_password, verify_password
from atreo.services.audit_service import AuditService, RequestContext
from atreo.tasks.email import build_otp_email, send_email

logger = logging.getLogger(__name__)

EXPIRES_IN = "5-10 minutes"


def generate_code() -> str:
    """Return a random six-digit code."""
    return str(100000 + secrets.randbelow(900000))


class OTPService:
    """Service for issuing and checking one-time passcodes.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.audit = AuditService(db)

    async def create_otp(
        self,
        email: str,
        purpose: str = "email-verification",
        ip_address: str | None = None,
    ) -> str:
        """Invalidate earlier codes and store a freshly hashed one.

        Args:
            email: Address the code is issued to.
            purpose: One of email-verification, password-reset, login.
            ip_address: Requesting client IP.

        Returns:
            The plaintext code; only its hash is persisted.
        """
        email = email.strip().lower()
        await self.db.execute(
            update(OTP)
            .where(OTP.email == email, OTP.purpose == purpose, OTP.verified.is_(False))
            .values(verified=True)
        )

        code = generate_code()
        otp = OTP(
            email=email,
            hashed_otp=hash_password(code),
            purpose=purpose,
            expires_at=utcnow() + timedelta(minutes=random.randint(5, 10)),
            ip_address=ip_address,
        )
        self.db.add(otp)
        await self.db.commit()
        return code

    async def _latest_unverified(self, email: str, purpose: str) -> OTP | None:
        result = await self.db.execute(
            select(OTP)
            .where(OTP.email == email, OTP.purpose == purpose, OTP.verified.is_(False))
            .order_by(OTP.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def send_otp(
        self,
        email: str,
        purpose: str = "email-verification",
        context: RequestContext | None = None,
    ) -> str:
        """Issue a code and enqueue the email carrying it.

        Returns:
            The human-readable expiry window.

        Raises:
            InvalidRequestError: On a bad purpose or an already verified email.
            NotFoundError: If verifying an email that has no account.
            RateLimitedError: If a code was issued within the resend interval.
            ServiceUnavailableError: If the email could not be enqueued.
        """
        settings = get_settings()
        email = email.strip().lower()
        if purpose not in OTP_PURPOSES:
            raise InvalidRequestError("Invalid OTP purpose")

        if purpose == "email-verification":
            result = await self.db.execute(select(User).where(User.email == email))
            user = result.scalar_one_or_none()
            if user is None:
                raise NotFoundError("User not found")
            if user.email_verified:
                raise InvalidRequestError("Email already verified")

        recent = await self._latest_unverified(email, purpose)
        if recent is not None:
            age = utcnow() - ensure_utc(recent.created_at)
            if age < timedelta(seconds=settings.otp_resend_seconds):
                raise RateLimitedError(
                    "Please wait before requesting another OTP",
                    retry_after=settings.otp_resend_seconds - int(age.total_seconds()),
                )

        code = await self.create_otp(
            email, purpose, context.ip_address if context else None
        )
        subject, text, html = build_otp_email(code, purpose)
        try:
            send_email.delay(email, subject, text, html)
        except Exception as exc:
            logger.error("Failed to enqueue OTP email for %s", email, exc_info=True)
            raise ServiceUnavailableError("Failed to send OTP email") from exc

        await self.audit.record(
            "otp_sent",
            user_email=email,
            resource="otp",
            details={"purpose": purpose},
            context=context,
        )
        return EXPIRES_IN

    async def verify_otp(
        self,
        email: str,
        code: str,
        purpose: str = "email-verification",
        context: RequestContext | None = None,
    ) -> None:
        """Check a code against the latest live OTP for ``email``.

        Every failure is audited as ``otp_failed``; success marks the code
        used and, for email verification, the user's email verified.

        Raises:
            InvalidRequestError: If no live code exists, it expired, or the
                code is wrong.
            RateLimitedError: After too many failed attempts.
        """
        settings = get_settings()
        email = email.strip().lower()
        otp = await self._latest_unverified(email, purpose)

        if otp is None:
            await self._fail(email, "Invalid or expired OTP", context)
            raise InvalidRequestError("Invalid or expired OTP")

        if ensure_utc(otp.expires_at) < utcnow():
            await self._fail(email, "OTP has expired", context)
            raise InvalidRequestError("OTP has expired")

        if otp.attempts >= settings.otp_max_attempts:
            await self._fail(email, "Too many attempts", context)
            raise RateLimitedError("Too many attempts")

        if not verify_password(code, otp.hashed_otp):
            otp.attempts += 1
            await self.db.commit()
            await self._fail(email, "Invalid OTP", context)
            raise InvalidRequestError("Invalid OTP")

        now = utcnow()
        otp.verified = True
        otp.verified_at = now
        if purpose == "email-verification":
            result = await self.db.execute(select(User).where(User.email == email))
            user = result.scalar_one_or_none()
            if user is not None:
                user.email_verified = True
                user.email_verified_at = now
        await self.db.commit()

        await self.audit.log_otp_verification(email, True, context=context)
        logger.info("OTP verified for %s (%s)", email, purpose)

    async def _fail(self, email: str, reason: str, context: RequestContext | None) -> None:
        await self.audit.log_otp_verification(email, False, reason=reason, context=context)
