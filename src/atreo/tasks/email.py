"""Celery tasks and message builders for outbound email.

Mail goes out over SMTP with STARTTLS. When SMTP credentials are not
configured the task logs a warning and reports ``sent: False`` so local
and test environments work without a mail server.
"""

import logging
import smtplib
import socket
from email.message import EmailMessage
from html import escape

from atreo.config import get_settings
from atreo.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    retry_backoff=True,
    retry_backoff_max=60,
    acks_late=True,
)
def send_email(self, to: str, subject: str, text: str, html: str | None = None) -> dict:
    """Deliver a single email via SMTP.

    Args:
        to: Recipient address.
        subject: Subject line.
        text: Plain-text body.
        html: Optional HTML alternative body.

    Returns:
        Dict with ``sent`` and the recipient.

    Raises:
        celery.exceptions.MaxRetriesExceededError: After 3 failed attempts.
    """
    settings = get_settings()
    if not settings.smtp_user or not settings.smtp_password:
        logger.warning("SMTP not configured; skipping email to %s (%s)", to, subject)
        return {"sent": False, "to": to}

    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = settings.smtp_from or settings.smtp_user
    message["To"] = to
    message.set_content(text)
    if html:
        message.add_alternative(html, subtype="html")

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30) as smtp:
            smtp.starttls()
            smtp.login(settings.smtp_user, settings.smtp_password)
            smtp.send_message(message)
    except (smtplib.SMTPException, socket.error) as exc:
        attempt = self.request.retries + 1
        logger.warning(
            "Email to %s failed (attempt %d/%d): %s",
            to,
            attempt,
            self.max_retries + 1,
            str(exc),
        )
        raise self.retry(exc=exc)

    logger.info("Email sent to %s (%s)", to, subject)
    return {"sent": True, "to": to}


# ---------------------------------------------------------------------------
# Message builders
# ---------------------------------------------------------------------------


def build_otp_email(code: str, purpose: str) -> tuple[str, str, str]:
    """Return (subject, text, html) for a one-time passcode email."""
    subject = "Atreo: Your verification code"
    text = (
        f"Your Atreo verification code is {code}.\n\n"
        f"It was requested for {purpose.replace('-', ' ')} and expires in 5-10 minutes. "
        "If you did not request it, you can ignore this email."
    )
    html = (
        "<div style=\"font-family: Arial, sans-serif\">"
        "<h2>Verify your email</h2>"
        f"<p>Your verification code is:</p><p style=\"font-size: 28px\"><strong>{code}</strong></p>"
        "<p>This code expires in 5-10 minutes.</p>"
        "</div>"
    )
    return subject, text, html


def build_credentials_shared_email(
    recipient_name: str,
    sharer_name: str,
    tool_name: str,
    permission: str,
) -> tuple[str, str, str]:
    """Return (subject, text, html) notifying a user that a tool was shared."""
    settings = get_settings()
    link = f"{settings.frontend_url.rstrip('/')}/tools"
    subject = "Atreo: Credentials Shared"
    text = (
        f"Hi {recipient_name},\n\n"
        f"{sharer_name} shared the credentials for \"{tool_name}\" with you "
        f"({permission} access).\n\nOpen Atreo to view them: {link}"
    )
    html = (
        "<div style=\"font-family: Arial, sans-serif\">"
        f"<p>Hi {escape(recipient_name)},</p>"
        f"<p><strong>{escape(sharer_name)}</strong> shared the credentials for "
        f"<strong>{escape(tool_name)}</strong> with you ({permission} access).</p>"
        f"<p><a href=\"{link}\">Open Atreo</a></p>"
        "</div>"
    )
    return subject, text, html
