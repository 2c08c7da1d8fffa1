"""Audit logging and querying service.

Provides a fire-and-forget API for recording security-relevant actions and
the query surface behind the logs endpoints. The record method never raises:
failures are logged as warnings and return None. Entries are committed
immediately so they survive the caller raising an HTTP error afterwards;
callers therefore record audit entries only after committing their own
changes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from fastapi import Request
from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.models.audit_log import AuditLog
from atreo.models.base import utcnow
from atreo.models.user import User
from atreo.schemas.pagination import PaginationMeta
from atreo.services.pagination import paginate

logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"
SENSITIVE_KEYS = frozenset(
    {"password", "hashed_otp", "hashedOTP", "otp", "token", "secret", "api_key", "apiKey"}
)


@dataclass(frozen=True)
class RequestContext:
    """Client details captured from the incoming HTTP request."""

    ip_address: str | None = None
    user_agent: str | None = None

    @classmethod
    def from_request(cls, request: Request) -> RequestContext:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            ip = forwarded.split(",")[0].strip()
        else:
            ip = request.client.host if request.client else None
        return cls(ip_address=ip, user_agent=request.headers.get("user-agent"))


def sanitize(data: Any) -> Any:
    """Return a copy of ``data`` with sensitive keys replaced by ``[REDACTED]``."""
    if isinstance(data, dict):
        return {
            key: REDACTED if key in SENSITIVE_KEYS else sanitize(value)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [sanitize(item) for item in data]
    return data


class AuditService:
    """Service for recording and querying audit log entries.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def record(
        self,
        action: str,
        *,
        user: User | None = None,
        user_id: str | None = None,
        user_email: str | None = None,
        resource: str | None = None,
        resource_id: str | None = None,
        details: dict | None = None,
        status: str = "success",
        error_message: str | None = None,
        context: RequestContext | None = None,
    ) -> AuditLog | None:
        """Create and persist an audit log entry.

        This method never raises. On any database error the session is
        rolled back, the exception is logged as a warning and ``None`` is
        returned.

        Args:
            action: Action classifier, e.g. "login_success".
            user: Acting user; fills ``user_id`` and ``user_email``.
            user_id: Acting user id when no User object is at hand.
            user_email: Acting email when no User object is at hand.
            resource: Kind of resource acted on, e.g. "tool".
            resource_id: Identifier of the resource acted on.
            details: Structured data; sensitive keys are redacted.
            status: One of success, failure, error.
            error_message: Reason for a failure or error status.
            context: Client IP and user agent.

        Returns:
            The created AuditLog record, or None if logging failed.
        """
        if user is not None:
            user_id = user_id or user.id
            user_email = user_email or user.email
        try:
            entry = AuditLog(
                user_id=user_id,
                user_email=user_email,
                action=action,
                resource=resource,
                resource_id=str(resource_id) if resource_id is not None else None,
                details=sanitize(details) if details is not None else None,
                ip_address=context.ip_address if context else None,
                user_agent=context.user_agent if context else None,
                status=status,
                error_message=error_message,
            )
            self.db.add(entry)
            await self.db.commit()
            return entry
        except Exception:
            await self.db.rollback()
            logger.warning(
                "Failed to write audit log action='%s' user='%s'",
                action,
                user_email or user_id,
                exc_info=True,
            )
            return None

    # -- Convenience helpers -------------------------------------------------

    async def log_login_attempt(
        self,
        email: str,
        success: bool,
        *,
        user_id: str | None = None,
        reason: str | None = None,
        context: RequestContext | None = None,
    ) -> AuditLog | None:
        return await self.record(
            "login_success" if success else "login_failure",
            user_id=user_id,
            user_email=email,
            resource="auth",
            details={"email": email},
            status="success" if success else "failure",
            error_message=reason,
            context=context,
        )

    async def log_otp_verification(
        self,
        email: str,
        success: bool,
        *,
        reason: str | None = None,
        context: RequestContext | None = None,
    ) -> AuditLog | None:
        return await self.record(
            "otp_verified" if success else "otp_failed",
            user_email=email,
            resource="otp",
            details={"email": email},
            status="success" if success else "failure",
            error_message=reason,
            context=context,
        )

    async def log_credential_access(
        self,
        user: User,
        tool_id: str,
        action: str = "credential_viewed",
        *,
        details: dict | None = None,
        context: RequestContext | None = None,
    ) -> AuditLog | None:
        return await self.record(
            action,
            user=user,
            resource="credential",
            resource_id=tool_id,
            details=details,
            context=context,
        )

    async def log_permission_change(
        self,
        actor: User,
        target_user_id: str,
        changes: dict,
        *,
        context: RequestContext | None = None,
    ) -> AuditLog | None:
        return await self.record(
            "permission_changed",
            user=actor,
            resource="permission",
            resource_id=target_user_id,
            details={"target_user_id": target_user_id, "changes": changes},
            context=context,
        )

    async def log_data_change(
        self,
        user: User,
        action: str,
        resource: str,
        resource_id: str | None,
        *,
        before: dict | None = None,
        after: dict | None = None,
        context: RequestContext | None = None,
    ) -> AuditLog | None:
        """Record a create/update/delete with before and after snapshots."""
        details: dict[str, Any] = {}
        if before is not None:
            details["before"] = before
        if after is not None:
            details["after"] = after
        return await self.record(
            action,
            user=user,
            resource=resource,
            resource_id=resource_id,
            details=details or None,
            context=context,
        )

    # -- Queries ---------------------------------------------------------------

    async def list_logs(
        self,
        *,
        action: str | None = None,
        user_id: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        resource_type: str | None = None,
        status: str | None = None,
        search: str | None = None,
        page_size: int = 20,
        after: str | None = None,
    ) -> tuple[list[AuditLog], PaginationMeta]:
        """List audit entries newest first with filters and cursor pagination."""
        query = select(AuditLog)
        if action:
            query = query.where(AuditLog.action.ilike(f"%{action}%"))
        if user_id:
            query = query.where(AuditLog.user_id == user_id)
        if start_date:
            query = query.where(AuditLog.created_at >= start_date)
        if end_date:
            query = query.where(AuditLog.created_at <= end_date)
        if resource_type:
            query = query.where(AuditLog.resource == resource_type)
        if status:
            query = query.where(AuditLog.status == status)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(
                    AuditLog.action.ilike(pattern),
                    AuditLog.user_email.ilike(pattern),
                    AuditLog.resource.ilike(pattern),
                )
            )
        return await paginate(
            self.db,
            query,
            AuditLog.created_at,
            AuditLog.id,
            page_size,
            after,
            descending=True,
        )

    async def get_log(self, log_id: str) -> AuditLog | None:
        result = await self.db.execute(select(AuditLog).where(AuditLog.id == log_id))
        return result.scalar_one_or_none()

    async def stats_summary(self) -> dict[str, Any]:
        """Aggregate counts over time windows plus the most active actions and users."""
        now = utcnow()

        async def _count_since(since: datetime | None) -> int:
            query = select(func.count()).select_from(AuditLog)
            if since is not None:
                query = query.where(AuditLog.created_at >= since)
            return (await self.db.execute(query)).scalar_one()

        total = await _count_since(None)
        last_24h = await _count_since(now - timedelta(hours=24))
        last_7d = await _count_since(now - timedelta(days=7))
        last_30d = await _count_since(now - timedelta(days=30))

        count_col = func.count(AuditLog.id).label("count")
        action_rows = await self.db.execute(
            select(AuditLog.action, count_col)
            .group_by(AuditLog.action)
            .order_by(count_col.desc())
            .limit(10)
        )
        top_actions = [{"action": row.action, "count": row.count} for row in action_rows]

        user_rows = (
            await self.db.execute(
                select(AuditLog.user_id, count_col)
                .where(AuditLog.user_id.is_not(None))
                .group_by(AuditLog.user_id)
                .order_by(count_col.desc())
                .limit(10)
            )
        ).all()
        user_ids = [row.user_id for row in user_rows]
        users: dict[str, User] = {}
        if user_ids:
            result = await self.db.execute(select(User).where(User.id.in_(user_ids)))
            users = {u.id: u for u in result.scalars().all()}
        top_users = [
            {
                "user_id": row.user_id,
                "name": users[row.user_id].name if row.user_id in users else None,
                "email": users[row.user_id].email if row.user_id in users else None,
                "count": row.count,
            }
            for row in user_rows
        ]

        return {
            "total": total,
            "last_24h": last_24h,
            "last_7d": last_7d,
            "last_30d": last_30d,
            "top_actions": top_actions,
            "top_users": top_users,
        }

    async def cleanup(self, days: int) -> int:
        """Delete entries older than ``days`` days.

        Returns:
            Number of deleted entries.
        """
        cutoff = utcnow() - timedelta(days=days)
        result = await self.db.execute(
            delete(AuditLog)
            .where(AuditLog.created_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        logger.info("Removed %d audit log entries older than %d days", result.rowcount, days)
        return result.rowcount
