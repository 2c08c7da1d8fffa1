"""Internal messaging between users.

Only the sender and the recipient can see a message. Opening a message as
its recipient marks it read.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.errors import InvalidRequestError, NotFoundError, PermissionDeniedError
from atreo.models.base import utcnow
from atreo.models.message import Message
from atreo.models.user import User
from atreo.schemas.pagination import PaginationMeta
from atreo.services.audit_service import AuditService, RequestContext
from atreo.services.pagination import paginate

logger = logging.getLogger(__name__)

SUBJECT_PREVIEW_LENGTH = 50


def subject_preview(subject: str) -> str:
    if len(subject) > SUBJECT_PREVIEW_LENGTH:
        return subject[:SUBJECT_PREVIEW_LENGTH] + "..."
    return subject


class MessageService:
    """Service for sending, reading and deleting messages.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.audit = AuditService(db)

    async def inbox(
        self,
        user: User,
        *,
        unread: bool = False,
        category: str | None = None,
        priority: str | None = None,
        page_size: int = 20,
        after: str | None = None,
    ) -> tuple[list[Message], PaginationMeta]:
        """List messages addressed to ``user``, newest first."""
        query = select(Message).where(Message.to_user == user.id)
        if unread:
            query = query.where(Message.is_read.is_(False))
        if category:
            query = query.where(Message.category == category)
        if priority:
            query = query.where(Message.priority == priority)
        return await paginate(
            self.db, query, Message.created_at, Message.id, page_size, after, descending=True
        )

    async def sent(
        self,
        user: User,
        page_size: int = 20,
        after: str | None = None,
    ) -> tuple[list[Message], PaginationMeta]:
        query = select(Message).where(Message.from_user == user.id)
        return await paginate(
            self.db, query, Message.created_at, Message.id, page_size, after, descending=True
        )

    async def unread_count(self, user: User) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(Message)
            .where(Message.to_user == user.id, Message.is_read.is_(False))
        )
        return result.scalar_one()

    async def participants(self, messages: list[Message]) -> dict[str, User]:
        """Load senders and recipients of ``messages`` keyed by user id."""
        ids = {m.from_user for m in messages} | {m.to_user for m in messages}
        if not ids:
            return {}
        result = await self.db.execute(select(User).where(User.id.in_(ids)))
        return {u.id: u for u in result.scalars().all()}

    async def _require(self, message_id: str) -> Message:
        result = await self.db.execute(select(Message).where(Message.id == message_id))
        message = result.scalar_one_or_none()
        if message is None:
            raise NotFoundError("Message not found")
        return message

    async def read_message(self, user: User, message_id: str) -> Message:
        """Fetch a message for its sender or recipient.

        The first read by the recipient sets ``is_read`` and ``read_at``.

        Raises:
            NotFoundError: If the message does not exist.
            PermissionDeniedError: If ``user`` neither sent nor received it.
        """
        message = await self._require(message_id)
        if user.id not in (message.from_user, message.to_user):
            raise PermissionDeniedError("Access denied")
        if message.to_user == user.id and not message.is_read:
            message.is_read = True
            message.read_at = utcnow()
            await self.db.commit()
            await self.db.refresh(message)
        return message

    async def send(
        self,
        user: User,
        to: str | None,
        subject: str | None,
        content: str | None,
        priority: str = "normal",
        category: str = "general",
        attachments: list[str] | None = None,
        context: RequestContext | None = None,
    ) -> Message:
        """Send a message from ``user`` to the user with id ``to``.

        Raises:
            InvalidRequestError: If a required field is blank or the
                recipient does not exist.
        """
        subject = (subject or "").strip()
        content = (content or "").strip()
        if not to or not subject or not content:
            raise InvalidRequestError("Recipient, subject, and content are required")

        recipient = await self.db.get(User, to)
        if recipient is None:
            raise InvalidRequestError("Recipient not found")

        message = Message(
            from_user=user.id,
            to_user=recipient.id,
            subject=subject,
            content=content,
            priority=priority,
            category=category,
            attachments=attachments or [],
        )
        self.db.add(message)
        await self.db.commit()
        await self.db.refresh(message)
        logger.info("Message %s sent from %s to %s", message.id, user.id, recipient.id)

        await self.audit.record(
            "message_sent",
            user=user,
            resource="message",
            resource_id=message.id,
            details={"recipient": recipient.email, "subject": subject_preview(subject)},
            context=context,
        )
        return message

    async def mark_read(self, user: User, message_id: str) -> Message:
        """Mark a message read; only its recipient may do so."""
        message = await self._require(message_id)
        if message.to_user != user.id:
            raise PermissionDeniedError("Access denied")
        message.is_read = True
        message.read_at = utcnow()
        await self.db.commit()
        await self.db.refresh(message)
        return message

    async def delete_message(self, user: User, message_id: str) -> None:
        message = await self._require(message_id)
        if user.id not in (message.from_user, message.to_user):
            raise PermissionDeniedError("Access denied")
        await self.db.delete(message)
        await self.db.commit()

    async def stats(self, user: User) -> dict[str, Any]:
        """Received, unread and sent counts plus received messages per priority."""

        async def _count(*conditions: Any) -> int:
            query = select(func.count()).select_from(Message).where(*conditions)
            return (await self.db.execute(query)).scalar_one()

        priority_rows = await self.db.execute(
            select(Message.priority, func.count())
            .where(Message.to_user == user.id)
            .group_by(Message.priority)
        )
        return {
            "total_received": await _count(Message.to_user == user.id),
            "unread_count": await self.unread_count(user),
            "total_sent": await _count(Message.from_user == user.id),
            "priority_breakdown": {priority: count for priority, count in priority_rows},
        }
