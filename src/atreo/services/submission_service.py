"""Employee payment submissions and their review."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.errors import ConflictError, InvalidRequestError, NotFoundError
from atreo.models.base import utcnow
from atreo.models.submission import SUBMISSION_STATUSES, Submission
from atreo.models.user import User
from atreo.services.user_service import UserService

logger = logging.getLogger(__name__)


class SubmissionService:
    """Service for submission operations.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_submissions(self, user: User, is_admin: bool) -> list[Submission]:
        """Admins see every submission; others see their own. Newest first."""
        query = select(Submission)
        if not is_admin:
            query = query.where(Submission.user_id == user.id)
        result = await self.db.execute(query.order_by(Submission.submitted_at.desc()))
        return list(result.scalars().all())

    async def create_submission(self, user: User, **fields: Any) -> Submission:
        """Raise a pending submission for the caller.

        The employee id and name come from the caller's employee record
        when there is one, otherwise from the user account.

        Raises:
            ConflictError: If the invoice number is already used.
        """
        employee = await UserService(self.db).get_employee_for(user)
        submission = Submission(
            employee_id=(employee.employee_id if employee else None) or user.employee_id or user.id,
            employee_name=employee.name if employee else user.name,
            user_id=user.id,
            organization_id=user.organization_id,
            status="pending",
            submitted_at=utcnow(),
            **fields,
        )
        self.db.add(submission)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise ConflictError("Invoice number already exists") from exc
        await self.db.refresh(submission)
        return submission

    async def review(
        self,
        actor: User,
        submission_id: str,
        status: str,
        rejection_reason: str | None = None,
        **payment: Any,
    ) -> Submission:
        """Set a submission's status and stamp the reviewer.

        Raises:
            InvalidRequestError: On an unknown status.
            NotFoundError: If the submission does not exist.
        """
        if status not in SUBMISSION_STATUSES:
            raise InvalidRequestError("Invalid status value")
        submission = await self.db.get(Submission, submission_id)
        if submission is None:
            raise NotFoundError("Submission not found")

        submission.status = status
        submission.reviewed_at = utcnow()
        submission.reviewed_by = actor.id
        submission.reviewer_name = actor.name
        submission.rejection_reason = rejection_reason if status == "rejected" else None
        for field, value in payment.items():
            if value is not None:
                setattr(submission, field, value)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise ConflictError("Invoice number already exists") from exc
        await self.db.refresh(submission)
        return submission
