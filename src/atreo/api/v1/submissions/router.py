"""Payment submission endpoints returning JSON:API responses."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.api.deps import get_current_user, get_db, rate_limit, require_admin
from atreo.models.submission import Submission
from atreo.models.user import User
from atreo.schemas.jsonapi import (
    JSONAPIListResponse,
    JSONAPIRequest,
    JSONAPIResource,
    JSONAPISingleResponse,
    iso,
)
from atreo.schemas.submission import CreateSubmissionRequest, SubmissionStatusRequest
from atreo.services.submission_service import SubmissionService

router = APIRouter()


def _submission_resource(submission: Submission) -> JSONAPIResource:
    return JSONAPIResource(
        type="submissions",
        id=str(submission.id),
        attributes={
            "employee_id": submission.employee_id,
            "employee_name": submission.employee_name,
            "user_id": submission.user_id,
            "bank_details": submission.bank_details or {},
            "work_period": submission.work_period,
            "description": submission.description,
            "total_amount": submission.total_amount,
            "status": submission.status,
            "submitted_at": iso(submission.submitted_at),
            "reviewed_at": iso(submission.reviewed_at),
            "reviewed_by": submission.reviewed_by,
            "reviewer_name": submission.reviewer_name,
            "rejection_reason": submission.rejection_reason,
            "invoice_number": submission.invoice_number,
            "payment_date": iso(submission.payment_date),
            "payment_reference": submission.payment_reference,
            "organization_id": submission.organization_id,
            "created_at": submission.created_at.isoformat(),
        },
    )


@router.get("")
async def list_submissions(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """Admins see every submission; others see their own."""
    submissions = await SubmissionService(db).list_submissions(user, user.role == "admin")
    return JSONAPIListResponse(
        data=[_submission_resource(s) for s in submissions],
        meta={"total": len(submissions)},
    )


@router.post("", status_code=201, dependencies=[Depends(rate_limit("write"))])
async def create_submission(
    body: JSONAPIRequest[CreateSubmissionRequest],
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """Raise a pending payment request for the caller."""
    fields = body.data.attributes.model_dump()
    submission = await SubmissionService(db).create_submission(user, **fields)
    return JSONAPISingleResponse(data=_submission_resource(submission))


@router.patch("/{submission_id}/status")
async def review_submission(
    submission_id: str,
    body: SubmissionStatusRequest,
    actor: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """Approve or reject a submission and stamp the reviewer."""
    submission = await SubmissionService(db).review(
        actor,
        submission_id,
        body.status,
        body.rejection_reason,
        invoice_number=body.invoice_number,
        payment_date=body.payment_date,
        payment_reference=body.payment_reference,
    )
    return JSONAPISingleResponse(data=_submission_resource(submission))
