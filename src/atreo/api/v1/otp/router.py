"""OTP endpoints for email verification and other one-time-code flows."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.api.deps import get_db, get_request_context, rate_limit
from atreo.schemas.auth import MessageResponse, SendOTPRequest, SendOTPResponse, VerifyOTPRequest
from atreo.services.audit_service import RequestContext
from atreo.services.otp_service import OTPService

router = APIRouter()


@router.post("/send-otp", dependencies=[Depends(rate_limit("auth"))])
async def send_otp(
    body: SendOTPRequest,
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> SendOTPResponse:
    """Email a fresh one-time code."""
    expires_in = await OTPService(db).send_otp(body.email, body.purpose, context)
    return SendOTPResponse(message="OTP sent successfully", expires_in=expires_in)


@router.post("/verify-otp")
async def verify_otp(
    body: VerifyOTPRequest,
    db: AsyncSession = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
) -> MessageResponse:
    """Check a one-time code."""
    await OTPService(db).verify_otp(body.email, body.otp, body.purpose, context)
    return MessageResponse(message="OTP verified successfully")
