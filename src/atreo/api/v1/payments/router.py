"""Payroll payment endpoints returning JSON:API responses."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.api.deps import get_current_user, get_db, rate_limit, require_admin
from atreo.models.payment import Payment
from atreo.models.user import User
from atreo.schemas.invoice import CreatePaymentRequest
from atreo.schemas.jsonapi import (
    JSONAPIListResponse,
    JSONAPIMetaResponse,
    JSONAPIRequest,
    JSONAPIResource,
    JSONAPISingleResponse,
)
from atreo.schemas.pagination import build_links
from atreo.services.payment_service import PaymentService

router = APIRouter()


def _payment_resource(payment: Payment) -> JSONAPIResource:
    return JSONAPIResource(
        type="payments",
        id=str(payment.id),
        attributes={
            "month": payment.month,
            "name": payment.name,
            "role": payment.role,
            "contract_hours": payment.contract_hours,
            "fulfilled_hours": payment.fulfilled_hours,
            "amount": payment.amount,
            "currency": payment.currency,
            "billing_date": payment.billing_date.isoformat(),
            "organization_id": payment.organization_id,
            "created_by": payment.created_by,
            "created_at": payment.created_at.isoformat(),
            "updated_at": payment.updated_at.isoformat(),
        },
    )


@router.get("")
async def list_payments(
    request: Request,
    page_after: str | None = Query(default=None, alias="page[after]"),
    page_size: int = Query(default=20, ge=1, le=100, alias="page[size]"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """List payments newest billing date first."""
    payments, pagination_meta = await PaymentService(db).list_payments(
        user, user.role == "admin", page_size=page_size, after=page_after
    )
    links = build_links(request.url, payments, pagination_meta, page_size, sort_attr="billing_date")
    return JSONAPIListResponse(
        data=[_payment_resource(p) for p in payments],
        meta=pagination_meta.model_dump(),
        links=links.model_dump(exclude_none=True),
    )


@router.post("", status_code=201, dependencies=[Depends(rate_limit("write"))])
async def create_payment(
    body: JSONAPIRequest[CreatePaymentRequest],
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """Record a payment; ``month`` accepts free-form text such as ``"Mar 24"``."""
    attrs = body.data.attributes.model_dump()
    payment = await PaymentService(db).create_payment(
        user,
        name=attrs.pop("name"),
        amount=attrs.pop("amount"),
        month=attrs.pop("month"),
        **attrs,
    )
    return JSONAPISingleResponse(data=_payment_resource(payment))


@router.delete("/clear-all")
async def clear_payments(
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIMetaResponse:
    """Delete every payment."""
    count = await PaymentService(db).clear_all()
    return JSONAPIMetaResponse(meta={"deleted_count": count})
