"""Invoice endpoints returning JSON:API responses.

Creation takes a multipart form so a PDF or image can ride along with the
invoice fields. Any signed-in user may read and create within their scope;
approval and bulk deletion require an admin.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.api.deps import (
    get_current_user,
    get_db,
    get_request_context,
    rate_limit,
    require_admin,
)
from atreo.errors import InvalidRequestError, NotFoundError
from atreo.models.invoice import Invoice
from atreo.models.user import User
from atreo.schemas.invoice import InvoiceFields, RejectInvoiceRequest
from atreo.schemas.jsonapi import (
    JSONAPIListResponse,
    JSONAPIMetaResponse,
    JSONAPIResource,
    JSONAPISingleResponse,
    iso,
)
from atreo.schemas.pagination import build_links
from atreo.services.audit_service import AuditService, RequestContext
from atreo.services.invoice_service import InvoiceService
from atreo.services.storage import PDF_AND_IMAGES, Storage, get_storage, read_upload
from atreo.services.user_service import split_list

router = APIRouter()

# ---------------------------------------------------------------------------
# Attribute mapping helpers
# ---------------------------------------------------------------------------


def _invoice_to_attrs(invoice: Invoice) -> dict:
    return {
        "invoice_number": invoice.invoice_number,
        "amount": invoice.amount,
        "currency": invoice.currency,
        "provider": invoice.provider,
        "billing_date": iso(invoice.billing_date),
        "due_date": iso(invoice.due_date),
        "category": invoice.category,
        "status": invoice.status,
        "file_url": invoice.file_url,
        "file_name": invoice.file_name,
        "file_size": invoice.file_size,
        "tool_ids": invoice.tool_ids or [],
        "organization_id": invoice.organization_id,
        "uploaded_by": invoice.uploaded_by,
        "approved_by": invoice.approved_by,
        "approved_at": iso(invoice.approved_at),
        "rejected_at": iso(invoice.rejected_at),
        "rejection_reason": invoice.rejection_reason,
        "created_at": invoice.created_at.isoformat(),
        "updated_at": invoice.updated_at.isoformat(),
    }


def _invoice_resource(invoice: Invoice) -> JSONAPIResource:
    return JSONAPIResource(type="invoices", id=str(invoice.id), attributes=_invoice_to_attrs(invoice))


def _is_admin(user: User) -> bool:
    return user.role == "admin"


# ---------------------------------------------------------------------------
# Collection endpoints
# ---------------------------------------------------------------------------


@router.get("")
async def list_invoices(
    request: Request,
    status: str | None = Query(default=None, pattern="^(pending|approved|rejected)$"),
    provider: str | None = Query(default=None),
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    page_after: str | None = Query(default=None, alias="page[after]"),
    page_size: int = Query(default=20, ge=1, le=100, alias="page[size]"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """List visible invoices, newest billing date first."""
    invoices, pagination_meta = await InvoiceService(db).list_invoices(
        user,
        _is_admin(user),
        status=status,
        provider=provider,
        start_date=start_date,
        end_date=end_date,
        page_size=page_size,
        after=page_after,
    )
    links = build_links(request.url, invoices, pagination_meta, page_size, sort_attr="billing_date")
    return JSONAPIListResponse(
        data=[_invoice_resource(i) for i in invoices],
        meta=pagination_meta.model_dump(),
        links=links.model_dump(exclude_none=True),
    )


@router.post("", status_code=201, dependencies=[Depends(rate_limit("upload"))])
async def create_invoice(
    amount: float = Form(...),
    billing_date: datetime = Form(...),
    invoice_number: str | None = Form(default=None),
    currency: str = Form(default="USD"),
    provider: str | None = Form(default=None),
    due_date: datetime | None = Form(default=None),
    category: str | None = Form(default=None),
    organization_id: str | None = Form(default=None),
    tool_ids: str | None = Form(default=None),
    file: UploadFile | None = File(default=None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: Storage = Depends(get_storage),
    context: RequestContext = Depends(get_request_context),
) -> JSONAPISingleResponse:
    """Create an invoice from a multipart form with an optional document."""
    try:
        fields = InvoiceFields(
            invoice_number=invoice_number,
            amount=amount,
            currency=currency,
            provider=provider,
            billing_date=billing_date,
            due_date=due_date,
            category=category,
            organization_id=organization_id or None,
            tool_ids=split_list(tool_ids),
        )
    except ValidationError as exc:
        raise InvalidRequestError(exc.errors()[0]["msg"]) from exc

    upload = None
    if file is not None and file.filename:
        upload = (await read_upload(file, PDF_AND_IMAGES), file.filename)

    invoice = await InvoiceService(db).create_invoice(
        user,
        _is_admin(user),
        storage,
        file=upload,
        context=context,
        **fields.model_dump(),
    )
    return JSONAPISingleResponse(data=_invoice_resource(invoice))


@router.get("/summary")
async def invoice_summary(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """Counts and totals per status over the visible invoices."""
    summary = await InvoiceService(db).summary(user, _is_admin(user))
    return JSONAPISingleResponse(
        data=JSONAPIResource(type="invoice-summaries", id="current", attributes=summary)
    )


@router.delete("/clear-all")
async def clear_invoices(
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIMetaResponse:
    """Delete every invoice."""
    count = await InvoiceService(db).clear_all()
    return JSONAPIMetaResponse(meta={"deleted_count": count})


# ---------------------------------------------------------------------------
# Single-invoice endpoints
# ---------------------------------------------------------------------------


@router.get("/{invoice_id}")
async def get_invoice(
    invoice_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    invoice = await InvoiceService(db).get_invoice(user, _is_admin(user), invoice_id)
    return JSONAPISingleResponse(data=_invoice_resource(invoice))


@router.get("/{invoice_id}/download")
async def download_invoice(
    invoice_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: Storage = Depends(get_storage),
    context: RequestContext = Depends(get_request_context),
) -> dict:
    """Return a time-limited signed URL for the invoice's document."""
    invoice = await InvoiceService(db).get_invoice(user, _is_admin(user), invoice_id)
    if not invoice.file_url:
        raise NotFoundError("Invoice has no associated file")
    url = storage.get_signed_url(invoice.file_url)
    await AuditService(db).record(
        "file_downloaded",
        user=user,
        resource="invoice",
        resource_id=invoice.id,
        details={"file_name": invoice.file_name},
        context=context,
    )
    return {"url": url, "file_name": invoice.file_name}


@router.post("/{invoice_id}/approve")
async def approve_invoice(
    invoice_id: str,
    actor: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    invoice = await InvoiceService(db).approve(actor, invoice_id)
    return JSONAPISingleResponse(data=_invoice_resource(invoice))


@router.post("/{invoice_id}/reject")
async def reject_invoice(
    invoice_id: str,
    body: RejectInvoiceRequest,
    actor: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    invoice = await InvoiceService(db).reject(actor, invoice_id, body.reason)
    return JSONAPISingleResponse(data=_invoice_resource(invoice))


@router.delete("/{invoice_id}", status_code=204)
async def delete_invoice(
    invoice_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: Storage = Depends(get_storage),
) -> None:
    """Delete an invoice (admin or uploader) and its stored document."""
    await InvoiceService(db).delete_invoice(user, _is_admin(user), invoice_id, storage)
