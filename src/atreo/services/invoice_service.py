"""Invoice CRUD, approval workflow and summaries.

Visibility: admins see every invoice; other users see their
organization's invoices, or only their own uploads when they belong to no
organization.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.errors import NotFoundError, PermissionDeniedError
from atreo.models.base import utcnow
from atreo.models.invoice import INVOICE_STATUSES, Invoice
from atreo.models.user import User
from atreo.schemas.pagination import PaginationMeta
from atreo.services.audit_service import AuditService, RequestContext
from atreo.services.pagination import paginate
from atreo.services.storage import Storage, build_destination

logger = logging.getLogger(__name__)


def scope_clause(user: User, is_admin: bool) -> Any:
    """Return the WHERE clause limiting invoices to what ``user`` may see."""
    if is_admin:
        return None
    if user.organization_id:
        return Invoice.organization_id == user.organization_id
    return Invoice.uploaded_by == user.id


class InvoiceService:
    """Service for invoice operations.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.audit = AuditService(db)

    def _scoped(self, query: Any, user: User, is_admin: bool) -> Any:
        clause = scope_clause(user, is_admin)
        return query if clause is None else query.where(clause)

    async def list_invoices(
        self,
        user: User,
        is_admin: bool,
        status: str | None = None,
        provider: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        page_size: int = 20,
        after: str | None = None,
    ) -> tuple[list[Invoice], PaginationMeta]:
        """List visible invoices, newest billing date first."""
        query = self._scoped(select(Invoice), user, is_admin)
        if status:
            query = query.where(Invoice.status == status)
        if provider:
            query = query.where(Invoice.provider.ilike(f"%{provider}%"))
        if start_date:
            query = query.where(Invoice.billing_date >= start_date)
        if end_date:
            query = query.where(Invoice.billing_date <= end_date)
        return await paginate(
            self.db,
            query,
            Invoice.billing_date,
            Invoice.id,
            page_size,
            after,
            descending=True,
        )

    async def summary(self, user: User, is_admin: bool) -> dict[str, Any]:
        """Counts and amount totals per status over the visible invoices."""
        query = self._scoped(
            select(Invoice.status, func.count(Invoice.id), func.coalesce(func.sum(Invoice.amount), 0))
            .group_by(Invoice.status),
            user,
            is_admin,
        )
        rows = (await self.db.execute(query)).all()
        by_status = {status: (count, float(amount)) for status, count, amount in rows}

        summary: dict[str, Any] = {}
        total_count, total_amount = 0, 0.0
        for status in INVOICE_STATUSES:
            count, amount = by_status.get(status, (0, 0.0))
            summary[status] = {"count": count, "amount": amount}
            total_count += count
            total_amount += amount
        summary["total"] = {"count": total_count, "amount": total_amount}
        summary["average_amount"] = total_amount / total_count if total_count else 0.0
        summary["currency"] = "USD"
        return summary

    async def get_invoice(self, user: User, is_admin: bool, invoice_id: str) -> Invoice:
        """Fetch an invoice within the caller's scope.

        Raises:
            NotFoundError: If it does not exist or is out of scope.
        """
        query = self._scoped(select(Invoice).where(Invoice.id == invoice_id), user, is_admin)
        invoice = (await self.db.execute(query)).scalar_one_or_none()
        if invoice is None:
            raise NotFoundError("Invoice not found")
        return invoice

    async def create_invoice(
        self,
        user: User,
        is_admin: bool,
        storage: Storage,
        file: tuple[bytes, str | None] | None = None,
        context: RequestContext | None = None,
        **fields: Any,
    ) -> Invoice:
        """Create an invoice, storing its document when one is attached.

        Admin-created invoices start approved; everything else starts pending.

        Args:
            user: The uploader.
            is_admin: Whether the uploader is an admin.
            storage: Storage backend for the attached document.
            file: Optional (bytes, original filename) of the document.
            context: Client details for the audit trail.
            **fields: Invoice columns from the request.
        """
        if not fields.get("organization_id"):
            fields["organization_id"] = user.organization_id

        invoice = Invoice(uploaded_by=user.id, **fields)
        if is_admin:
            invoice.status = "approved"
            invoice.approved_by = user.id
            invoice.approved_at = utcnow()
        else:
            invoice.status = "pending"

        if file is not None:
            data, filename = file
            invoice.file_url = await storage.upload_file(data, build_destination("invoices", filename))
            invoice.file_name = filename
            invoice.file_size = len(data)

        self.db.add(invoice)
        await self.db.commit()
        await self.db.refresh(invoice)

        if file is not None:
            await self.audit.record(
                "file_uploaded",
                user=user,
                resource="invoice",
                resource_id=invoice.id,
                details={"file_name": invoice.file_name, "file_size": invoice.file_size},
                context=context,
            )
        return invoice

    async def approve(self, actor: User, invoice_id: str) -> Invoice:
        invoice = await self.get_invoice(actor, True, invoice_id)
        invoice.status = "approved"
        invoice.approved_by = actor.id
        invoice.approved_at = utcnow()
        invoice.rejected_at = None
        invoice.rejection_reason = None
        await self.db.commit()
        await self.db.refresh(invoice)
        return invoice

    async def reject(self, actor: User, invoice_id: str, reason: str | None) -> Invoice:
        invoice = await self.get_invoice(actor, True, invoice_id)
        invoice.status = "rejected"
        invoice.rejected_at = utcnow()
        invoice.rejection_reason = reason
        await self.db.commit()
        await self.db.refresh(invoice)
        return invoice

    async def delete_invoice(
        self, user: User, is_admin: bool, invoice_id: str, storage: Storage
    ) -> None:
        """Delete an invoice and its stored file.

        Raises:
            NotFoundError: If it does not exist or is out of scope.
            PermissionDeniedError: If the caller is neither admin nor uploader.
        """
        invoice = await self.get_invoice(user, is_admin, invoice_id)
        if not is_admin and invoice.uploaded_by != user.id:
            raise PermissionDeniedError("Access denied")
        file_url = invoice.file_url
        await self.db.delete(invoice)
        await self.db.commit()
        await storage.delete_file(file_url)

    async def clear_all(self) -> int:
        result = await self.db.execute(delete(Invoice))
        await self.db.commit()
        logger.info("Cleared %d invoices", result.rowcount)
        return result.rowcount
