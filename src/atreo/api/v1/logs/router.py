"""Audit log endpoints returning JSON:API responses.

Reading requires the ``logs`` module. Retention cleanup is the only way
entries are ever removed and is limited to super-admins.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.api.deps import get_db, require_module_access, require_super_admin
from atreo.models.audit_log import AuditLog
from atreo.models.user import User
from atreo.schemas.jsonapi import (
    JSONAPIListResponse,
    JSONAPIMetaResponse,
    JSONAPIResource,
    JSONAPISingleResponse,
)
from atreo.schemas.pagination import build_links
from atreo.services.audit_service import AuditService

router = APIRouter()

require_logs = require_module_access("logs")


def _log_resource(entry: AuditLog) -> JSONAPIResource:
    return JSONAPIResource(
        type="audit-logs",
        id=str(entry.id),
        attributes={
            "user_id": entry.user_id,
            "user_email": entry.user_email,
            "action": entry.action,
            "resource": entry.resource,
            "resource_id": entry.resource_id,
            "details": entry.details,
            "ip_address": entry.ip_address,
            "user_agent": entry.user_agent,
            "status": entry.status,
            "error_message": entry.error_message,
            "created_at": entry.created_at.isoformat(),
        },
    )


@router.get("")
async def list_logs(
    request: Request,
    action: str | None = Query(default=None),
    user_id: str | None = Query(default=None),
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    resource_type: str | None = Query(default=None),
    status: str | None = Query(default=None, pattern="^(success|failure|error)$"),
    search: str | None = Query(default=None),
    page_after: str | None = Query(default=None, alias="page[after]"),
    page_size: int = Query(default=50, ge=1, le=200, alias="page[size]"),
    _: User = Depends(require_logs),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """List audit entries newest first with filters and cursor pagination."""
    entries, pagination_meta = await AuditService(db).list_logs(
        action=action,
        user_id=user_id,
        start_date=start_date,
        end_date=end_date,
        resource_type=resource_type,
        status=status,
        search=search,
        page_size=page_size,
        after=page_after,
    )
    links = build_links(request.url, entries, pagination_meta, page_size)
    return JSONAPIListResponse(
        data=[_log_resource(e) for e in entries],
        meta=pagination_meta.model_dump(),
        links=links.model_dump(exclude_none=True),
    )


@router.get("/stats/summary")
async def log_stats(
    _: User = Depends(require_logs),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """Entry counts over time windows plus the most frequent actions and users."""
    stats = await AuditService(db).stats_summary()
    return JSONAPISingleResponse(
        data=JSONAPIResource(type="audit-log-stats", id="summary", attributes=stats)
    )


@router.delete("/cleanup")
async def cleanup_logs(
    days: int = Query(default=90, ge=1),
    _: User = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIMetaResponse:
    """Delete entries older than ``days`` days."""
    count = await AuditService(db).cleanup(days)
    return JSONAPIMetaResponse(meta={"deleted_count": count, "days": days})


@router.get("/{log_id}")
async def get_log(
    log_id: str,
    _: User = Depends(require_logs),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    entry = await AuditService(db).get_log(log_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Log entry not found")
    return JSONAPISingleResponse(data=_log_resource(entry))
