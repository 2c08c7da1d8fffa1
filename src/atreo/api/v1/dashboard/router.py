"""Dashboard statistics endpoints returning JSON:API responses."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from atreo.api.deps import get_current_user, get_db, require_admin
from atreo.models.user import User
from atreo.schemas.jsonapi import JSONAPIResource, JSONAPISingleResponse
from atreo.services.dashboard_service import DashboardService

router = APIRouter()


@router.get("/stats")
async def admin_stats(
    time_frame: str = Query(default="6months", pattern="^(1month|3months|6months|1year)$"),
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """Organization-wide totals and monthly series for the chosen time frame."""
    stats = await DashboardService(db).admin_stats(time_frame)
    return JSONAPISingleResponse(
        data=JSONAPIResource(type="dashboard-stats", id=time_frame, attributes=stats)
    )


@router.get("/user-stats")
async def user_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """The caller's approved earnings and request counts."""
    stats = await DashboardService(db).user_stats(user)
    return JSONAPISingleResponse(
        data=JSONAPIResource(type="user-stats", id=str(user.id), attributes=stats)
    )
