"""Unauthenticated health endpoint for load balancers and uptime checks."""

import logging

from fastapi import APIRouter, Request
from sqlalchemy import text

from atreo.config import get_settings
from atreo.models.base import utcnow
from atreo.schemas.jsonapi import JSONAPIResource, JSONAPISingleResponse

logger = logging.getLogger(__name__)

router = APIRouter()


async def _database_ok(request: Request) -> bool:
    session_factory = getattr(request.app.state, "session_factory", None)
    if session_factory is None:
        return False
    try:
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
    except Exception:
        logger.warning("Database health check failed", exc_info=True)
        return False
    return True


async def _redis_ok(request: Request) -> bool:
    redis = getattr(request.app.state, "redis", None)
    if redis is None:
        return False
    try:
        await redis.ping()
    except Exception:
        logger.warning("Redis health check failed", exc_info=True)
        return False
    return True


@router.get("/health", response_model=JSONAPISingleResponse)
async def health_check(request: Request) -> JSONAPISingleResponse:
    """Report database and Redis connectivity.

    ``status`` is ``healthy`` only when both answer; otherwise ``degraded``.
    The endpoint itself always returns 200.
    """
    db_ok = await _database_ok(request)
    redis_ok = await _redis_ok(request)
    return JSONAPISingleResponse(
        data=JSONAPIResource(
            type="system-health",
            id="current",
            attributes={
                "status": "healthy" if (db_ok and redis_ok) else "degraded",
                "database": "connected" if db_ok else "disconnected",
                "redis": "connected" if redis_ok else "disconnected",
                "environment": get_settings().environment,
                "timestamp": utcnow().isoformat(),
            },
        )
    )
