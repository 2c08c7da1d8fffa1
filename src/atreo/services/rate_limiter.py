"""Fixed-window request rate limiting backed by Redis counters."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from redis.asyncio import Redis

from atreo.config import Settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "atreo:ratelimit"
LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


@dataclass(frozen=True)
class RateLimit:
    """A named quota of ``limit`` requests per ``window`` seconds."""

    name: str
    limit: int
    window: int


def limit_for(name: str, settings: Settings) -> RateLimit:
    """Resolve a limiter by name, applying the development multiplier."""
    base = {
        "global": settings.rate_limit_global,
        "auth": settings.rate_limit_auth,
        "write": settings.rate_limit_write,
        "upload": settings.rate_limit_upload,
    }[name]
    if settings.is_development:
        base *= 20 if name == "global" else 10
    return RateLimit(name=name, limit=base, window=settings.rate_limit_window_seconds)


class RateLimiter:
    """Counts hits per (limiter, client) pair in Redis.

    Args:
        redis: Async Redis client.
    """

    def __init__(self, redis: Redis) -> None:
        self.redis = redis

    async def hit(self, rate: RateLimit, client_id: str) -> tuple[bool, int]:
        """Record one request and report whether it is within quota.

        Returns:
            Tuple of (allowed, seconds until the window resets).
        """
        key = f"{KEY_PREFIX}:{rate.name}:{client_id}"
        count = await self.redis.incr(key)
        if count == 1:
            await self.redis.expire(key, rate.window)
        ttl = await self.redis.ttl(key)
        if ttl is None or ttl < 0:
            await self.redis.expire(key, rate.window)
            ttl = rate.window
        return count <= rate.limit, ttl
