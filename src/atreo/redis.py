"""Redis client lifecycle.

Redis only backs the rate limiter and the health check, so the API starts
without it: a failed connection is logged and the client is left unset.
"""

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


async def init_redis(redis_url: str) -> aioredis.Redis | None:
    """Connect and ping; return None when Redis is unreachable."""
    client = aioredis.from_url(
        redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )
    try:
        await client.ping()
    except (RedisError, OSError):
        logger.warning("Redis unavailable at %s; rate limiting disabled", redis_url, exc_info=True)
        await client.aclose()
        return None
    return client


async def close_redis(client: aioredis.Redis | None) -> None:
    if client is not None:
        await client.aclose()
