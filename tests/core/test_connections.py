"""Connection setup: database URL handling and optional Redis."""

import pytest

from atreo.database import close_db, init_db, normalize_database_url
from atreo.redis import close_redis, init_redis


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("postgresql://u:p@db:5432/atreo", "postgresql+asyncpg://u:p@db:5432/atreo"),
        ("postgres://u:p@db/atreo", "postgresql+asyncpg://u:p@db/atreo"),
        ("postgresql+asyncpg://u:p@db/atreo", "postgresql+asyncpg://u:p@db/atreo"),
        ("sqlite+aiosqlite:///:memory:", "sqlite+aiosqlite:///:memory:"),
    ],
)
def test_normalize_database_url(url, expected):
    assert normalize_database_url(url) == expected


async def test_sqlite_engine_skips_pool_sizing():
    engine = await init_db("sqlite+aiosqlite:///:memory:")
    assert engine.url.get_backend_name() == "sqlite"
    await close_db(engine)


async def test_unreachable_redis_yields_none():
    client = await init_redis("redis://127.0.0.1:1/0")
    assert client is None
    await close_redis(client)
