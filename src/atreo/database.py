"""Async engine and session factory for the Atreo database.

PostgreSQL (asyncpg) in deployments, SQLite (aiosqlite) for local runs and
tests. Plain ``postgresql://`` URLs, as handed out by most hosting
providers, are rewritten to the asyncpg driver.
"""

import logging

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

logger = logging.getLogger(__name__)


def normalize_database_url(database_url: str) -> str:
    """Point bare PostgreSQL URLs at the asyncpg driver."""
    for prefix in ("postgres://", "postgresql://"):
        if database_url.startswith(prefix):
            return "postgresql+asyncpg://" + database_url[len(prefix):]
    return database_url


async def init_db(database_url: str) -> AsyncEngine:
    """Create the async engine; pool sizing only applies to PostgreSQL."""
    url = normalize_database_url(database_url)
    if make_url(url).get_backend_name() == "sqlite":
        engine = create_async_engine(url, echo=False)
    else:
        engine = create_async_engine(
            url,
            pool_size=10,
            max_overflow=20,
            pool_pre_ping=True,
            echo=False,
        )
    logger.info("Database engine ready (%s)", engine.url.render_as_string(hide_password=True))
    return engine


def get_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Sessions keep loaded attributes after commit so routers can render them."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def close_db(engine: AsyncEngine) -> None:
    await engine.dispose()
