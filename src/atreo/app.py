"""FastAPI application factory with async lifespan for DB and Redis."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from atreo.api.error_handlers import register_error_handlers
from atreo.api.v1.router import v1_router
from atreo.config import get_settings
from atreo.database import close_db, get_session_factory, init_db
from atreo.redis import close_redis, init_redis

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle.

    On startup: initialize the database engine, session factory and Redis
    client. On shutdown: close Redis, then the database.
    """
    settings = get_settings()

    engine = await init_db(settings.database_url)
    app.state.db_engine = engine
    app.state.session_factory = get_session_factory(engine)
    app.state.redis = await init_redis(settings.redis_url)
    logger.info("Atreo API started (%s)", settings.environment)

    yield

    await close_redis(app.state.redis)
    await close_db(engine)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    This is the app factory. Uvicorn calls it with the --factory flag:
        uvicorn atreo.app:create_app --factory
    """
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    app = FastAPI(
        title="Atreo Admin API",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)
    app.include_router(v1_router, prefix=settings.api_prefix)

    return app
