"""Global exception handlers rendering every failure as a JSON:API error document.

Invariants:
    - AtreoError -> its own http_status and title
    - HTTPException -> its status code, detail preserved
    - RequestValidationError -> 400 with one error object per failing field
    - Exception (catch-all) -> 500, never leaks internal details
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from atreo.errors import AtreoError, RateLimitedError
from atreo.schemas.jsonapi import error_document, validation_document

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_domain_error_handler(app)
    _register_http_error_handler(app)
    _register_validation_error_handler(app)
    _register_generic_error_handler(app)


def _register_domain_error_handler(app: FastAPI) -> None:
    @app.exception_handler(AtreoError)
    async def domain_error_handler(request: Request, exc: AtreoError):
        if exc.http_status >= 500:
            logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
        else:
            logger.info("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
        headers = None
        if isinstance(exc, RateLimitedError) and exc.retry_after is not None:
            headers = {"Retry-After": str(exc.retry_after)}
        return JSONResponse(
            status_code=exc.http_status,
            content=error_document(exc.http_status, exc.message, exc.title),
            headers=headers,
        )


def _register_http_error_handler(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_document(exc.status_code, detail),
            headers=getattr(exc, "headers", None),
        )


def _register_validation_error_handler(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=validation_document(exc.errors()),
        )


def _register_generic_error_handler(app: FastAPI) -> None:
    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        logger.error("Unhandled exception on %s: %s", request.url.path, exc, exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_document(500, "An unexpected error occurred"),
        )
