"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations and a fake bucket
- Explicit about initialization order
- Settings and the storage handle are passed in, not read from globals

For local development:
    R2_MOCK_MODE=true uvicorn r2store.main:app --reload

For production:
    gunicorn r2store.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api.routes import objects
from .config.settings import Settings, get_settings
from .infrastructure.storage.client import StorageClient, StorageError

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Logs the effective configuration on startup and reports anything
    missing. Storage clients hold no connections that need closing.
    """
    settings: Settings = app.state.settings

    logger.info(
        "R2 Store starting",
        extra={
            "version": settings.app_version,
            "bucket": settings.r2_bucket_name,
            "mock_mode": settings.r2_mock_mode,
            "token_required": settings.token_required,
        }
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )

    yield

    logger.info("R2 Store shutting down")


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[StorageClient] = None,
) -> FastAPI:
    """
    Application factory.

    Args:
        settings: Configuration; loaded from the environment if omitted
        storage: Storage backend; built from settings by the first request if omitted

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()

    logging.getLogger().setLevel(settings.log_level.upper())

    # docs routes are disabled: every path is a potential object key
    app = FastAPI(
        title=settings.app_title,
        version=settings.app_version,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.storage = storage

    app.include_router(objects.router, tags=["Objects"])

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Error responses are short plain-text reasons, not JSON."""
        return PlainTextResponse(
            str(exc.detail),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Malformed query or form input gets a plain-text 400 too."""
        logger.info(
            "Request validation failed",
            extra={
                "path": request.url.path,
                "method": request.method,
                "errors": exc.errors(),
            },
        )
        return PlainTextResponse(
            "Bad request",
            status_code=400,
        )

    @app.exception_handler(StorageError)
    async def storage_exception_handler(request: Request, exc: StorageError):
        """
        Storage backend failures.

        Every list/get/put/delete failure lands here. The request fails
        as a whole; nothing is retried.
        """
        logger.error(
            "Storage backend error",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
        )
        return PlainTextResponse(
            "Storage backend error",
            status_code=502,
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all exception handler.

        Log the full error server-side but return a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )
        return PlainTextResponse(
            "Internal server error",
            status_code=500,
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.app_title,
            "version": settings.app_version,
        }
    )

    return app


# Create the application instance
# This is what uvicorn/gunicorn will import
app = create_app()


# For debugging/development
if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "r2store.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
