"""FastAPI application for urlhook."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from urlhook import __version__
from urlhook.config import Settings
from urlhook.exceptions import NotFoundError, URLHookError, ValidationError
from urlhook.logging import configure_logging, get_logger
from urlhook.service import URLHookService

from .router import router, set_service

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan.

    Uses the service passed to create_app() when there is one, otherwise
    builds one from settings. Persisted jobs resume after the startup
    delay; pending passes are cancelled on shutdown.
    """
    settings: Settings = app.state.settings

    configure_logging(level=settings.log_level, format=settings.log_format)
    logger.info("Starting urlhook API", log_level=settings.log_level, state_file=settings.state_file)

    service: URLHookService | None = app.state.service
    if service is None:
        service = URLHookService.create(settings)

    await service.initialize()
    set_service(service)

    yield

    await service.close()
    set_service(None)


def create_app(
    settings: Settings | None = None,
    service: URLHookService | None = None,
) -> FastAPI:
    """Create a FastAPI application.

    Args:
        settings: Optional settings. Uses environment if None.
        service: Optional pre-built service (tests inject fakes this way).

    Returns:
        Configured FastAPI application.

    Example:
        ```python
        from urlhook.api import create_app

        app = create_app()
        # Run with: uvicorn urlhook.api:app --reload
        ```
    """
    if settings is None:
        settings = service.settings if service is not None else Settings()

    app = FastAPI(
        title="urlhook",
        description="Send URLs to webhooks, with signing, dedupe and retries.",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.service = service

    if settings.cors_enabled:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_allow_origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        """Handle validation errors with 400 status."""
        logger.warning(
            "Validation error", field=exc.field, error=exc.message, path=str(request.url)
        )
        return JSONResponse(status_code=400, content=exc.to_dict())

    @app.exception_handler(NotFoundError)
    async def not_found_error_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        """Handle not found errors with 404 status."""
        logger.info(
            "Resource not found",
            resource_type=exc.resource_type,
            resource_id=exc.resource_id,
            path=str(request.url),
        )
        return JSONResponse(status_code=404, content=exc.to_dict())

    @app.exception_handler(URLHookError)
    async def urlhook_error_handler(request: Request, exc: URLHookError) -> JSONResponse:
        """Handle all other urlhook errors with 500 status."""
        logger.error("urlhook error", error=exc.message, code=exc.code, path=str(request.url))
        return JSONResponse(status_code=500, content=exc.to_dict())

    app.include_router(router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
