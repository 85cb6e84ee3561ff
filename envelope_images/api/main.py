"""FastAPI application factory and lifespan management."""

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from envelope_images.api.dependencies import (
    get_settings,
    init_services,
    shutdown_services,
)
from envelope_images.api.middleware.error_handler import error_handler_middleware
from envelope_images.api.middleware.logging import LoggingMiddleware
from envelope_images.api.openapi.routes import envelopes, files, health, uploads
from envelope_images.commons.telemetry import build_formatter, configure_logging


def _setup_logging() -> None:
    """Configure logging for the application.

    This must be called at module level to ensure our formatters
    are applied before uvicorn starts.
    """
    settings = get_settings()
    log_level = settings.telemetry.log_level or settings.app.log_level
    log_format = settings.telemetry.log_format

    configure_logging(
        level=log_level,
        format_type=log_format,
        logger_name="envelope_images",
        service=settings.app.name,
    )

    # Also configure root logger as fallback
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))


def _configure_uvicorn_logging() -> None:
    """Configure uvicorn loggers to use our format.

    Called during lifespan when uvicorn handlers are available.
    """
    settings = get_settings()
    log_level = settings.telemetry.log_level or settings.app.log_level
    formatter = build_formatter(settings.telemetry.log_format, settings.app.name)

    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(logger_name)
        logger.setLevel(getattr(logging, log_level.upper()))
        for handler in logger.handlers:
            handler.setFormatter(formatter)
            handler.setLevel(getattr(logging, log_level.upper()))
        if not logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(formatter)
            handler.setLevel(getattr(logging, log_level.upper()))
            logger.addHandler(handler)
            logger.propagate = False


# Configure logging at module import time
_setup_logging()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifespan - startup and shutdown.

    Creates the bucket, catalog indexes and cleanup workers on startup,
    drains pending blob deletions and closes clients on exit.
    """
    _configure_uvicorn_logging()

    settings = get_settings()
    await init_services(settings)

    yield

    await shutdown_services()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app.name,
        version=settings.app.version,
        description="Envelope image store - one replaceable image per envelope",
        docs_url="/docs" if settings.server.docs_enabled else None,
        redoc_url="/redoc" if settings.server.docs_enabled else None,
        openapi_url="/openapi.json" if settings.server.docs_enabled else None,
        lifespan=lifespan,
    )

    _configure_middleware(app, settings)
    _register_routes(app, settings)

    return app


def _configure_middleware(app: FastAPI, settings: Any) -> None:
    """Configure application middleware."""
    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Logging middleware
    app.add_middleware(LoggingMiddleware)

    # Error handler (as middleware)
    app.middleware("http")(error_handler_middleware)


def _register_routes(app: FastAPI, settings: Any) -> None:
    """Register API routes."""
    prefix = settings.server.api_prefix

    # Health routes (no prefix for standard health checks)
    app.include_router(health.router, tags=["Health"])

    app.include_router(uploads.router, prefix=prefix, tags=["Uploads"])
    app.include_router(envelopes.router, prefix=prefix, tags=["Envelopes"])
    app.include_router(files.router, prefix=prefix, tags=["Files"])


# Create default app instance
app = create_app()
