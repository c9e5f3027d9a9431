"""FastAPI application for the media pipeline and its uvicorn entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.dependencies import get_settings, init_services, shutdown_services
from src.api.middleware.error_handler import error_handler_middleware
from src.api.middleware.logging import LoggingMiddleware
from src.api.openapi.routes import health, jobs, media, search, webhooks
from src.commons.settings import Settings
from src.commons.telemetry import build_formatter, configure_logging, get_logger

# Loggers owned by uvicorn; they get our formatter once the server has made them
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

logger = get_logger(__name__)


def setup_logging(settings: Settings, *, include_server: bool = False) -> None:
    """Apply the telemetry settings to the application loggers.

    Args:
        settings: Application settings.
        include_server: Also reformat uvicorn's loggers. Their handlers only
            exist once the server is running, so lifespan passes True.
    """
    level = (settings.telemetry.log_level or settings.app.log_level).upper()
    configure_logging(
        level=level,
        format_type=settings.telemetry.log_format,
        logger_name="src",
    )
    logging.getLogger().setLevel(level)

    if not include_server:
        return

    formatter = build_formatter(settings.telemetry.log_format)
    for name in SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.setLevel(level)
        if not server_logger.handlers:
            configure_logging(level, settings.telemetry.log_format, name)
            continue
        for handler in server_logger.handlers:
            handler.setFormatter(formatter)
            handler.setLevel(level)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Prepare storage on startup; drain transcriptions and close on exit."""
    settings = get_settings()
    setup_logging(settings, include_server=True)

    logger.info(
        "Media pipeline starting",
        extra={
            "environment": settings.app.environment,
            "queue": settings.queue.provider,
            "document_db": settings.document_db.provider,
            "vector_db": settings.vector_db.provider,
            "transcription": settings.transcription.provider
            if settings.transcription.enabled
            else "disabled",
        },
    )
    await init_services(settings)

    yield

    await shutdown_services()
    logger.info("Media pipeline stopped")


def create_app() -> FastAPI:
    """Build the application: middleware, routers and lifespan.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()
    docs = settings.server.docs_enabled

    app = FastAPI(
        title=settings.app.name,
        version=settings.app.version,
        description=(
            "Media ingestion pipeline: encoding dispatch, signed encoder "
            "webhooks, transcription and transcript search"
        ),
        docs_url="/docs" if docs else None,
        redoc_url="/redoc" if docs else None,
        openapi_url="/openapi.json" if docs else None,
        lifespan=lifespan,
    )

    # Last added runs outermost; errors render inside request logging
    app.middleware("http")(error_handler_middleware)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Probes stay unversioned so orchestrators need no prefix
    app.include_router(health.router, tags=["Health"])

    prefix = settings.server.api_prefix
    for router, tag in (
        (media.router, "Media"),
        (jobs.router, "Jobs"),
        (webhooks.router, "Webhooks"),
        (search.router, "Search"),
    ):
        app.include_router(router, prefix=prefix, tags=[tag])

    return app


def run() -> None:
    """Serve the application with uvicorn using the server settings."""
    settings = get_settings()
    server = settings.server
    uvicorn.run(
        "src.api.main:app",
        host=server.host,
        port=server.port,
        workers=1 if server.reload else server.workers,
        reload=server.reload,
        log_level=settings.app.log_level.lower(),
    )


setup_logging(get_settings())
app = create_app()
