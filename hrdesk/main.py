"""
HRDesk Backend Application.

FastAPI application with structured logging, error handling,
and security middleware.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hrdesk import __version__
from hrdesk.agents.chat import wait_for_turns
from hrdesk.agents.hr import get_tool_registry
from hrdesk.api import health_router
from hrdesk.api.v1 import router as v1_router
from hrdesk.config import get_settings
from hrdesk.core import (
    RequestContextMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
    get_logger,
    setup_exception_handlers,
    setup_logging,
)
from hrdesk.db import dispose_engine, verify_database_connection
from hrdesk.providers import ProviderRegistry

logger = get_logger(__name__)

_SHUTDOWN_GRACE_SECONDS = 30


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Startup
    setup_logging(
        level=settings.log_level,
        json_output=not settings.debug,
        log_file=settings.log_file or None,
    )
    logger.info(
        "Starting HRDesk backend",
        data={
            "host": settings.host,
            "port": settings.port,
            "debug": settings.debug,
            "provider_mode": settings.provider_mode,
            "tools": len(get_tool_registry()),
        },
    )

    # Verify database connectivity (does NOT run migrations)
    if verify_database_connection():
        logger.info("Database connection verified")
    else:
        logger.warning("Database connection failed - run 'alembic upgrade head' to initialize")

    _app.state.start_time = datetime.now(UTC)

    # Tests may install their own registry before startup
    registry_created = False
    if not hasattr(_app.state, "provider_registry"):
        _app.state.provider_registry = ProviderRegistry(settings)
        registry_created = True

    yield

    # Shutdown
    logger.info("Shutting down HRDesk backend")
    await wait_for_turns(timeout=_SHUTDOWN_GRACE_SECONDS)
    if registry_created:
        await _app.state.provider_registry.aclose()
    dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="HRDesk",
        description="Conversational HR back office with permission-checked tools",
        version=__version__,
        lifespan=lifespan,
        docs_url=settings.docs_url,
    )

    # Setup exception handlers (must be before middleware)
    setup_exception_handlers(app)

    # Middleware: last added runs first
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_bytes)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Conversation-Id"],
    )

    app.include_router(health_router)
    app.include_router(v1_router)

    return app


# Create application instance
app = create_app()


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "hrdesk.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=False,
    )


if __name__ == "__main__":
    main()
