#!/usr/bin/env python3
"""
FastAPI Application Entry Point

Configures the inventory API: middleware, rate limiting, routers and the
lifespan that owns the service container (database pool, breaker, blob
client).
"""

import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from invport.application.api.middleware import setup_middleware
from invport.application.api.routes import ALL_ROUTERS
from invport.application.services.container import ServiceContainer
from invport.core.config.constants import HEADER_REQUEST_ID
from invport.core.config.settings import Settings, get_settings
from invport.core.logging.logger import clear_request_id, get_logger, set_request_id, setup_logging
from invport.rate_limiting import setup_rate_limiting

logger = get_logger(__name__)


# ============================================================================
# Application Lifespan
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle (startup and shutdown).

    The pool itself opens lazily on the first query, so startup succeeds
    even while the database is unreachable; /api/health reports it.
    """
    settings: Settings = app.state.settings

    logger.info(
        "Starting Invport Inventory API",
        environment=settings.app.ENVIRONMENT,
        version=settings.app.APP_VERSION,
    )

    owns_services = getattr(app.state, "services", None) is None
    if owns_services:
        app.state.services = ServiceContainer.build(settings)

    logger.info("Application startup complete")
    try:
        yield
    finally:
        logger.info("Shutting down application")
        if owns_services:
            await app.state.services.aclose()
        logger.info("Application shutdown complete")


# ============================================================================
# Application Factory
# ============================================================================


def create_app(settings: Settings | None = None, services: ServiceContainer | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to run with; the process-wide settings by default
        services: Pre-built service container (tests); built in the lifespan
                  otherwise and closed on shutdown

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or get_settings()
    setup_logging(log_level=settings.logging.LOG_LEVEL, log_format=settings.logging.LOG_FORMAT)

    app = FastAPI(
        title=settings.app.APP_NAME,
        version=settings.app.APP_VERSION,
        description="Dealership inventory API over Azure SQL and Blob Storage",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    if services is not None:
        app.state.services = services

    # Error handling, cache headers, request logging
    setup_middleware(app, settings)

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        """Inject the request ID into logs and echo it on the response."""
        request_id = request.headers.get(HEADER_REQUEST_ID) or str(uuid.uuid4())
        set_request_id(request_id)
        try:
            response = await call_next(request)
            response.headers[HEADER_REQUEST_ID] = request_id
            return response
        finally:
            clear_request_id()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.app.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[HEADER_REQUEST_ID],
    )

    setup_rate_limiting(app, settings)

    base_path = settings.app.API_BASE_PATH
    for router in ALL_ROUTERS:
        app.include_router(router, prefix=base_path)

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.app.APP_NAME,
            "version": settings.app.APP_VERSION,
            "environment": settings.app.ENVIRONMENT,
            "docs": "/docs",
            "health": f"{base_path}/health",
        }

    return app


# ============================================================================
# Main Entry Point
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "invport.application.app:create_app",
        factory=True,
        host=settings.app.API_HOST,
        port=settings.app.API_PORT,
        reload=settings.app.ENVIRONMENT == "development",
        log_level=settings.logging.LOG_LEVEL.lower(),
    )
