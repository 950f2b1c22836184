"""
Middleware Package
==================

AVAILABLE MIDDLEWARE:
---------------------
1. error_handler: Typed exception handlers plus the catch-all 500 middleware
2. cache_control: No-cache headers on every API response
3. request_logging: Log all requests and responses

MIDDLEWARE ORDERING:
--------------------
Starlette wraps the app in reverse registration order: the last middleware
added sees the request first. `setup_middleware` registers the error handler
first so it sits closest to the routes, and everything added after it (cache
headers, request logging) also applies to the 500 it produces.
"""

from fastapi import FastAPI

from invport.core.config.settings import Settings
from invport.core.logging.logger import get_logger

from .cache_control import NoCacheMiddleware
from .error_handler import add_error_handling
from .request_logging import RequestLoggingMiddleware

logger = get_logger(__name__)


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """
    Register all middleware components in the correct order.

    Args:
        app: FastAPI application instance
        settings: Environment (tracebacks) and API prefix (cache headers)
    """
    add_error_handling(app, include_traceback=(settings.app.ENVIRONMENT == "development"))
    app.add_middleware(NoCacheMiddleware, path_prefix=settings.app.API_BASE_PATH or "/")
    app.add_middleware(RequestLoggingMiddleware)

    logger.info("All middleware components registered successfully")


__all__ = [
    "setup_middleware",
    "add_error_handling",
    "NoCacheMiddleware",
    "RequestLoggingMiddleware",
]
