"""
Error Handling
==============

Two layers turn exceptions into JSON responses:

1. Exception handlers (registered on the app) for the typed `InvportError`
   hierarchy and for FastAPI request validation failures. They render the
   standard envelope::

       {"success": false, "error": "...", "errorType": "...",
        "statusCode": 404, "timestamp": "..."}

   plus any fields the raising code attached with ``expose()`` (breaker
   diagnostics, durations).

2. `ErrorHandlingMiddleware`, the catch-all for anything else. It logs the
   full traceback server-side and returns a generic 500; the traceback is
   only echoed to the client in development.
"""

import traceback
from collections.abc import Callable

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from invport.core.clock import utc_now_iso
from invport.core.config.constants import HEADER_REQUEST_ID
from invport.core.exceptions import InvportError
from invport.core.logging.logger import get_logger, get_request_id
from invport.infrastructure.monitoring.metrics_collector import get_metrics_collector

logger = get_logger(__name__)


def error_body(exc: InvportError) -> dict:
    """Standard error envelope for a typed exception."""
    return {
        "success": False,
        "error": exc.message,
        "errorType": type(exc).__name__,
        "statusCode": exc.status_code,
        "timestamp": utc_now_iso(),
        **exc.response_fields,
    }


async def invport_exception_handler(request: Request, exc: InvportError) -> JSONResponse:
    """Handle the typed exception hierarchy."""
    exc.request_id = exc.request_id or get_request_id()
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        exc.message,
        error_type=type(exc).__name__,
        status_code=exc.status_code,
        path=request.url.path,
        details=exc.details,
    )
    get_metrics_collector().record_error(type(exc).__name__, "API")

    headers = {HEADER_REQUEST_ID: exc.request_id} if exc.request_id else None
    return JSONResponse(status_code=exc.status_code, content=error_body(exc), headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render FastAPI body/query validation failures as 400s in the standard envelope."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if location:
        message = f"{location}: {message}"

    logger.warning("Request validation failed", path=request.url.path, errors=len(errors))
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": message,
            "errorType": "ValidationError",
            "statusCode": 400,
            "timestamp": utc_now_iso(),
        },
    )


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Last line of defense for exceptions no handler claimed.

    Args:
        app: The ASGI application
        include_traceback: Echo the traceback in the response body
                           (development only)
    """

    def __init__(self, app, include_traceback: bool = False):
        super().__init__(app)
        self.include_traceback = include_traceback

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            method = request.method
            path = request.url.path
            error_type = type(e).__name__

            logger.error(
                f"Unhandled exception in request: {method} {path}",
                method=method,
                path=path,
                error_type=error_type,
                error_message=str(e),
                exc_info=True,
            )
            get_metrics_collector().record_error(error_type, "unhandled_exception")

            error_response = {"success": False, "error": "Internal server error"}
            if self.include_traceback:
                error_response["errorType"] = error_type
                error_response["detail"] = str(e)
                error_response["traceback"] = traceback.format_exc()

            return JSONResponse(status_code=500, content=error_response)


def add_error_handling(app: FastAPI, include_traceback: bool = False) -> None:
    """Register the exception handlers and the catch-all middleware."""
    app.add_exception_handler(InvportError, invport_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_middleware(ErrorHandlingMiddleware, include_traceback=include_traceback)
    logger.info("Error handling registered", include_traceback=include_traceback)
