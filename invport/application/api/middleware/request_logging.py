"""
Request Logging Middleware

Logs every request on the way in and its status and duration on the way out.
Request bodies are never logged; headers are logged with credentials masked.
"""

import time
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from invport.core.logging.logger import get_logger

logger = get_logger(__name__)

SENSITIVE_HEADERS = {
    "authorization",
    "cookie",
    "x-api-key",
    "x-functions-key",
}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging HTTP requests and responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        method = request.method
        path = request.url.path

        logger.info(
            f"Incoming request: {method} {path}",
            method=method,
            path=path,
            query_params=str(request.query_params) if request.query_params else None,
            headers=self._sanitize_headers(dict(request.headers)),
            client_host=request.client.host if request.client else None,
        )

        response = await call_next(request)

        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        log = logger.warning if response.status_code >= 400 else logger.info
        log(
            f"Request completed: {method} {path} - {response.status_code}",
            method=method,
            path=path,
            status_code=response.status_code,
            duration_ms=duration_ms,
        )
        return response

    @staticmethod
    def _sanitize_headers(headers: dict[str, str]) -> dict[str, str]:
        return {
            key: "***REDACTED***" if key.lower() in SENSITIVE_HEADERS else value
            for key, value in headers.items()
        }
