"""
Cache-Control Middleware

Inventory data changes underneath the browser (status flips, price edits), so
every response under the API prefix is marked non-cacheable.
"""

from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from invport.core.config.constants import NO_CACHE_HEADERS


class NoCacheMiddleware(BaseHTTPMiddleware):
    """
    Args:
        app: The ASGI application
        path_prefix: Only responses for paths under this prefix are marked
    """

    def __init__(self, app, path_prefix: str = "/api"):
        super().__init__(app)
        self.path_prefix = path_prefix

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        if request.url.path.startswith(self.path_prefix):
            for header, value in NO_CACHE_HEADERS.items():
                response.headers[header] = value
        return response
