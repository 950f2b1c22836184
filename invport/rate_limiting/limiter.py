"""
Inbound Rate Limiting

Per-client HTTP limits for FastAPI using slowapi with in-memory moving-window
storage. Outbound throttling of the services' own database and storage calls
lives in `invport.core.resilience.rate_limiter`.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from invport.core.config.constants import HEADER_USER_ID
from invport.core.config.settings import Settings
from invport.core.logging.logger import get_logger
from invport.infrastructure.monitoring.metrics_collector import get_metrics_collector

logger = get_logger(__name__)

RETRY_AFTER_SECONDS = 60


def get_client_identifier(request: Request) -> str:
    """
    Extract the rate-limit key for a request.

    Priority: X-User-ID header > remote address
    """
    user_id = request.headers.get(HEADER_USER_ID)
    if user_id:
        return f"user:{user_id}"
    return f"ip:{get_remote_address(request)}"


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Handle rate limit exceeded - return 429 with Retry-After."""
    client = get_client_identifier(request)
    get_metrics_collector().record_rate_limit_exceeded(client.split(":", 1)[0])
    logger.warning("Rate limit exceeded", client=client, limit=str(exc.detail))

    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "error": "rate_limit_exceeded",
            "retryAfter": RETRY_AFTER_SECONDS,
        },
        headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
    )


class RateLimitManager:
    """
    Owns the slowapi limiter for one application instance.

    Args:
        settings: Source of ``RATE_LIMIT_DEFAULT`` and ``RATE_LIMIT_ENABLED``
    """

    def __init__(self, settings: Settings):
        rate_limit = settings.rate_limit
        self._limiter = Limiter(
            key_func=get_client_identifier,
            default_limits=[rate_limit.RATE_LIMIT_DEFAULT],
            storage_uri="memory://",
            strategy="moving-window",
            headers_enabled=True,
            enabled=rate_limit.RATE_LIMIT_ENABLED,
        )
        logger.info(
            "Rate limit manager initialized",
            default_limit=rate_limit.RATE_LIMIT_DEFAULT,
            enabled=rate_limit.RATE_LIMIT_ENABLED,
        )

    @property
    def limiter(self) -> Limiter:
        return self._limiter

    def setup_app(self, app) -> None:
        """Configure rate limiting for FastAPI application."""
        app.state.limiter = self._limiter
        app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
        app.add_middleware(SlowAPIMiddleware)


def setup_rate_limiting(app, settings: Settings) -> RateLimitManager:
    """Setup rate limiting for FastAPI application."""
    manager = RateLimitManager(settings)
    manager.setup_app(app)
    return manager
