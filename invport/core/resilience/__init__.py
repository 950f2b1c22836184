"""Resilience primitives: circuit breaker, pooled connections and outbound throttling."""

from invport.core.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitState,
    create_retry_decorator,
)
from invport.core.resilience.connection_pool_manager import ConnectionPoolManager
from invport.core.resilience.rate_limiter import RATE_LIMITS, RateLimitConfig, RateLimiter

__all__ = [
    "CircuitBreaker",
    "CircuitState",
    "ConnectionPoolManager",
    "RATE_LIMITS",
    "RateLimitConfig",
    "RateLimiter",
    "create_retry_decorator",
]
