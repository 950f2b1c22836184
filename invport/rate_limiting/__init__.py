"""
Rate Limiting Module

Provides per-client inbound HTTP rate limiting.
"""

from .limiter import RateLimitManager, get_client_identifier, setup_rate_limiting

__all__ = [
    "RateLimitManager",
    "get_client_identifier",
    "setup_rate_limiting",
]
