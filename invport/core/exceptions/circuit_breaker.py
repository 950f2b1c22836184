"""
Circuit Breaker Exceptions

All exceptions related to circuit breaker operations.
"""

from datetime import datetime

from invport.core.exceptions.base import InvportError


class CircuitBreakerError(InvportError):
    """Base exception for circuit breaker errors."""

    status_code = 500


class CircuitOpenError(CircuitBreakerError):
    """
    Raised when the circuit breaker is open (fail fast).

    The database is not contacted while the breaker is open. The error carries
    the moment the next acquisition attempt will be allowed through, and the
    breaker snapshot is exposed to API clients for diagnostics.
    """

    def __init__(self, name: str, retry_at: datetime, snapshot: dict | None = None, **kwargs):
        self.name = name
        self.retry_at = retry_at
        retry_iso = retry_at.isoformat(timespec="milliseconds").replace("+00:00", "Z")
        super().__init__(
            f"Circuit breaker open. Retry after {retry_iso}",
            details={"breaker": name, "retry_at": retry_iso},
            **kwargs,
        )
        if snapshot is not None:
            self.expose(circuitBreaker=snapshot)
