"""
Validation Exceptions

Raised when request input has the wrong shape or type. All map to HTTP 400.
"""

from invport.core.exceptions.base import InvportError


class ValidationError(InvportError):
    """Base exception for bad input."""

    status_code = 400


class InvalidVehicleIdError(ValidationError):
    """Raised when a vehicle id path segment is not a positive integer."""

    def __init__(self, raw_id: object = None, **kwargs):
        super().__init__("Invalid vehicle ID", details={"raw_id": str(raw_id)}, **kwargs)


class InvalidStatusError(ValidationError):
    """Raised when a status value is outside the allowed enumeration."""

    def __init__(self, status: object, allowed: tuple[str, ...], **kwargs):
        super().__init__(
            f"Invalid status. Must be one of: {', '.join(allowed)}",
            details={"status": str(status), "allowed": list(allowed)},
            **kwargs,
        )


class InvalidRateLimitConfigError(ValidationError):
    """
    Raised for malformed throttle configuration.

    Covers max_calls < 1, a non-positive window, a negative minimum delay
    (checked when the config is built) and an empty throttle key.
    """
