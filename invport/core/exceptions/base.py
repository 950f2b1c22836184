"""
Base Exception Class

This module contains the base exception class that every inventory service error
inherits from. Specialized exceptions live in their themed modules.
"""

from typing import Any


class InvportError(Exception):
    """
    Base exception for all inventory service errors.

    Every custom exception carries the HTTP status it maps to, so the API layer
    can render any of them through a single exception handler.

    Attributes:
        message: Error message (safe to show to API clients)
        request_id: Request ID for correlation (if available)
        details: Additional error details, logged server-side only
        response_fields: Extra top-level fields rendered into the error body

    Example:
        raise ConflictError(
            "This VIN already exists in the database",
            details={"vin": "1FTFW1E50PFA00001"},
        )
    """

    status_code: int = 500

    def __init__(
        self, message: str, request_id: str | None = None, details: dict[str, Any] | None = None
    ):
        self.message = message
        self.request_id = request_id
        self.details = (details or {}).copy()
        self.response_fields: dict[str, Any] = {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for logging.

        Returns:
            Dict with error_type, message, request_id, status_code and details
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "request_id": self.request_id,
            "status_code": self.status_code,
            "details": self.details,
        }

    def with_context(self, **context) -> "InvportError":
        """Add server-side context to the error details (chainable)."""
        self.details.update(context)
        return self

    def expose(self, **fields) -> "InvportError":
        """
        Attach fields that are rendered verbatim into the HTTP error body.

        Used for client diagnostics such as the circuit breaker snapshot or the
        request duration.
        """
        self.response_fields.update(fields)
        return self

    def __repr__(self) -> str:
        details_str = f", details={self.details}" if self.details else ""
        request_id_str = f", request_id='{self.request_id}'" if self.request_id else ""
        return f"{self.__class__.__name__}(message='{self.message}'{request_id_str}{details_str})"

    @classmethod
    def from_exception(
        cls,
        exc: Exception,
        message: str | None = None,
        request_id: str | None = None,
        **details
    ) -> "InvportError":
        """
        Create an error of this class wrapping another exception.

        Example:
            >>> try:
            ...     await pool.acquire()
            ... except pyodbc.Error as e:
            ...     raise DatabaseConnectionError.from_exception(e, server="sql01")
        """
        error_message = message or str(exc) or exc.__class__.__name__
        error_details = {
            "original_error": exc.__class__.__name__,
            "original_message": str(exc),
            **details
        }
        return cls(error_message, request_id=request_id, details=error_details)


# Configuration exception (kept here as it's fundamental)
class ConfigurationError(InvportError):
    """Raised when required environment configuration is missing or invalid."""

    status_code = 500
