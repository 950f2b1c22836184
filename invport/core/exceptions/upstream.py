"""
Upstream Exceptions

Failures of external services other than the database (blob storage).
"""

from typing import Any

from invport.core.exceptions.base import InvportError


class UpstreamError(InvportError):
    """
    Raised when an external API call fails.

    Propagates the upstream HTTP status where it is known and is itself an
    error status, otherwise the error maps to 500.
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        service: str = "upstream",
        upstream_status: int | None = None,
        request_id: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        merged = {"service": service, "upstream_status": upstream_status, **(details or {})}
        super().__init__(message, request_id=request_id, details=merged)
        self.service = service
        self.upstream_status = upstream_status
        if upstream_status is not None and 400 <= upstream_status <= 599:
            self.status_code = upstream_status
