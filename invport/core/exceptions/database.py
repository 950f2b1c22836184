"""
Database Exceptions

Driver and query failures against Azure SQL. All map to HTTP 500.
"""

from invport.core.exceptions.base import InvportError


class DatabaseError(InvportError):
    """Base exception for database failures."""

    status_code = 500


class DatabaseConnectionError(DatabaseError):
    """Raised when a connection pool cannot be opened."""
    pass


class QueryExecutionError(DatabaseError):
    """Raised when a statement cannot be prepared or fails to execute."""
    pass
