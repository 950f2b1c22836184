"""
Exception Module

Structured exception hierarchy for the inventory service. Each exception
carries the HTTP status it maps to.

Module Structure:
-----------------
- **base.py**: InvportError base class + ConfigurationError
- **validation.py**: Bad input (400)
- **inventory.py**: Missing entities (404) and VIN conflicts (409)
- **circuit_breaker.py**: Breaker fast-fail (500 with diagnostics)
- **database.py**: Driver/query failures (500)
- **upstream.py**: External API failures (upstream status or 500)

Usage:
------
```python
from invport.core.exceptions import DuplicateVinError, ValidationError
```
"""

# Base exception
from invport.core.exceptions.base import ConfigurationError, InvportError

# Circuit breaker exceptions
from invport.core.exceptions.circuit_breaker import CircuitBreakerError, CircuitOpenError

# Database exceptions
from invport.core.exceptions.database import (
    DatabaseConnectionError,
    DatabaseError,
    QueryExecutionError,
)

# Inventory exceptions
from invport.core.exceptions.inventory import (
    ConflictError,
    DuplicateVinError,
    NotFoundError,
    VehicleNotFoundError,
)

# Upstream exceptions
from invport.core.exceptions.upstream import UpstreamError

# Validation exceptions
from invport.core.exceptions.validation import (
    InvalidRateLimitConfigError,
    InvalidStatusError,
    InvalidVehicleIdError,
    ValidationError,
)

__all__ = [
    "InvportError",
    "ConfigurationError",
    "CircuitBreakerError",
    "CircuitOpenError",
    "DatabaseError",
    "DatabaseConnectionError",
    "QueryExecutionError",
    "NotFoundError",
    "VehicleNotFoundError",
    "ConflictError",
    "DuplicateVinError",
    "UpstreamError",
    "ValidationError",
    "InvalidVehicleIdError",
    "InvalidStatusError",
    "InvalidRateLimitConfigError",
]
