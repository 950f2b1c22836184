"""
Inventory Exceptions

Entity lookups and uniqueness violations on vehicle records.
"""

from invport.core.exceptions.base import InvportError


class NotFoundError(InvportError):
    """Raised when a requested entity does not exist."""

    status_code = 404


class VehicleNotFoundError(NotFoundError):
    """Raised when no vehicle row matches the requested UnitID."""

    def __init__(self, unit_id: int, **kwargs):
        super().__init__("Vehicle not found", details={"unit_id": unit_id}, **kwargs)


class ConflictError(InvportError):
    """Raised when a write would violate a uniqueness rule."""

    status_code = 409


class DuplicateVinError(ConflictError):
    """Raised when adding a vehicle whose VIN already exists (case-insensitive)."""

    def __init__(self, vin: str, **kwargs):
        super().__init__(
            "This VIN already exists in the database", details={"vin": vin}, **kwargs
        )
