"""
Vehicle API Models
==================

Request bodies for the vehicle endpoints. Every field is optional at this
layer: the inventory service owns the business rules (VIN required, year,
make and model required on create, status enumeration) so that violations
come back with their domain messages rather than generic schema errors.

Numeric fields accept strings because the dealership UI posts form values
as text; the service parses them.
"""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class VehicleInput(BaseModel):
    """Body for POST /api/vehicles/add and PUT /api/vehicles/{id}."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    vin: str | None = Field(default=None, description="Vehicle identification number")
    year: int | str | None = Field(default=None, description="Model year")
    make: str | None = None
    model: str | None = None
    stockNo: str | None = Field(default=None, description="Dealer stock number")
    condition: str | None = Field(default=None, description="New or Used; defaults to New on create")
    category: str | None = None
    width: str | None = Field(
        default=None,
        validation_alias=AliasChoices("width", "widthCategory"),
        description="Stored as WidthCategory",
    )
    length: str | None = Field(
        default=None,
        validation_alias=AliasChoices("length", "sizeCategory"),
        description="Stored as SizeCategory",
    )
    price: float | str | None = None
    typeId: int | str | None = Field(default=None, description="Unit type; defaults to 2 on create")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump()


class StatusUpdate(BaseModel):
    """Body for PATCH /api/vehicles/{id}/status."""

    status: Any = Field(default=None, description="Available, Pending or Sold")


class VinCheckRequest(BaseModel):
    """Body for POST /api/vehicles/check-vin."""

    vin: Any = Field(default=None, description="VIN to look up (case-insensitive)")
