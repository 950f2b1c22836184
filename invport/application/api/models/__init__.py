"""
API Models Package

Pydantic models for API request validation.
"""

from invport.application.api.models.vehicles import StatusUpdate, VehicleInput, VinCheckRequest

__all__ = ["VehicleInput", "StatusUpdate", "VinCheckRequest"]
