"""
Vehicle Routes

Single-vehicle CRUD, status changes and VIN existence checks. Input rules
and error mapping live in the inventory service; these handlers only adapt
HTTP to service calls.
"""

from fastapi import APIRouter

from invport.application.api.dependencies import InventoryServiceDep
from invport.application.api.models import StatusUpdate, VehicleInput, VinCheckRequest

router = APIRouter(prefix="/vehicles", tags=["Vehicles"])


@router.post("/add", summary="Add a vehicle")
async def add_vehicle(body: VehicleInput, inventory: InventoryServiceDep):
    """
    Insert a vehicle.

    400 when VIN, year, make or model is missing; 409 when the VIN
    (case-insensitive) is already stored.
    """
    return await inventory.add_vehicle(body.to_payload())


@router.post("/check-vin", summary="Check whether a VIN exists")
async def check_vin(body: VinCheckRequest, inventory: InventoryServiceDep):
    return await inventory.check_vin(body.vin)


@router.get("/{vehicle_id}", summary="Get a vehicle")
async def get_vehicle(vehicle_id: str, inventory: InventoryServiceDep):
    return await inventory.get_vehicle(vehicle_id)


@router.put("/{vehicle_id}", summary="Update a vehicle")
async def update_vehicle(vehicle_id: str, body: VehicleInput, inventory: InventoryServiceDep):
    return await inventory.update_vehicle(vehicle_id, body.to_payload())


@router.delete("/{vehicle_id}", summary="Delete a vehicle")
async def delete_vehicle(vehicle_id: str, inventory: InventoryServiceDep):
    return await inventory.delete_vehicle(vehicle_id)


@router.patch("/{vehicle_id}/status", summary="Set a vehicle's status")
async def update_vehicle_status(vehicle_id: str, body: StatusUpdate, inventory: InventoryServiceDep):
    return await inventory.update_status(vehicle_id, body.status)
