"""
FastAPI Dependency Injection Module
===================================

Route handlers receive their collaborators through ``Annotated[...,
Depends()]`` aliases instead of importing module globals. The services live
on ``app.state.services`` (a `ServiceContainer`), built once per application
in the lifespan, or handed to `create_app` directly by tests.

Example:
    @router.get("/vehicles/{vehicle_id}")
    async def get_vehicle(vehicle_id: str, inventory: InventoryServiceDep):
        return await inventory.get_vehicle(vehicle_id)
"""

from typing import Annotated

from fastapi import Depends, Request

from invport.application.services.container import ServiceContainer
from invport.application.services.inventory_service import InventoryService
from invport.application.services.rewrite_service import RewriteService
from invport.application.services.vin_folder_service import VinFolderService
from invport.core.config.settings import get_settings
from invport.infrastructure.monitoring.health_checker import HealthChecker


def get_services(request: Request) -> ServiceContainer:
    """
    Retrieve the ServiceContainer from application state.

    For test environments where lifespan events don't run (a TestClient used
    without a ``with`` block), a container is built from settings on first
    use and stored for later requests.
    """
    services = getattr(request.app.state, "services", None)
    if services is None:
        settings = getattr(request.app.state, "settings", None) or get_settings()
        services = ServiceContainer.build(settings)
        request.app.state.services = services
    return services


def get_inventory_service(services: Annotated[ServiceContainer, Depends(get_services)]) -> InventoryService:
    return services.inventory


def get_rewrite_service(services: Annotated[ServiceContainer, Depends(get_services)]) -> RewriteService:
    return services.rewrite


def get_vin_folder_service(services: Annotated[ServiceContainer, Depends(get_services)]) -> VinFolderService:
    return services.vin_folders


def get_health_checker(services: Annotated[ServiceContainer, Depends(get_services)]) -> HealthChecker:
    return services.health


InventoryServiceDep = Annotated[InventoryService, Depends(get_inventory_service)]
RewriteServiceDep = Annotated[RewriteService, Depends(get_rewrite_service)]
VinFolderServiceDep = Annotated[VinFolderService, Depends(get_vin_folder_service)]
HealthCheckerDep = Annotated[HealthChecker, Depends(get_health_checker)]
