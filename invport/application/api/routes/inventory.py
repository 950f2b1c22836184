"""
Inventory Listing Routes

GET /inventory       newest-first page with totals
GET /inventory/all   filtered, sorted page with a pagination block
"""

from fastapi import APIRouter, Query

from invport.application.api.dependencies import InventoryServiceDep

router = APIRouter(prefix="/inventory", tags=["Inventory"])


@router.get("", summary="List vehicles")
async def list_inventory(
    inventory: InventoryServiceDep,
    page: str | None = Query(default=None, description="1-based page number (default 1)"),
    limit: str | None = Query(default=None, description="Page size (default 10)"),
):
    """
    Page through ``dbo.Units`` ordered by UnitID descending.

    A failure returns 500 with the circuit breaker snapshot
    ``{isOpen, failures, nextAttempt}`` under ``circuitBreaker``.
    """
    return await inventory.list_vehicles(page=page, limit=limit)


@router.get("/all", summary="Search vehicles")
async def search_inventory(
    inventory: InventoryServiceDep,
    search: str | None = Query(default=None, description="Substring matched against VIN, make, model, year and stock number"),
    status: str | None = Query(default=None, description="Exact status, or 'all'"),
    sortBy: str | None = Query(default=None, description="Column to sort by (default CreatedAt)"),
    sortOrder: str | None = Query(default=None, description="'asc' or 'desc' (default desc)"),
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None, description="Page size (default 50)"),
):
    return await inventory.search_vehicles(
        search=search,
        status=status,
        sort_by=sortBy,
        sort_order=sortOrder,
        page=page,
        limit=limit,
    )
