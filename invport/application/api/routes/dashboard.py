"""
Dashboard Routes

GET /dashboard/stats returns unit count, inventory value and available count.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from invport.application.api.dependencies import InventoryServiceDep
from invport.core.clock import utc_now_iso
from invport.core.exceptions import InvportError

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/stats", summary="Dashboard totals")
async def dashboard_stats(inventory: InventoryServiceDep):
    """
    The dashboard widgets expect ``{error: true, message, statusCode}`` on
    failure rather than the standard envelope.
    """
    try:
        return await inventory.dashboard_stats()
    except InvportError as exc:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": exc.message,
                "statusCode": exc.status_code,
                "responseTimeMs": exc.response_fields.get("responseTimeMs", 0),
                "timestamp": utc_now_iso(),
            },
        )
