"""API routers, mounted under the configured base path."""

from invport.application.api.routes.dashboard import router as dashboard_router
from invport.application.api.routes.health import router as health_router
from invport.application.api.routes.inventory import router as inventory_router
from invport.application.api.routes.metrics import router as metrics_router
from invport.application.api.routes.rewrite import router as rewrite_router
from invport.application.api.routes.storage import router as storage_router
from invport.application.api.routes.vehicles import router as vehicles_router

ALL_ROUTERS = (
    inventory_router,
    vehicles_router,
    dashboard_router,
    rewrite_router,
    storage_router,
    health_router,
    metrics_router,
)

__all__ = ["ALL_ROUTERS"]
