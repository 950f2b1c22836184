"""
Health Check Routes

LIVENESS vs READINESS:
----------------------
- ``/health/live`` only proves the process answers; it never touches the
  database.
- ``/health`` probes the database through the circuit breaker and reports
  pool and breaker state; 503 tells the load balancer to route elsewhere.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from invport.application.api.dependencies import HealthCheckerDep
from invport.infrastructure.monitoring.health_checker import HealthStatus

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("", summary="Database-backed health check")
async def health_check(checker: HealthCheckerDep):
    report = await checker.check_health()
    status_code = 200 if report["status"] == HealthStatus.HEALTHY.value else 503
    return JSONResponse(status_code=status_code, content=report)


@router.get("/live", summary="Liveness probe")
async def liveness_check():
    return {"status": "alive"}
