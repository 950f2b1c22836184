"""
Health Checker Module

Aggregates the database probe, pool status and circuit breaker state into a
single report for the health endpoint.
"""

from enum import Enum
from typing import Any

from invport.core.clock import utc_now_iso
from invport.core.config.settings import DatabaseSettings
from invport.core.logging.logger import get_logger
from invport.infrastructure.database.query_executor import QueryExecutor

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    """Health status enumeration."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthChecker:
    """
    Database-backed health reporting.

    STAGE-H: Health check orchestration

    Usage:
        checker = HealthChecker(executor, settings.database)
        report = await checker.check_health()
        status_code = 200 if report["status"] == "healthy" else 503
    """

    def __init__(self, executor: QueryExecutor, database_settings: DatabaseSettings):
        self._executor = executor
        self._database_settings = database_settings

    async def check_health(self) -> dict[str, Any]:
        """
        Probe the database and report breaker and pool state.

        STAGE-H.1

        Healthy means the probe query succeeded and the breaker is not open.
        The probe itself goes through the breaker, so an open breaker also
        fails the probe without touching the pool.
        """
        pool_manager = self._executor.pool_manager
        breaker = pool_manager.circuit_breaker

        probe = await self._executor.test_connection()
        breaker_status = breaker.get_status()
        healthy = probe["success"] and not breaker.is_open

        if not healthy:
            logger.warning(
                "Health check failed",
                stage="H.1",
                database_error=probe["error"],
                circuit_open=breaker.is_open,
            )

        db = self._database_settings
        return {
            "status": (HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY).value,
            "timestamp": utc_now_iso(),
            "database": {
                "connected": probe["success"],
                "latency": probe["latencyMs"],
                "error": probe["error"],
            },
            "pool": pool_manager.get_pool_status(),
            "circuitBreaker": {
                "active": breaker_status["isOpen"],
                "consecutiveFailures": breaker_status["failures"],
                "secondsUntilReset": breaker.seconds_until_reset(),
                "nextAttempt": breaker_status["nextAttempt"],
            },
            "pooling": {
                "enabled": True,
                "maxConnections": db.DB_POOL_MAX_SIZE,
                "minConnections": db.DB_POOL_MIN_SIZE,
                "connectTimeout": db.DB_CONNECT_TIMEOUT,
            },
        }
