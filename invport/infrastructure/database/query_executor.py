"""
Query Executor

Runs parameterized SQL against the pooled connection and normalizes every
outcome into a `QueryResult`. Breaker rejections, missing configuration,
connection failures, SQL errors and timeouts all come back as
``success=False``; nothing raises past this boundary, so callers branch on
``.success`` alone.

STAGE-DB: Query execution
-------------------------
DB.1: Acquire pool through the circuit breaker
DB.2: Bind parameters and execute under the query timeout
DB.3: Collect result sets
DB.ERROR: Failure normalized into the result envelope
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from invport.core.config.constants import HEALTH_CHECK_QUERY
from invport.core.logging.logger import get_logger, redact_text
from invport.infrastructure.database.odbc import rows_to_dicts, translate_named_parameters
from invport.infrastructure.monitoring.metrics_collector import get_metrics_collector

if TYPE_CHECKING:
    from invport.core.resilience.connection_pool_manager import ConnectionPoolManager

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class QueryResult(Generic[T]):
    """
    Uniform envelope returned for every statement.

    Attributes:
        success: Whether the statement ran
        data: Rows of the last result set that returned rows
        error: Failure message when ``success`` is False
        row_count: Rows affected by the last non-query statement
        error_type: Class name of the underlying failure
    """

    success: bool
    data: list[T] = field(default_factory=list)
    error: str | None = None
    row_count: int = 0
    error_type: str | None = None

    @property
    def first(self) -> T | None:
        """First row, or None when there are no rows."""
        return self.data[0] if self.data else None

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "data": self.data}
        return {"success": False, "error": self.error}


class QueryExecutor:
    """
    Executes statements through a `ConnectionPoolManager`.

    Args:
        pool_manager: Source of the breaker-guarded pool handle
        query_timeout: Seconds allowed for one statement once the pool is acquired;
            acquisition is bounded per attempt by the pool manager
    """

    def __init__(self, pool_manager: "ConnectionPoolManager", query_timeout: float = 30.0):
        self._pool_manager = pool_manager
        self._query_timeout = query_timeout
        self._metrics = get_metrics_collector()

    @property
    def pool_manager(self) -> "ConnectionPoolManager":
        return self._pool_manager

    def circuit_status(self) -> dict[str, Any]:
        """Breaker snapshot attached to failing API responses."""
        return self._pool_manager.circuit_breaker.get_status()

    async def execute_query(self, sql: str, params: dict[str, Any] | None = None) -> QueryResult:
        """
        Execute ``sql`` with named ``@param`` values. Never raises.

        STAGE-DB.1 .. DB.3
        """
        start = time.perf_counter()
        try:
            pool = await self._pool_manager.get_connection()
            rows, row_count = await asyncio.wait_for(
                self._execute(pool, sql, params), timeout=self._query_timeout
            )
        except Exception as exc:
            duration = time.perf_counter() - start
            message = self._describe(exc)
            self._metrics.record_query("failure", duration)
            self._metrics.record_error(type(exc).__name__, "DB")
            logger.error(
                "Query failed",
                stage="DB.ERROR",
                error=message,
                error_type=type(exc).__name__,
                duration_ms=round(duration * 1000, 2),
            )
            return QueryResult(success=False, error=message, error_type=type(exc).__name__)

        duration = time.perf_counter() - start
        self._metrics.record_query("success", duration)
        logger.debug(
            "Query succeeded",
            stage="DB.3",
            rows=len(rows),
            row_count=row_count,
            duration_ms=round(duration * 1000, 2),
        )
        return QueryResult(success=True, data=rows, row_count=row_count)

    async def execute_scalar(self, sql: str, params: dict[str, Any] | None = None) -> QueryResult:
        """
        Execute ``sql`` and return the first column of the first row as ``data[0]``.

        A statement that returns no rows is reported as a failure.
        """
        result = await self.execute_query(sql, params)
        if not result.success:
            return result
        if not result.data:
            return QueryResult(success=False, error="Query returned no rows", error_type="NoRows")
        first_row = result.data[0]
        value = next(iter(first_row.values()), None)
        return QueryResult(success=True, data=[value], row_count=result.row_count)

    async def test_connection(self) -> dict[str, Any]:
        """Round-trip ``SELECT 1`` and report ``{success, latencyMs, error}``."""
        start = time.perf_counter()
        result = await self.execute_query(HEALTH_CHECK_QUERY)
        latency_ms = int(round((time.perf_counter() - start) * 1000))
        return {
            "success": result.success,
            "latencyMs": latency_ms,
            "error": result.error,
            "serverTime": result.first.get("ServerTime") if result.success and result.first else None,
        }

    async def _execute(
        self, pool: Any, sql: str, params: dict[str, Any] | None
    ) -> tuple[list[dict], int]:
        bound_sql, values = translate_named_parameters(sql, params)

        logger.debug("Executing statement", stage="DB.2", parameters=len(values))

        rows: list[dict] = []
        row_count = 0
        async with pool.acquire() as conn:
            async with conn.cursor() as cursor:
                await cursor.execute(bound_sql, *values)
                # Multi-statement batches (INSERT ...; SELECT SCOPE_IDENTITY()) yield
                # one result per statement
                while True:
                    if cursor.description:
                        rows = rows_to_dicts(cursor.description, await cursor.fetchall())
                    elif cursor.rowcount is not None and cursor.rowcount >= 0:
                        row_count = cursor.rowcount
                    if not await cursor.nextset():
                        break
        return rows, row_count

    def _describe(self, exc: Exception) -> str:
        if isinstance(exc, asyncio.TimeoutError):
            return f"Query timed out after {self._query_timeout:g}s"
        return redact_text(str(exc)) or type(exc).__name__
