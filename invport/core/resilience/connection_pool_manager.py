"""
Connection Pool Manager for Azure SQL.

Owns a single lazily-created pool handle shared by every request, guarded by
the circuit breaker.

STAGE-CP: Connection Pool Management
-------------------------------------
CP.1: Acquisition (reuse a live handle or open a new one)
CP.2: Connection string resolution
CP.3: Pool open with retry (each attempt bounded by DB_CONNECT_TIMEOUT)
CP.4: Shutdown
CP.5: Status reporting

Concurrency: pool creation is single-flight. The first task to find no live
handle takes the lock and sets the ``connecting`` flag; tasks arriving
meanwhile wait on the lock and then reuse the handle it produced.
"""

import asyncio
from collections.abc import Awaitable, Callable
from functools import partial
from typing import Any

from invport.core.config.settings import Settings, get_settings
from invport.core.exceptions import ConfigurationError, DatabaseConnectionError
from invport.core.logging.logger import get_logger
from invport.core.resilience.circuit_breaker import CircuitBreaker, create_retry_decorator
from invport.infrastructure.database.odbc import create_odbc_pool
from invport.infrastructure.monitoring.metrics_collector import get_metrics_collector

logger = get_logger(__name__)

PoolFactory = Callable[[str], Awaitable[Any]]


def is_pool_connected(pool: Any) -> bool:
    """A handle counts as connected until it has been closed."""
    return pool is not None and not getattr(pool, "closed", False)


class ConnectionPoolManager:
    """
    Lazily creates and caches one database pool behind a circuit breaker.

    Args:
        settings: Application settings (connection strings, pool sizes, retry)
        circuit_breaker: Breaker guarding acquisition; built from settings if omitted
        pool_factory: Coroutine ``(connection_string) -> pool``; aioodbc by default
    """

    def __init__(
        self,
        settings: Settings | None = None,
        circuit_breaker: CircuitBreaker | None = None,
        pool_factory: PoolFactory | None = None,
    ):
        self.settings = settings or get_settings()
        db = self.settings.database
        cb = self.settings.circuit_breaker

        self._breaker = circuit_breaker or CircuitBreaker(
            name="sql",
            failure_threshold=cb.CB_FAILURE_THRESHOLD,
            recovery_timeout=cb.CB_RECOVERY_TIMEOUT,
        )
        self._pool_factory = pool_factory or partial(create_odbc_pool, settings=db)
        self._connect_timeout = db.DB_CONNECT_TIMEOUT
        self._retry = create_retry_decorator(
            max_attempts=db.DB_CONNECT_ATTEMPTS,
            base_delay=db.DB_CONNECT_RETRY_DELAY,
            max_delay=db.DB_CONNECT_RETRY_DELAY * 4,
            retry_exceptions=(DatabaseConnectionError, TimeoutError, ConnectionError),
        )
        self._metrics = get_metrics_collector()

        self._pool: Any = None
        self._connecting = False
        self._lock = asyncio.Lock()

        logger.info(
            "Connection pool manager initialized",
            stage="CP.0",
            min_size=db.DB_POOL_MIN_SIZE,
            max_size=db.DB_POOL_MAX_SIZE,
            connect_attempts=db.DB_CONNECT_ATTEMPTS,
            failure_threshold=self._breaker.failure_threshold,
        )

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._breaker

    @property
    def is_connected(self) -> bool:
        return is_pool_connected(self._pool)

    async def get_connection(self) -> Any:
        """
        Return the live pool handle, opening one if needed.

        STAGE-CP.1

        Raises:
            CircuitOpenError: Breaker open and cooldown not elapsed
            ConfigurationError: No connection string configured
            DatabaseConnectionError: Pool could not be opened
        """
        return await self._breaker.call(self._get_or_create_pool)

    async def _get_or_create_pool(self) -> Any:
        if is_pool_connected(self._pool):
            return self._pool

        async with self._lock:
            # Another task may have opened the pool while this one waited
            if is_pool_connected(self._pool):
                logger.debug("Reusing pool opened by a concurrent request", stage="CP.1.1")
                return self._pool

            connection_string = self.settings.sql_connection_string
            if not connection_string:
                logger.error("No SQL connection string configured", stage="CP.2")
                raise ConfigurationError(
                    "No SQL connection string found in environment variables",
                    details={
                        "checked": [
                            "SQL_CONN_STRING",
                            "AZURE_SQL_CONNECTION_STRING",
                            "AZURE_ADMIN_SQL_CONN_STRING",
                        ]
                    },
                )

            self._connecting = True
            try:
                pool = await self._open_pool(connection_string)
            finally:
                self._connecting = False

            # A failed open leaves the previous handle untouched
            self._pool = pool
            logger.info("SQL connection pool ready", stage="CP.3.1")
            return pool

    async def _open_pool(self, connection_string: str) -> Any:
        @self._retry
        async def open_with_retry():
            logger.info("Opening connection pool", stage="CP.3")
            try:
                pool = await asyncio.wait_for(
                    self._pool_factory(connection_string), timeout=self._connect_timeout
                )
            except asyncio.TimeoutError as exc:
                self._metrics.record_pool_open("failure")
                logger.warning(
                    "Connection pool open timed out",
                    stage="CP.3.2",
                    timeout_s=self._connect_timeout,
                )
                raise DatabaseConnectionError(
                    f"Timed out opening connection pool after {self._connect_timeout:g}s"
                ) from exc
            except Exception:
                self._metrics.record_pool_open("failure")
                raise
            self._metrics.record_pool_open("success")
            return pool

        return await open_with_retry()

    async def close(self) -> None:
        """
        Close and forget the pool handle.

        STAGE-CP.4
        """
        async with self._lock:
            pool, self._pool = self._pool, None
            if pool is None:
                return
            pool.close()
            wait_closed = getattr(pool, "wait_closed", None)
            if wait_closed is not None:
                await wait_closed()
            logger.info("SQL connection pool closed", stage="CP.4")

    def get_pool_status(self) -> dict[str, bool]:
        """
        Pool snapshot ``{exists, connected, connecting}``.

        STAGE-CP.5
        """
        return {
            "exists": self._pool is not None,
            "connected": is_pool_connected(self._pool),
            "connecting": self._connecting,
        }
