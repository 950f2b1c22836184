"""
Unit Tests for ConnectionPoolManager

Pool creation through the breaker, single-flight opening, missing
configuration and shutdown. The aioodbc factory is replaced by an AsyncMock
returning FakePools.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from invport.core.exceptions import CircuitOpenError, ConfigurationError, DatabaseConnectionError
from invport.core.resilience.circuit_breaker import CircuitBreaker
from invport.core.resilience.connection_pool_manager import ConnectionPoolManager, is_pool_connected
from tests.test_fixtures import FakeDatabase, FakePool, make_settings


@pytest.mark.unit
class TestPoolAcquisition:
    @pytest.mark.asyncio
    async def test_first_acquisition_opens_pool(self, settings, pool_factory):
        manager = ConnectionPoolManager(settings=settings, pool_factory=pool_factory)

        pool = await manager.get_connection()

        assert isinstance(pool, FakePool)
        pool_factory.assert_awaited_once_with(settings.sql_connection_string)
        assert manager.get_pool_status() == {"exists": True, "connected": True, "connecting": False}

    @pytest.mark.asyncio
    async def test_live_pool_is_reused(self, settings, pool_factory):
        manager = ConnectionPoolManager(settings=settings, pool_factory=pool_factory)

        first = await manager.get_connection()
        second = await manager.get_connection()

        assert first is second
        assert pool_factory.await_count == 1

    @pytest.mark.asyncio
    async def test_closed_pool_is_replaced(self, settings, pool_factory):
        manager = ConnectionPoolManager(settings=settings, pool_factory=pool_factory)
        first = await manager.get_connection()
        first.closed = True

        second = await manager.get_connection()

        assert second is not first
        assert pool_factory.await_count == 2

    @pytest.mark.asyncio
    async def test_concurrent_acquisitions_open_one_pool(self, settings):
        opened = []

        async def slow_factory(connection_string):
            await asyncio.sleep(0.01)
            pool = FakePool(FakeDatabase())
            opened.append(pool)
            return pool

        manager = ConnectionPoolManager(settings=settings, pool_factory=slow_factory)

        pools = await asyncio.gather(*(manager.get_connection() for _ in range(5)))

        assert len(opened) == 1
        assert all(pool is opened[0] for pool in pools)

    @pytest.mark.asyncio
    async def test_connecting_flag_set_while_opening(self, settings):
        seen = []
        manager = None

        async def factory(connection_string):
            seen.append(manager.get_pool_status()["connecting"])
            return FakePool(FakeDatabase())

        manager = ConnectionPoolManager(settings=settings, pool_factory=factory)
        await manager.get_connection()

        assert seen == [True]
        assert manager.get_pool_status()["connecting"] is False


@pytest.mark.unit
class TestPoolFailures:
    @pytest.mark.asyncio
    async def test_missing_connection_string_is_configuration_error(self, pool_factory):
        manager = ConnectionPoolManager(
            settings=make_settings(SQL_CONN_STRING=None), pool_factory=pool_factory
        )

        with pytest.raises(ConfigurationError, match="No SQL connection string found"):
            await manager.get_connection()

        pool_factory.assert_not_awaited()
        assert manager.circuit_breaker.failures == 1

    @pytest.mark.asyncio
    async def test_fallback_connection_string_is_used(self, pool_factory):
        settings = make_settings(SQL_CONN_STRING="  ", AZURE_SQL_CONNECTION_STRING="Server=fallback;")
        manager = ConnectionPoolManager(settings=settings, pool_factory=pool_factory)

        await manager.get_connection()

        pool_factory.assert_awaited_once_with("Server=fallback;")

    @pytest.mark.asyncio
    async def test_failed_open_caches_nothing(self, settings):
        factory = AsyncMock(side_effect=DatabaseConnectionError("login failed"))
        manager = ConnectionPoolManager(settings=settings, pool_factory=factory)

        with pytest.raises(DatabaseConnectionError):
            await manager.get_connection()

        assert manager.get_pool_status() == {"exists": False, "connected": False, "connecting": False}

    @pytest.mark.asyncio
    async def test_open_retried_within_one_acquisition(self):
        settings = make_settings(DB_CONNECT_ATTEMPTS=3, DB_CONNECT_RETRY_DELAY=0.0)
        factory = AsyncMock(
            side_effect=[DatabaseConnectionError("blip"), FakePool(FakeDatabase())]
        )
        manager = ConnectionPoolManager(settings=settings, pool_factory=factory)

        pool = await manager.get_connection()

        assert isinstance(pool, FakePool)
        assert factory.await_count == 2
        assert manager.circuit_breaker.failures == 0

    @pytest.mark.asyncio
    async def test_hanging_open_times_out_and_counts_one_failure(self):
        attempts = 0

        async def hanging_factory(connection_string):
            nonlocal attempts
            attempts += 1
            await asyncio.sleep(3600)

        settings = make_settings(DB_CONNECT_TIMEOUT=0.05, DB_CONNECT_ATTEMPTS=2)
        manager = ConnectionPoolManager(settings=settings, pool_factory=hanging_factory)

        with pytest.raises(DatabaseConnectionError, match="Timed out opening connection pool after 0.05s"):
            await manager.get_connection()

        assert attempts == 2
        assert manager.circuit_breaker.failures == 1
        assert manager.get_pool_status() == {"exists": False, "connected": False, "connecting": False}

    @pytest.mark.asyncio
    async def test_breaker_opens_after_threshold_and_stops_opening(self, settings):
        factory = AsyncMock(side_effect=DatabaseConnectionError("login failed"))
        breaker = CircuitBreaker(failure_threshold=5, recovery_timeout=60.0)
        manager = ConnectionPoolManager(settings=settings, circuit_breaker=breaker, pool_factory=factory)

        for _ in range(5):
            with pytest.raises(DatabaseConnectionError):
                await manager.get_connection()

        with pytest.raises(CircuitOpenError):
            await manager.get_connection()

        assert factory.await_count == 5
        assert breaker.is_open is True


@pytest.mark.unit
class TestPoolShutdown:
    @pytest.mark.asyncio
    async def test_close_closes_and_forgets_pool(self, settings, pool_factory):
        manager = ConnectionPoolManager(settings=settings, pool_factory=pool_factory)
        pool = await manager.get_connection()

        await manager.close()

        assert pool.closed is True
        assert manager.get_pool_status()["exists"] is False

    @pytest.mark.asyncio
    async def test_close_without_pool_is_noop(self, settings, pool_factory):
        manager = ConnectionPoolManager(settings=settings, pool_factory=pool_factory)

        await manager.close()

        assert manager.is_connected is False

    def test_is_pool_connected(self):
        pool = FakePool(FakeDatabase())
        assert is_pool_connected(pool) is True
        pool.closed = True
        assert is_pool_connected(pool) is False
        assert is_pool_connected(None) is False
