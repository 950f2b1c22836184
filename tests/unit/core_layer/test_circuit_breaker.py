"""
Unit Tests for CircuitBreaker

Tests the consecutive-failure breaker: opening at the threshold, fast-fail
while open, the timed half-open probe and the diagnostic snapshot.
"""

import pytest

from invport.core.exceptions import CircuitOpenError, DatabaseConnectionError
from invport.core.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitState,
    create_retry_decorator,
)
from tests.test_fixtures import FakeClock

WALL_START = 1_700_000_000.0


@pytest.fixture
def wall_clock():
    return FakeClock(start=WALL_START)


@pytest.fixture
def breaker(wall_clock):
    return CircuitBreaker(name="sql", failure_threshold=3, recovery_timeout=60.0, clock=wall_clock)


async def failing():
    raise DatabaseConnectionError("login failed")


async def succeeding():
    return "pool"


@pytest.mark.unit
class TestCircuitBreakerStates:
    def test_initial_state_closed(self, breaker):
        assert breaker.state == CircuitState.CLOSED
        assert breaker.get_status() == {"isOpen": False, "failures": 0, "nextAttempt": None}

    @pytest.mark.asyncio
    async def test_opens_after_threshold_consecutive_failures(self, breaker):
        for _ in range(2):
            with pytest.raises(DatabaseConnectionError):
                await breaker.call(failing)
        assert breaker.is_open is False

        with pytest.raises(DatabaseConnectionError):
            await breaker.call(failing)

        assert breaker.is_open is True
        assert breaker.state == CircuitState.OPEN
        assert breaker.next_attempt == WALL_START + 60.0

    @pytest.mark.asyncio
    async def test_open_breaker_fails_fast_without_calling(self, breaker):
        for _ in range(3):
            with pytest.raises(DatabaseConnectionError):
                await breaker.call(failing)

        calls = []

        async def tracked():
            calls.append(1)
            return "pool"

        with pytest.raises(CircuitOpenError) as exc_info:
            await breaker.call(tracked)

        assert calls == []
        assert "Retry after 2023-11-14T22:14:20.000Z" in exc_info.value.message
        assert exc_info.value.response_fields["circuitBreaker"]["isOpen"] is True

    @pytest.mark.asyncio
    async def test_success_resets_failures(self, breaker):
        for _ in range(2):
            with pytest.raises(DatabaseConnectionError):
                await breaker.call(failing)

        assert await breaker.call(succeeding) == "pool"
        assert breaker.failures == 0

        # Two more failures are not enough to open after the reset
        for _ in range(2):
            with pytest.raises(DatabaseConnectionError):
                await breaker.call(failing)
        assert breaker.is_open is False

    @pytest.mark.asyncio
    async def test_half_open_after_cooldown_allows_probe(self, breaker, wall_clock):
        for _ in range(3):
            with pytest.raises(DatabaseConnectionError):
                await breaker.call(failing)

        wall_clock.advance(60.0)
        assert breaker.state == CircuitState.HALF_OPEN

        assert await breaker.call(succeeding) == "pool"
        assert breaker.state == CircuitState.CLOSED
        assert breaker.failures == 0

    @pytest.mark.asyncio
    async def test_failed_probe_starts_new_failure_cycle(self, breaker, wall_clock):
        for _ in range(3):
            with pytest.raises(DatabaseConnectionError):
                await breaker.call(failing)
        wall_clock.advance(61.0)

        with pytest.raises(DatabaseConnectionError):
            await breaker.call(failing)

        assert breaker.is_open is False
        assert breaker.failures == 1

    @pytest.mark.asyncio
    async def test_seconds_until_reset(self, breaker, wall_clock):
        assert breaker.seconds_until_reset() == 0
        for _ in range(3):
            with pytest.raises(DatabaseConnectionError):
                await breaker.call(failing)

        wall_clock.advance(15.0)
        assert breaker.seconds_until_reset() == 45

    @pytest.mark.asyncio
    async def test_reset_closes_breaker(self, breaker):
        for _ in range(3):
            with pytest.raises(DatabaseConnectionError):
                await breaker.call(failing)

        breaker.reset()

        assert breaker.get_status()["isOpen"] is False
        assert await breaker.call(succeeding) == "pool"

    def test_status_reports_iso_next_attempt_when_open(self, breaker):
        for _ in range(3):
            breaker.record_failure(DatabaseConnectionError("x"))

        status = breaker.get_status()
        assert status["isOpen"] is True
        assert status["failures"] == 3
        assert status["nextAttempt"] == "2023-11-14T22:14:20.000Z"


@pytest.mark.unit
class TestRetryDecorator:
    @pytest.mark.asyncio
    async def test_retries_listed_exceptions_then_succeeds(self):
        attempts = []

        @create_retry_decorator(max_attempts=3, base_delay=0, max_delay=0)
        async def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise ConnectionError("reset by peer")
            return "ok"

        assert await flaky() == "ok"
        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_reraises_after_last_attempt(self):
        @create_retry_decorator(max_attempts=2, base_delay=0, max_delay=0)
        async def down():
            raise TimeoutError("login timeout")

        with pytest.raises(TimeoutError):
            await down()

    @pytest.mark.asyncio
    async def test_other_exceptions_are_not_retried(self):
        attempts = []

        @create_retry_decorator(max_attempts=3, base_delay=0, max_delay=0)
        async def broken():
            attempts.append(1)
            raise ValueError("bad dsn")

        with pytest.raises(ValueError):
            await broken()
        assert len(attempts) == 1
