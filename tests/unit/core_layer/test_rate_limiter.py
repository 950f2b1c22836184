"""
Unit Tests for the outbound RateLimiter

Covers sliding-window admission, minimum spacing, debounce cancellation and
config validation. Throttle tests run on a fake clock whose sleep advances
time instantly.
"""

import asyncio

import pytest

from invport.core.exceptions import InvalidRateLimitConfigError, ValidationError
from invport.core.resilience.rate_limiter import RATE_LIMITS, RateLimitConfig, RateLimiter


@pytest.fixture
def limiter(clock):
    return RateLimiter(clock=clock, sleep=clock.sleep)


async def admit(limiter, clock, key, config, count):
    """Throttle ``count`` sequential calls and return their admission times."""
    admitted = []
    for _ in range(count):
        await limiter.throttle(key, config)
        admitted.append(clock())
    return admitted


@pytest.mark.unit
class TestRateLimitConfig:
    def test_presets_match_operation_budgets(self):
        assert RATE_LIMITS["DASHBOARD"] == RateLimitConfig(2, 5000, 2000)
        assert RATE_LIMITS["REPORTS"] == RateLimitConfig(3, 10000, 3000)
        assert RATE_LIMITS["INVENTORY"] == RateLimitConfig(5, 10000, 1000)
        assert RATE_LIMITS["STATUS_CHECK"] == RateLimitConfig(10, 5000, 100)
        assert RATE_LIMITS["IMAGES"] == RateLimitConfig(3, 5000, 500)
        assert RATE_LIMITS["WRITE"] == RateLimitConfig(2, 3000, 1000)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_calls": 0, "time_window_ms": 1000},
            {"max_calls": 1, "time_window_ms": 0},
            {"max_calls": 1, "time_window_ms": 1000, "min_delay_ms": -1},
        ],
    )
    def test_malformed_config_rejected(self, kwargs):
        with pytest.raises(InvalidRateLimitConfigError):
            RateLimitConfig(**kwargs)

    def test_config_error_is_a_validation_error(self):
        with pytest.raises(ValidationError):
            RateLimitConfig(max_calls=-3, time_window_ms=1000)


@pytest.mark.unit
class TestThrottle:
    @pytest.mark.asyncio
    async def test_calls_within_budget_are_not_delayed(self, limiter, clock):
        config = RateLimitConfig(max_calls=3, time_window_ms=1000)

        admitted = await admit(limiter, clock, "INVENTORY", config, 3)

        assert admitted == [1000.0, 1000.0, 1000.0]
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_full_window_waits_for_oldest_call_to_expire(self, limiter, clock):
        config = RateLimitConfig(max_calls=2, time_window_ms=1000)

        admitted = await admit(limiter, clock, "k", config, 5)

        assert admitted == [1000.0, 1000.0, 1001.0, 1001.0, 1002.0]

    @pytest.mark.asyncio
    async def test_window_never_holds_more_than_max_calls(self, limiter, clock):
        config = RateLimitConfig(max_calls=3, time_window_ms=2000, min_delay_ms=250)

        admitted = await admit(limiter, clock, "k", config, 12)

        window = config.window_seconds
        for ts in admitted:
            in_window = [t for t in admitted if ts - window < t <= ts]
            assert len(in_window) <= config.max_calls

    @pytest.mark.asyncio
    async def test_min_delay_spaces_consecutive_calls(self, limiter, clock):
        config = RateLimitConfig(max_calls=10, time_window_ms=10000, min_delay_ms=500)

        admitted = await admit(limiter, clock, "WRITE", config, 4)

        gaps = [b - a for a, b in zip(admitted, admitted[1:])]
        assert all(gap >= 0.5 - 1e-9 for gap in gaps)

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, limiter, clock):
        config = RateLimitConfig(max_calls=1, time_window_ms=1000)

        await limiter.throttle("a", config)
        await limiter.throttle("b", config)

        assert clock.sleeps == []
        assert limiter.get_call_count("a", 1000) == 1
        assert limiter.get_call_count("b", 1000) == 1

    @pytest.mark.asyncio
    async def test_empty_key_rejected(self, limiter):
        with pytest.raises(InvalidRateLimitConfigError):
            await limiter.throttle("", RATE_LIMITS["WRITE"])

    @pytest.mark.asyncio
    async def test_clear_forgets_history(self, limiter, clock):
        config = RateLimitConfig(max_calls=1, time_window_ms=60000)
        await limiter.throttle("k", config)

        limiter.clear("k")
        await limiter.throttle("k", config)

        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_admission_after_concurrent_clear_is_recorded(self, clock):
        async def sleep_then_clear(seconds):
            await clock.sleep(seconds)
            limiter.clear("k")

        limiter = RateLimiter(clock=clock, sleep=sleep_then_clear)
        config = RateLimitConfig(max_calls=1, time_window_ms=1000)

        await limiter.throttle("k", config)
        await limiter.throttle("k", config)

        assert clock.sleeps == [1.0]
        assert limiter.get_call_count("k", 1000) == 1

    @pytest.mark.asyncio
    async def test_get_call_count_excludes_expired_calls(self, limiter, clock):
        config = RateLimitConfig(max_calls=5, time_window_ms=10000)
        await limiter.throttle("k", config)
        clock.advance(3)
        await limiter.throttle("k", config)

        assert limiter.get_call_count("k", 10000) == 2
        assert limiter.get_call_count("k", 2000) == 1
        assert limiter.get_call_count("missing", 2000) == 0


@pytest.mark.unit
class TestDebounce:
    @pytest.mark.asyncio
    async def test_only_latest_call_runs_and_all_callers_get_its_result(self):
        limiter = RateLimiter()
        ran = []

        def make(value):
            async def fn():
                ran.append(value)
                return value

            return fn

        results = await asyncio.gather(
            limiter.debounce("search", make(1), 20),
            limiter.debounce("search", make(2), 20),
            limiter.debounce("search", make(3), 20),
        )

        assert ran == [3]
        assert results == [3, 3, 3]

    @pytest.mark.asyncio
    async def test_exception_reaches_every_waiter(self):
        limiter = RateLimiter()

        async def boom():
            raise RuntimeError("lookup failed")

        results = await asyncio.gather(
            limiter.debounce("k", boom, 10),
            limiter.debounce("k", boom, 10),
            return_exceptions=True,
        )

        assert all(isinstance(r, RuntimeError) for r in results)

    @pytest.mark.asyncio
    async def test_call_after_fire_starts_new_cycle(self):
        limiter = RateLimiter()
        calls = []

        async def fn():
            calls.append(len(calls) + 1)
            return len(calls)

        first = await limiter.debounce("k", fn, 5)
        second = await limiter.debounce("k", fn, 5)

        assert (first, second) == (1, 2)

    @pytest.mark.asyncio
    async def test_different_keys_do_not_cancel_each_other(self):
        limiter = RateLimiter()

        async def a():
            return "a"

        async def b():
            return "b"

        assert await asyncio.gather(
            limiter.debounce("x", a, 10), limiter.debounce("y", b, 10)
        ) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_clear_forgets_pending_call_without_dropping_it(self):
        limiter = RateLimiter()
        ran = []

        def make(value):
            async def fn():
                ran.append(value)
                return value

            return fn

        first = asyncio.ensure_future(limiter.debounce("k", make(1), 20))
        await asyncio.sleep(0)
        limiter.clear("k")
        second = await limiter.debounce("k", make(2), 20)

        assert await first == 1
        assert second == 2
        assert sorted(ran) == [1, 2]
