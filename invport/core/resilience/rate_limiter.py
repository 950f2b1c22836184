"""
Outbound Throttle and Debounce

Paces the service's own calls to the database and blob storage, keyed by a
logical operation name ("INVENTORY", "WRITE", ...). Calls are never dropped:
a caller that would exceed its budget is delayed until admission is granted.

STAGE-RL: Outbound rate limiting
--------------------------------
RL.1: Sliding-window admission (max_calls per time window)
RL.2: Minimum spacing between consecutive calls
RL.3: Debounce (only the latest call within the quiet period runs)

History per key is a deque of monotonic timestamps, pruned from the left on
every access, so it never grows past max_calls entries for the key's config.
"""

import asyncio
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from invport.core.exceptions import InvalidRateLimitConfigError
from invport.core.logging.logger import get_logger
from invport.infrastructure.monitoring.metrics_collector import get_metrics_collector

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RateLimitConfig:
    """Admission budget for one key: at most max_calls per window, spaced by min_delay."""

    max_calls: int
    time_window_ms: float
    min_delay_ms: float = 0

    def __post_init__(self):
        if not isinstance(self.max_calls, int) or self.max_calls < 1:
            raise InvalidRateLimitConfigError(
                "max_calls must be an integer >= 1", details={"max_calls": self.max_calls}
            )
        if self.time_window_ms <= 0:
            raise InvalidRateLimitConfigError(
                "time_window_ms must be > 0", details={"time_window_ms": self.time_window_ms}
            )
        if self.min_delay_ms < 0:
            raise InvalidRateLimitConfigError(
                "min_delay_ms must be >= 0", details={"min_delay_ms": self.min_delay_ms}
            )

    @property
    def window_seconds(self) -> float:
        return self.time_window_ms / 1000.0

    @property
    def min_delay_seconds(self) -> float:
        return self.min_delay_ms / 1000.0


# Presets per logical operation
RATE_LIMITS: dict[str, RateLimitConfig] = {
    "DASHBOARD": RateLimitConfig(max_calls=2, time_window_ms=5000, min_delay_ms=2000),
    "REPORTS": RateLimitConfig(max_calls=3, time_window_ms=10000, min_delay_ms=3000),
    "INVENTORY": RateLimitConfig(max_calls=5, time_window_ms=10000, min_delay_ms=1000),
    "STATUS_CHECK": RateLimitConfig(max_calls=10, time_window_ms=5000, min_delay_ms=100),
    "IMAGES": RateLimitConfig(max_calls=3, time_window_ms=5000, min_delay_ms=500),
    "WRITE": RateLimitConfig(max_calls=2, time_window_ms=3000, min_delay_ms=1000),
}


@dataclass
class _PendingDebounce:
    """A debounced call still in its quiet period."""

    waiters: list[asyncio.Future] = field(default_factory=list)
    timer: asyncio.Task | None = None


class RateLimiter:
    """
    In-memory sliding-window throttle with debounce.

    One instance is owned by the service container; tests construct their own
    with a fake clock and sleep.

    Args:
        clock: Monotonic time source in seconds
        sleep: Coroutine function used to wait
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._clock = clock
        self._sleep = sleep
        self._history: dict[str, deque[float]] = {}
        self._pending: dict[str, _PendingDebounce] = {}
        self._metrics = get_metrics_collector()

    async def throttle(self, key: str, config: RateLimitConfig) -> None:
        """
        Wait until a call for ``key`` may proceed, then record it.

        STAGE-RL.1 / RL.2

        After any wait the whole check is re-evaluated, since other tasks may
        have been admitted for the same key while this one slept.
        """
        if not key:
            raise InvalidRateLimitConfigError("Rate limit key must be a non-empty string")

        window = config.window_seconds
        min_delay = config.min_delay_seconds

        while True:
            # Re-read after every wait; clear() may have replaced the history
            history = self._history.setdefault(key, deque())
            now = self._clock()
            self._prune(history, now, window)

            if len(history) >= config.max_calls:
                wait = window - (now - history[0])
                logger.debug(
                    "Throttle window full, waiting",
                    stage="RL.1",
                    key=key,
                    calls_in_window=len(history),
                    wait_ms=round(wait * 1000, 1),
                )
                self._metrics.record_throttle_wait(key, "window", wait)
                await self._sleep(wait)
                continue

            if min_delay > 0 and history:
                gap = now - history[-1]
                if gap < min_delay:
                    wait = min_delay - gap
                    logger.debug(
                        "Throttle spacing calls",
                        stage="RL.2",
                        key=key,
                        wait_ms=round(wait * 1000, 1),
                    )
                    self._metrics.record_throttle_wait(key, "min_delay", wait)
                    await self._sleep(wait)
                    continue

            history.append(now)
            return

    async def debounce(
        self, key: str, fn: Callable[[], Awaitable[T]], delay_ms: float
    ) -> T:
        """
        Run ``fn`` once ``delay_ms`` passes without another call for ``key``.

        STAGE-RL.3

        A newer call cancels the pending timer; only the latest ``fn`` runs and
        every superseded caller receives its result (or exception). A call
        arriving after ``fn`` has started begins a new quiet period.
        """
        loop = asyncio.get_running_loop()
        waiters: list[asyncio.Future] = []

        pending = self._pending.pop(key, None)
        if pending is not None:
            logger.debug("Cancelling previous call", stage="RL.3", key=key)
            if pending.timer is not None:
                pending.timer.cancel()
            waiters = pending.waiters

        future = loop.create_future()
        waiters.append(future)

        entry = _PendingDebounce(waiters=waiters)
        entry.timer = asyncio.ensure_future(self._fire(key, entry, fn, delay_ms / 1000.0))
        self._pending[key] = entry

        return await future

    async def _fire(
        self, key: str, entry: _PendingDebounce, fn: Callable[[], Awaitable[Any]], delay: float
    ) -> None:
        await self._sleep(delay)

        # Past this point the call can no longer be superseded
        if self._pending.get(key) is entry:
            del self._pending[key]

        try:
            result = await fn()
        except Exception as exc:
            for waiter in entry.waiters:
                if not waiter.done():
                    waiter.set_exception(exc)
        else:
            for waiter in entry.waiters:
                if not waiter.done():
                    waiter.set_result(result)

    def clear(self, key: str | None = None) -> None:
        """
        Remove throttle history and pending debounces for one key, or for every key.

        Forgotten debounces still run when their timer fires; a later call for
        the key starts a new quiet period instead of superseding them.
        """
        if key is None:
            self._history.clear()
            self._pending.clear()
            logger.info("Throttle history cleared", stage="RL.0")
        else:
            self._history.pop(key, None)
            self._pending.pop(key, None)
            logger.info("Throttle history cleared", stage="RL.0", key=key)

    def get_call_count(self, key: str, time_window_ms: float) -> int:
        """Number of recorded calls for ``key`` within the trailing window. Read-only."""
        history = self._history.get(key)
        if not history:
            return 0
        now = self._clock()
        window = time_window_ms / 1000.0
        return sum(1 for ts in history if now - ts < window)

    @staticmethod
    def _prune(history: deque[float], now: float, window: float) -> None:
        while history and now - history[0] >= window:
            history.popleft()
