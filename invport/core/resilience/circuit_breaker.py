"""
Circuit Breaker for the Database Acquisition Path.

MECHANISM OF ACTION:
-------------------
1.  **Closed** (is_open=False): acquisitions pass through.
    - On failure: the consecutive failure counter increments.
    - On success: the counter resets to 0.
    - Threshold reached: failures >= threshold opens the breaker and sets
      next_attempt = now + recovery_timeout.

2.  **Open** (is_open=True, now < next_attempt): every acquisition fails
    immediately with `CircuitOpenError`; the pool is never touched.

3.  **Half-open** (is_open=True, now >= next_attempt): the next acquisition
    clears is_open, resets failures to 0 and runs the real call once.
    - Success keeps the breaker closed.
    - Failure counts as the first failure of a new cycle, so re-opening
      takes `threshold` further consecutive failures.

State lives on an explicitly constructed instance owned by the service
container, not on module globals, so each app and each test gets its own.
"""

import logging
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from enum import Enum
from typing import Any, TypeVar

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from invport.core.exceptions import CircuitOpenError
from invport.core.logging.logger import get_logger
from invport.infrastructure.monitoring.metrics_collector import get_metrics_collector

logger = get_logger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    """Enumeration of possible circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


def _to_iso(timestamp: float) -> str:
    return (
        datetime.fromtimestamp(timestamp, tz=timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


class CircuitBreaker:
    """
    Consecutive-failure circuit breaker with a timed half-open probe.

    Args:
        name: Breaker name used in logs, metrics and errors
        failure_threshold: Consecutive failures that open the breaker
        recovery_timeout: Seconds the breaker stays open before a probe
        clock: Wall-clock source in seconds (``time.time`` by default)
    """

    def __init__(
        self,
        name: str = "sql",
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        clock: Callable[[], float] = time.time,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock
        self._metrics = get_metrics_collector()

        self.failures = 0
        self.is_open = False
        self.next_attempt = clock()

        self._metrics.set_circuit_state(self.name, CircuitState.CLOSED.value)

    @property
    def state(self) -> CircuitState:
        """Current state; half-open is derived from the clock, never stored."""
        if not self.is_open:
            return CircuitState.CLOSED
        if self._clock() >= self.next_attempt:
            return CircuitState.HALF_OPEN
        return CircuitState.OPEN

    def before_call(self) -> None:
        """
        Gate one acquisition attempt.

        STAGE-CB.1: State check

        Raises:
            CircuitOpenError: While open and the cooldown has not elapsed
        """
        if not self.is_open:
            return

        now = self._clock()
        if now < self.next_attempt:
            self._metrics.record_circuit_rejection(self.name)
            logger.warning(
                "Circuit open, rejecting call",
                stage="CB.1",
                breaker=self.name,
                retry_at=_to_iso(self.next_attempt),
            )
            raise CircuitOpenError(
                self.name,
                retry_at=datetime.fromtimestamp(self.next_attempt, tz=timezone.utc),
                snapshot=self.get_status(),
            )

        logger.info(
            "Circuit half-open, allowing probe",
            stage="CB.2",
            breaker=self.name,
            previous_failures=self.failures,
        )
        self.is_open = False
        self.failures = 0
        self._metrics.set_circuit_state(self.name, CircuitState.HALF_OPEN.value)

    def record_success(self) -> None:
        """
        Reset the failure counter after a successful acquisition.

        STAGE-CB.3
        """
        if self.failures:
            logger.info(
                "Circuit recovered, resetting failures",
                stage="CB.3",
                breaker=self.name,
                previous_failures=self.failures,
            )
        self.failures = 0
        self._metrics.set_circuit_state(self.name, CircuitState.CLOSED.value)

    def record_failure(self, error: BaseException | None = None) -> None:
        """
        Count a failed acquisition and open the breaker at the threshold.

        STAGE-CB.4
        """
        self.failures += 1
        self._metrics.record_circuit_failure(self.name)

        logger.warning(
            f"Circuit '{self.name}' recorded failure ({self.failures}/{self.failure_threshold})",
            stage="CB.4",
            breaker=self.name,
            error=str(error) if error else None,
            error_type=type(error).__name__ if error else None,
        )

        if self.failures >= self.failure_threshold:
            self.is_open = True
            self.next_attempt = self._clock() + self.recovery_timeout
            self._metrics.set_circuit_state(self.name, CircuitState.OPEN.value)
            logger.error(
                f"Circuit '{self.name}' tripped! Opening circuit.",
                stage="CB.5",
                breaker=self.name,
                failures=self.failures,
                retry_at=_to_iso(self.next_attempt),
            )
        else:
            self._metrics.set_circuit_state(self.name, CircuitState.CLOSED.value)

    async def call(self, func: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        """Run ``func`` behind the breaker: gate, execute, then record the outcome."""
        self.before_call()
        try:
            result = await func(*args, **kwargs)
        except Exception as exc:
            self.record_failure(exc)
            raise
        self.record_success()
        return result

    def get_status(self) -> dict[str, Any]:
        """Diagnostic snapshot ``{isOpen, failures, nextAttempt}``."""
        return {
            "isOpen": self.is_open,
            "failures": self.failures,
            "nextAttempt": _to_iso(self.next_attempt) if self.is_open else None,
        }

    def seconds_until_reset(self) -> int:
        """Whole seconds until a probe is allowed; 0 when closed or due."""
        if not self.is_open:
            return 0
        return max(0, int(round(self.next_attempt - self._clock())))

    def reset(self) -> None:
        """Force the breaker closed (administrative reset and tests)."""
        self.failures = 0
        self.is_open = False
        self.next_attempt = self._clock()
        self._metrics.set_circuit_state(self.name, CircuitState.CLOSED.value)


# ============================================================================
# Retry Decorator
# ============================================================================


def create_retry_decorator(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 10.0,
    retry_exceptions: tuple = (TimeoutError, ConnectionError),
):
    """Tenacity retry with exponential jitter, logging each wait at WARNING."""
    std_logger = logging.getLogger(__name__)  # Tenacity needs std lib logger

    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential_jitter(
            initial=base_delay, max=max(max_delay, base_delay), jitter=base_delay
        ),
        retry=retry_if_exception_type(retry_exceptions),
        before_sleep=before_sleep_log(std_logger, logging.WARNING),
        reraise=True,
    )
