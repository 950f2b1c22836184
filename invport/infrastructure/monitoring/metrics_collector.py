"""
Metrics Collector with Prometheus Integration

Prometheus metrics for the inventory service:
- Query counts by outcome and query latency
- Circuit breaker state, recorded failures and fast-fail rejections
- Pool open attempts
- Outbound throttle waits by key
- Inbound rate limit rejections
- Errors by type
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)

from invport.core.config.constants import CIRCUIT_STATE_VALUES
from invport.core.config.settings import get_settings
from invport.core.logging.logger import get_logger

logger = get_logger(__name__)


# ============================================================================
# Metric Definitions
# ============================================================================

QUERY_COUNT = Counter(
    'invport_queries_total',
    'Total SQL statements executed through the query executor',
    ['outcome']  # success, failure
)

QUERY_DURATION = Histogram(
    'invport_query_duration_seconds',
    'Query executor call duration in seconds',
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 15.0, 30.0)
)

POOL_OPEN_ATTEMPTS = Counter(
    'invport_pool_open_attempts_total',
    'Attempts to open a database connection pool',
    ['outcome']
)

CIRCUIT_BREAKER_STATE = Gauge(
    'invport_circuit_breaker_state',
    'Circuit breaker state (0=closed, 1=half_open, 2=open)',
    ['breaker']
)

CIRCUIT_BREAKER_FAILURES = Counter(
    'invport_circuit_breaker_failures_total',
    'Total circuit breaker recorded failures',
    ['breaker']
)

CIRCUIT_BREAKER_REJECTIONS = Counter(
    'invport_circuit_breaker_rejections_total',
    'Calls rejected without touching the pool while the breaker was open',
    ['breaker']
)

THROTTLE_WAITS = Counter(
    'invport_throttle_waits_total',
    'Times an outbound call was delayed by the throttle',
    ['key', 'reason']  # window, min_delay
)

THROTTLE_WAIT_SECONDS = Counter(
    'invport_throttle_wait_seconds_total',
    'Total seconds spent waiting in the outbound throttle',
    ['key']
)

RATE_LIMIT_EXCEEDED = Counter(
    'invport_rate_limit_exceeded_total',
    'Total inbound rate limit exceeded events',
    ['client_type']  # ip, user
)

ERRORS = Counter(
    'invport_errors_total',
    'Total errors by type',
    ['error_type', 'stage']
)

APP_INFO = Info(
    'invport_app',
    'Application information'
)


class MetricsCollector:
    """
    Centralized metrics collector.

    STAGE-M: Metrics collection

    Usage:
        metrics = get_metrics_collector()
        metrics.record_query("success", 0.012)
        output = metrics.get_prometheus_metrics()
    """

    def __init__(self):
        self.settings = get_settings()

        APP_INFO.info({
            'version': self.settings.app.APP_VERSION,
            'environment': self.settings.app.ENVIRONMENT,
            'app_name': self.settings.app.APP_NAME
        })

        logger.info("Metrics collector initialized", stage="M.0")

    # =========================================================================
    # Query Metrics
    # =========================================================================

    def record_query(self, outcome: str, duration_seconds: float) -> None:
        """Record one query executor call."""
        QUERY_COUNT.labels(outcome=outcome).inc()
        QUERY_DURATION.observe(duration_seconds)

    def record_pool_open(self, outcome: str) -> None:
        """Record a pool open attempt."""
        POOL_OPEN_ATTEMPTS.labels(outcome=outcome).inc()

    # =========================================================================
    # Circuit Breaker Metrics
    # =========================================================================

    def set_circuit_state(self, breaker: str, state: str) -> None:
        """Set circuit breaker state."""
        CIRCUIT_BREAKER_STATE.labels(breaker=breaker).set(CIRCUIT_STATE_VALUES.get(state, 0))

    def record_circuit_failure(self, breaker: str) -> None:
        """Record circuit breaker failure."""
        CIRCUIT_BREAKER_FAILURES.labels(breaker=breaker).inc()

    def record_circuit_rejection(self, breaker: str) -> None:
        """Record a fast-fail rejection."""
        CIRCUIT_BREAKER_REJECTIONS.labels(breaker=breaker).inc()

    # =========================================================================
    # Rate Limiting Metrics
    # =========================================================================

    def record_throttle_wait(self, key: str, reason: str, seconds: float) -> None:
        """Record an outbound throttle delay."""
        THROTTLE_WAITS.labels(key=key, reason=reason).inc()
        THROTTLE_WAIT_SECONDS.labels(key=key).inc(max(seconds, 0.0))

    def record_rate_limit_exceeded(self, client_type: str) -> None:
        """Record inbound rate limit exceeded event."""
        RATE_LIMIT_EXCEEDED.labels(client_type=client_type).inc()

    # =========================================================================
    # Error Metrics
    # =========================================================================

    def record_error(self, error_type: str, stage: str) -> None:
        """Record error."""
        ERRORS.labels(error_type=error_type, stage=stage).inc()

    # =========================================================================
    # Export
    # =========================================================================

    def get_prometheus_metrics(self) -> bytes:
        """Get Prometheus text format metrics."""
        return generate_latest(REGISTRY)

    def get_content_type(self) -> str:
        """Get Prometheus content type."""
        return CONTENT_TYPE_LATEST


# Global metrics collector
_metrics: MetricsCollector | None = None


def get_metrics_collector() -> MetricsCollector:
    """Get global metrics collector."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
