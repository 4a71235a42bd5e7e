"""
Prometheus metrics configuration and collectors.
"""
import structlog
from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

logger = structlog.get_logger()

# Create a custom registry (separate from the default)
metrics_registry = CollectorRegistry()

# Sync run metrics
sync_runs_counter = Counter(
    'eventsync_sync_runs_total',
    'Total number of orchestrated sync runs',
    ['status'],
    registry=metrics_registry
)

sync_duration_histogram = Histogram(
    'eventsync_sync_duration_seconds',
    'Duration of orchestrated sync runs in seconds',
    registry=metrics_registry
)

# Per-event operations
events_synced_counter = Counter(
    'eventsync_events_synced_total',
    'Total number of event documents created, updated or deleted by sync',
    ['action'],
    registry=metrics_registry
)

# Error metrics
sync_errors_counter = Counter(
    'eventsync_sync_errors_total',
    'Total number of sync errors',
    ['stage'],
    registry=metrics_registry
)

# API request metrics
api_requests_counter = Counter(
    'eventsync_api_requests_total',
    'Total number of API requests',
    ['method', 'endpoint', 'status_code'],
    registry=metrics_registry
)

api_request_duration_histogram = Histogram(
    'eventsync_api_request_duration_seconds',
    'Duration of API requests in seconds',
    ['method', 'endpoint'],
    registry=metrics_registry
)


def get_metrics() -> bytes:
    """
    Generate and return metrics in Prometheus format.

    Returns:
        bytes: Metrics in Prometheus exposition format
    """
    return generate_latest(metrics_registry)


def record_sync_run(status: str, duration: float) -> None:
    """
    Record a finished orchestrated sync run.

    Args:
        status: "success", "partial" or "cancelled"
        duration: Duration in seconds
    """
    sync_runs_counter.labels(status=status).inc()
    sync_duration_histogram.observe(duration)
    logger.debug("sync_run_recorded", status=status, duration=duration)


def increment_events_synced(action: str, count: int = 1) -> None:
    """Increment the created/updated/deleted event counter."""
    if count:
        events_synced_counter.labels(action=action).inc(count)


def increment_sync_error(stage: str) -> None:
    """
    Increment sync error counter.

    Args:
        stage: Where the error happened (fetch, store, tenant)
    """
    sync_errors_counter.labels(stage=stage).inc()


def record_api_request(method: str, endpoint: str, status_code: int, duration: float) -> None:
    """
    Record API request metrics.

    Args:
        method: HTTP method
        endpoint: API endpoint
        status_code: HTTP status code
        duration: Request duration in seconds
    """
    api_requests_counter.labels(
        method=method,
        endpoint=endpoint,
        status_code=str(status_code)
    ).inc()
    api_request_duration_histogram.labels(
        method=method,
        endpoint=endpoint
    ).observe(duration)
