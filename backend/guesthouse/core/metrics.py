"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# Booking metrics
booking_attempts = Counter(
    "booking_attempts_total",
    "Total booking submissions",
    ["status"],  # success, conflict, invalid, error
)

booking_latency = Histogram(
    "booking_latency_seconds",
    "Booking creation latency",
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)

booking_transitions = Counter(
    "booking_status_transitions_total",
    "Booking status changes",
    ["status", "source"],  # source: api, telegram
)

room_lock_retries = Counter(
    "room_lock_retry_attempts_total",
    "Availability re-checks caused by room version conflicts",
)

# Notification metrics
notifications_sent = Counter(
    "telegram_notifications_total",
    "Telegram API calls by result",
    ["method", "result"],  # sendMessage/sendPhoto, ok/error/skipped
)

# Upload metrics
uploads_rejected = Counter(
    "uploads_rejected_total",
    "Uploaded files rejected by validation",
    ["reason"],  # size, type
)

# Cache metrics
cache_operations = Counter(
    "cache_operations_total",
    "Cache operations",
    ["operation", "result"],  # get/set, hit/miss
)

redis_connection_errors = Counter(
    "redis_connection_errors_total",
    "Redis connection errors",
)


def metrics_endpoint() -> Response:
    """Render all registered metrics in the Prometheus text format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


def record_booking_attempt(status: str):
    """Record booking attempt. Status: success, conflict, invalid, error"""
    booking_attempts.labels(status=status).inc()


def record_transition(status: str, source: str = "api"):
    booking_transitions.labels(status=status, source=source).inc()


def record_notification(method: str, result: str):
    notifications_sent.labels(method=method, result=result).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
