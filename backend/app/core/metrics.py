"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Total booking attempts',
    ['status']  # success, conflict, error
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Booking request latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Waitlist metrics
waitlist_operations = Counter(
    'waitlist_operations_total',
    'Waitlist operations',
    ['action']  # enqueued, cancelled, updated, expired
)

waitlist_promotions = Counter(
    'waitlist_promotions_total',
    'Waitlist entries promoted to bookings',
    ['trigger']  # sweep, recheck
)

# Database metrics
db_operations = Counter(
    'db_operations_total',
    'Total database operations',
    ['operation']  # read, write, retry
)

db_retries = Counter(
    'db_retry_attempts_total',
    'Ledger transaction retries due to serialization failures'
)

court_lock_wait = Histogram(
    'court_lock_wait_seconds',
    'Time spent waiting for a court scope',
    buckets=[0.0001, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0]
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)

redis_connection_errors = Counter(
    'redis_connection_errors_total',
    'Redis connection errors'
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


# Convenience functions for instrumentation
def record_booking_attempt(status: str):
    """Record booking attempt. Status: success, conflict, error"""
    booking_attempts.labels(status=status).inc()


def record_waitlist_operation(action: str, count: int = 1):
    waitlist_operations.labels(action=action).inc(count)


def record_promotion(trigger: str):
    waitlist_promotions.labels(trigger=trigger).inc()


def record_db_operation(operation: str):
    """Record database operation. Operation: read, write, retry"""
    db_operations.labels(operation=operation).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
