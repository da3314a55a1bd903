"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Allocation engine
approval_attempts = Counter(
    'booking_approvals_total',
    'Booking approval attempts',
    ['result']  # approved, not_found, invalid_state, unresolved_seats, seat_conflict, storage_failure
)

approval_latency = Histogram(
    'booking_approval_latency_seconds',
    'Booking approval latency, including retries',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

approval_retries = Counter(
    'booking_approval_retries_total',
    'Approval attempts re-run after a concurrent commit changed the rows'
)

rejections = Counter(
    'booking_rejections_total',
    'Booking rejection attempts',
    ['result']  # rejected, not_found, invalid_state, storage_failure
)

# Intake
bookings_submitted = Counter(
    'bookings_submitted_total',
    'Bookings accepted by intake'
)

attachment_bytes = Histogram(
    'booking_attachment_bytes',
    'Size of uploaded proof-of-payment attachments',
    buckets=[16_384, 65_536, 262_144, 1_048_576, 2_097_152, 5_242_880]
)

# Inventory
seats_occupied = Gauge(
    'seats_occupied',
    'Occupied seats, sampled whenever the seat map is read from the database'
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set/invalidate, hit/miss/error
)


def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Usage:
        @app.get("/metrics")
        def metrics():
            return metrics_endpoint()
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_approval(result: str):
    """Record approval outcome."""
    approval_attempts.labels(result=result).inc()


def record_rejection(result: str):
    """Record rejection outcome."""
    rejections.labels(result=result).inc()


def record_cache_operation(operation: str, result: str):
    cache_operations.labels(operation=operation, result=result).inc()
