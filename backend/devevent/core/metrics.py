"""
Prometheus metrics for the event and booking write paths.
Exposed at /metrics.
"""

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

event_operations = Counter(
    'devevent_event_operations_total',
    'Event writes and reads',
    ['operation', 'status']  # create/update/delete/list, success/rejected/error
)

booking_attempts = Counter(
    'devevent_booking_attempts_total',
    'Total booking attempts',
    ['status']  # success, invalid, conflict
)

media_upload_latency = Histogram(
    'devevent_media_upload_latency_seconds',
    'Image upload latency',
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

db_connection_attempts = Counter(
    'devevent_db_connection_attempts_total',
    'Database connection attempts',
    ['result']  # success, failure
)

cache_operations = Counter(
    'devevent_cache_operations_total',
    'Event list cache operations',
    ['operation', 'result']  # get/set/invalidate, hit/miss/error/ok
)


def metrics_endpoint() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_event_operation(operation: str, status: str):
    event_operations.labels(operation=operation, status=status).inc()


def record_booking_attempt(status: str):
    """Record booking attempt. Status: success, invalid, conflict"""
    booking_attempts.labels(status=status).inc()


def record_connection_attempt(success: bool):
    db_connection_attempts.labels(result="success" if success else "failure").inc()


def record_cache_operation(operation: str, result: str):
    cache_operations.labels(operation=operation, result=result).inc()
