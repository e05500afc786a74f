"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# Reservation metrics
reservation_attempts = Counter(
    'reservation_attempts_total',
    'Total reservation attempts',
    ['status']  # success, sold_out, not_available, error
)

reservation_latency = Histogram(
    'reservation_latency_seconds',
    'Latency of the locked reserve() transaction',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

# Reconciliation metrics
payment_outcomes = Counter(
    'payment_outcomes_total',
    'Payment outcome events received',
    ['outcome', 'result']  # paid/failed x confirmed/duplicate/cancelled/inconsistent/...
)

notification_failures = Counter(
    'ticket_notification_failures_total',
    'Ticket notifications that raised after confirmation'
)

# Sweeper metrics
holds_swept = Counter(
    'pending_holds_swept_total',
    'Expired pending holds deleted by the sweeper'
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)

# Store metrics
store_failures = Counter(
    'store_transient_failures_total',
    'Transient backing store failures',
    ['operation']
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_reservation_attempt(status: str):
    """Record reservation attempt. Status: success, sold_out, not_available, error"""
    reservation_attempts.labels(status=status).inc()


def record_payment_outcome(outcome: str, result: str):
    payment_outcomes.labels(outcome=outcome, result=result).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
