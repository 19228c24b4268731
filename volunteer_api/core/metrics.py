"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Membership metrics
membership_transitions = Counter(
    'membership_transitions_total',
    'Join/leave attempts',
    ['action', 'result']  # join/leave x success, conflict, not_found, error
)

membership_latency = Histogram(
    'membership_latency_seconds',
    'Join/leave request latency',
    ['action'],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Registry metrics
events_created = Counter(
    'events_created_total',
    'Events created'
)

users_registered = Counter(
    'users_registered_total',
    'Users created on first login'
)

# Database metrics
db_operations = Counter(
    'db_operations_total',
    'Total database operations',
    ['operation']  # read, write, retry
)

db_retries = Counter(
    'db_retry_attempts_total',
    'Database retry attempts due to version conflicts'
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Prometheus exposition of everything registered above."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_membership(action: str, result: str):
    """Record join/leave outcome. Result: success, conflict, not_found, error"""
    membership_transitions.labels(action=action, result=result).inc()


def record_db_operation(operation: str):
    """Record database operation. Operation: read, write, retry"""
    db_operations.labels(operation=operation).inc()
    if operation == "retry":
        db_retries.inc()


def record_cache_operation(operation: str, hit: bool):
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
