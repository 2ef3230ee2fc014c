"""
Prometheus metrics for the DocVault service
"""

from functools import wraps
from typing import Callable

from prometheus_client import Counter, Histogram, CollectorRegistry
from prometheus_client.exposition import generate_latest

# Create a custom registry
metrics_registry = CollectorRegistry()

# Request metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
    registry=metrics_registry
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint"],
    buckets=(.005, .01, .025, .05, .075, .1, .25, .5, .75, 1.0, 2.5, 5.0),
    registry=metrics_registry
)

# Authorization metrics
authorization_decisions_total = Counter(
    "authorization_decisions_total",
    "Access decisions by outcome",
    ["target", "outcome", "reason"],
    registry=metrics_registry
)

# Collaborator failures that were absorbed locally
collaborator_failures_total = Counter(
    "collaborator_failures_total",
    "Content store and annotation queue failures",
    ["collaborator", "operation"],
    registry=metrics_registry
)


def record_request(method: str, endpoint: str, status: int, duration: float) -> None:
    """Record one finished HTTP request"""
    http_requests_total.labels(method=method, endpoint=endpoint, status=str(status)).inc()
    http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(duration)


def track_collaborator(collaborator: str, operation: str):
    """Decorator counting exceptions raised by an async collaborator call"""
    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except Exception:
                collaborator_failures_total.labels(
                    collaborator=collaborator,
                    operation=operation
                ).inc()
                raise
        return wrapper
    return decorator


def get_metrics() -> bytes:
    """Render the registry in Prometheus exposition format"""
    return generate_latest(metrics_registry)
