"""
Monitoring module for application metrics
"""

from docvault.monitoring.metrics import (
    metrics_registry,
    authorization_decisions_total,
    collaborator_failures_total,
    get_metrics,
    record_request,
    track_collaborator,
)

__all__ = [
    "metrics_registry",
    "authorization_decisions_total",
    "collaborator_failures_total",
    "get_metrics",
    "record_request",
    "track_collaborator",
]
