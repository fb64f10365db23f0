"""Monitoring and metrics instrumentation for the Widget Proxy.

Exports custom Prometheus metrics for operational monitoring and alerting.
"""

from widget_proxy.monitoring.metrics import (
    key_rotations_total,
    retry_exhausted_total,
    upstream_attempts_total,
    upstream_latency_seconds,
)

__all__ = [
    "upstream_attempts_total",
    "upstream_latency_seconds",
    "key_rotations_total",
    "retry_exhausted_total",
]
