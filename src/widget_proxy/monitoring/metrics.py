"""Custom Prometheus metrics for the Widget Proxy.

These metrics are exposed at /metrics endpoint and should be scraped by Prometheus.
Alert rules should be configured for:
- upstream_attempts_total (failure rate per key)
- retry_exhausted_total (every entry means a widget user saw an error)
- key_rotations_total (sustained rotation indicates a failing key)
"""

from prometheus_client import Counter, Histogram

# === Upstream Attempt Metrics ===

upstream_attempts_total = Counter(
    "upstream_attempts_total",
    "Total upstream attempts by key label and outcome",
    ["key", "outcome"],
)
"""
Upstream attempts counter.

Labels:
- key: Primary, Secondary, Tertiary
- outcome: success, retryable_error, fatal_error, timeout
"""

upstream_latency_seconds = Histogram(
    "upstream_latency_seconds",
    "Upstream call latency in seconds",
    ["key", "success"],
    buckets=[0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 30.0, 60.0],
)
"""
Upstream latency histogram per attempt (not per orchestrated call).

Labels:
- key: Credential label
- success: true, false
"""

# === Rotation Metrics ===

key_rotations_total = Counter(
    "key_rotations_total",
    "Total key rotations after a retryable failure",
    ["from_key", "to_key"],
)

retry_exhausted_total = Counter(
    "retry_exhausted_total",
    "Total calls that failed after exhausting all permitted attempts",
)
