"""
Prometheus metrics for notification dispatch.

Tracks per-channel dispatch outcomes, dispatch latency and rate limiter
queue depth.
"""

from prometheus_client import Counter, Gauge, Histogram

# Per-recipient outcomes
dispatch_results_total = Counter(
    "pushfanout_dispatch_results_total",
    "Total number of per-recipient dispatch results",
    labelnames=["channel", "status"],
)

# Request-level failures (nothing dispatched)
dispatch_errors_total = Counter(
    "pushfanout_dispatch_errors_total",
    "Total number of dispatch requests rejected before sending",
    labelnames=["channel", "error_type"],
)

dispatch_duration_seconds = Histogram(
    "pushfanout_dispatch_duration_seconds",
    "Wall-clock duration of a channel send over all recipients",
    labelnames=["channel"],
    buckets=[0.05, 0.1, 0.5, 1.0, 5.0, 15.0, 60.0],
)

rate_limiter_queue_depth = Gauge(
    "pushfanout_rate_limiter_queue_depth",
    "Scheduling units waiting for a rate limiter token",
    labelnames=["limiter"],
)
