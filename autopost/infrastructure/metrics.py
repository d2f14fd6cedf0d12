"""Prometheus metrics for publish jobs, labeled by platform."""

from prometheus_client import Counter, Gauge, Histogram, start_http_server

PUBLISH_QUEUE_LAG = Gauge(
    "publish_queue_lag_seconds",
    "Time between scheduledAt and dequeue time",
    ["platform"],
)
PUBLISH_LATENCY = Histogram(
    "publish_latency_seconds",
    "Latency of publish operations",
    ["platform"],
    buckets=[0.5, 1, 2, 5, 10, 20, 60],
)
PUBLISH_SUCCESS = Counter("publish_success_total", "Total successful publishes", ["platform"])
PUBLISH_FAILURE = Counter("publish_failure_total", "Total failed publishes", ["platform"])


def start_metrics_server(port: int) -> None:
    """Expose /metrics on the given port; 0 leaves it off."""
    if port:
        start_http_server(port)
