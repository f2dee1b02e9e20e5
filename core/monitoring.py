"""
core/monitoring.py -- Prometheus metrics registry for UserAPI.

A dedicated CollectorRegistry (not the client's global default) so tests and
multiple app instances in one process do not collide on metric names. The
process, platform and GC collectors are registered on it to mirror the
client library's default metrics.

GET /metrics renders this registry with render_metrics().
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    GCCollector,
    Histogram,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)

REGISTRY = CollectorRegistry()

ProcessCollector(registry=REGISTRY)
PlatformCollector(registry=REGISTRY)
GCCollector(registry=REGISTRY)

HTTP_REQUEST_DURATION_MS = Histogram(
    "http_request_duration_ms",
    "Duration of HTTP requests in ms",
    labelnames=("method", "route", "code"),
    buckets=(0.1, 5, 15, 50, 100, 300, 500, 1000),
    registry=REGISTRY,
)

USERS_CACHE_REQUESTS = Counter(
    "users_cache_requests",
    "Users list cache lookups by result",
    labelnames=("result",),
    registry=REGISTRY,
)


def render_metrics() -> tuple[bytes, str]:
    """Return (body, content_type) in the Prometheus text exposition format."""
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
