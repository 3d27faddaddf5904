"""Prometheus metrics for the status API.

Labels stay low-cardinality: route templates (not raw paths), dataset names
and fixed outcome strings. Client identities never become labels.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

HTTP_INFLIGHT = Gauge(
    "http_inflight_requests",
    "Number of in-flight HTTP requests (global).",
)

HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests by route/method/status.",
    labelnames=("route", "method", "status"),
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds by route/method.",
    labelnames=("route", "method"),
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

CACHE_LOADS_TOTAL = Counter(
    "cache_loads_total",
    "Upstream-backed dataset loads by dataset and where the value came from.",
    labelnames=("dataset", "outcome"),
)

RATE_LIMITED_TOTAL = Counter(
    "rate_limited_total",
    "Requests rejected by the fixed-window rate limiter, by route.",
    labelnames=("route",),
)

METRICS_RECONCILE_FAILURES_TOTAL = Counter(
    "metrics_reconcile_failures_total",
    "Persisted request-counter updates that failed and were skipped.",
)

FLEET_HEALTH_UNAVAILABLE_TOTAL = Counter(
    "fleet_health_unavailable_total",
    "Fleet health requests answered 503 because no snapshot existed.",
)


def observe_http(*, route: str, method: str, status_code: int, duration_seconds: float) -> None:
    HTTP_REQUESTS_TOTAL.labels(route=route, method=method, status=str(int(status_code))).inc()
    HTTP_REQUEST_DURATION_SECONDS.labels(route=route, method=method).observe(max(0.0, duration_seconds))


def record_cache_load(dataset: str, outcome: str) -> None:
    CACHE_LOADS_TOTAL.labels(dataset=dataset, outcome=outcome).inc()


def record_rate_limited(route: str) -> None:
    RATE_LIMITED_TOTAL.labels(route=route).inc()


__all__ = [
    "CACHE_LOADS_TOTAL",
    "FLEET_HEALTH_UNAVAILABLE_TOTAL",
    "HTTP_INFLIGHT",
    "METRICS_RECONCILE_FAILURES_TOTAL",
    "RATE_LIMITED_TOTAL",
    "observe_http",
    "record_cache_load",
    "record_rate_limited",
]
