"""Prometheus metrics helpers."""

from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

REQUESTS_TOTAL = Counter(
    "blog_requests_total",
    "Gateway requests grouped by operation and response status",
    labelnames=("operation", "status"),
    registry=REGISTRY,
)

REQUEST_LATENCY = Histogram(
    "blog_request_latency_seconds",
    "Latency of gateway request handling",
    labelnames=("operation",),
    buckets=(0.005, 0.01, 0.02, 0.04, 0.08, 0.16, 0.32, 0.64, 1.28),
    registry=REGISTRY,
)

STORE_ERRORS = Counter(
    "blog_store_errors_total",
    "Record store failures surfaced as internal errors",
    labelnames=("operation",),
    registry=REGISTRY,
)


def observe_request(*, operation: str, status: int, latency_ms: float) -> None:
    REQUESTS_TOTAL.labels(operation=operation, status=str(status)).inc()
    REQUEST_LATENCY.labels(operation=operation).observe(latency_ms / 1000.0)


def observe_store_error(*, operation: str) -> None:
    STORE_ERRORS.labels(operation=operation).inc()


def render_metrics() -> tuple[bytes, str]:
    payload = generate_latest(REGISTRY)
    return payload, CONTENT_TYPE_LATEST
