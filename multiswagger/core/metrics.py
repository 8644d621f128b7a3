"""
Prometheus metrics instrumentation.

Usage:
    from multiswagger.core.metrics import record_spec_fetch

    record_spec_fetch("success", 0.12)
"""
from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

spec_fetch_total = Counter(
    "multiswagger_spec_fetch_total",
    "Spec fetch attempts by outcome",
    ["outcome"],  # success|not_found|fetch_error|decode_error
)
spec_fetch_duration = Histogram(
    "multiswagger_spec_fetch_duration_seconds",
    "Latency of fetching and rewriting a spec",
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30),
)
proxy_requests_total = Counter(
    "multiswagger_proxy_requests_total",
    "Proxied requests by outcome",
    ["outcome"],  # forwarded|bad_request|forbidden|error
)
registry_specs = Gauge(
    "multiswagger_registry_specs",
    "Number of specs in the current registry snapshot",
)
watch_cycles_total = Counter(
    "multiswagger_watch_cycles_total",
    "ConfigMap poll cycles by status",
    ["status"],  # updated|empty|error
)


def record_spec_fetch(outcome: str, duration_seconds: float | None = None):
    spec_fetch_total.labels(outcome=outcome).inc()
    if duration_seconds is not None:
        spec_fetch_duration.observe(duration_seconds)


def record_proxy(outcome: str):
    proxy_requests_total.labels(outcome=outcome).inc()


def set_registry_size(count: int):
    registry_specs.set(count)


def record_watch_cycle(status: str):
    watch_cycles_total.labels(status=status).inc()


router = APIRouter()


@router.get("/metrics", include_in_schema=False)
async def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
