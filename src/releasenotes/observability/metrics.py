"""Prometheus metrics for the release-notes service.

HTTP request latency is recorded by a middleware; WebSocket sessions report
their terminal outcome and the number of fragments they relayed.
"""

from __future__ import annotations

import time
from typing import Callable, Awaitable

from prometheus_client import Counter, Gauge, Histogram
from starlette.requests import Request
from starlette.responses import Response

# Histogram buckets chosen for web latencies (seconds)
REQUEST_LATENCY = Histogram(
    "releasenotes_request_latency_seconds",
    "HTTP request latency in seconds",
    labelnames=("method", "path", "status"),
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0),
)

SESSION_OUTCOMES = Counter(
    "releasenotes_session_outcomes_total",
    "Release-notes sessions by terminal outcome",
    labelnames=("outcome",),
)

FRAGMENTS_RELAYED = Counter(
    "releasenotes_fragments_relayed_total",
    "Generated fragments forwarded to clients",
)

ACTIVE_SESSIONS = Gauge(
    "releasenotes_active_sessions",
    "WebSocket sessions currently open",
)


def sanitize_path(path: str) -> str:
    """Reduce paths to their top-level segment to keep label cardinality low."""
    if not path:
        return "/"
    segs = path.split("?")[0].split("/")
    if len(segs) > 1:
        return "/" + segs[1]
    return path


def metrics_middleware_factory() -> Callable[[Request, Callable[[Request], Awaitable[Response]]], Awaitable[Response]]:
    async def middleware(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        if request.url.path.startswith("/metrics"):
            return await call_next(request)
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        REQUEST_LATENCY.labels(
            method=request.method,
            path=sanitize_path(request.url.path),
            status=str(response.status_code),
        ).observe(elapsed)
        return response

    return middleware
