"""Prometheus metrics for HTTP requests and Streak upstream calls.

Provides:
- MetricsMiddleware: ASGI middleware for HTTP request metrics
- track_upstream_call(): Context manager for Streak call metrics
- get_metrics_response(): Prometheus exposition for /metrics
"""

from __future__ import annotations

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from prometheus_client import (
    REGISTRY,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# ── HTTP Metrics ─────────────────────────────────────────────────────────────

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# ── Upstream Metrics ─────────────────────────────────────────────────────────

streak_requests_total = Counter(
    "streak_requests_total",
    "Total Streak API requests",
    ["operation", "tenant", "outcome"],
)

streak_request_duration_seconds = Histogram(
    "streak_request_duration_seconds",
    "Streak API request duration in seconds",
    ["operation", "tenant"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)


# ── Metrics Middleware ───────────────────────────────────────────────────────


class MetricsMiddleware(BaseHTTPMiddleware):
    """Records request count and duration per method and route.

    Skips the /metrics endpoint itself to avoid self-referential counting.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        # Route template keeps label cardinality bounded (pipeline keys are unbounded)
        route = request.scope.get("route")
        endpoint = getattr(route, "path", None) or "unmatched"

        http_requests_total.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=str(response.status_code),
        ).inc()

        http_request_duration_seconds.labels(
            method=request.method,
            endpoint=endpoint,
        ).observe(duration)

        return response


# ── Upstream Metrics Helper ──────────────────────────────────────────────────


@asynccontextmanager
async def track_upstream_call(operation: str, tenant: str) -> AsyncGenerator[None, None]:
    """Record count, outcome and duration of one Streak API call.

    Usage:
        async with track_upstream_call("get_box", "BE"):
            response = await client.get(...)
    """
    start_time = time.perf_counter()
    outcome = "success"
    try:
        yield
    except Exception as exc:
        outcome = type(exc).__name__
        raise
    finally:
        streak_requests_total.labels(
            operation=operation,
            tenant=tenant,
            outcome=outcome,
        ).inc()
        streak_request_duration_seconds.labels(
            operation=operation,
            tenant=tenant,
        ).observe(time.perf_counter() - start_time)


# ── Metrics Endpoint ─────────────────────────────────────────────────────────


def get_metrics_response() -> Response:
    """Generate Prometheus exposition format response."""
    return Response(
        content=generate_latest(REGISTRY),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
