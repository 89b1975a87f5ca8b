"""Prometheus metrics and Sentry integration.

Provides:
- MetricsMiddleware: ASGI middleware for HTTP request metrics
- next_actions_total / suggestions_generated_total / suggestions_returned:
  recommendation counters recorded by the deals engine
- init_sentry(): Initialize Sentry when a DSN is configured
- get_metrics_response(): Prometheus exposition for /metrics
"""

from __future__ import annotations

import logging
import time

from prometheus_client import REGISTRY, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

SERVICE_NAME = "deal-actions"

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
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

# ── Recommendation Metrics ───────────────────────────────────────────────────

next_actions_total = Counter(
    "next_actions_total",
    "Next-best-actions computed, by matching rule",
    ["rule", "category", "priority"],
)

suggestions_generated_total = Counter(
    "suggestions_generated_total",
    "Suggestion engine runs",
    ["status"],
)

suggestions_returned = Histogram(
    "suggestions_returned",
    "Number of suggestions returned per successful run",
    buckets=(0, 1, 2, 3, 4, 5, 10, 20),
)


# ── Metrics Middleware ───────────────────────────────────────────────────────


class MetricsMiddleware(BaseHTTPMiddleware):
    """Records request count and duration per method/endpoint.

    Skips the /metrics endpoint itself.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        endpoint = request.url.path

        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

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


# ── Sentry Integration ───────────────────────────────────────────────────────


def init_sentry(dsn: str, environment: str) -> None:
    """Initialize Sentry SDK with a service tag on every event.

    Args:
        dsn: Sentry DSN string.
        environment: Deployment environment (development, staging, production).
    """
    try:
        import sentry_sdk
        from sentry_sdk.integrations.fastapi import FastApiIntegration
        from sentry_sdk.integrations.starlette import StarletteIntegration
    except ImportError:
        logging.getLogger(__name__).warning("sentry-sdk not installed, skipping Sentry init")
        return

    traces_sample_rate = 0.1 if environment == "production" else 1.0

    def before_send(event: dict, hint: dict) -> dict:
        event.setdefault("tags", {})["service"] = SERVICE_NAME
        return event

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        traces_sample_rate=traces_sample_rate,
        integrations=[
            StarletteIntegration(),
            FastApiIntegration(),
        ],
        before_send=before_send,
    )


# ── Metrics Endpoint ─────────────────────────────────────────────────────────


def get_metrics_response() -> Response:
    """Generate Prometheus exposition format response."""
    return Response(
        content=generate_latest(REGISTRY),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
