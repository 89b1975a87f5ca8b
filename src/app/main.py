"""FastAPI application factory.

Creates the app with logging middleware, metrics middleware, CORS, Sentry,
a lifespan that installs the conversation store, the health routes and the
v1 API router.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import Response

from src.app.api.middleware.logging import LoggingMiddleware, configure_structlog
from src.app.api.v1 import health
from src.app.api.v1.router import router as v1_router
from src.app.config import get_settings
from src.app.core.monitoring import MetricsMiddleware, get_metrics_response, init_sentry
from src.app.deals.conversations import InMemoryConversationStore


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: configure logging and Sentry, install the store."""
    log = structlog.get_logger(__name__)
    settings = get_settings()
    configure_structlog()

    if settings.SENTRY_DSN:
        init_sentry(dsn=settings.SENTRY_DSN, environment=settings.ENVIRONMENT.value)

    # Deployments that front a real conversation log set this before startup.
    if getattr(app.state, "conversation_store", None) is None:
        app.state.conversation_store = InMemoryConversationStore()

    log.info(
        "app.started",
        environment=settings.ENVIRONMENT.value,
        store=type(app.state.conversation_store).__name__,
    )
    yield
    log.info("app.stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Deal Actions API",
        version="0.1.0",
        description="Next-best-action and AI suggestion engine for real estate deals",
        lifespan=lifespan,
    )

    # Middleware is added in reverse order (last added = outermost)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Logging middleware (logs every request with timing)
    app.add_middleware(LoggingMiddleware)

    # Metrics middleware (outermost -- records Prometheus metrics for all requests)
    app.add_middleware(MetricsMiddleware)

    app.include_router(health.router)
    app.include_router(v1_router)

    @app.get("/metrics", include_in_schema=False)
    async def metrics(request: Request) -> Response:
        """Prometheus metrics endpoint."""
        return get_metrics_response()

    return app


# Module-level app for uvicorn
app = create_app()
