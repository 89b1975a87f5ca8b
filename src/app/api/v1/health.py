"""Health check endpoints.

The engine has no external dependencies of its own, so liveness and
readiness differ only in that readiness requires the conversation store to
be installed on app state.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from src.app.config import get_settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Basic liveness check: the process is up and serving."""
    settings = get_settings()
    return {"status": "ok", "environment": settings.ENVIRONMENT.value}


@router.get("/health/ready")
async def readiness_check(request: Request):
    """Readiness check: 200 once the conversation store is installed, else 503."""
    store_ready = getattr(request.app.state, "conversation_store", None) is not None
    return JSONResponse(
        status_code=status.HTTP_200_OK if store_ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if store_ready else "degraded",
            "checks": {"conversation_store": "ok" if store_ready else "missing"},
        },
    )
