"""V1 API router -- aggregates all v1 endpoint routers."""

from __future__ import annotations

from fastapi import APIRouter

from src.app.api.v1 import deals

router = APIRouter(prefix="/v1")

router.include_router(deals.router)
