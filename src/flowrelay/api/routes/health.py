"""Health check endpoint."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Request

logger = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health(request: Request) -> dict:
    """Liveness probe. Does not check the flow API."""
    logger.debug("health.check")
    return request.app.state.gateway.health()
