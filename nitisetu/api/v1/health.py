"""Health check endpoints for Niti-Setu API v1."""

from __future__ import annotations

import time

import structlog
from fastapi import APIRouter, Request
from pydantic import BaseModel

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


class HealthResponse(BaseModel):
    """Basic health check response."""

    status: str
    version: str
    uptime_seconds: float
    checks: dict[str, str]


@router.get("", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Liveness probe plus a summary of which services were built.

    Does *not* call Gemini; a configured gateway is reported as ``ok``.
    """
    start_time: float = getattr(request.app.state, "start_time", time.time())
    uptime = time.time() - start_time

    checks: dict[str, str] = {}
    for name in ("gemini", "session", "speech"):
        service = getattr(request.app.state, name, None)
        checks[name] = "ok" if service is not None else "not_configured"

    status = "healthy" if all(value == "ok" for value in checks.values()) else "degraded"
    return HealthResponse(
        status=status,
        version=request.app.version,
        uptime_seconds=round(uptime, 2),
        checks=checks,
    )
