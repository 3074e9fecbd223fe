"""
Health check endpoints.

We provide two endpoints:
- /health: Basic liveness check (is the process running?)
- /health/ready: Readiness check (is there a working ffmpeg?)

The distinction matters in orchestration systems like Kubernetes
where liveness and readiness have different behaviors.
"""

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from ... import __version__
from ...core.tracing import create_tracer
from ...infrastructure.ffmpeg.engine import create_locator
from ..dependencies import SettingsDep

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    """
    Health check response.

    Standardized format makes it easy for monitoring tools to parse.
    """
    status: str
    version: str
    details: dict[str, Any] = {}


class ReadinessCheck(BaseModel):
    """Individual readiness check result."""
    name: str
    status: str  # "ok" or "error"
    detail: str | None = None
    error: str | None = None


class ReadinessResponse(BaseModel):
    """Readiness check response with details."""
    status: str  # "ready" or "not_ready"
    version: str
    checks: list[ReadinessCheck]


@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
    description="Returns 200 if the service is running. Does not check ffmpeg.",
)
async def health_check(settings: SettingsDep) -> HealthResponse:
    """Liveness check - is the process alive?"""
    return HealthResponse(
        status="ok",
        version=__version__,
        details={
            "ffmpeg_configured": bool(settings.ffmpeg_path),
            "debug_mode": settings.debug_mode,
        }
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    status_code=status.HTTP_200_OK,
    summary="Readiness check",
    description="Returns 200 if a working ffmpeg binary can be located.",
    responses={
        503: {
            "description": "Service not ready",
            "model": ReadinessResponse,
        }
    },
)
async def readiness_check(settings: SettingsDep, response: Response) -> ReadinessResponse:
    """
    Readiness check - can we serve extraction requests?

    Runs binary discovery against the current configuration, so a
    configured path that has gone stale shows up here before any
    extraction request fails.
    """
    checks: list[ReadinessCheck] = []

    tracer = create_tracer(debug_enabled=settings.debug_mode)
    locator = create_locator(settings, tracer=tracer)
    candidate = await asyncio.to_thread(locator.locate, settings.ffmpeg_path)

    if candidate is None:
        checks.append(ReadinessCheck(
            name="ffmpeg",
            status="error",
            error="No working ffmpeg executable found"
        ))
    else:
        checks.append(ReadinessCheck(
            name="ffmpeg",
            status="ok",
            detail=f"{candidate.path} (via {candidate.source})"
        ))
        ffprobe = await asyncio.to_thread(locator.locate_companion, candidate.path)
        checks.append(ReadinessCheck(
            name="ffprobe",
            status="ok",
            detail=ffprobe or "not found, falling back to ffmpeg for durations"
        ))

    all_ok = all(check.status == "ok" for check in checks)
    if not all_ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        logger.warning(
            "Readiness check failed",
            extra={
                "checks": [
                    {"name": c.name, "status": c.status, "error": c.error}
                    for c in checks
                ]
            }
        )

    return ReadinessResponse(
        status="ready" if all_ok else "not_ready",
        version=__version__,
        checks=checks
    )
