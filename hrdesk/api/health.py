"""
Health check endpoints.

Liveness and readiness probes for monitoring.
"""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from hrdesk import __version__
from hrdesk.agents.chat import pending_turns
from hrdesk.config import get_settings
from hrdesk.db import verify_database_connection

router = APIRouter(tags=["health"])


@router.get("/health")
@router.get("/healthz")
async def healthcheck() -> dict[str, Any]:
    """
    Health check endpoint.

    Returns basic service health and database status.
    """
    settings = get_settings()
    database_ok = verify_database_connection()
    return {
        "status": "ok" if database_ok else "degraded",
        "version": __version__,
        "timestamp": datetime.now(UTC).isoformat(),
        "environment": settings.environment,
        "database": "ok" if database_ok else "unavailable",
        "pending_turns": pending_turns(),
    }


@router.get("/readyz")
async def readiness(request: Request, check_providers: bool = False) -> JSONResponse:
    """
    Readiness check endpoint.

    The database must answer; with ``check_providers`` each configured
    generation provider must pass its healthcheck too.
    """
    checks: dict[str, bool] = {"database": verify_database_connection()}
    details: dict[str, Any] = {}

    registry = getattr(request.app.state, "provider_registry", None)
    checks["providers_configured"] = registry is not None
    if check_providers and registry is not None:
        provider_checks = await registry.healthcheck_all()
        checks["providers"] = all(provider_checks.values())
        details["providers"] = provider_checks

    all_ready = all(checks.values())
    payload: dict[str, Any] = {
        "status": "ready" if all_ready else "not_ready",
        "timestamp": datetime.now(UTC).isoformat(),
        "checks": checks,
    }
    if details:
        payload["details"] = details

    return JSONResponse(
        status_code=status.HTTP_200_OK if all_ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=payload,
    )
