# =============================================================================
# Health Check Router
# =============================================================================
# Endpoints for container health checks and readiness probes.
# =============================================================================

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.auth.dependencies import AuthenticatedUser, get_current_user
from app.services.rewrite_service import get_rewrite_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str


class ReadyResponse(BaseModel):
    """Readiness check response model."""

    status: str
    services: dict[str, str]


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Basic health check endpoint.

    Returns 200 if the service is running.
    No authentication required for container health checks.
    """
    from app import __version__

    return HealthResponse(status="healthy", version=__version__)


@router.get("/ready", response_model=ReadyResponse)
async def readiness_check() -> ReadyResponse:
    """
    Readiness check endpoint.

    Pings MongoDB, which holds the record stores, job state and audit log.
    No authentication required for container readiness probes.
    """
    try:
        get_rewrite_service().ping()
        mongodb = "ok"
    except Exception as exc:
        logger.warning(f"MongoDB readiness check failed: {exc}")
        mongodb = "unavailable"

    return ReadyResponse(
        status="ready" if mongodb == "ok" else "degraded",
        services={"mongodb": mongodb},
    )


@router.get("/whoami")
async def whoami(
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
    """Return the authenticated operator."""
    return {
        "username": current_user.username,
        "operator_id": current_user.operator_id,
    }
