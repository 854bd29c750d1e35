"""Health check endpoints."""

from datetime import datetime, timezone
from typing import Literal

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError

router = APIRouter()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HealthStatus(BaseModel):
    """Health check response model."""

    status: Literal["healthy", "degraded", "unhealthy"] = Field(
        description="Overall health status"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="Current server timestamp (UTC)",
    )
    version: str = Field(description="Service version")
    checks: dict[str, bool] = Field(
        default_factory=dict,
        description="Individual component health checks",
    )


class ReadinessStatus(BaseModel):
    """Readiness check response model."""

    ready: bool = Field(description="Whether the service is ready to accept requests")
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="Current server timestamp (UTC)",
    )
    checks: dict[str, bool] = Field(
        default_factory=dict,
        description="Individual readiness checks",
    )


async def _database_reachable(request: Request) -> bool | None:
    """True/False for a configured database, None when running without one."""
    db = getattr(request.app.state, "db", None)
    if db is None:
        return None
    try:
        await db.ping()
    except (SQLAlchemyError, OSError):
        return False
    return True


@router.get(
    "/health",
    response_model=HealthStatus,
    summary="Health Check",
    description="Check if the service is running and get version info with dependency status",
)
async def health_check(request: Request) -> HealthStatus:
    """Health check endpoint used by container orchestrators and monitoring."""
    checks = {
        "api": True,
        "entitlements": getattr(request.app.state, "entitlements", None) is not None,
    }
    database = await _database_reachable(request)
    if database is not None:
        checks["database"] = database

    overall = "healthy" if all(checks.values()) else "degraded"
    return HealthStatus(
        status=overall,
        version=getattr(request.app, "version", "0.1.0"),
        checks=checks,
    )


@router.get(
    "/health/ready",
    response_model=ReadinessStatus,
    summary="Readiness Check",
    description="Check if the service is ready to accept requests",
)
async def readiness_check(request: Request) -> ReadinessStatus:
    """Readiness check used by load balancers to route traffic."""
    checks = {"entitlements": getattr(request.app.state, "entitlements", None) is not None}
    database = await _database_reachable(request)
    if database is not None:
        checks["database"] = database

    return ReadinessStatus(ready=all(checks.values()), checks=checks)


@router.get(
    "/health/live",
    summary="Liveness Check",
    description="Simple liveness check - returns 200 if service is alive",
)
async def liveness_check() -> dict[str, str]:
    """Simple liveness check endpoint."""
    return {"status": "ok"}
