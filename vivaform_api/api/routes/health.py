from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.db.session import get_async_session
from vivaform_api.schemas.health import HealthMetrics, HealthStatus
from vivaform_api.services.health import HealthService

router = APIRouter(prefix="/health", tags=["Health"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=HealthStatus,
    summary="Health Check",
    description="Database ping with latency, uptime, version, memory and runtime details.",
)
async def health_check(session: AsyncSession = Depends(get_async_session)) -> HealthStatus:
    """
    Liveness/readiness probe.

    Returns `degraded` instead of failing when the database does not answer.
    """
    return await HealthService(session).check()


# PUBLIC_INTERFACE
@router.get("/metrics", response_model=HealthMetrics, summary="Business gauges")
async def health_metrics(session: AsyncSession = Depends(get_async_session)) -> HealthMetrics:
    return await HealthService(session).metrics()
