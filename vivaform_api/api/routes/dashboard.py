from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.core.deps import get_current_user
from vivaform_api.db.models.users import User
from vivaform_api.db.session import get_async_session
from vivaform_api.schemas.dashboard import DailyDashboard, DailyOverview
from vivaform_api.services.dashboard import DashboardService

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


# PUBLIC_INTERFACE
@router.get(
    "/daily",
    response_model=DailyOverview,
    summary="Daily overview",
    description="Nutrition, water, weight and recommendations of one day.",
)
async def daily(
    date: Optional[str] = Query(None),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> DailyOverview:
    return await DashboardService(session).daily_overview(user.id, date)


# PUBLIC_INTERFACE
@router.get(
    "/v2/daily",
    response_model=DailyDashboard,
    summary="Daily dashboard",
    description="Health score, metrics, meal timeline, insights, streaks, achievements and goal progress.",
)
async def daily_v2(
    date: Optional[str] = Query(None),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> DailyDashboard:
    return await DashboardService(session).daily_dashboard(user.id, date)
