from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.core.deps import get_current_user
from vivaform_api.db.models.users import User
from vivaform_api.db.session import get_async_session
from vivaform_api.schemas.tracking import WaterEntryCreate, WaterEntryRead, WaterTotal
from vivaform_api.services.tracking import WaterService

router = APIRouter(prefix="/water", tags=["Water"])


# PUBLIC_INTERFACE
@router.post("", response_model=WaterEntryRead, status_code=status.HTTP_201_CREATED, summary="Log water intake")
async def create_entry(
    payload: WaterEntryCreate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> WaterEntryRead:
    return WaterEntryRead.model_validate(await WaterService(session).create(user.id, payload))


# PUBLIC_INTERFACE
@router.get("", response_model=List[WaterEntryRead], summary="List water entries of a day")
async def list_entries(
    date: Optional[str] = Query(None, description="ISO date or datetime"),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> List[WaterEntryRead]:
    return [WaterEntryRead.model_validate(e) for e in await WaterService(session).list_for_day(user.id, date)]


# PUBLIC_INTERFACE
@router.get("/total", response_model=WaterTotal, summary="Total water of a day")
async def total(
    date: Optional[str] = Query(None, description="ISO date or datetime"),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> WaterTotal:
    return WaterTotal(total_ml=await WaterService(session).total_for_day(user.id, date))
