from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.core.deps import get_current_user
from vivaform_api.db.models.users import User
from vivaform_api.db.session import get_async_session
from vivaform_api.schemas.tracking import WeightEntryCreate, WeightEntryRead, WeightProgress
from vivaform_api.services.tracking import WeightService

router = APIRouter(prefix="/weight", tags=["Weight"])


# PUBLIC_INTERFACE
@router.post("", response_model=WeightEntryRead, status_code=status.HTTP_201_CREATED, summary="Log a weigh-in")
async def create_entry(
    payload: WeightEntryCreate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> WeightEntryRead:
    return WeightEntryRead.model_validate(await WeightService(session).create(user.id, payload))


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[WeightEntryRead],
    summary="Weight history",
    description="Either a single `date`, or a `from`/`to` range. The newest `limit` entries, oldest first.",
)
async def history(
    date: Optional[str] = Query(None),
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    limit: int = Query(30, ge=1, le=90),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> List[WeightEntryRead]:
    entries = await WeightService(session).history(
        user.id, date=date, date_from=date_from, date_to=date_to, limit=limit
    )
    return [WeightEntryRead.model_validate(e) for e in entries]


# PUBLIC_INTERFACE
@router.get("/latest", response_model=Optional[WeightEntryRead], summary="Latest weigh-in")
async def latest(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> Optional[WeightEntryRead]:
    entry = await WeightService(session).latest(user.id)
    return WeightEntryRead.model_validate(entry) if entry else None


# PUBLIC_INTERFACE
@router.get("/progress", response_model=WeightProgress, summary="Weight change over recent entries")
async def progress(
    limit: int = Query(30, ge=1, le=90),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> WeightProgress:
    return await WeightService(session).progress(user.id, limit=limit)
