from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.core.deps import get_current_user
from vivaform_api.db.models.users import User
from vivaform_api.db.session import get_async_session
from vivaform_api.schemas.tracking import (
    GenerateRecommendationsResponse,
    RecommendationCreate,
    RecommendationRead,
)
from vivaform_api.services.recommendations import RecommendationGenerator
from vivaform_api.services.tracking import RecommendationService

router = APIRouter(prefix="/recommendations", tags=["Recommendations"])


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=RecommendationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a recommendation",
)
async def create(
    payload: RecommendationCreate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> RecommendationRead:
    return RecommendationRead.model_validate(await RecommendationService(session).create(user.id, payload))


# PUBLIC_INTERFACE
@router.get("", response_model=List[RecommendationRead], summary="Recommendations of a day, newest first")
async def list_for_day(
    date: Optional[str] = Query(None),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> List[RecommendationRead]:
    items = await RecommendationService(session).list_for_day(user.id, date)
    return [RecommendationRead.model_validate(r) for r in items]


# PUBLIC_INTERFACE
@router.get("/latest", response_model=List[RecommendationRead], summary="Latest recommendations")
async def latest(
    limit: int = Query(5, ge=1, le=20),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> List[RecommendationRead]:
    items = await RecommendationService(session).latest(user.id, limit=limit)
    return [RecommendationRead.model_validate(r) for r in items]


# PUBLIC_INTERFACE
@router.post(
    "/generate",
    response_model=GenerateRecommendationsResponse,
    summary="Generate recommendations",
    description="Analyse the last seven days of tracking and store up to three recommendations.",
)
async def generate(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> GenerateRecommendationsResponse:
    count = await RecommendationGenerator(session).generate_for_user(user.id)
    items = await RecommendationService(session).latest(user.id, limit=count) if count else []
    return GenerateRecommendationsResponse(
        message=f"Generated {count} recommendations",
        count=count,
        recommendations=[RecommendationRead.model_validate(r) for r in items],
    )
