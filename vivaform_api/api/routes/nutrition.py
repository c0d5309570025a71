from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.core.deps import get_current_user
from vivaform_api.db.models.users import User
from vivaform_api.db.session import get_async_session
from vivaform_api.schemas.foods import MealPlanResponse
from vivaform_api.schemas.tracking import NutritionEntryCreate, NutritionEntryRead, NutritionSummary
from vivaform_api.services.meal_plan import MealPlanService
from vivaform_api.services.tracking import NutritionService

router = APIRouter(prefix="/nutrition", tags=["Nutrition"])

PREMIUM_MEAL_PLAN_MESSAGE = (
    "Meal planner is a premium feature. Please upgrade to access personalized meal plans."
)


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=NutritionEntryRead,
    status_code=status.HTTP_201_CREATED,
    summary="Log a meal",
)
async def create_entry(
    payload: NutritionEntryCreate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> NutritionEntryRead:
    return NutritionEntryRead.model_validate(await NutritionService(session).create(user.id, payload))


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[NutritionEntryRead],
    summary="List meals of a day",
    description="Entries in the day range of `date` (default today, UTC), oldest first.",
)
async def list_entries(
    date: Optional[str] = Query(None, description="ISO date or datetime"),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> List[NutritionEntryRead]:
    entries = await NutritionService(session).list_for_day(user.id, date)
    return [NutritionEntryRead.model_validate(e) for e in entries]


# PUBLIC_INTERFACE
@router.get("/summary", response_model=NutritionSummary, summary="Daily calorie and macro totals")
async def summary(
    date: Optional[str] = Query(None, description="ISO date or datetime"),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> NutritionSummary:
    return await NutritionService(session).summary(user.id, date)


# PUBLIC_INTERFACE
@router.get(
    "/meal-plan",
    response_model=MealPlanResponse,
    summary="Weekly meal plan",
    description="Seven-day plan built from meal templates and the quiz profile. PREMIUM only.",
)
async def meal_plan(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> MealPlanResponse:
    if user.tier != "PREMIUM":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=PREMIUM_MEAL_PLAN_MESSAGE)
    return await MealPlanService(session).generate_weekly_plan(user.id)


# PUBLIC_INTERFACE
@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a meal entry")
async def delete_entry(
    entry_id: UUID = Path(...),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> Response:
    await NutritionService(session).delete(user.id, entry_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
