from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.core.deps import get_current_user
from vivaform_api.db.models.users import User
from vivaform_api.db.session import get_async_session
from vivaform_api.schemas.foods import FoodItemCreate, FoodItemRead, FoodSearchResponse
from vivaform_api.services.foods import FoodService

router = APIRouter(prefix="/foods", tags=["Foods"])


# PUBLIC_INTERFACE
@router.get(
    "/search",
    response_model=FoodSearchResponse,
    summary="Search foods",
    description="Case-insensitive match on name or brand; verified items first, then by name.",
)
async def search(
    query: str = Query(..., min_length=1),
    category: Optional[str] = Query(None),
    limit: int = Query(10, ge=1, le=50),
    session: AsyncSession = Depends(get_async_session),
) -> FoodSearchResponse:
    return await FoodService(session).search(query, category, limit)


# PUBLIC_INTERFACE
@router.get("/categories", response_model=List[str], summary="Food categories")
async def categories(session: AsyncSession = Depends(get_async_session)) -> List[str]:
    return await FoodService(session).categories()


# PUBLIC_INTERFACE
@router.get("/popular", response_model=List[FoodItemRead], summary="Popular verified foods")
async def popular(session: AsyncSession = Depends(get_async_session)) -> List[FoodItemRead]:
    return [FoodItemRead.model_validate(f) for f in await FoodService(session).popular()]


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=FoodItemRead,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a food item",
    description="User-submitted items start unverified until moderated.",
)
async def create(
    payload: FoodItemCreate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> FoodItemRead:
    return FoodItemRead.model_validate(await FoodService(session).create(payload, created_by=user.id))


# PUBLIC_INTERFACE
@router.get("/barcode/{code}", response_model=FoodItemRead, summary="Find a food by barcode")
async def by_barcode(
    code: str = Path(..., min_length=1),
    session: AsyncSession = Depends(get_async_session),
) -> FoodItemRead:
    return FoodItemRead.model_validate(await FoodService(session).by_barcode(code))
