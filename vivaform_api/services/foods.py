from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.db.models.catalog import FoodItem
from vivaform_api.repositories.catalog import FoodRepository
from vivaform_api.schemas.foods import FoodItemCreate, FoodItemRead, FoodSearchResponse
from vivaform_api.services.base import BaseService

logger = logging.getLogger(__name__)


class FoodService(BaseService):
    """Food catalog search and user submissions."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = FoodRepository(session)

    # PUBLIC_INTERFACE
    async def search(self, query: str, category: Optional[str] = None, limit: int = 10) -> FoodSearchResponse:
        """Case-insensitive name/brand search; verified items first, then by name."""
        items, total = await self.repo.search(query, category, limit)
        return FoodSearchResponse(foods=[FoodItemRead.model_validate(i) for i in items], total_count=total)

    async def categories(self) -> List[str]:
        return await self.repo.categories()

    async def popular(self) -> List[FoodItem]:
        return await self.repo.popular(limit=20)

    # PUBLIC_INTERFACE
    async def create(self, payload: FoodItemCreate, created_by: Optional[UUID] = None) -> FoodItem:
        """
        Add an unverified item to the catalog.

        Raises:
            HTTPException: 400 when the barcode already belongs to another item.
        """
        if payload.barcode and await self.repo.get_by_barcode(payload.barcode):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Food with this barcode already exists")
        values = payload.model_dump()
        values.update({"verified": False, "created_by": created_by})
        item = await self.repo.create(values)
        logger.info("Food item created: %s (%s)", item.name, item.id)
        return item

    async def by_barcode(self, code: str) -> FoodItem:
        return self.require(await self.repo.get_by_barcode(code), "Food item")
