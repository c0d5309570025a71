from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import or_, select

from vivaform_api.db.models.catalog import FoodItem, MealTemplate
from .base import BaseRepository

POPULAR_CATEGORIES = ("Fruits", "Vegetables", "Meat", "Dairy", "Grains")


class FoodRepository(BaseRepository):
    """Repository for the food catalog."""

    async def search(self, query: str, category: Optional[str], limit: int) -> Tuple[List[FoodItem], int]:
        like = f"%{query.strip()}%"
        stmt = select(FoodItem).where(or_(FoodItem.name.ilike(like), FoodItem.brand.ilike(like)))
        if category:
            stmt = stmt.where(FoodItem.category == category)
        return await self.paginate(stmt, FoodItem.verified.desc(), FoodItem.name.asc(), limit=limit, offset=0)

    async def categories(self) -> List[str]:
        stmt = select(FoodItem.category).distinct().order_by(FoodItem.category.asc())
        return [c for c in await self.scalars(stmt) if c]

    async def popular(self, limit: int = 20) -> List[FoodItem]:
        stmt = (
            select(FoodItem)
            .where(FoodItem.verified.is_(True), FoodItem.category.in_(POPULAR_CATEGORIES))
            .order_by(FoodItem.name.asc())
            .limit(limit)
        )
        return list(await self.scalars(stmt))

    async def get(self, food_id: UUID) -> Optional[FoodItem]:
        return await self.scalar_one_or_none(select(FoodItem).where(FoodItem.id == food_id))

    async def get_by_barcode(self, barcode: str) -> Optional[FoodItem]:
        return await self.scalar_one_or_none(select(FoodItem).where(FoodItem.barcode == barcode))

    async def get_by_name(self, name: str) -> Optional[FoodItem]:
        return await self.scalar_one_or_none(select(FoodItem).where(FoodItem.name == name).limit(1))

    async def create(self, values: Dict[str, Any]) -> FoodItem:
        item = FoodItem(**values)
        return await self.save(item)

    async def list_paginated(self, verified: Optional[bool], limit: int, offset: int) -> Tuple[List[FoodItem], int]:
        stmt = select(FoodItem)
        if verified is not None:
            stmt = stmt.where(FoodItem.verified.is_(verified))
        return await self.paginate(stmt, FoodItem.created_at.desc(), limit=limit, offset=offset)


class MealTemplateRepository(BaseRepository):
    """Repository for meal templates used by the planner."""

    async def candidates(self, max_cooking_time: int, complexities: Sequence[str]) -> List[MealTemplate]:
        """Templates within the time and complexity limits; diet/allergen filters run in Python (JSON lists)."""
        stmt = (
            select(MealTemplate)
            .where(
                MealTemplate.cooking_time_minutes <= max_cooking_time,
                MealTemplate.complexity.in_(list(complexities)),
            )
            .order_by(MealTemplate.name.asc())
        )
        return list(await self.scalars(stmt))

    async def get_by_name(self, name: str) -> Optional[MealTemplate]:
        return await self.scalar_one_or_none(select(MealTemplate).where(MealTemplate.name == name).limit(1))

    async def create(self, values: Dict[str, Any]) -> MealTemplate:
        template = MealTemplate(**values)
        return await self.save(template)
