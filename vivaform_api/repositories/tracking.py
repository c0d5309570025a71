from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Type
from uuid import UUID

from sqlalchemy import func, select

from vivaform_api.db.models.tracking import NutritionEntry, Recommendation, WaterEntry, WeightEntry
from .base import BaseRepository


class UserEntryRepository(BaseRepository):
    """
    Shared queries for per-user dated entries (nutrition, water, weight, recommendations).

    Subclasses set `model`; every query is scoped to a single user.
    """

    model: Type[Any]

    async def create(self, user_id: UUID, values: Dict[str, Any]):
        entry = self.model(user_id=user_id, **{k: v for k, v in values.items() if v is not None})
        return await self.save(entry)

    async def bulk_create(self, user_id: UUID, items: List[Dict[str, Any]]) -> List[Any]:
        entries = [self.model(user_id=user_id, **item) for item in items]
        await self.add_all(entries)
        await self.commit()
        return entries

    async def get_for_user(self, user_id: UUID, entry_id: UUID):
        stmt = select(self.model).where(self.model.id == entry_id, self.model.user_id == user_id)
        return await self.scalar_one_or_none(stmt)

    async def list_between(
        self,
        user_id: UUID,
        start: Optional[datetime],
        end: Optional[datetime],
        *,
        newest_first: bool = False,
        limit: Optional[int] = None,
    ) -> List[Any]:
        stmt = select(self.model).where(self.model.user_id == user_id)
        if start is not None:
            stmt = stmt.where(self.model.date >= start)
        if end is not None:
            stmt = stmt.where(self.model.date <= end)
        order = self.model.date.desc() if newest_first else self.model.date.asc()
        stmt = stmt.order_by(order)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(await self.scalars(stmt))

    async def latest(self, user_id: UUID, limit: int = 1) -> List[Any]:
        return await self.list_between(user_id, None, None, newest_first=True, limit=limit)

    async def dated_values(self, user_id: UUID, column, since: Optional[datetime] = None) -> List[tuple]:
        """(date, value) pairs of one column for a user, oldest first."""
        stmt = select(self.model.date, column).where(self.model.user_id == user_id)
        if since is not None:
            stmt = stmt.where(self.model.date >= since)
        result = await self.execute(stmt.order_by(self.model.date.asc()))
        return [tuple(row) for row in result.all()]


class NutritionRepository(UserEntryRepository):
    model = NutritionEntry

    async def summary(self, user_id: UUID, start: datetime, end: datetime) -> Dict[str, float]:
        stmt = select(
            func.coalesce(func.sum(NutritionEntry.calories), 0),
            func.coalesce(func.sum(NutritionEntry.protein), 0.0),
            func.coalesce(func.sum(NutritionEntry.fat), 0.0),
            func.coalesce(func.sum(NutritionEntry.carbs), 0.0),
        ).where(
            NutritionEntry.user_id == user_id,
            NutritionEntry.date >= start,
            NutritionEntry.date <= end,
        )
        calories, protein, fat, carbs = (await self.execute(stmt)).one()
        return {
            "calories": int(calories or 0),
            "protein": float(protein or 0),
            "fat": float(fat or 0),
            "carbs": float(carbs or 0),
        }


class WaterRepository(UserEntryRepository):
    model = WaterEntry

    async def total(self, user_id: UUID, start: datetime, end: datetime) -> int:
        stmt = select(func.coalesce(func.sum(WaterEntry.amount_ml), 0)).where(
            WaterEntry.user_id == user_id,
            WaterEntry.date >= start,
            WaterEntry.date <= end,
        )
        return int((await self.execute(stmt)).scalar_one() or 0)


class WeightRepository(UserEntryRepository):
    model = WeightEntry


class RecommendationRepository(UserEntryRepository):
    model = Recommendation
