from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.core.dates import ensure_utc, get_day_range, parse_date, utcnow
from vivaform_api.db.models.tracking import NutritionEntry, Recommendation, WaterEntry, WeightEntry
from vivaform_api.repositories.tracking import (
    NutritionRepository,
    RecommendationRepository,
    WaterRepository,
    WeightRepository,
)
from vivaform_api.schemas.tracking import (
    NutritionEntryCreate,
    NutritionSummary,
    RecommendationCreate,
    WaterEntryCreate,
    WeightEntryCreate,
    WeightEntryRead,
    WeightProgress,
)
from vivaform_api.services.base import BaseService

logger = logging.getLogger(__name__)


def _entry_date(value) -> object:
    return ensure_utc(value) if value is not None else utcnow()


class NutritionService(BaseService):
    """Daily nutrition log."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = NutritionRepository(session)

    # PUBLIC_INTERFACE
    async def create(self, user_id: UUID, payload: NutritionEntryCreate) -> NutritionEntry:
        """Store an entry; date defaults to now."""
        values = payload.model_dump()
        values["date"] = _entry_date(payload.date)
        return await self.repo.create(user_id, values)

    # PUBLIC_INTERFACE
    async def list_for_day(self, user_id: UUID, date: Optional[str] = None) -> List[NutritionEntry]:
        """Entries of the day containing `date`, ascending."""
        start, end = get_day_range(date)
        return await self.repo.list_between(user_id, start, end)

    # PUBLIC_INTERFACE
    async def summary(self, user_id: UUID, date: Optional[str] = None) -> NutritionSummary:
        """Calories and macro totals for the day."""
        start, end = get_day_range(date)
        return NutritionSummary(**await self.repo.summary(user_id, start, end))

    # PUBLIC_INTERFACE
    async def delete(self, user_id: UUID, entry_id: UUID) -> None:
        """
        Delete one of the user's entries.

        Raises:
            HTTPException: 404 when the entry does not exist or belongs to someone else.
        """
        entry = self.require(await self.repo.get_for_user(user_id, entry_id), "Nutrition entry")
        await self.repo.remove(entry)


class WaterService(BaseService):
    """Daily water intake log."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = WaterRepository(session)

    async def create(self, user_id: UUID, payload: WaterEntryCreate) -> WaterEntry:
        return await self.repo.create(user_id, {"amount_ml": payload.amount_ml, "date": _entry_date(payload.date)})

    async def list_for_day(self, user_id: UUID, date: Optional[str] = None) -> List[WaterEntry]:
        start, end = get_day_range(date)
        return await self.repo.list_between(user_id, start, end)

    async def total_for_day(self, user_id: UUID, date: Optional[str] = None) -> int:
        start, end = get_day_range(date)
        return await self.repo.total(user_id, start, end)


class WeightService(BaseService):
    """Weigh-ins, history and progress."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = WeightRepository(session)

    async def create(self, user_id: UUID, payload: WeightEntryCreate) -> WeightEntry:
        return await self.repo.create(
            user_id,
            {"weight_kg": payload.weight_kg, "note": payload.note, "date": _entry_date(payload.date)},
        )

    async def latest(self, user_id: UUID) -> Optional[WeightEntry]:
        entries = await self.repo.latest(user_id)
        return entries[0] if entries else None

    # PUBLIC_INTERFACE
    async def history(
        self,
        user_id: UUID,
        *,
        date: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        limit: int = 30,
    ) -> List[WeightEntry]:
        """
        Weight history. A `date` selects that day; otherwise `from`/`to` bound the range.

        The newest `limit` entries are selected and returned oldest first.
        """
        if date:
            start, end = get_day_range(date)
        else:
            start, end = parse_date(date_from), parse_date(date_to)
        newest = await self.repo.list_between(user_id, start, end, newest_first=True, limit=limit)
        return list(reversed(newest))

    # PUBLIC_INTERFACE
    async def progress(self, user_id: UUID, limit: int = 30) -> WeightProgress:
        """Delta between the oldest and newest of the last `limit` entries (2 dp)."""
        entries = await self.history(user_id, limit=limit)
        if not entries:
            return WeightProgress(delta=0, start=None, end=None)
        start, end = entries[0], entries[-1]
        return WeightProgress(
            delta=round(end.weight_kg - start.weight_kg, 2),
            start=WeightEntryRead.model_validate(start),
            end=WeightEntryRead.model_validate(end),
        )


class RecommendationService(BaseService):
    """Manually created and generated recommendation cards."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = RecommendationRepository(session)

    async def create(self, user_id: UUID, payload: RecommendationCreate) -> Recommendation:
        return await self.repo.create(
            user_id, {"title": payload.title, "body": payload.body, "date": _entry_date(payload.date)}
        )

    async def list_for_day(self, user_id: UUID, date: Optional[str] = None) -> List[Recommendation]:
        start, end = get_day_range(date)
        return await self.repo.list_between(user_id, start, end, newest_first=True)

    async def latest(self, user_id: UUID, limit: int = 5) -> List[Recommendation]:
        return await self.repo.latest(user_id, limit=limit)
