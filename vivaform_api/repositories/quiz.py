from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy import select

from vivaform_api.db.models.users import QuizLead, QuizProfile
from .base import BaseRepository


class QuizProfileRepository(BaseRepository):
    """Repository for stored quiz answers."""

    async def get_for_user(self, user_id: UUID) -> Optional[QuizProfile]:
        return await self.scalar_one_or_none(select(QuizProfile).where(QuizProfile.user_id == user_id))


class QuizLeadRepository(BaseRepository):
    """Repository for mid-funnel email captures."""

    async def get(self, email: str, client_id: str) -> Optional[QuizLead]:
        stmt = select(QuizLead).where(QuizLead.email == email, QuizLead.client_id == client_id)
        return await self.scalar_one_or_none(stmt)
