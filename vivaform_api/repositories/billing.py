from __future__ import annotations

from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select

from vivaform_api.db.models.billing import ACTIVE_STATUSES, Subscription
from .base import BaseRepository


class SubscriptionRepository(BaseRepository):
    """Repository for Stripe subscription mirrors."""

    async def get_for_user(self, user_id: UUID) -> Optional[Subscription]:
        return await self.scalar_one_or_none(select(Subscription).where(Subscription.user_id == user_id))

    async def get_by_customer(self, customer_id: str) -> Optional[Subscription]:
        stmt = select(Subscription).where(Subscription.stripe_customer_id == customer_id).limit(1)
        return await self.scalar_one_or_none(stmt)

    async def list_paginated(
        self,
        *,
        status: Optional[str],
        price_id: Optional[str],
        limit: int,
        offset: int,
    ) -> Tuple[List[Subscription], int]:
        stmt = select(Subscription)
        if status:
            stmt = stmt.where(Subscription.status == status)
        if price_id:
            stmt = stmt.where(Subscription.stripe_price_id == price_id)
        return await self.paginate(stmt, Subscription.created_at.desc(), limit=limit, offset=offset)

    async def list_active(self) -> List[Subscription]:
        stmt = select(Subscription).where(Subscription.status.in_(ACTIVE_STATUSES))
        return list(await self.scalars(stmt))

    async def count_by_status(self, status: str) -> int:
        result = await self.execute(select(func.count(Subscription.id)).where(Subscription.status == status))
        return int(result.scalar_one())

    async def list_all(self) -> List[Subscription]:
        return list(await self.scalars(select(Subscription)))
