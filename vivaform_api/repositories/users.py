from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import Select, func, or_, select

from vivaform_api.db.models.tracking import NutritionEntry, Recommendation, WaterEntry, WeightEntry
from vivaform_api.db.models.users import Profile, User
from .base import BaseRepository

SORTABLE_USER_COLUMNS = {
    "created_at": User.created_at,
    "email": User.email,
    "name": User.name,
    "role": User.role,
    "tier": User.tier,
}


class UserRepository(BaseRepository):
    """Repository for user accounts and their body profile."""

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        stmt = select(User).where(User.id == user_id)
        return await self.scalar_one_or_none(stmt)

    async def get_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(func.lower(User.email) == email.strip().lower())
        return await self.scalar_one_or_none(stmt)

    async def get_by_verification_token(self, token_hash: str) -> Optional[User]:
        stmt = select(User).where(User.email_verification_token == token_hash)
        return await self.scalar_one_or_none(stmt)

    async def create(
        self,
        *,
        email: str,
        password_hash: str,
        name: Optional[str] = None,
        role: str = "USER",
        tier: str = "FREE",
        email_verification_token: Optional[str] = None,
    ) -> User:
        user = User(
            email=email.strip().lower(),
            password_hash=password_hash,
            name=name,
            role=role,
            tier=tier,
            email_verification_token=email_verification_token,
        )
        return await self.save(user)

    async def get_profile(self, user_id: UUID) -> Optional[Profile]:
        stmt = select(Profile).where(Profile.user_id == user_id)
        return await self.scalar_one_or_none(stmt)

    async def upsert_profile(self, user_id: UUID, values: Dict[str, Any]) -> Profile:
        profile = await self.get_profile(user_id)
        if profile is None:
            profile = Profile(user_id=user_id, food_allergies=[], avoided_foods=[])
        for key, value in values.items():
            setattr(profile, key, value)
        return await self.save(profile)

    async def list_user_ids_with_profile(self) -> List[UUID]:
        stmt = select(Profile.user_id).order_by(Profile.created_at.asc())
        return list(await self.scalars(stmt))

    # Back-office listing
    def filtered_users(
        self,
        *,
        q: Optional[str] = None,
        role: Optional[str] = None,
        tier: Optional[str] = None,
        reg_from: Optional[datetime] = None,
        reg_to: Optional[datetime] = None,
    ) -> Select:
        stmt = select(User)
        if q:
            like = f"%{q.strip()}%"
            stmt = stmt.where(or_(User.email.ilike(like), User.name.ilike(like)))
        if role:
            stmt = stmt.where(User.role == role)
        if tier:
            stmt = stmt.where(User.tier == tier)
        if reg_from:
            stmt = stmt.where(User.created_at >= reg_from)
        if reg_to:
            stmt = stmt.where(User.created_at <= reg_to)
        return stmt

    async def list_users_with_counts(
        self,
        stmt: Select,
        *,
        sort_by: str = "created_at",
        sort_dir: str = "desc",
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> Tuple[List[Tuple[User, Dict[str, int]]], int]:
        """Apply sorting/paging to a user select and attach per-user entry counts."""
        total = await self.count(stmt)
        column = SORTABLE_USER_COLUMNS.get(sort_by, User.created_at)
        ordered = column.asc() if sort_dir.lower() == "asc" else column.desc()

        counts = {
            "nutrition": _count_for(NutritionEntry),
            "water": _count_for(WaterEntry),
            "weight": _count_for(WeightEntry),
            "recommendations": _count_for(Recommendation),
        }
        paged = stmt.add_columns(*[c.label(name) for name, c in counts.items()]).order_by(ordered).offset(offset)
        if limit is not None:
            paged = paged.limit(limit)
        result = await self.execute(paged)
        rows = []
        for row in result.all():
            user = row[0]
            rows.append((user, {name: int(row[i + 1] or 0) for i, name in enumerate(counts)}))
        return rows, total

    async def entry_counts(self, user_id: UUID) -> Dict[str, int]:
        out: Dict[str, int] = {}
        for name, model in (
            ("nutrition", NutritionEntry),
            ("water", WaterEntry),
            ("weight", WeightEntry),
            ("recommendations", Recommendation),
        ):
            result = await self.execute(select(func.count(model.id)).where(model.user_id == user_id))
            out[name] = int(result.scalar_one())
        return out

    async def count_users(
        self,
        *,
        tier: Optional[str] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
        updated_from: Optional[datetime] = None,
    ) -> int:
        stmt = select(func.count(User.id))
        if tier:
            stmt = stmt.where(User.tier == tier)
        if created_from:
            stmt = stmt.where(User.created_at >= created_from)
        if created_to:
            stmt = stmt.where(User.created_at <= created_to)
        if updated_from:
            stmt = stmt.where(User.updated_at >= updated_from)
        result = await self.execute(stmt)
        return int(result.scalar_one())

    async def count_active_since(self, since: datetime) -> int:
        """Users that logged nutrition, water or weight since `since`."""
        ids = set()
        for model in (NutritionEntry, WaterEntry, WeightEntry):
            stmt = select(model.user_id).where(model.created_at >= since).distinct()
            ids.update(await self.scalars(stmt))
        return len(ids)

    async def registration_dates(self, start: datetime, end: datetime) -> List[datetime]:
        stmt = select(User.created_at).where(User.created_at >= start, User.created_at <= end)
        return list(await self.scalars(stmt))


def _count_for(model):
    return (
        select(func.count(model.id))
        .where(model.user_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )
