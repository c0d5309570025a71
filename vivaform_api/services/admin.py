from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID

import pandas as pd
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.core.dates import day_key, ensure_utc, get_day_range, parse_date, utcnow
from vivaform_api.core.settings import get_app_settings
from vivaform_api.db.models.catalog import FoodItem, MealTemplate
from vivaform_api.db.models.tracking import NutritionEntry, Recommendation, WaterEntry, WeightEntry
from vivaform_api.db.models.users import User
from vivaform_api.repositories.admin import AppSettingRepository, AuditLogRepository, count_rows
from vivaform_api.repositories.billing import SubscriptionRepository
from vivaform_api.repositories.catalog import FoodRepository
from vivaform_api.repositories.users import UserRepository
from vivaform_api.schemas.admin import (
    AdminSubscriptionList,
    AdminSubscriptionRow,
    AdminUserDetail,
    AdminUserList,
    AdminUserRow,
    AuditLogList,
    AuditLogRead,
    EntryCounts,
    FoodList,
    NewUsersPoint,
    NewUsersTrend,
    OverviewKpis,
    SettingsPatchResult,
    SubscriptionsDistribution,
    SystemStats,
    TrendPoint,
    UserStats,
)
from vivaform_api.schemas.common import page_info, page_offset
from vivaform_api.schemas.foods import FoodItemRead
from vivaform_api.schemas.subscriptions import SubscriptionRead
from vivaform_api.schemas.users import ProfileRead
from vivaform_api.services.audit import AuditAction, AuditService
from vivaform_api.services.base import BaseService

logger = logging.getLogger(__name__)

# Keys the back-office may change through PATCH /admin/settings
SETTINGS_WHITELIST = (
    "app.name",
    "app.support_email",
    "app.maintenance_mode",
    "quiz.default_version",
    "billing.trial_days",
    "recommendations.enabled",
)

DEFAULT_OVERVIEW_DAYS = 30

EXPORT_COLUMNS = [
    "id",
    "email",
    "name",
    "role",
    "tier",
    "email_verified",
    "created_at",
    "nutrition_entries",
    "water_entries",
    "weight_entries",
    "recommendations",
]


def _user_row(user: User, counts: Dict[str, int]) -> AdminUserRow:
    row = AdminUserRow.model_validate(user)
    row.counts = EntryCounts(**counts)
    return row


# PUBLIC_INTERFACE
def resolve_period(date_from: Optional[str], date_to: Optional[str], default_days: int = DEFAULT_OVERVIEW_DAYS):
    """
    Turn optional ISO `from`/`to` query values into an inclusive [start, end] range of whole days.

    Defaults to the last `default_days` days ending today.
    """
    _, end = get_day_range(date_to)
    if date_from:
        start, _ = get_day_range(date_from)
    else:
        start = (end - timedelta(days=default_days - 1)).replace(hour=0, minute=0, second=0, microsecond=0)
    if start > end:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="'from' must not be after 'to'")
    return start, end


def _days(start: datetime, end: datetime) -> List[str]:
    out = []
    cursor = start
    while cursor <= end:
        out.append(day_key(cursor))
        cursor += timedelta(days=1)
    return out


class AdminService(BaseService):
    """Back-office queries: users, statistics, overview charts, moderation, settings and audit browsing."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.users = UserRepository(session)
        self.subs = SubscriptionRepository(session)
        self.foods = FoodRepository(session)
        self.audit = AuditService(session)
        self.audit_log_repo = AuditLogRepository(session)
        self.settings_repo = AppSettingRepository(session)

    # Users
    def _user_filters(self, q, role, tier, reg_from, reg_to):
        reg_to_dt = get_day_range(reg_to)[1] if reg_to else None
        return self.users.filtered_users(
            q=q, role=role, tier=tier, reg_from=parse_date(reg_from), reg_to=reg_to_dt
        )

    # PUBLIC_INTERFACE
    async def list_users(
        self,
        *,
        q: Optional[str] = None,
        role: Optional[str] = None,
        tier: Optional[str] = None,
        reg_from: Optional[str] = None,
        reg_to: Optional[str] = None,
        sort_by: str = "created_at",
        sort_dir: str = "desc",
        page: int = 1,
        limit: int = 50,
    ) -> AdminUserList:
        """Filtered, sorted and paginated users with per-user entry counts."""
        stmt = self._user_filters(q, role, tier, reg_from, reg_to)
        rows, total = await self.users.list_users_with_counts(
            stmt, sort_by=sort_by, sort_dir=sort_dir, limit=limit, offset=page_offset(page, limit)
        )
        return AdminUserList(
            users=[_user_row(user, counts) for user, counts in rows], pagination=page_info(page, limit, total)
        )

    # PUBLIC_INTERFACE
    async def users_frame(
        self,
        *,
        actor: User,
        export_format: str,
        q: Optional[str] = None,
        role: Optional[str] = None,
        tier: Optional[str] = None,
        reg_from: Optional[str] = None,
        reg_to: Optional[str] = None,
        sort_by: str = "created_at",
        sort_dir: str = "desc",
    ) -> pd.DataFrame:
        """All users matching the filters as a DataFrame for export; the export is audited."""
        stmt = self._user_filters(q, role, tier, reg_from, reg_to)
        rows, total = await self.users.list_users_with_counts(stmt, sort_by=sort_by, sort_dir=sort_dir)
        records = [
            {
                "id": str(user.id),
                "email": user.email,
                "name": user.name or "",
                "role": user.role,
                "tier": user.tier,
                "email_verified": user.email_verified,
                "created_at": ensure_utc(user.created_at).strftime("%Y-%m-%d %H:%M"),
                "nutrition_entries": counts["nutrition"],
                "water_entries": counts["water"],
                "weight_entries": counts["weight"],
                "recommendations": counts["recommendations"],
            }
            for user, counts in rows
        ]
        await self.audit.log_data_export(
            actor.id,
            {"resource": "users", "format": export_format, "rows": total, "filters": {"q": q, "role": role, "tier": tier}},
        )
        return pd.DataFrame.from_records(records, columns=EXPORT_COLUMNS)

    async def _get_user(self, user_id: UUID) -> User:
        return self.require(await self.users.get_by_id(user_id), "User")

    # PUBLIC_INTERFACE
    async def user_details(self, user_id: UUID) -> AdminUserDetail:
        """User with body profile, subscription and entry counts."""
        user = await self._get_user(user_id)
        profile = await self.users.get_profile(user_id)
        sub = await self.subs.get_for_user(user_id)
        counts = await self.users.entry_counts(user_id)
        return AdminUserDetail(
            user=_user_row(user, counts),
            profile=ProfileRead.model_validate(profile) if profile else None,
            subscription=SubscriptionRead.model_validate(sub) if sub else None,
        )

    # PUBLIC_INTERFACE
    async def update_role(self, user_id: UUID, role: str, actor: User) -> AdminUserRow:
        """Change a user's role and audit the change."""
        user = await self._get_user(user_id)
        previous = user.role
        user.role = role
        user = await self.users.save(user)
        logger.info("Role of %s changed %s -> %s by %s", user.id, previous, role, actor.id)
        await self.audit.log(
            AuditAction.USER_ROLE_CHANGED,
            user_id=actor.id,
            actor_email=actor.email,
            entity="user",
            entity_id=str(user.id),
            metadata={"from": previous, "to": role},
        )
        return _user_row(user, await self.users.entry_counts(user.id))

    # Stats
    async def user_stats(self) -> UserStats:
        now = utcnow()
        today_start, _ = get_day_range()
        return UserStats(
            total_users=await self.users.count_users(),
            free_users=await self.users.count_users(tier="FREE"),
            premium_users=await self.users.count_users(tier="PREMIUM"),
            active_today=await self.users.count_active_since(today_start),
            new_this_week=await self.users.count_users(created_from=now - timedelta(days=7)),
        )

    async def system_stats(self) -> SystemStats:
        return SystemStats(
            nutrition_entries=await count_rows(self.users, NutritionEntry),
            water_entries=await count_rows(self.users, WaterEntry),
            weight_entries=await count_rows(self.users, WeightEntry),
            recommendations=await count_rows(self.users, Recommendation),
            food_items=await count_rows(self.users, FoodItem),
            meal_templates=await count_rows(self.users, MealTemplate),
        )

    # Overview
    def _monthly_amount(self, price_id: Optional[str]) -> float:
        settings = get_app_settings()
        return settings.monthly_amount(settings.plan_for_price(price_id))

    # PUBLIC_INTERFACE
    async def overview_kpis(self, date_from: Optional[str], date_to: Optional[str]) -> OverviewKpis:
        """Headline numbers for the period: users, premium share and an MRR estimate."""
        start, end = resolve_period(date_from, date_to)
        total = await self.users.count_users(created_to=end)
        premium = await self.users.count_users(tier="PREMIUM", created_to=end)
        active = await self.subs.list_active()
        mrr = sum(self._monthly_amount(sub.stripe_price_id) for sub in active)
        return OverviewKpis(
            period_from=start.date(),
            period_to=end.date(),
            total_users=total,
            new_users=await self.users.count_users(created_from=start, created_to=end),
            premium_users=premium,
            active_subscriptions=len(active),
            mrr_estimate=round(mrr, 2),
            conversion_rate=round(premium / total * 100, 2) if total else 0.0,
        )

    # PUBLIC_INTERFACE
    async def revenue_trend(self, date_from: Optional[str], date_to: Optional[str]) -> List[TrendPoint]:
        """MRR estimate at the end of each day, counting subscriptions that are currently active."""
        start, end = resolve_period(date_from, date_to)
        active = [
            (ensure_utc(sub.created_at), self._monthly_amount(sub.stripe_price_id))
            for sub in await self.subs.list_active()
        ]
        points = []
        for key in _days(start, end):
            _, day_end = get_day_range(key)
            value = sum(amount for created, amount in active if created <= day_end)
            points.append(TrendPoint(date=day_end.date(), value=round(value, 2)))
        return points

    # PUBLIC_INTERFACE
    async def new_users(self, date_from: Optional[str], date_to: Optional[str], compare: bool = False) -> NewUsersTrend:
        """Daily registrations, optionally aligned with the preceding period of the same length."""
        start, end = resolve_period(date_from, date_to)
        days = _days(start, end)
        counts = _bucket(await self.users.registration_dates(start, end))
        points = [NewUsersPoint(date=parse_date(key).date(), count=counts.get(key, 0)) for key in days]

        previous_total = None
        if compare:
            span = timedelta(days=len(days))
            prev_start, prev_end = start - span, start - timedelta(milliseconds=1)
            prev_counts = _bucket(await self.users.registration_dates(prev_start, prev_end))
            prev_days = _days(prev_start, prev_end)
            for point, key in zip(points, prev_days):
                point.previous = prev_counts.get(key, 0)
            previous_total = sum(prev_counts.values())
        return NewUsersTrend(points=points, total=sum(p.count for p in points), previous_total=previous_total)

    # PUBLIC_INTERFACE
    async def subscriptions_distribution(self) -> SubscriptionsDistribution:
        """Subscription counts by Stripe status and by plan."""
        settings = get_app_settings()
        by_status: Dict[str, int] = {}
        by_plan: Dict[str, int] = {}
        for sub in await self.subs.list_all():
            by_status[sub.status] = by_status.get(sub.status, 0) + 1
            plan = settings.plan_for_price(sub.stripe_price_id) or "unknown"
            by_plan[plan] = by_plan.get(plan, 0) + 1
        return SubscriptionsDistribution(by_status=by_status, by_plan=by_plan)

    # Foods
    async def list_foods(self, verified: Optional[bool], page: int, limit: int) -> FoodList:
        items, total = await self.foods.list_paginated(verified, limit, page_offset(page, limit))
        return FoodList(foods=[FoodItemRead.model_validate(i) for i in items], pagination=page_info(page, limit, total))

    async def _get_food(self, food_id: UUID) -> FoodItem:
        return self.require(await self.foods.get(food_id), "Food item")

    async def verify_food(self, food_id: UUID, verified: bool, actor: User) -> FoodItem:
        item = await self._get_food(food_id)
        item.verified = verified
        await self.foods.add(item)
        await self.foods.commit()
        await self.audit.log(
            AuditAction.FOOD_VERIFIED,
            user_id=actor.id,
            actor_email=actor.email,
            entity="food_item",
            entity_id=str(item.id),
            metadata={"verified": verified},
        )
        return item

    async def delete_food(self, food_id: UUID, actor: User) -> None:
        item = await self._get_food(food_id)
        name = item.name
        await self.foods.delete(item)
        await self.foods.commit()
        await self.audit.log(
            AuditAction.FOOD_DELETED,
            user_id=actor.id,
            actor_email=actor.email,
            entity="food_item",
            entity_id=str(food_id),
            metadata={"name": name},
        )

    # Subscriptions
    # PUBLIC_INTERFACE
    async def list_subscriptions(
        self, status_filter: Optional[str], plan: Optional[str], page: int, limit: int
    ) -> AdminSubscriptionList:
        """Subscriptions with the plan resolved from the Stripe price id."""
        settings = get_app_settings()
        price_id = None
        if plan:
            price_id = settings.price_for_plan(plan)
            if not price_id:
                return AdminSubscriptionList(subscriptions=[], pagination=page_info(page, limit, 0))
        items, total = await self.subs.list_paginated(
            status=status_filter, price_id=price_id, limit=limit, offset=page_offset(page, limit)
        )
        rows = []
        for sub in items:
            row = AdminSubscriptionRow.model_validate(sub)
            row.plan = settings.plan_for_price(sub.stripe_price_id)
            rows.append(row)
        return AdminSubscriptionList(subscriptions=rows, pagination=page_info(page, limit, total))

    # Settings
    async def get_settings(self) -> Dict[str, Any]:
        return await self.settings_repo.as_dict()

    # PUBLIC_INTERFACE
    async def patch_settings(self, values: Dict[str, Any], actor: User) -> SettingsPatchResult:
        """Apply whitelisted keys only; unknown keys are reported back as ignored."""
        accepted = {k: v for k, v in values.items() if k in SETTINGS_WHITELIST}
        ignored = sorted(k for k in values if k not in SETTINGS_WHITELIST)
        if accepted:
            await self.settings_repo.upsert_many(accepted)
            await self.audit.log(
                AuditAction.SETTINGS_UPDATED,
                user_id=actor.id,
                actor_email=actor.email,
                entity="settings",
                metadata={"keys": sorted(accepted)},
            )
        return SettingsPatchResult(
            updated=sorted(accepted), ignored=ignored, settings=await self.settings_repo.as_dict()
        )

    # Audit
    async def audit_logs(
        self,
        *,
        action: Optional[str],
        entity: Optional[str],
        user_id: Optional[UUID],
        page: int,
        limit: int,
    ) -> AuditLogList:
        logs, total = await self.audit_log_repo.list_paginated(
            action=action, entity=entity, user_id=user_id, limit=limit, offset=page_offset(page, limit)
        )
        return AuditLogList(
            logs=[AuditLogRead.model_validate(entry) for entry in logs],
            total=total,
            page=page,
            limit=limit,
            pages=(total + limit - 1) // limit,
        )


def _bucket(values: List[datetime]) -> Dict[str, int]:
    out: Dict[str, int] = {}
    for value in values:
        key = day_key(value)
        out[key] = out.get(key, 0) + 1
    return out
