from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.core.dates import day_key, ensure_utc, utcnow
from vivaform_api.core.numbers import round_half_up
from vivaform_api.repositories.tracking import NutritionRepository, RecommendationRepository, WaterRepository
from vivaform_api.repositories.users import UserRepository
from vivaform_api.services.base import BaseService
from vivaform_api.services.tracking import WeightService

logger = logging.getLogger(__name__)

ANALYSIS_WINDOW_DAYS = 7
MAX_RECOMMENDATIONS = 3
NO_WEIGH_IN_DAYS = 999


@dataclass
class AnalysisData:
    """Weekly averages and targets the rules are evaluated against."""
    user_id: UUID
    average_calories: int
    target_calories: Optional[float]
    average_protein: int
    target_protein: Optional[int]
    average_water: int
    target_water: Optional[int]
    weight_delta: float
    days_since_last_weight: int
    last_week_entries: int


@dataclass
class RecommendationRule:
    condition: Callable[[AnalysisData], bool]
    title: str
    body: str
    priority: int  # 1 = highest


def _signed(value: float) -> str:
    return f"{'+' if value >= 0 else ''}{value:.1f}"


def _target(value) -> str:
    return f"{value:g}" if isinstance(value, float) else str(value)


# PUBLIC_INTERFACE
def apply_rules(d: AnalysisData) -> List[RecommendationRule]:
    """Return the rules that match `d`, highest priority first."""
    rules = [
        RecommendationRule(
            lambda d: d.target_protein is not None and d.average_protein < d.target_protein * 0.7,
            "Increase your protein intake",
            f"You're averaging {d.average_protein}g of protein per day, which is below your target of "
            f"{d.target_protein}g. Try adding lean meats, fish, eggs, or legumes to your meals.",
            1,
        ),
        RecommendationRule(
            lambda d: d.target_calories is not None and d.average_calories < d.target_calories * 0.8,
            "You're eating too few calories",
            f"Your average daily intake ({d.average_calories} kcal) is significantly below your recommended "
            f"{_target(d.target_calories)} kcal. This may slow your metabolism. "
            "Consider adding healthy snacks between meals.",
            1,
        ),
        RecommendationRule(
            lambda d: d.target_calories is not None and d.average_calories > d.target_calories * 1.2,
            "Calorie intake is above target",
            f"You're consuming around {d.average_calories} kcal per day, which exceeds your target of "
            f"{_target(d.target_calories)} kcal. Try reducing portion sizes or choosing lower-calorie alternatives.",
            2,
        ),
        RecommendationRule(
            lambda d: d.target_water is not None and d.average_water < d.target_water * 0.6,
            "Drink more water",
            f"You're only drinking {d.average_water}ml of water per day on average. Your goal is "
            f"{d.target_water}ml. Set reminders throughout the day to stay hydrated.",
            2,
        ),
        RecommendationRule(
            lambda d: abs(d.weight_delta) < 0.2 and d.days_since_last_weight <= 14,
            "Weight plateau detected",
            f"Your weight hasn't changed much in the past 2 weeks ({_signed(d.weight_delta)} kg). "
            "Consider adjusting your activity level or reviewing your meal portions.",
            3,
        ),
        RecommendationRule(
            lambda d: d.days_since_last_weight > 7,
            "Time to weigh yourself",
            f"It's been {d.days_since_last_weight} days since your last weigh-in. Regular tracking helps you "
            "stay on course. Step on the scale to see your progress!",
            3,
        ),
        RecommendationRule(
            lambda d: d.average_calories > 0
            and d.target_calories is not None
            and abs(d.average_calories - d.target_calories) < d.target_calories * 0.1,
            "You're doing great!",
            f"Your calorie intake ({d.average_calories} kcal) is right on target! "
            "Keep up the excellent work with your nutrition tracking.",
            4,
        ),
        RecommendationRule(
            lambda d: d.target_water is not None and d.target_water * 0.9 <= d.average_water <= d.target_water * 1.1,
            "Perfect hydration!",
            f"You're drinking {d.average_water}ml of water daily, which is perfect for your "
            f"{d.target_water}ml goal. Stay hydrated!",
            5,
        ),
    ]
    # sorted() is stable, so equal priorities keep declaration order
    return sorted((rule for rule in rules if rule.condition(d)), key=lambda rule: rule.priority)


class RecommendationGenerator(BaseService):
    """Rule-based recommendations from the last week of tracking data."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.users = UserRepository(session)
        self.nutrition = NutritionRepository(session)
        self.water = WaterRepository(session)
        self.recommendations = RecommendationRepository(session)
        self.weight = WeightService(session)

    async def collect(self, user_id: UUID) -> AnalysisData:
        now = utcnow()
        since = now - timedelta(days=ANALYSIS_WINDOW_DAYS)
        profile = await self.users.get_profile(user_id)
        nutrition = await self.nutrition.list_between(user_id, since, None)
        water = await self.water.list_between(user_id, since, None)
        progress = await self.weight.progress(user_id, limit=14)
        latest = await self.weight.latest(user_id)

        daily_nutrition: Dict[str, Dict[str, float]] = defaultdict(lambda: {"calories": 0.0, "protein": 0.0})
        for entry in nutrition:
            bucket = daily_nutrition[day_key(entry.date)]
            bucket["calories"] += entry.calories
            bucket["protein"] += entry.protein
        daily_water: Dict[str, int] = defaultdict(int)
        for entry in water:
            daily_water[day_key(entry.date)] += entry.amount_ml

        days = len(daily_nutrition)
        avg_calories = sum(d["calories"] for d in daily_nutrition.values()) / days if days else 0
        avg_protein = sum(d["protein"] for d in daily_nutrition.values()) / days if days else 0
        avg_water = sum(daily_water.values()) / len(daily_water) if daily_water else 0

        since_weigh_in = (now - ensure_utc(latest.date)).days if latest else NO_WEIGH_IN_DAYS
        target_calories = profile.recommended_calories if profile and profile.recommended_calories else None

        return AnalysisData(
            user_id=user_id,
            average_calories=round_half_up(avg_calories),
            target_calories=target_calories,
            average_protein=round_half_up(avg_protein),
            target_protein=round_half_up(target_calories * 0.25 / 4) if target_calories else None,
            average_water=round_half_up(avg_water),
            target_water=profile.daily_water_ml if profile and profile.daily_water_ml else None,
            weight_delta=progress.delta,
            days_since_last_weight=since_weigh_in,
            last_week_entries=len(nutrition) + len(water),
        )

    # PUBLIC_INTERFACE
    async def generate_for_user(self, user_id: UUID) -> int:
        """Store up to three matching recommendations; returns how many were created."""
        data = await self.collect(user_id)
        if data.last_week_entries == 0:
            return 0
        top = apply_rules(data)[:MAX_RECOMMENDATIONS]
        if top:
            now = utcnow()
            await self.recommendations.bulk_create(
                user_id, [{"title": r.title, "body": r.body, "date": now} for r in top]
            )
        logger.info("Generated %d recommendations for user %s", len(top), user_id)
        return len(top)

    # PUBLIC_INTERFACE
    async def generate_for_all_users(self) -> int:
        """Run the generator for every user with a profile; a failing user is logged and skipped."""
        user_ids = await self.users.list_user_ids_with_profile()
        generated = 0
        for user_id in user_ids:
            try:
                generated += await self.generate_for_user(user_id)
            except Exception:
                logger.exception("Failed to generate recommendations for user %s", user_id)
                await self.session.rollback()
        logger.info("Generated %d recommendations for %d users", generated, len(user_ids))
        return generated
