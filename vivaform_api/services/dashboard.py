from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date as date_type, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Set
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.core.dates import day_key, get_day_range, utcnow
from vivaform_api.core.numbers import round_half_up
from vivaform_api.db.models.tracking import NutritionEntry, WaterEntry
from vivaform_api.db.models.users import Profile
from vivaform_api.repositories.quiz import QuizProfileRepository
from vivaform_api.repositories.tracking import (
    NutritionRepository,
    RecommendationRepository,
    WaterRepository,
    WeightRepository,
)
from vivaform_api.repositories.users import UserRepository
from vivaform_api.schemas.dashboard import (
    Achievement,
    DailyDashboard,
    DailyInsight,
    DailyOverview,
    DashboardMetric,
    GoalProgress,
    HealthScore,
    HealthScoreBreakdown,
    MealTimelineEntry,
    NutritionBlock,
    PrimaryGoal,
    Streak,
    WaterBlock,
    WeeklyProgress,
    WeightBlock,
)
from vivaform_api.schemas.tracking import (
    NutritionEntryRead,
    NutritionSummary,
    RecommendationRead,
    WaterEntryRead,
    WeightEntryRead,
)
from vivaform_api.services.base import BaseService
from vivaform_api.services.tracking import WeightService

logger = logging.getLogger(__name__)

DEFAULT_TARGET_CALORIES = 2000
DEFAULT_TARGET_WATER = 2000
DEFAULT_ACTIVITY_SCORE = 70
DEFAULT_TARGET_PROTEIN = 120
DEFAULT_TARGET_CARBS = 200
DEFAULT_TARGET_FAT = 60
DEFAULT_TARGET_STEPS = 10000
EXPECTED_MEALS_PER_DAY = 3

MEAL_SLOTS = (("breakfast", "08:00"), ("lunch", "13:00"), ("snack", "16:00"), ("dinner", "19:00"))


# PUBLIC_INTERFACE
def calculate_health_score(
    calories: float,
    water_ml: float,
    meals_logged: int,
    target_calories: Optional[float] = None,
    target_water: float = DEFAULT_TARGET_WATER,
) -> HealthScore:
    """
    Combine four 0..100 percentages into one score and a trend label.

    Activity is a fixed baseline until activity data is tracked.
    """
    target_calories = target_calories or DEFAULT_TARGET_CALORIES
    calories_pct = min(100.0, calories / target_calories * 100)
    water_pct = min(100.0, water_ml / target_water * 100)
    consistency_pct = min(100.0, meals_logged / EXPECTED_MEALS_PER_DAY * 100)

    nutrition = round_half_up((calories_pct + consistency_pct) / 2)
    hydration = round_half_up(water_pct)
    activity = DEFAULT_ACTIVITY_SCORE
    consistency = round_half_up(consistency_pct)
    overall = round_half_up((nutrition + hydration + activity + consistency) / 4)

    if overall >= 80:
        trend = "improving"
    elif overall < 60:
        trend = "declining"
    else:
        trend = "stable"
    return HealthScore(
        overall=overall,
        breakdown=HealthScoreBreakdown(
            nutrition=nutrition, hydration=hydration, activity=activity, consistency=consistency
        ),
        trend=trend,
    )


# PUBLIC_INTERFACE
def calculate_streak(days: Iterable[str], today: date_type) -> Dict[str, int]:
    """
    Current and longest run of consecutive ISO days.

    The current streak counts back from today, or from yesterday when today has
    nothing logged yet.
    """
    ordered = sorted({date_type.fromisoformat(d) for d in days})
    if not ordered:
        return {"current": 0, "longest": 0}

    longest = run = 1
    for previous, day in zip(ordered, ordered[1:]):
        run = run + 1 if day - previous == timedelta(days=1) else 1
        longest = max(longest, run)

    present: Set[date_type] = set(ordered)
    cursor = today if today in present else today - timedelta(days=1)
    current = 0
    while cursor in present:
        current += 1
        cursor -= timedelta(days=1)
    return {"current": current, "longest": longest}


def _percent(value: float, goal: float) -> int:
    return min(100, round_half_up(value / goal * 100)) if goal else 0


# PUBLIC_INTERFACE
def build_achievements(meals_logged: int, logging_longest: int, water_longest: int, weigh_ins: int) -> List[Achievement]:
    return [
        Achievement(
            id="first-meal",
            title="First Steps",
            description="Log your first meal",
            category="nutrition",
            progress=_percent(meals_logged, 1),
            unlocked=meals_logged >= 1,
        ),
        Achievement(
            id="week-warrior",
            title="Week Warrior",
            description="Log meals for 7 consecutive days",
            category="consistency",
            progress=_percent(logging_longest, 7),
            unlocked=logging_longest >= 7,
        ),
        Achievement(
            id="hydration-hero",
            title="Hydration Hero",
            description="Hit your water goal 30 days in a row",
            category="hydration",
            progress=_percent(water_longest, 30),
            unlocked=water_longest >= 30,
        ),
        Achievement(
            id="first-weigh-in",
            title="On the Scale",
            description="Log your first weigh-in",
            category="progress",
            progress=_percent(weigh_ins, 1),
            unlocked=weigh_ins >= 1,
        ),
        Achievement(
            id="century",
            title="Century Club",
            description="Log 100 meals",
            category="nutrition",
            progress=_percent(meals_logged, 100),
            unlocked=meals_logged >= 100,
        ),
    ]


# PUBLIC_INTERFACE
def build_insights(
    summary: NutritionSummary,
    water_ml: int,
    meals_logged: int,
    target_calories: float,
    target_protein: float,
    target_water: float,
    days_since_weigh_in: Optional[int],
) -> List[DailyInsight]:
    """Short, prioritised hints derived from today's numbers."""
    insights: List[DailyInsight] = []
    if meals_logged == 0:
        insights.append(
            DailyInsight(
                id="log-first-meal",
                type="reminder",
                title="Log your first meal today",
                description="Tracking every meal keeps your daily numbers accurate.",
                priority="medium",
            )
        )
    else:
        if summary.protein < target_protein * 0.7:
            insights.append(
                DailyInsight(
                    id="protein-gap",
                    type="tip",
                    title="Add more protein",
                    description=(
                        f"You've had {round_half_up(summary.protein)}g of protein out of {round_half_up(target_protein)}g. "
                        "Eggs, fish, legumes or Greek yogurt can close the gap."
                    ),
                    priority="high",
                )
            )
        if summary.calories > target_calories * 1.1:
            insights.append(
                DailyInsight(
                    id="calories-over",
                    type="warning",
                    title="Calories above target",
                    description=(
                        f"{summary.calories} kcal logged against a {round_half_up(target_calories)} kcal goal. "
                        "Choose a lighter dinner or take a walk."
                    ),
                    priority="high",
                )
            )
        elif summary.calories >= target_calories * 0.9:
            insights.append(
                DailyInsight(
                    id="calories-on-target",
                    type="achievement",
                    title="Right on target",
                    description=f"{summary.calories} kcal logged, within 10% of your goal.",
                    priority="low",
                )
            )
    if water_ml < target_water * 0.5:
        insights.append(
            DailyInsight(
                id="hydration",
                type="tip",
                title="Drink more water",
                description=f"{water_ml} ml so far out of {round_half_up(target_water)} ml. Keep a bottle nearby.",
                priority="medium",
            )
        )
    if days_since_weigh_in is None or days_since_weigh_in > 7:
        insights.append(
            DailyInsight(
                id="weigh-in",
                type="reminder",
                title="Time to weigh yourself",
                description="A weekly weigh-in helps you see your progress.",
                priority="low",
            )
        )
    order = {"high": 0, "medium": 1, "low": 2}
    return sorted(insights, key=lambda i: order[i.priority])


# PUBLIC_INTERFACE
def build_meal_timeline(entries: Sequence[NutritionEntry]) -> List[MealTimelineEntry]:
    grouped: Dict[str, List[NutritionEntry]] = defaultdict(list)
    for entry in entries:
        grouped[entry.meal_type.lower()].append(entry)
    return [
        MealTimelineEntry(
            meal_type=meal_type,
            time=time,
            logged=bool(grouped.get(meal_type)),
            calories=sum(e.calories for e in grouped.get(meal_type, [])),
            items=[e.food for e in grouped.get(meal_type, [])],
        )
        for meal_type, time in MEAL_SLOTS
    ]


# PUBLIC_INTERFACE
def goal_completion(start: float, current: float, target: float) -> int:
    """Share of the way from start to target weight, 0..100."""
    if start == target:
        return 100 if current == target else 0
    return max(0, min(100, round_half_up((start - current) / (start - target) * 100)))


class DashboardService(BaseService):
    """Daily overview and the richer v2 dashboard."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.users = UserRepository(session)
        self.quiz_profiles = QuizProfileRepository(session)
        self.nutrition = NutritionRepository(session)
        self.water = WaterRepository(session)
        self.weights = WeightRepository(session)
        self.recommendations = RecommendationRepository(session)
        self.weight = WeightService(session)

    # PUBLIC_INTERFACE
    async def daily_overview(self, user_id: UUID, date: Optional[str] = None) -> DailyOverview:
        """Entries and totals of one day, latest weight, 30-entry progress and the day's recommendations."""
        start, end = get_day_range(date)
        nutrition = await self.nutrition.list_between(user_id, start, end)
        water = await self.water.list_between(user_id, start, end)
        latest = await self.weight.latest(user_id)
        progress = await self.weight.progress(user_id, limit=30)
        recommendations = await self.recommendations.list_between(user_id, start, end, newest_first=True)

        summary = NutritionSummary(
            calories=sum(e.calories for e in nutrition),
            protein=sum(e.protein for e in nutrition),
            fat=sum(e.fat for e in nutrition),
            carbs=sum(e.carbs for e in nutrition),
        )
        return DailyOverview(
            date=date or utcnow().isoformat(),
            nutrition=NutritionBlock(
                entries=[NutritionEntryRead.model_validate(e) for e in nutrition], summary=summary
            ),
            water=WaterBlock(
                entries=[WaterEntryRead.model_validate(e) for e in water],
                total_ml=sum(e.amount_ml for e in water),
            ),
            weight=WeightBlock(
                latest=WeightEntryRead.model_validate(latest) if latest else None, progress=progress
            ),
            recommendations=[RecommendationRead.model_validate(r) for r in recommendations],
        )

    # PUBLIC_INTERFACE
    async def daily_dashboard(self, user_id: UUID, date: Optional[str] = None) -> DailyDashboard:
        """Health score, metrics, timeline, insights, streaks, achievements and goal progress."""
        start, end = get_day_range(date)
        today = start.date()
        profile: Optional[Profile] = await self.users.get_profile(user_id)

        nutrition = await self.nutrition.list_between(user_id, start, end)
        water = await self.water.list_between(user_id, start, end)
        weights = await self.weights.list_between(user_id, None, end, newest_first=True)

        summary = NutritionSummary(
            calories=sum(e.calories for e in nutrition),
            protein=sum(e.protein for e in nutrition),
            fat=sum(e.fat for e in nutrition),
            carbs=sum(e.carbs for e in nutrition),
        )
        water_ml = sum(e.amount_ml for e in water)

        target_calories = (profile.recommended_calories if profile else None) or DEFAULT_TARGET_CALORIES
        target_protein = (profile.target_protein if profile else None) or DEFAULT_TARGET_PROTEIN
        target_carbs = (profile.target_carbs if profile else None) or DEFAULT_TARGET_CARBS
        target_fat = (profile.target_fat if profile else None) or DEFAULT_TARGET_FAT
        target_water = (profile.daily_water_ml if profile else None) or DEFAULT_TARGET_WATER

        current_weight = weights[0].weight_kg if weights else ((profile.current_weight_kg if profile else None) or 0)
        target_weight = (profile.target_weight_kg if profile else None) or current_weight

        metrics = {
            "calories": DashboardMetric(id="calories", label="Calories", value=summary.calories,
                                        target=target_calories, unit="kcal", trend="stable"),
            "water": DashboardMetric(id="water", label="Water", value=water_ml, target=target_water, unit="ml"),
            "weight": DashboardMetric(id="weight", label="Weight", value=current_weight, target=target_weight,
                                      unit="kg", trend="down" if current_weight < target_weight else "up"),
            "steps": DashboardMetric(id="steps", label="Steps", value=0, target=DEFAULT_TARGET_STEPS,
                                     unit="steps", trend="stable"),
            "protein": DashboardMetric(id="protein", label="Protein", value=summary.protein,
                                       target=target_protein, unit="g"),
            "carbs": DashboardMetric(id="carbs", label="Carbs", value=summary.carbs, target=target_carbs, unit="g"),
            "fat": DashboardMetric(id="fat", label="Fat", value=summary.fat, target=target_fat, unit="g"),
        }

        # History for streaks, achievements and weekly stats
        meal_days = await self.nutrition.dated_values(user_id, NutritionEntry.calories)
        water_days = await self.water.dated_values(user_id, WaterEntry.amount_ml)
        calories_by_day: Dict[str, float] = defaultdict(float)
        for when, calories in meal_days:
            calories_by_day[day_key(when)] += calories
        water_by_day: Dict[str, int] = defaultdict(int)
        for when, amount in water_days:
            water_by_day[day_key(when)] += amount
        water_goal_days = [day for day, amount in water_by_day.items() if amount >= target_water]

        logging_streak = calculate_streak(calories_by_day.keys(), today)
        water_streak = calculate_streak(water_goal_days, today)
        days_since_weigh_in = (today - weights[0].date.date()).days if weights else None

        week = {(today - timedelta(days=i)).isoformat() for i in range(7)}
        on_track = sum(
            1 for day in week if abs(calories_by_day.get(day, 0) - target_calories) <= target_calories * 0.1
        )
        meals_this_week = sum(1 for when, _ in meal_days if day_key(when) in week)

        goal_type = profile.goal if profile and profile.goal else None
        if not goal_type:
            quiz = await self.quiz_profiles.get_for_user(user_id)
            goal_type = quiz.goal_type if quiz and quiz.goal_type else "LOSE_WEIGHT"
        start_weight = weights[-1].weight_kg if weights else current_weight

        return DailyDashboard(
            date=today.isoformat(),
            health_score=calculate_health_score(summary.calories, water_ml, len(nutrition), target_calories),
            metrics=metrics,
            meal_timeline=build_meal_timeline(nutrition),
            insights=build_insights(
                summary, water_ml, len(nutrition), target_calories, target_protein, target_water, days_since_weigh_in
            ),
            streaks=[
                Streak(type="daily-logging", **logging_streak),
                Streak(type="water-goal", **water_streak),
            ],
            achievements=build_achievements(
                len(meal_days), logging_streak["longest"], water_streak["longest"], len(weights)
            ),
            goal_progress=GoalProgress(
                primary_goal=PrimaryGoal(
                    type=goal_type,
                    current=current_weight,
                    target=target_weight,
                    progress=goal_completion(start_weight, current_weight, target_weight),
                ),
                weekly_progress=WeeklyProgress(
                    calories_on_track=round_half_up(on_track / 7 * 100),
                    water_goals_hit=sum(1 for day in water_goal_days if day in week),
                    meals_logged=meals_this_week,
                    active_streak=logging_streak["current"],
                ),
            ),
        )
