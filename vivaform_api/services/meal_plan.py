from __future__ import annotations

import logging
from datetime import timedelta
from typing import Dict, List, Optional, Sequence

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.core.dates import utcnow
from vivaform_api.core.numbers import round_half_up
from vivaform_api.db.models.catalog import MealTemplate
from vivaform_api.db.models.users import Profile
from vivaform_api.repositories.catalog import MealTemplateRepository
from vivaform_api.repositories.users import UserRepository
from vivaform_api.schemas.foods import DayTotals, MacroTargets, MealPlanResponse, PlannedDay, PlannedMeal
from vivaform_api.services.base import BaseService

logger = logging.getLogger(__name__)

DEFAULT_DIET_PLAN = "mediterranean"
DEFAULT_COOKING_TIME = 60
DEFAULT_COMPLEXITY = "medium"
DEFAULT_MEALS_PER_DAY = 3
PLAN_DAYS = 7

# protein / fat / carbs share of calories
MACRO_RATIOS: Dict[str, tuple] = {
    "carnivore": (0.35, 0.60, 0.05),
    "anti-inflammatory": (0.20, 0.35, 0.45),
}
DEFAULT_MACRO_RATIOS = (0.25, 0.30, 0.45)

MEAL_TYPE_LABELS = {"breakfast": "Breakfast", "lunch": "Lunch", "dinner": "Dinner", "snack": "Snack"}


# PUBLIC_INTERFACE
def macro_targets(calories: float, diet_plan: str) -> Dict[str, int]:
    """Grams of protein/fat/carbs for a calorie goal (4/9/4 kcal per gram)."""
    protein, fat, carbs = MACRO_RATIOS.get(diet_plan, DEFAULT_MACRO_RATIOS)
    return {
        "protein": round_half_up(calories * protein / 4),
        "fat": round_half_up(calories * fat / 9),
        "carbs": round_half_up(calories * carbs / 4),
    }


# PUBLIC_INTERFACE
def allowed_complexities(complexity: str) -> List[str]:
    if complexity == "simple":
        return ["simple"]
    if complexity == "medium":
        return ["simple", "medium"]
    return ["simple", "medium", "complex"]


# PUBLIC_INTERFACE
def meal_slots(meals_per_day: Optional[int], skip_breakfast: Optional[bool]) -> List[str]:
    """Ordered meal categories for one day."""
    meals = meals_per_day or DEFAULT_MEALS_PER_DAY
    slots: List[str] = []
    if not skip_breakfast:
        slots.append("breakfast")
    if meals >= 2:
        slots.append("lunch")
    if meals >= 3:
        slots.append("dinner")
    if meals >= 4:
        slots.append("snack")
    if meals >= 5:
        slots.append("snack")
    return slots


def _lowered(values: Optional[Sequence[str]]) -> set:
    return {v.lower() for v in values or []}


# PUBLIC_INTERFACE
def filter_templates(
    templates: Sequence[MealTemplate],
    diet_plan: str,
    allergies: Optional[Sequence[str]],
    avoided: Optional[Sequence[str]],
) -> List[MealTemplate]:
    """Keep templates of the diet plan that contain none of the user's allergens or avoided foods."""
    allergy_set = _lowered(allergies)
    avoided_set = _lowered(avoided)
    result = []
    for template in templates:
        if diet_plan not in (template.diet_plans or []):
            continue
        if _lowered(template.allergens) & allergy_set:
            continue
        if _lowered(template.avoided_ingredients) & avoided_set:
            continue
        result.append(template)
    return result


# PUBLIC_INTERFACE
def select_best_meal(
    templates: Sequence[MealTemplate],
    category: str,
    target_calories: float,
    targets: Dict[str, int],
    used_names: Sequence[str],
) -> Optional[MealTemplate]:
    """
    Pick the template of `category` closest to the per-meal target.

    Score = |cal - target| + 4|p - P/3| + 9|f - F/3| + 4|c - C/3|; names already
    used that day are skipped unless nothing else is left.
    """
    same_category = [t for t in templates if t.category == category]
    if not same_category:
        return None
    candidates = [t for t in same_category if t.name not in used_names] or same_category

    best: Optional[MealTemplate] = None
    best_score = float("inf")
    for candidate in candidates:
        score = (
            abs(candidate.calories - target_calories)
            + 4 * abs(candidate.protein - targets["protein"] / 3)
            + 9 * abs(candidate.fat - targets["fat"] / 3)
            + 4 * abs(candidate.carbs - targets["carbs"] / 3)
        )
        if score < best_score:
            best_score = score
            best = candidate
    return best


# PUBLIC_INTERFACE
def plan_day(
    date: str,
    templates: Sequence[MealTemplate],
    slots: Sequence[str],
    targets: Dict[str, int],
    target_calories: float,
) -> PlannedDay:
    """Fill the day's slots, spreading the remaining calories over the remaining slots."""
    meals: List[PlannedMeal] = []
    totals = {"calories": 0.0, "protein": 0.0, "fat": 0.0, "carbs": 0.0}
    for index, slot in enumerate(slots):
        remaining = len(slots) - index
        per_meal = (target_calories - totals["calories"]) / remaining
        template = select_best_meal(templates, slot, per_meal, targets, [m.name for m in meals])
        if template is None:
            continue
        meals.append(
            PlannedMeal(
                meal_type=MEAL_TYPE_LABELS.get(slot, slot),
                name=template.name,
                calories=template.calories,
                protein=template.protein,
                fat=template.fat,
                carbs=template.carbs,
                cooking_time_minutes=template.cooking_time_minutes,
                ingredients=list(template.ingredients or []),
                instructions=template.instructions,
            )
        )
        for key in totals:
            totals[key] += getattr(template, key)
    return PlannedDay(date=date, meals=meals, totals=DayTotals(**{k: round_half_up(v) for k, v in totals.items()}))


class MealPlanService(BaseService):
    """Weekly meal plan built from meal templates and the user's quiz profile."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.users = UserRepository(session)
        self.templates = MealTemplateRepository(session)

    # PUBLIC_INTERFACE
    async def generate_weekly_plan(self, user_id) -> MealPlanResponse:
        """
        Build a 7-day plan starting today.

        Raises:
            HTTPException: 400 when the profile has no calorie goal or no template fits.
        """
        profile: Optional[Profile] = await self.users.get_profile(user_id)
        if not profile or not profile.recommended_calories:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Profile or recommended calories not found. Please complete the quiz first.",
            )

        diet_plan = profile.diet_plan or DEFAULT_DIET_PLAN
        calories = profile.recommended_calories
        targets = macro_targets(calories, diet_plan)

        candidates = await self.templates.candidates(
            profile.cooking_time_minutes or DEFAULT_COOKING_TIME,
            allowed_complexities(profile.meal_complexity or DEFAULT_COMPLEXITY),
        )
        templates = filter_templates(candidates, diet_plan, profile.food_allergies, profile.avoided_foods)
        if not templates:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No suitable meal templates found for your preferences.",
            )

        slots = meal_slots(profile.meals_per_day, profile.skip_breakfast)
        today = utcnow().date()
        days = [
            plan_day((today + timedelta(days=i)).isoformat(), templates, slots, targets, calories)
            for i in range(PLAN_DAYS)
        ]
        averages = DayTotals(
            **{
                key: round_half_up(sum(getattr(day.totals, key) for day in days) / len(days))
                for key in ("calories", "protein", "fat", "carbs")
            }
        )
        logger.info("Meal plan generated for user %s (%s, %d templates)", user_id, diet_plan, len(templates))
        return MealPlanResponse(
            diet_plan=diet_plan,
            target_macros=MacroTargets(calories=round_half_up(calories), **targets),
            days=days,
            weekly_averages=averages,
        )
