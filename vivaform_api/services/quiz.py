from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.core.dates import utcnow
from vivaform_api.db.models.users import QuizLead, QuizProfile
from vivaform_api.repositories.quiz import QuizLeadRepository, QuizProfileRepository
from vivaform_api.repositories.users import UserRepository
from vivaform_api.schemas.quiz import (
    BmiResponse,
    LeadCreate,
    LeadResponse,
    QuizProfileSummary,
    QuizResult,
    QuizSubmitRequest,
    QuizSubmitResponse,
    QuizUpdateResponse,
)
from vivaform_api.services.base import BaseService
from vivaform_api.services.quiz_calculator import GOAL_ENUMS, calculate_quiz_result
from vivaform_api.services.quiz_normalizer import normalize_answers

logger = logging.getLogger(__name__)

CM_PER_INCH = 2.54
KG_PER_POUND = 0.453592

# Canonical answers copied onto the body profile as-is
PROFILE_FIELDS = (
    "height_cm",
    "current_weight_kg",
    "target_weight_kg",
    "gender",
    "diet_plan",
    "meals_per_day",
    "skip_breakfast",
    "snack_between_meals",
    "fast_food_frequency",
    "cook_at_home_frequency",
    "sleep_hours",
    "exercise_regularly",
    "wake_up_time",
    "dinner_time",
    "food_allergies",
    "avoided_foods",
    "meal_complexity",
    "try_new_foods",
    "cooking_time_minutes",
    "eat_when_stressed",
    "main_motivation",
    "stress_level",
    "comfort_source",
    "routine_confidence",
    "daily_water_ml",
    "want_reminders",
    "track_activity",
    "connect_health_app",
    "theme",
)


def _bmi(weight_kg: float, height_cm: float) -> float:
    height_m = height_cm / 100
    return round(weight_kg / (height_m * height_m), 2)


# PUBLIC_INTERFACE
def bmi_preview(height_cm: float, weight_kg: float) -> BmiResponse:
    bmi = _bmi(weight_kg, height_cm)
    if bmi < 18.5:
        category = "Underweight"
    elif bmi < 25:
        category = "Normal"
    elif bmi < 30:
        category = "Overweight"
    else:
        category = "Obese"
    return BmiResponse(bmi=bmi, category=category)


def _height_cm(height: Dict[str, Any]) -> float:
    if height.get("cm"):
        return height["cm"]
    if height.get("ft") is not None:
        return (height["ft"] * 12 + (height.get("in") or 0)) * CM_PER_INCH
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Height must be provided in cm or ft+in")


def _weight_kg(weight: Dict[str, Any]) -> float:
    if weight.get("kg"):
        return weight["kg"]
    if weight.get("lb"):
        return weight["lb"] * KG_PER_POUND
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Weight must be provided in kg or lb")


# PUBLIC_INTERFACE
def extract_profile_fields(answers: Dict[str, Any]) -> Dict[str, Any]:
    """
    Cached quiz profile columns from nested answers (`body`, `goals`, `diet`, `habits`).

    Raises:
        HTTPException: 400 when a height or weight object carries no usable unit.
    """
    fields: Dict[str, Any] = {}
    body = answers.get("body") or {}
    if body.get("height"):
        fields["height_cm"] = _height_cm(body["height"])
    if body.get("weight"):
        fields["weight_kg"] = _weight_kg(body["weight"])
    if fields.get("height_cm") and fields.get("weight_kg"):
        fields["bmi"] = _bmi(fields["weight_kg"], fields["height_cm"])

    goals = answers.get("goals")
    if goals:
        fields["goal_type"] = goals.get("type")
        fields["goal_delta_kg"] = goals.get("delta_kg")
        fields["eta_months"] = goals.get("eta_months")

    diet = answers.get("diet") or {}
    if diet.get("plan"):
        fields["diet_plan"] = diet["plan"]

    habits = answers.get("habits")
    if habits:
        fields["meals_per_day"] = habits.get("meals_per_day")
        fields["cooking_time_minutes"] = habits.get("cooking_time_minutes")
        fields["exercise_regularly"] = habits.get("exercise_regularly")
    return fields


def _parse_birth_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


# PUBLIC_INTERFACE
def preview_result(raw_answers: Dict[str, Any]) -> QuizResult:
    """Normalize raw funnel answers and run the calculator."""
    return QuizResult(**calculate_quiz_result(normalize_answers(raw_answers)))


class QuizService(BaseService):
    """Stores quiz answers per user and keeps the body profile in sync."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.quiz_profiles = QuizProfileRepository(session)
        self.users = UserRepository(session)

    async def _sync_body_profile(self, user_id: UUID, answers: Dict[str, Any]) -> None:
        canonical = normalize_answers(answers)
        result = calculate_quiz_result(canonical)
        values = {key: canonical[key] for key in PROFILE_FIELDS if key in canonical}
        if canonical.get("activity_level"):
            values["activity_level"] = canonical["activity_level"].upper()
        birth_date = _parse_birth_date(canonical.get("birth_date"))
        if birth_date:
            values["birth_date"] = birth_date
        values.update(
            {
                "goal": GOAL_ENUMS[result["goal"]],
                "bmi": result["bmi"],
                "bmr": result["bmr"],
                "tdee": result["tdee"],
                "recommended_calories": result["recommended_calories"],
                "target_protein": result["macros"]["protein"],
                "target_fat": result["macros"]["fat"],
                "target_carbs": result["macros"]["carbs"],
            }
        )
        await self.users.upsert_profile(user_id, values)
        logger.info("Body profile recalculated for user %s: %s kcal", user_id, result["recommended_calories"])

    async def _store(self, profile: QuizProfile, answers: Dict[str, Any]) -> QuizProfile:
        profile.answers = answers
        for key, value in extract_profile_fields(answers).items():
            setattr(profile, key, value)
        return await self.quiz_profiles.save(profile)

    # PUBLIC_INTERFACE
    async def submit(self, user_id: UUID, payload: QuizSubmitRequest) -> QuizSubmitResponse:
        """
        Create or replace the user's quiz profile; `overwrite=false` merges into the stored answers.

        The body profile (targets and recommended calories) is recalculated from the stored answers.
        """
        existing = await self.quiz_profiles.get_for_user(user_id)
        if existing and not payload.overwrite:
            answers = {**(existing.answers or {}), **payload.answers}
            profile = existing
        else:
            answers = dict(payload.answers)
            profile = existing or QuizProfile(user_id=user_id)
            profile.client_id = payload.client_id
        profile.version = payload.version
        profile.completed_at = utcnow()
        profile = await self._store(profile, answers)
        await self._sync_body_profile(user_id, answers)
        return QuizSubmitResponse(user_id=user_id, profile=QuizProfileSummary.model_validate(profile))

    async def get_profile(self, user_id: UUID) -> QuizProfile:
        return self.require(await self.quiz_profiles.get_for_user(user_id), "Quiz profile")

    # PUBLIC_INTERFACE
    async def update_profile(self, user_id: UUID, answers: Dict[str, Any]) -> QuizUpdateResponse:
        """Merge answers into the stored profile (404 when the quiz was never submitted)."""
        profile = await self.get_profile(user_id)
        merged = {**(profile.answers or {}), **answers}
        profile = await self._store(profile, merged)
        await self._sync_body_profile(user_id, merged)
        return QuizUpdateResponse(user_id=user_id, profile=QuizProfileSummary.model_validate(profile))


class QuizLeadService(BaseService):
    """Mid-funnel email capture."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.leads = QuizLeadRepository(session)

    # PUBLIC_INTERFACE
    async def capture(self, payload: LeadCreate, user_id: Optional[UUID] = None) -> LeadResponse:
        """Upsert a lead keyed by (lower-cased email, trimmed client id)."""
        email = payload.email.strip().lower()
        client_id = (payload.client_id or "").strip()
        try:
            lead = await self.leads.get(email, client_id) or QuizLead(email=email, client_id=client_id)
            lead.capture_type = payload.type
            lead.step = payload.step
            lead.metadata_ = payload.metadata
            if user_id is not None:
                lead.user_id = user_id
            lead.updated_at = utcnow()
            lead = await self.leads.save(lead)
        except Exception:
            logger.exception("Failed to capture quiz lead")
            await self.session.rollback()
            raise
        return LeadResponse(lead_id=lead.id, saved_at=lead.updated_at)
