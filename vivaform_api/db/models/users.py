from __future__ import annotations

from datetime import date, datetime
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column

from vivaform_api.db.base import Base, TimestampMixin, UUIDPkMixin

ROLES = ("USER", "ADMIN", "MANAGER", "SUPPORT")
TIERS = ("FREE", "PREMIUM")
ACTIVITY_LEVELS = ("SEDENTARY", "LIGHT", "MODERATE", "ACTIVE", "ATHLETE")
GOALS = ("LOSE_WEIGHT", "MAINTAIN_WEIGHT", "GAIN_WEIGHT")
LEAD_CAPTURE_TYPES = ("midpoint", "exit", "offer")


def _in(column: str, values) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


class User(UUIDPkMixin, TimestampMixin, Base):
    """Account holder. Email is unique across the system."""
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        CheckConstraint(_in("role", ROLES), name="role_valid"),
        CheckConstraint(_in("tier", TIERS), name="tier_valid"),
    )

    email: Mapped[str] = mapped_column(String(320), nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="USER", server_default="USER")
    tier: Mapped[str] = mapped_column(String(16), nullable=False, default="FREE", server_default="FREE")

    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    email_verification_token: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    password_reset_token: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    password_reset_expires: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    must_change_password: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class Profile(UUIDPkMixin, TimestampMixin, Base):
    """Body metrics, habits and calculated targets derived from the onboarding quiz."""
    __tablename__ = "profiles"
    __table_args__ = (
        UniqueConstraint("user_id", name="uq_profiles_user_id"),
        CheckConstraint(
            "activity_level IS NULL OR " + _in("activity_level", ACTIVITY_LEVELS), name="activity_level_valid"
        ),
        CheckConstraint("goal IS NULL OR " + _in("goal", GOALS), name="goal_valid"),
    )

    user_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    height_cm: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    current_weight_kg: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    target_weight_kg: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    activity_level: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    goal: Mapped[Optional[str]] = mapped_column(String(24), nullable=True)
    gender: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    birth_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    diet_plan: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    meals_per_day: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    skip_breakfast: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    snack_between_meals: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    fast_food_frequency: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    cook_at_home_frequency: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    sleep_hours: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    exercise_regularly: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    wake_up_time: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    dinner_time: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    food_allergies: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    avoided_foods: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    meal_complexity: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    try_new_foods: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    cooking_time_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    eat_when_stressed: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    main_motivation: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    stress_level: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    comfort_source: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    routine_confidence: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    daily_water_ml: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    want_reminders: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    track_activity: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    connect_health_app: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    theme: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    # Calculated values
    bmi: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    bmr: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    tdee: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    recommended_calories: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    target_protein: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    target_fat: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    target_carbs: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)


class QuizProfile(UUIDPkMixin, TimestampMixin, Base):
    """Raw quiz answers of a user plus the cached fields extracted from them."""
    __tablename__ = "quiz_profiles"
    __table_args__ = (UniqueConstraint("user_id", name="uq_quiz_profiles_user_id"),)

    user_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    client_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    version: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    answers: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    diet_plan: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    height_cm: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    weight_kg: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    bmi: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    goal_type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    goal_delta_kg: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    eta_months: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    meals_per_day: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    cooking_time_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    exercise_regularly: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class QuizLead(UUIDPkMixin, TimestampMixin, Base):
    """Email captured mid-funnel, unique per (email, client_id)."""
    __tablename__ = "quiz_leads"
    __table_args__ = (
        UniqueConstraint("email", "client_id", name="uq_quiz_leads_email_client_id"),
        CheckConstraint(
            "capture_type IS NULL OR " + _in("capture_type", LEAD_CAPTURE_TYPES), name="capture_type_valid"
        ),
    )

    email: Mapped[str] = mapped_column(String(320), nullable=False)
    client_id: Mapped[str] = mapped_column(String(128), nullable=False, default="", server_default="")
    capture_type: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    step: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    metadata_: Mapped[Optional[dict[str, Any]]] = mapped_column("metadata", JSON, nullable=True)
    user_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
