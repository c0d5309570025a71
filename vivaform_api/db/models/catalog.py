from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import JSON, Boolean, CheckConstraint, Float, ForeignKey, Integer, String, Text, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column

from vivaform_api.db.base import Base, TimestampMixin, UUIDPkMixin

MEAL_COMPLEXITIES = ("simple", "medium", "complex")


class FoodItem(UUIDPkMixin, TimestampMixin, Base):
    """Food catalog item; nutrients are per 100 g."""
    __tablename__ = "food_items"

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    brand: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    category: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    calories: Mapped[float] = mapped_column(Float, nullable=False)
    protein: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    fat: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    carbs: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    fiber: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    sugar: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    serving_size: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    serving_size_grams: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    barcode: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, unique=True)
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    created_by: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )


class MealTemplate(UUIDPkMixin, TimestampMixin, Base):
    """Predefined dish used by the weekly meal plan generator."""
    __tablename__ = "meal_templates"
    __table_args__ = (
        CheckConstraint("complexity IN ('simple', 'medium', 'complex')", name="complexity_valid"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)  # breakfast/lunch/dinner/snack
    diet_plans: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    calories: Mapped[float] = mapped_column(Float, nullable=False)
    protein: Mapped[float] = mapped_column(Float, nullable=False)
    fat: Mapped[float] = mapped_column(Float, nullable=False)
    carbs: Mapped[float] = mapped_column(Float, nullable=False)
    ingredients: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    allergens: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    avoided_ingredients: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    instructions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cooking_time_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    complexity: Mapped[str] = mapped_column(String(16), nullable=False, default="medium")
