from __future__ import annotations

from typing import Optional

from sqlalchemy import Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from vivaform_api.db.base import Base, TimestampMixin, UserDatedEntryMixin, UUIDPkMixin


class NutritionEntry(UUIDPkMixin, UserDatedEntryMixin, TimestampMixin, Base):
    """A logged meal or food with its macros."""
    __tablename__ = "nutrition_entries"
    __table_args__ = (Index("ix_nutrition_entries_user_date", "user_id", "date"),)

    meal_type: Mapped[str] = mapped_column(String(32), nullable=False)
    food: Mapped[str] = mapped_column(String(255), nullable=False)
    calories: Mapped[int] = mapped_column(Integer, nullable=False)
    protein: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    fat: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    carbs: Mapped[float] = mapped_column(Float, nullable=False, default=0)


class WaterEntry(UUIDPkMixin, UserDatedEntryMixin, TimestampMixin, Base):
    """Water intake event."""
    __tablename__ = "water_entries"
    __table_args__ = (Index("ix_water_entries_user_date", "user_id", "date"),)

    amount_ml: Mapped[int] = mapped_column(Integer, nullable=False)


class WeightEntry(UUIDPkMixin, UserDatedEntryMixin, TimestampMixin, Base):
    """Body weight measurement."""
    __tablename__ = "weight_entries"
    __table_args__ = (Index("ix_weight_entries_user_date", "user_id", "date"),)

    weight_kg: Mapped[float] = mapped_column(Float, nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Recommendation(UUIDPkMixin, UserDatedEntryMixin, TimestampMixin, Base):
    """Short advice card shown on the dashboard."""
    __tablename__ = "recommendations"
    __table_args__ = (Index("ix_recommendations_user_date", "user_id", "date"),)

    title: Mapped[str] = mapped_column(String(180), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
