from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class UserRead(BaseModel):
    """User read model."""
    id: UUID = Field(..., description="User ID")
    email: str = Field(..., description="User email")
    name: Optional[str] = Field(None)
    tier: str = Field(...)
    role: str = Field(...)
    created_at: datetime = Field(..., description="Created timestamp")

    class Config:
        from_attributes = True


class UserCreate(BaseModel):
    """Admin create user payload."""
    email: EmailStr = Field(..., description="Email")
    password: str = Field(..., min_length=8, description="Password")
    name: Optional[str] = Field(None, max_length=120)


class ProfileRead(BaseModel):
    """Body profile and calculated targets."""
    height_cm: Optional[float] = None
    current_weight_kg: Optional[float] = None
    target_weight_kg: Optional[float] = None
    activity_level: Optional[str] = None
    goal: Optional[str] = None
    gender: Optional[str] = None
    diet_plan: Optional[str] = None
    meals_per_day: Optional[int] = None
    daily_water_ml: Optional[int] = None
    bmi: Optional[float] = None
    bmr: Optional[int] = None
    tdee: Optional[int] = None
    recommended_calories: Optional[int] = None
    target_protein: Optional[int] = None
    target_fat: Optional[int] = None
    target_carbs: Optional[int] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
