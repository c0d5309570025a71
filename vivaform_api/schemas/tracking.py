from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class NutritionEntryCreate(BaseModel):
    """Log a meal or food."""
    date: Optional[datetime] = Field(None, description="When the meal was eaten (default now)")
    meal_type: str = Field(..., min_length=1, max_length=32, description="breakfast, lunch, dinner or snack")
    food: str = Field(..., min_length=1, max_length=255)
    calories: int = Field(..., ge=0, le=10000)
    protein: float = Field(..., ge=0)
    fat: float = Field(..., ge=0)
    carbs: float = Field(..., ge=0)


class NutritionEntryRead(BaseModel):
    """Nutrition entry read model."""
    id: UUID
    user_id: UUID
    date: datetime
    meal_type: str
    food: str
    calories: int
    protein: float
    fat: float
    carbs: float
    created_at: datetime

    class Config:
        from_attributes = True


class NutritionSummary(BaseModel):
    """Sum of calories and macros over a day."""
    calories: int = 0
    protein: float = 0
    fat: float = 0
    carbs: float = 0


class WaterEntryCreate(BaseModel):
    """Log water intake."""
    date: Optional[datetime] = Field(None)
    amount_ml: int = Field(..., ge=0, le=10000)


class WaterEntryRead(BaseModel):
    """Water entry read model."""
    id: UUID
    user_id: UUID
    date: datetime
    amount_ml: int
    created_at: datetime

    class Config:
        from_attributes = True


class WaterTotal(BaseModel):
    total_ml: int = 0


class WeightEntryCreate(BaseModel):
    """Log a weigh-in."""
    date: Optional[datetime] = Field(None)
    weight_kg: float = Field(..., ge=20, le=400)
    note: Optional[str] = Field(None, max_length=500)


class WeightEntryRead(BaseModel):
    """Weight entry read model."""
    id: UUID
    user_id: UUID
    date: datetime
    weight_kg: float
    note: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class WeightProgress(BaseModel):
    """Weight change between the oldest and newest entry of a window."""
    delta: float = 0
    start: Optional[WeightEntryRead] = None
    end: Optional[WeightEntryRead] = None


class RecommendationCreate(BaseModel):
    """Create a recommendation card."""
    date: Optional[datetime] = Field(None)
    title: str = Field(..., min_length=1, max_length=180)
    body: str = Field(..., min_length=1)


class RecommendationRead(BaseModel):
    """Recommendation read model."""
    id: UUID
    user_id: UUID
    date: datetime
    title: str
    body: str
    created_at: datetime

    class Config:
        from_attributes = True


class GenerateRecommendationsResponse(BaseModel):
    message: str
    count: int
    recommendations: List[RecommendationRead] = Field(default_factory=list)
