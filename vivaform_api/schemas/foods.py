from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class FoodItemCreate(BaseModel):
    """User-submitted food; nutrients per 100 g."""
    name: str = Field(..., min_length=1, max_length=255)
    brand: Optional[str] = Field(None, max_length=255)
    category: str = Field(..., min_length=1, max_length=64)
    calories: float = Field(..., ge=0)
    protein: float = Field(0, ge=0)
    fat: float = Field(0, ge=0)
    carbs: float = Field(0, ge=0)
    fiber: Optional[float] = Field(None, ge=0)
    sugar: Optional[float] = Field(None, ge=0)
    serving_size: Optional[str] = Field(None, max_length=64)
    serving_size_grams: Optional[float] = Field(None, gt=0)
    barcode: Optional[str] = Field(None, max_length=64)


class FoodItemRead(BaseModel):
    """Food item read model."""
    id: UUID
    name: str
    brand: Optional[str] = None
    category: str
    calories: float
    protein: float
    fat: float
    carbs: float
    fiber: Optional[float] = None
    sugar: Optional[float] = None
    serving_size: Optional[str] = None
    serving_size_grams: Optional[float] = None
    barcode: Optional[str] = None
    verified: bool
    created_at: datetime

    class Config:
        from_attributes = True


class FoodSearchResponse(BaseModel):
    foods: List[FoodItemRead]
    total_count: int


class PlannedMeal(BaseModel):
    """One meal slot of a planned day."""
    meal_type: str
    name: str
    calories: float
    protein: float
    fat: float
    carbs: float
    cooking_time_minutes: int
    ingredients: List[str] = Field(default_factory=list)
    instructions: Optional[str] = None


class DayTotals(BaseModel):
    calories: int
    protein: int
    fat: int
    carbs: int


class PlannedDay(BaseModel):
    date: str
    meals: List[PlannedMeal]
    totals: DayTotals


class MacroTargets(BaseModel):
    calories: int
    protein: int
    fat: int
    carbs: int


class MealPlanResponse(BaseModel):
    """Seven-day plan with weekly averages."""
    diet_plan: str
    target_macros: MacroTargets
    days: List[PlannedDay]
    weekly_averages: DayTotals
