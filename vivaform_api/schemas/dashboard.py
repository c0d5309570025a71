from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from vivaform_api.schemas.tracking import (
    NutritionEntryRead,
    NutritionSummary,
    RecommendationRead,
    WaterEntryRead,
    WeightEntryRead,
    WeightProgress,
)


class NutritionBlock(BaseModel):
    entries: List[NutritionEntryRead]
    summary: NutritionSummary


class WaterBlock(BaseModel):
    entries: List[WaterEntryRead]
    total_ml: int


class WeightBlock(BaseModel):
    latest: Optional[WeightEntryRead] = None
    progress: WeightProgress


class DailyOverview(BaseModel):
    """Everything logged on one day plus weight progress and recommendations."""
    date: str
    nutrition: NutritionBlock
    water: WaterBlock
    weight: WeightBlock
    recommendations: List[RecommendationRead]


class HealthScoreBreakdown(BaseModel):
    nutrition: int
    hydration: int
    activity: int
    consistency: int


class HealthScore(BaseModel):
    overall: int
    breakdown: HealthScoreBreakdown
    trend: str = Field(..., description="improving, stable or declining")


class DashboardMetric(BaseModel):
    id: str
    label: str
    value: float
    target: float
    unit: str
    trend: Optional[str] = None


class MealTimelineEntry(BaseModel):
    meal_type: str
    time: str
    logged: bool
    calories: int = 0
    items: List[str] = Field(default_factory=list)


class DailyInsight(BaseModel):
    id: str
    type: str = Field(..., description="tip, warning, achievement or reminder")
    title: str
    description: str
    priority: str = Field(..., description="high, medium or low")


class Streak(BaseModel):
    type: str
    current: int
    longest: int


class Achievement(BaseModel):
    id: str
    title: str
    description: str
    category: str
    progress: int
    unlocked: bool


class PrimaryGoal(BaseModel):
    type: str
    current: float
    target: float
    unit: str = "kg"
    progress: int


class WeeklyProgress(BaseModel):
    calories_on_track: int
    water_goals_hit: int
    meals_logged: int
    active_streak: int


class GoalProgress(BaseModel):
    primary_goal: PrimaryGoal
    weekly_progress: WeeklyProgress


class DailyDashboard(BaseModel):
    """Dashboard v2 payload."""
    date: str
    health_score: HealthScore
    metrics: Dict[str, DashboardMetric]
    meal_timeline: List[MealTimelineEntry]
    insights: List[DailyInsight]
    streaks: List[Streak]
    achievements: List[Achievement]
    goal_progress: GoalProgress
