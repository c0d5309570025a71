from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class QuizStepRead(BaseModel):
    id: str
    group: str
    ui_type: str
    question: str
    fields: List[str]
    options: List[str] = Field(default_factory=list)
    condition: Optional[str] = None


class FunnelRequest(BaseModel):
    answers: Dict[str, Any] = Field(default_factory=dict)
    step_index: int = Field(0, ge=0)


class FunnelState(BaseModel):
    """Where a client stands in the funnel for the given answers."""
    visible_steps: List[str]
    current_step: Optional[str] = None
    can_proceed: bool
    progress_percent: int
    plan_type: str


class Macros(BaseModel):
    protein: int
    fat: int
    carbs: int


class QuizResult(BaseModel):
    """Calculated body metrics and calorie goal."""
    bmi: float
    bmi_category: str
    bmr: int
    tdee: int
    recommended_calories: int
    daily_calorie_deficit: int
    weekly_weight_change_kg: float
    estimated_weeks: int
    macros: Macros
    advice: str
    goal: str


class BmiRequest(BaseModel):
    height_cm: float = Field(..., gt=0, le=300)
    weight_kg: float = Field(..., gt=0, le=700)


class BmiResponse(BaseModel):
    bmi: float
    category: str


class QuizSubmitRequest(BaseModel):
    """Full answer set from the funnel; `overwrite=false` merges into stored answers."""
    client_id: Optional[str] = Field(None, max_length=128)
    version: Optional[str] = Field(None, max_length=32)
    answers: Dict[str, Any]
    overwrite: bool = True


class QuizProfilePatch(BaseModel):
    answers: Dict[str, Any]


class QuizProfileSummary(BaseModel):
    diet_plan: Optional[str] = None
    height_cm: Optional[float] = None
    weight_kg: Optional[float] = None
    bmi: Optional[float] = None
    goal_type: Optional[str] = None
    goal_delta_kg: Optional[float] = None
    eta_months: Optional[int] = None
    updated_at: datetime

    class Config:
        from_attributes = True


class QuizSubmitResponse(BaseModel):
    user_id: UUID
    stored: bool = True
    profile: QuizProfileSummary


class QuizUpdateResponse(BaseModel):
    user_id: UUID
    updated: bool = True
    profile: QuizProfileSummary


class QuizProfileRead(BaseModel):
    """Stored answers plus the fields extracted from them."""
    id: UUID
    version: Optional[str] = None
    answers: Dict[str, Any]
    diet_plan: Optional[str] = None
    height_cm: Optional[float] = None
    weight_kg: Optional[float] = None
    bmi: Optional[float] = None
    goal_type: Optional[str] = None
    goal_delta_kg: Optional[float] = None
    eta_months: Optional[int] = None
    meals_per_day: Optional[int] = None
    cooking_time_minutes: Optional[int] = None
    exercise_regularly: Optional[bool] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class LeadCreate(BaseModel):
    """Email captured mid-funnel."""
    email: EmailStr
    client_id: Optional[str] = Field(None, max_length=128)
    step: Optional[int] = Field(None, ge=0, le=64)
    type: Optional[Literal["midpoint", "exit", "offer"]] = None
    metadata: Optional[Dict[str, Any]] = None


class LeadResponse(BaseModel):
    ok: bool = True
    lead_id: UUID
    saved_at: datetime
