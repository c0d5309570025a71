from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.core.deps import get_current_user
from vivaform_api.db.models.users import User
from vivaform_api.db.session import get_async_session
from vivaform_api.schemas.quiz import (
    BmiRequest,
    BmiResponse,
    FunnelRequest,
    FunnelState,
    LeadCreate,
    LeadResponse,
    QuizProfilePatch,
    QuizProfileRead,
    QuizResult,
    QuizStepRead,
    QuizSubmitRequest,
    QuizSubmitResponse,
    QuizUpdateResponse,
)
from vivaform_api.services.quiz import QuizLeadService, QuizService, bmi_preview, preview_result
from vivaform_api.services.quiz_funnel import QUIZ_STEPS, evaluate_funnel

router = APIRouter(prefix="/quiz", tags=["Quiz"])


# PUBLIC_INTERFACE
@router.get("/steps", response_model=List[QuizStepRead], summary="Funnel step definitions")
async def steps() -> List[QuizStepRead]:
    return [QuizStepRead.model_validate(step, from_attributes=True) for step in QUIZ_STEPS]


# PUBLIC_INTERFACE
@router.post(
    "/funnel",
    response_model=FunnelState,
    summary="Evaluate funnel position",
    description="Visible steps for the answers, the current step, whether it can be left and the progress.",
)
async def funnel(payload: FunnelRequest) -> FunnelState:
    return FunnelState(**evaluate_funnel(payload.answers, payload.step_index))


# PUBLIC_INTERFACE
@router.post("/preview", response_model=QuizResult, summary="Preview calculated results for raw answers")
async def preview(answers: Dict[str, Any] = Body(...)) -> QuizResult:
    return preview_result(answers)


# PUBLIC_INTERFACE
@router.post("/bmi", response_model=BmiResponse, summary="BMI for height and weight")
async def bmi(payload: BmiRequest) -> BmiResponse:
    return bmi_preview(payload.height_cm, payload.weight_kg)


# PUBLIC_INTERFACE
@router.post(
    "/submit",
    response_model=QuizSubmitResponse,
    summary="Submit quiz answers",
    description="Store the answers and recalculate the body profile (recommended calories and macro targets).",
)
async def submit(
    payload: QuizSubmitRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> QuizSubmitResponse:
    return await QuizService(session).submit(user.id, payload)


# PUBLIC_INTERFACE
@router.get("/profile", response_model=QuizProfileRead, summary="Stored quiz profile")
async def get_profile(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> QuizProfileRead:
    return QuizProfileRead.model_validate(await QuizService(session).get_profile(user.id))


# PUBLIC_INTERFACE
@router.patch("/profile", response_model=QuizUpdateResponse, summary="Merge answers into the quiz profile")
async def patch_profile(
    payload: QuizProfilePatch,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> QuizUpdateResponse:
    return await QuizService(session).update_profile(user.id, payload.answers)


# PUBLIC_INTERFACE
@router.post(
    "/leads",
    response_model=LeadResponse,
    summary="Capture a funnel lead",
    description="Upsert an email captured mid-funnel, keyed by email and client id. No authentication.",
)
async def capture_lead(payload: LeadCreate, session: AsyncSession = Depends(get_async_session)) -> LeadResponse:
    return await QuizLeadService(session).capture(payload)
