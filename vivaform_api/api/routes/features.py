from __future__ import annotations

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.core.deps import get_current_user
from vivaform_api.db.models.users import User
from vivaform_api.db.session import get_async_session
from vivaform_api.schemas.admin import FeatureEvaluation
from vivaform_api.services.features import FeatureToggleService

router = APIRouter(prefix="/features", tags=["Features"])


# PUBLIC_INTERFACE
@router.get(
    "/{key}",
    response_model=FeatureEvaluation,
    summary="Evaluate a feature flag",
    description="Whether the toggle is on for the current user; unknown keys are off.",
)
async def evaluate(
    key: str = Path(...),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> FeatureEvaluation:
    return FeatureEvaluation(key=key, enabled=await FeatureToggleService(session).evaluate(key, user.id))
