from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.core.deps import get_current_user, require_admin
from vivaform_api.db.models.users import User
from vivaform_api.db.session import get_async_session
from vivaform_api.schemas.users import UserCreate, UserRead
from vivaform_api.services.users import UserService

router = APIRouter(prefix="/users", tags=["Users"])


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create user",
    description="Create a user account. Requires the ADMIN role.",
    dependencies=[Depends(require_admin)],
)
async def create_user(payload: UserCreate, session: AsyncSession = Depends(get_async_session)) -> UserRead:
    return UserRead.model_validate(await UserService(session).create(payload))


# PUBLIC_INTERFACE
@router.get(
    "/{user_id}",
    response_model=UserRead,
    summary="Get user",
    description="Read a user. Users may read themselves; ADMIN may read anyone.",
)
async def get_user(
    user_id: UUID = Path(..., description="User ID"),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> UserRead:
    return UserRead.model_validate(await UserService(session).get_visible(user_id, user))
