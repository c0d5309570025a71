from __future__ import annotations

import logging
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.core.security import get_password_hash
from vivaform_api.db.models.users import User
from vivaform_api.repositories.users import UserRepository
from vivaform_api.schemas.users import UserCreate
from vivaform_api.services.base import BaseService

logger = logging.getLogger(__name__)


class UserService(BaseService):
    """Account creation by staff and account lookup."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = UserRepository(session)

    async def create(self, payload: UserCreate) -> User:
        if await self.repo.get_by_email(payload.email):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User with this email already exists")
        user = await self.repo.create(
            email=payload.email, password_hash=get_password_hash(payload.password), name=payload.name
        )
        logger.info("User %s created by staff", user.id)
        return user

    # PUBLIC_INTERFACE
    async def get_visible(self, user_id: UUID, viewer: User) -> User:
        """
        Return a user the viewer may see: themselves, or anyone for ADMIN.

        Raises:
            HTTPException: 403 for other users' accounts, 404 when missing.
        """
        if viewer.id != user_id and viewer.role != "ADMIN":
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return self.require(await self.repo.get_by_id(user_id), "User")
