from __future__ import annotations

from typing import Optional, TypeVar

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class BaseService:
    """
    Shared plumbing for VivaForm services.

    A service owns one AsyncSession for the request and builds the repositories it
    needs on top of it. Business rule violations surface as HTTPException; the
    error middleware turns them into the JSON envelope.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def require(entity: Optional[T], label: str) -> T:
        """Return entity or raise 404 '<label> not found'."""
        if entity is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")
        return entity
