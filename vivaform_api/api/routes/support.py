from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.core.deps import get_current_user
from vivaform_api.db.models.users import User
from vivaform_api.db.session import get_async_session
from vivaform_api.schemas.admin import TicketCreate, TicketList, TicketRead
from vivaform_api.services.support import TicketService

router = APIRouter(prefix="/support", tags=["Support"])


# PUBLIC_INTERFACE
@router.post("/tickets", response_model=TicketRead, status_code=status.HTTP_201_CREATED, summary="Open a ticket")
async def open_ticket(
    payload: TicketCreate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> TicketRead:
    return TicketRead.model_validate(await TicketService(session).open(user, payload))


# PUBLIC_INTERFACE
@router.get("/tickets", response_model=TicketList, summary="My tickets")
async def my_tickets(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> TicketList:
    return await TicketService(session).list(user_id=user.id, page=page, limit=limit)
