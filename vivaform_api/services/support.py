from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.db.models.admin import Ticket, TicketReply
from vivaform_api.db.models.users import User
from vivaform_api.repositories.admin import TicketRepository
from vivaform_api.schemas.admin import TicketCreate, TicketList, TicketRead, TicketUpdate
from vivaform_api.schemas.common import page_info, page_offset
from vivaform_api.services.audit import AuditAction, AuditService
from vivaform_api.services.base import BaseService

logger = logging.getLogger(__name__)


class TicketService(BaseService):
    """Support tickets: users open and read their own, staff triage and reply."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = TicketRepository(session)
        self.audit = AuditService(session)

    async def open(self, user: User, payload: TicketCreate) -> Ticket:
        ticket = Ticket(
            user_id=user.id,
            subject=payload.subject,
            body=payload.body,
            priority=payload.priority,
            status="open",
            replies=[],
        )
        ticket = await self.repo.save(ticket)
        logger.info("Ticket %s opened by %s", ticket.id, user.id)
        return ticket

    async def list(
        self,
        *,
        status_filter: Optional[str] = None,
        priority: Optional[str] = None,
        assignee: Optional[UUID] = None,
        user_id: Optional[UUID] = None,
        page: int = 1,
        limit: int = 50,
    ) -> TicketList:
        items, total = await self.repo.list_paginated(
            status=status_filter,
            priority=priority,
            assignee=assignee,
            user_id=user_id,
            limit=limit,
            offset=page_offset(page, limit),
        )
        return TicketList(tickets=[TicketRead.model_validate(t) for t in items], pagination=page_info(page, limit, total))

    async def get(self, ticket_id: UUID) -> Ticket:
        return self.require(await self.repo.get(ticket_id), "Ticket")

    # PUBLIC_INTERFACE
    async def update(self, ticket_id: UUID, payload: TicketUpdate, actor: User) -> Ticket:
        """Change status, priority or assignee; every change is audited."""
        ticket = await self.get(ticket_id)
        changes = payload.model_dump(exclude_unset=True)
        for key, value in changes.items():
            setattr(ticket, key, value)
        ticket = await self.repo.save(ticket)
        await self.audit.log(
            AuditAction.TICKET_UPDATED,
            user_id=actor.id,
            actor_email=actor.email,
            entity="ticket",
            entity_id=str(ticket.id),
            metadata={k: str(v) if v is not None else None for k, v in changes.items()},
        )
        return ticket

    # PUBLIC_INTERFACE
    async def reply(self, ticket_id: UUID, body: str, actor: User) -> Ticket:
        """Append a staff reply; an `open` ticket moves to `pending` (waiting on the user)."""
        ticket = await self.get(ticket_id)
        if ticket.status == "open":
            ticket.status = "pending"
        reply = TicketReply(ticket_id=ticket.id, author_id=actor.id, body=body, is_staff=True)
        ticket = await self.repo.add_reply(ticket, reply)
        await self.audit.log(
            AuditAction.TICKET_UPDATED,
            user_id=actor.id,
            actor_email=actor.email,
            entity="ticket",
            entity_id=str(ticket.id),
            metadata={"reply": True, "status": ticket.status},
        )
        return ticket
