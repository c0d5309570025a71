from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select

from vivaform_api.db.models.admin import AppSetting, AuditLog, FeatureToggle, Ticket, TicketReply
from .base import BaseRepository


class AuditLogRepository(BaseRepository):
    """Append-only audit log storage."""

    async def append(self, entry: AuditLog) -> AuditLog:
        """Insert inside a SAVEPOINT so a failed write leaves the caller's objects loaded."""
        async with self.session.begin_nested():
            self.session.add(entry)
        await self.commit()
        return entry

    async def list_paginated(
        self,
        *,
        action: Optional[str],
        entity: Optional[str],
        user_id: Optional[UUID],
        limit: int,
        offset: int,
    ) -> Tuple[List[AuditLog], int]:
        stmt = select(AuditLog)
        if action:
            stmt = stmt.where(AuditLog.action == action)
        if entity:
            stmt = stmt.where(AuditLog.entity == entity)
        if user_id:
            stmt = stmt.where(AuditLog.user_id == user_id)
        return await self.paginate(stmt, AuditLog.created_at.desc(), limit=limit, offset=offset)


class FeatureToggleRepository(BaseRepository):
    """Feature toggles keyed by unique string key."""

    async def list_all(self) -> List[FeatureToggle]:
        return list(await self.scalars(select(FeatureToggle).order_by(FeatureToggle.key.asc())))

    async def get(self, key: str) -> Optional[FeatureToggle]:
        return await self.scalar_one_or_none(select(FeatureToggle).where(FeatureToggle.key == key))


class TicketRepository(BaseRepository):
    """Support tickets and their replies."""

    async def get(self, ticket_id: UUID) -> Optional[Ticket]:
        return await self.scalar_one_or_none(select(Ticket).where(Ticket.id == ticket_id))

    async def list_paginated(
        self,
        *,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        assignee: Optional[UUID] = None,
        user_id: Optional[UUID] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Ticket], int]:
        stmt = select(Ticket)
        if status:
            stmt = stmt.where(Ticket.status == status)
        if priority:
            stmt = stmt.where(Ticket.priority == priority)
        if assignee:
            stmt = stmt.where(Ticket.assigned_to == assignee)
        if user_id:
            stmt = stmt.where(Ticket.user_id == user_id)
        return await self.paginate(stmt, Ticket.created_at.desc(), limit=limit, offset=offset)

    async def save(self, ticket: Ticket) -> Ticket:
        await super().save(ticket)
        # reload so the replies collection is current
        stmt = select(Ticket).where(Ticket.id == ticket.id).execution_options(populate_existing=True)
        return (await self.scalar_one_or_none(stmt))  # type: ignore

    async def add_reply(self, ticket: Ticket, reply: TicketReply) -> Ticket:
        await self.add(reply)
        return await self.save(ticket)


class AppSettingRepository(BaseRepository):
    """Key/value application settings."""

    async def as_dict(self) -> Dict[str, Any]:
        rows = await self.scalars(select(AppSetting).order_by(AppSetting.key.asc()))
        return {row.key: row.value for row in rows}

    async def upsert_many(self, values: Dict[str, Any]) -> None:
        for key, value in values.items():
            setting = await self.scalar_one_or_none(select(AppSetting).where(AppSetting.key == key))
            if setting is None:
                setting = AppSetting(key=key)
            setting.value = value
            await self.add(setting)
        await self.commit()


async def count_rows(repo: BaseRepository, model) -> int:
    """Total row count of a mapped table."""
    result = await repo.execute(select(func.count()).select_from(model))
    return int(result.scalar_one())
