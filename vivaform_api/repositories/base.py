from __future__ import annotations

from typing import Any, Iterable, List, Optional, Tuple, TypeVar

from sqlalchemy import Executable, Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class BaseRepository:
    """
    Data access on a request-scoped AsyncSession.

    Lookups return None or empty lists; deciding on 403/404 is left to services.
    Write helpers commit immediately since every VivaForm mutation is a single unit.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def execute(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        return await self.session.execute(statement, params or {})

    async def scalars(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        result = await self.execute(statement, params)
        return result.scalars()

    async def scalar_one_or_none(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        result = await self.execute(statement, params)
        return result.scalar_one_or_none()

    async def count(self, statement: Select) -> int:
        """Count the rows a select would return."""
        stmt = select(func.count()).select_from(statement.order_by(None).subquery())
        return int((await self.execute(stmt)).scalar_one())

    async def paginate(self, statement: Select, *order_by: Any, limit: int, offset: int) -> Tuple[List[Any], int]:
        """One page of rows plus the unpaged total, for admin and catalog listings."""
        total = await self.count(statement)
        page = statement.order_by(*order_by).offset(offset).limit(limit)
        return list(await self.scalars(page)), total

    async def commit(self) -> None:
        await self.session.commit()

    async def add_all(self, entities: Iterable[Any]) -> None:
        self.session.add_all(list(entities))

    async def add(self, entity: Any) -> None:
        self.session.add(entity)

    async def delete(self, entity: Any) -> None:
        await self.session.delete(entity)

    async def save(self, entity: T) -> T:
        """Persist a new or modified entity and commit."""
        self.session.add(entity)
        await self.session.commit()
        return entity

    async def remove(self, entity: Any) -> None:
        """Delete an entity and commit."""
        await self.session.delete(entity)
        await self.session.commit()
