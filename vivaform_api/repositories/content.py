from __future__ import annotations

from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, update

from vivaform_api.db.models.content import Article
from .base import BaseRepository


class ArticleRepository(BaseRepository):
    """Repository for CMS articles."""

    async def get(self, article_id: UUID) -> Optional[Article]:
        return await self.scalar_one_or_none(select(Article).where(Article.id == article_id))

    async def get_by_slug(self, slug: str) -> Optional[Article]:
        return await self.scalar_one_or_none(select(Article).where(Article.slug == slug))

    async def list_paginated(
        self,
        *,
        published_only: bool,
        category: Optional[str],
        limit: int,
        offset: int,
    ) -> Tuple[List[Article], int]:
        stmt = select(Article)
        if published_only:
            stmt = stmt.where(Article.published.is_(True))
            order = (Article.published_at.desc(), Article.created_at.desc())
        else:
            order = (Article.created_at.desc(),)
        if category:
            stmt = stmt.where(Article.category == category)
        return await self.paginate(stmt, *order, limit=limit, offset=offset)

    async def published_categories(self) -> List[str]:
        stmt = (
            select(Article.category)
            .where(Article.published.is_(True), Article.category.is_not(None))
            .distinct()
            .order_by(Article.category.asc())
        )
        return list(await self.scalars(stmt))

    async def increment_views(self, article_id: UUID) -> None:
        await self.execute(
            update(Article).where(Article.id == article_id).values(view_count=Article.view_count + 1)
        )
        await self.commit()

