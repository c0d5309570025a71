from __future__ import annotations

import logging
import re
from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.core.dates import utcnow
from vivaform_api.db.models.content import Article
from vivaform_api.repositories.content import ArticleRepository
from vivaform_api.schemas.articles import ArticleCreate, ArticleList, ArticleRead, ArticleUpdate
from vivaform_api.schemas.common import page_info, page_offset
from vivaform_api.services.base import BaseService

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def slugify(title: str) -> str:
    """Lower-case, drop everything but word chars/spaces/hyphens, hyphenate whitespace, collapse and trim hyphens."""
    slug = re.sub(r"[^\w\s-]", "", title.lower())
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


class ArticleService(BaseService):
    """Minimal CMS: public reading by slug, admin authoring."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = ArticleRepository(session)

    async def _ensure_free_slug(self, slug: str, article_id: Optional[UUID] = None) -> None:
        existing = await self.repo.get_by_slug(slug)
        if existing and existing.id != article_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Article with this slug already exists")

    # PUBLIC_INTERFACE
    async def create(self, payload: ArticleCreate, author_id: Optional[UUID] = None) -> Article:
        """
        Create an article with a slug derived from the title.

        Raises:
            HTTPException: 400 when the slug is taken.
        """
        slug = slugify(payload.title)
        await self._ensure_free_slug(slug)
        article = Article(**payload.model_dump(), slug=slug, author_id=author_id)
        if payload.published:
            article.published_at = utcnow()
        article = await self.repo.save(article)
        logger.info("Article created: %s", slug)
        return article

    async def list(self, *, published_only: bool, category: Optional[str], page: int, limit: int) -> ArticleList:
        items, total = await self.repo.list_paginated(
            published_only=published_only, category=category, limit=limit, offset=page_offset(page, limit)
        )
        return ArticleList(
            articles=[ArticleRead.model_validate(a) for a in items], pagination=page_info(page, limit, total)
        )

    async def categories(self) -> List[str]:
        return await self.repo.published_categories()

    # PUBLIC_INTERFACE
    async def read_by_slug(self, slug: str) -> Article:
        """Return the article and count the view."""
        article = self.require(await self.repo.get_by_slug(slug), "Article")
        await self.repo.increment_views(article.id)
        await self.session.refresh(article)
        return article

    async def _get(self, article_id: UUID) -> Article:
        return self.require(await self.repo.get(article_id), "Article")

    # PUBLIC_INTERFACE
    async def update(self, article_id: UUID, payload: ArticleUpdate) -> Article:
        """Apply provided fields; the first publish stamps published_at and a new title re-slugs."""
        article = await self._get(article_id)
        changes = payload.model_dump(exclude_unset=True)
        if "title" in changes and changes["title"] != article.title:
            slug = slugify(changes["title"])
            await self._ensure_free_slug(slug, article.id)
            article.slug = slug
        if changes.get("published") and not article.published_at:
            article.published_at = utcnow()
        for key, value in changes.items():
            setattr(article, key, value)
        return await self.repo.save(article)

    async def delete(self, article_id: UUID) -> None:
        article = await self._get(article_id)
        await self.repo.remove(article)
        logger.info("Article deleted: %s", article.slug)
