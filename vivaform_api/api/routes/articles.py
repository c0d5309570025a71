from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.core.deps import require_admin
from vivaform_api.db.models.users import User
from vivaform_api.db.session import get_async_session
from vivaform_api.schemas.articles import ArticleCreate, ArticleList, ArticleRead, ArticleUpdate
from vivaform_api.services.articles import ArticleService

router = APIRouter(prefix="/articles", tags=["Articles"])


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=ArticleRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create article",
    description="Slug is derived from the title. Requires the ADMIN role.",
)
async def create(
    payload: ArticleCreate,
    user: User = Depends(require_admin),
    session: AsyncSession = Depends(get_async_session),
) -> ArticleRead:
    return ArticleRead.model_validate(await ArticleService(session).create(payload, author_id=user.id))


# PUBLIC_INTERFACE
@router.get("", response_model=ArticleList, summary="Published articles, newest first")
async def list_published(
    category: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_async_session),
) -> ArticleList:
    return await ArticleService(session).list(published_only=True, category=category, page=page, limit=limit)


# PUBLIC_INTERFACE
@router.get(
    "/all",
    response_model=ArticleList,
    summary="All articles including drafts",
    dependencies=[Depends(require_admin)],
)
async def list_all(
    category: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_async_session),
) -> ArticleList:
    return await ArticleService(session).list(published_only=False, category=category, page=page, limit=limit)


# PUBLIC_INTERFACE
@router.get("/categories", response_model=List[str], summary="Categories of published articles")
async def categories(session: AsyncSession = Depends(get_async_session)) -> List[str]:
    return await ArticleService(session).categories()


# PUBLIC_INTERFACE
@router.get("/{slug}", response_model=ArticleRead, summary="Read article by slug", description="Counts a view.")
async def read(slug: str = Path(...), session: AsyncSession = Depends(get_async_session)) -> ArticleRead:
    return ArticleRead.model_validate(await ArticleService(session).read_by_slug(slug))


# PUBLIC_INTERFACE
@router.patch("/{article_id}", response_model=ArticleRead, summary="Update article", dependencies=[Depends(require_admin)])
async def update(
    payload: ArticleUpdate,
    article_id: UUID = Path(...),
    session: AsyncSession = Depends(get_async_session),
) -> ArticleRead:
    return ArticleRead.model_validate(await ArticleService(session).update(article_id, payload))


# PUBLIC_INTERFACE
@router.delete(
    "/{article_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete article",
    dependencies=[Depends(require_admin)],
)
async def delete(article_id: UUID = Path(...), session: AsyncSession = Depends(get_async_session)) -> Response:
    await ArticleService(session).delete(article_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
