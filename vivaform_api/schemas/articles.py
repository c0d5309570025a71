from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from vivaform_api.schemas.common import PageInfo


class ArticleCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=255)
    content: str = Field(..., min_length=10)
    excerpt: Optional[str] = None
    category: Optional[str] = Field(None, max_length=64)
    cover_image: Optional[str] = Field(None, max_length=512)
    tags: List[str] = Field(default_factory=list)
    published: bool = False


class ArticleUpdate(BaseModel):
    """Partial update; a new title regenerates the slug."""
    title: Optional[str] = Field(None, min_length=3, max_length=255)
    content: Optional[str] = Field(None, min_length=10)
    excerpt: Optional[str] = None
    category: Optional[str] = Field(None, max_length=64)
    cover_image: Optional[str] = Field(None, max_length=512)
    tags: Optional[List[str]] = None
    published: Optional[bool] = None


class ArticleRead(BaseModel):
    id: UUID
    title: str
    slug: str
    content: str
    excerpt: Optional[str] = None
    category: Optional[str] = None
    cover_image: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    published: bool
    published_at: Optional[datetime] = None
    view_count: int
    author_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ArticleList(BaseModel):
    articles: List[ArticleRead]
    pagination: PageInfo
