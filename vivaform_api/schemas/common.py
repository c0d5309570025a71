from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class PageInfo(BaseModel):
    """`pagination` block of back-office and article listings (pages start at 1)."""
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total: int = Field(..., ge=0)
    total_pages: int = Field(..., ge=0)


def page_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def page_info(page: int, limit: int, total: int) -> PageInfo:
    return PageInfo(page=page, limit=limit, total=total, total_pages=(total + limit - 1) // limit)


class MessageResponse(BaseModel):
    """Acknowledgement body, e.g. logout or 'Generated 3 recommendations'."""
    message: str
    details: Optional[dict] = None


class ErrorInfo(BaseModel):
    type: str = Field(..., description="Machine-readable error code, e.g. http_error or validation_error")
    message: str
    details: Optional[Any] = Field(default=None, description="Validation issues or handler-specific data")


# PUBLIC_INTERFACE
class ErrorResponse(BaseModel):
    """Error envelope every failed request returns; correlation_id matches X-Correlation-ID."""
    status: int
    error: ErrorInfo
    correlation_id: Optional[str] = None
    path: Optional[str] = None
    method: Optional[str] = None
    timestamp: datetime
