from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

Plan = Literal["monthly", "quarterly", "annual"]


class SubscriptionRead(BaseModel):
    """Local mirror of the user's Stripe subscription."""
    id: UUID
    user_id: UUID
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    stripe_price_id: Optional[str] = None
    status: str
    current_period_end: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CheckoutRequest(BaseModel):
    plan: Plan
    success_url: str = Field(..., min_length=1)
    cancel_url: str = Field(..., min_length=1)


class CheckoutResponse(BaseModel):
    url: Optional[str] = None
    id: str


class PortalRequest(BaseModel):
    return_url: str = Field(..., min_length=1)


class PortalResponse(BaseModel):
    url: str


class SyncSessionRequest(BaseModel):
    session_id: str = Field(..., min_length=1)


class WebhookAck(BaseModel):
    received: bool = True
