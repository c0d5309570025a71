from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.db.session import get_async_session
from vivaform_api.schemas.subscriptions import WebhookAck
from vivaform_api.services.stripe_gateway import StripeGateway, get_stripe_gateway
from vivaform_api.services.subscriptions import SubscriptionService

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


# PUBLIC_INTERFACE
@router.post(
    "/stripe",
    response_model=WebhookAck,
    summary="Stripe webhook",
    description="Verifies the Stripe-Signature header against the raw body and applies subscription events.",
)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    session: AsyncSession = Depends(get_async_session),
    gateway: StripeGateway = Depends(get_stripe_gateway),
) -> WebhookAck:
    payload = await request.body()
    event = gateway.construct_event(payload, stripe_signature)
    await SubscriptionService(session, gateway).handle_event(event)
    return WebhookAck()
