from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.core.deps import get_current_user, require_premium
from vivaform_api.db.models.users import User
from vivaform_api.db.session import get_async_session
from vivaform_api.schemas.subscriptions import (
    CheckoutRequest,
    CheckoutResponse,
    PortalRequest,
    PortalResponse,
    SubscriptionRead,
    SyncSessionRequest,
)
from vivaform_api.services.stripe_gateway import StripeGateway, get_stripe_gateway
from vivaform_api.services.subscriptions import SubscriptionService

router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])


# PUBLIC_INTERFACE
@router.get("", response_model=Optional[SubscriptionRead], summary="Current subscription")
async def current(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
    gateway: StripeGateway = Depends(get_stripe_gateway),
) -> Optional[SubscriptionRead]:
    sub = await SubscriptionService(session, gateway).get(user.id)
    return SubscriptionRead.model_validate(sub) if sub else None


# PUBLIC_INTERFACE
@router.post(
    "/checkout",
    response_model=CheckoutResponse,
    summary="Start Stripe checkout",
    description="Create a Stripe Checkout session for the plan. `success_url` receives `?session_id=`.",
)
async def checkout(
    payload: CheckoutRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
    gateway: StripeGateway = Depends(get_stripe_gateway),
) -> CheckoutResponse:
    return await SubscriptionService(session, gateway).create_checkout_session(
        user, payload.plan, payload.success_url, payload.cancel_url
    )


# PUBLIC_INTERFACE
@router.post("/portal", response_model=PortalResponse, summary="Open the Stripe customer portal")
async def portal(
    payload: PortalRequest,
    user: User = Depends(require_premium),
    session: AsyncSession = Depends(get_async_session),
    gateway: StripeGateway = Depends(get_stripe_gateway),
) -> PortalResponse:
    return await SubscriptionService(session, gateway).create_portal_session(user.id, payload.return_url)


# PUBLIC_INTERFACE
@router.post(
    "/sync-session",
    response_model=Optional[SubscriptionRead],
    summary="Apply a finished checkout",
    description="Retrieve the checkout session and apply it like a completed-checkout webhook.",
)
async def sync_session(
    payload: SyncSessionRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
    gateway: StripeGateway = Depends(get_stripe_gateway),
) -> Optional[SubscriptionRead]:
    sub = await SubscriptionService(session, gateway).sync_checkout_session(user, payload.session_id)
    return SubscriptionRead.model_validate(sub) if sub else None
