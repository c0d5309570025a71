from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.core.settings import get_app_settings
from vivaform_api.db.models.billing import ACTIVE_STATUSES, Subscription
from vivaform_api.db.models.users import User
from vivaform_api.repositories.billing import SubscriptionRepository
from vivaform_api.repositories.users import UserRepository
from vivaform_api.schemas.subscriptions import CheckoutResponse, PortalResponse
from vivaform_api.services.audit import AuditAction, AuditService
from vivaform_api.services.base import BaseService
from vivaform_api.services.stripe_gateway import StripeGateway

logger = logging.getLogger(__name__)


def _metadata_user_id(*objects: Optional[Mapping[str, Any]]) -> Optional[str]:
    for obj in objects:
        metadata = (obj or {}).get("metadata") or {}
        if metadata.get("user_id"):
            return metadata["user_id"]
    return None


def _price_id(subscription: Mapping[str, Any]) -> Optional[str]:
    items = (subscription.get("items") or {}).get("data") or []
    return ((items[0].get("price") or {}).get("id")) if items else None


def _period_end(subscription: Mapping[str, Any]) -> Optional[datetime]:
    value = subscription.get("current_period_end")
    if value is None:
        items = (subscription.get("items") or {}).get("data") or []
        value = items[0].get("current_period_end") if items else None
    return datetime.fromtimestamp(value, tz=timezone.utc) if value else None


def _as_uuid(value: str) -> UUID:
    try:
        return UUID(str(value))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid user id in Stripe metadata")


class SubscriptionService(BaseService):
    """Stripe checkout, customer portal and webhook-driven tier changes."""

    def __init__(self, session: AsyncSession, gateway: StripeGateway) -> None:
        super().__init__(session)
        self.gateway = gateway
        self.settings = get_app_settings()
        self.subscriptions = SubscriptionRepository(session)
        self.users = UserRepository(session)
        self.audit = AuditService(session)

    def price_for_plan(self, plan: str) -> str:
        price = self.settings.price_for_plan(plan)
        if not price:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail=f'Stripe price is not configured for plan "{plan}"'
            )
        return price

    async def get(self, user_id: UUID) -> Optional[Subscription]:
        return await self.subscriptions.get_for_user(user_id)

    # PUBLIC_INTERFACE
    async def create_checkout_session(
        self, user: User, plan: str, success_url: str, cancel_url: str
    ) -> CheckoutResponse:
        """Start a subscription checkout; existing customers are reused, others are identified by email."""
        price = self.price_for_plan(plan)
        existing = await self.subscriptions.get_for_user(user.id)
        customer = existing.stripe_customer_id if existing else None
        metadata = {"user_id": str(user.id), "plan": plan}

        params: Dict[str, Any] = {
            "mode": "subscription",
            "success_url": f"{success_url}?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": cancel_url,
            "line_items": [{"price": price, "quantity": 1}],
            "billing_address_collection": "auto",
            "metadata": metadata,
            "subscription_data": {"metadata": metadata},
        }
        if customer:
            params["customer"] = customer
        else:
            params["customer_email"] = user.email

        session = await self.gateway.create_checkout_session(**params)
        logger.info("Checkout session %s created for user %s (%s)", session["id"], user.id, plan)
        await self.audit.log_subscription_change(
            user.id, AuditAction.SUBSCRIPTION_UPGRADED, {"plan": plan, "session_id": session["id"]}
        )
        return CheckoutResponse(url=session.get("url"), id=session["id"])

    # PUBLIC_INTERFACE
    async def create_portal_session(self, user_id: UUID, return_url: str) -> PortalResponse:
        existing = await self.subscriptions.get_for_user(user_id)
        if not existing or not existing.stripe_customer_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Premium subscription is not active for this user"
            )
        session = await self.gateway.create_portal_session(existing.stripe_customer_id, return_url)
        return PortalResponse(url=session["url"])

    # PUBLIC_INTERFACE
    async def sync_checkout_session(self, user: User, session_id: str) -> Optional[Subscription]:
        """
        Apply a finished checkout right after the redirect, without waiting for the webhook.

        Raises:
            HTTPException: 403 when the session belongs to another user.
        """
        session = await self.gateway.retrieve_checkout_session(session_id)
        owner = _metadata_user_id(session)
        if owner and owner != str(user.id):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Checkout session belongs to another user")
        await self.handle_checkout_completed(session, fallback_user_id=str(user.id))
        return await self.subscriptions.get_for_user(user.id)

    async def _apply_subscription(self, user_id: UUID, subscription: Mapping[str, Any]) -> Subscription:
        price = _price_id(subscription)
        if not price:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Subscription price not found in Stripe payload"
            )
        user = self.require(await self.users.get_by_id(user_id), "User")

        record = await self.subscriptions.get_for_user(user_id)
        created = record is None
        record = record or Subscription(user_id=user_id)
        record.stripe_customer_id = subscription.get("customer")
        record.stripe_subscription_id = subscription.get("id")
        record.stripe_price_id = price
        record.status = subscription.get("status") or "incomplete"
        record.current_period_end = _period_end(subscription)
        await self.subscriptions.save(record)

        previous_tier = user.tier
        user.tier = "PREMIUM" if record.status in ACTIVE_STATUSES else "FREE"
        await self.users.save(user)
        logger.info("Subscription %s for user %s is %s (tier %s)", record.stripe_subscription_id, user_id,
                    record.status, user.tier)

        meta = {"subscription_id": record.stripe_subscription_id, "status": record.status, "price_id": price}
        if created:
            await self.audit.log_subscription_change(user_id, AuditAction.SUBSCRIPTION_CREATED, meta)
        elif previous_tier == "PREMIUM" and user.tier == "FREE":
            await self.audit.log_subscription_change(user_id, AuditAction.SUBSCRIPTION_DOWNGRADED, meta)
        return record

    # PUBLIC_INTERFACE
    async def handle_checkout_completed(
        self, session: Mapping[str, Any], fallback_user_id: Optional[str] = None
    ) -> None:
        """Fetch the session's subscription and mirror it for the user named in the metadata."""
        subscription_id = session.get("subscription")
        if not subscription_id:
            return
        subscription = await self.gateway.retrieve_subscription(subscription_id)
        user_id = _metadata_user_id(subscription, session) or fallback_user_id
        if not user_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Subscription metadata does not contain user_id"
            )
        await self._apply_subscription(_as_uuid(user_id), subscription)

    async def handle_subscription_updated(self, subscription: Mapping[str, Any]) -> None:
        user_id = _metadata_user_id(subscription)
        if not user_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Subscription metadata does not contain user_id"
            )
        await self._apply_subscription(_as_uuid(user_id), subscription)

    async def handle_subscription_deleted(self, subscription: Mapping[str, Any]) -> None:
        user_id = _metadata_user_id(subscription)
        if not user_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Subscription metadata does not contain user_id"
            )
        uid = _as_uuid(user_id)
        record = await self.subscriptions.get_for_user(uid)
        if record:
            await self.subscriptions.remove(record)
        user = await self.users.get_by_id(uid)
        if user:
            user.tier = "FREE"
            await self.users.save(user)
        logger.info("Subscription deleted for user %s", uid)
        await self.audit.log_subscription_change(
            uid, AuditAction.SUBSCRIPTION_CANCELLED, {"subscription_id": subscription.get("id")}
        )

    async def handle_invoice(self, invoice: Mapping[str, Any], success: bool) -> None:
        customer = invoice.get("customer")
        record = await self.subscriptions.get_by_customer(customer) if customer else None
        await self.audit.log_payment(
            record.user_id if record else None,
            success,
            {"invoice_id": invoice.get("id"), "amount": invoice.get("amount_paid" if success else "amount_due"),
             "currency": invoice.get("currency"), "customer": customer},
        )

    # PUBLIC_INTERFACE
    async def handle_event(self, event: Mapping[str, Any]) -> None:
        """Dispatch a verified webhook event; unknown types are ignored."""
        event_type = event.get("type")
        obj = (event.get("data") or {}).get("object") or {}
        logger.info("Stripe event %s (%s)", event.get("id"), event_type)
        if event_type == "checkout.session.completed":
            await self.handle_checkout_completed(obj)
        elif event_type in ("customer.subscription.created", "customer.subscription.updated"):
            await self.handle_subscription_updated(obj)
        elif event_type == "customer.subscription.deleted":
            await self.handle_subscription_deleted(obj)
        elif event_type == "invoice.payment_succeeded":
            await self.handle_invoice(obj, success=True)
        elif event_type == "invoice.payment_failed":
            await self.handle_invoice(obj, success=False)
