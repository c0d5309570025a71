from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import stripe
from fastapi import HTTPException, status
from starlette.concurrency import run_in_threadpool

from vivaform_api.core.settings import AppSettings, get_app_settings

logger = logging.getLogger(__name__)


def _plain(obj: Any) -> Dict[str, Any]:
    # StripeObject is not a dict subclass; callers rely on .get() and nested dicts
    return obj.to_dict() if isinstance(obj, stripe.StripeObject) else dict(obj)


class StripeGateway:
    """
    Async facade over the blocking Stripe SDK.

    Every call runs in the threadpool with the configured API key; results are
    converted to plain (recursively nested) dicts.
    """

    def __init__(self, settings: Optional[AppSettings] = None) -> None:
        self.settings = settings or get_app_settings()

    def _api_key(self) -> str:
        if not self.settings.STRIPE_API_KEY:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Stripe is not configured")
        return self.settings.STRIPE_API_KEY

    async def create_checkout_session(self, **params: Any) -> Dict[str, Any]:
        session = await run_in_threadpool(stripe.checkout.Session.create, api_key=self._api_key(), **params)
        return _plain(session)

    async def create_portal_session(self, customer: str, return_url: str) -> Dict[str, Any]:
        session = await run_in_threadpool(
            stripe.billing_portal.Session.create, api_key=self._api_key(), customer=customer, return_url=return_url
        )
        return _plain(session)

    async def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        subscription = await run_in_threadpool(stripe.Subscription.retrieve, subscription_id, api_key=self._api_key())
        return _plain(subscription)

    async def retrieve_checkout_session(self, session_id: str) -> Dict[str, Any]:
        session = await run_in_threadpool(stripe.checkout.Session.retrieve, session_id, api_key=self._api_key())
        return _plain(session)

    # PUBLIC_INTERFACE
    def construct_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Verify a webhook payload against STRIPE_WEBHOOK_SECRET and return the event as a dict.

        Raises:
            HTTPException: 400 when the secret or signature is missing or verification fails.
        """
        secret = self.settings.STRIPE_WEBHOOK_SECRET
        if not secret or not signature:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing Stripe signature")
        try:
            event = stripe.Webhook.construct_event(payload, signature, secret)
        except (ValueError, stripe.SignatureVerificationError) as exc:
            logger.warning("Stripe webhook verification failed: %s", exc)
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid Stripe signature")
        return _plain(event)


# PUBLIC_INTERFACE
def get_stripe_gateway() -> StripeGateway:
    """FastAPI dependency; tests override it with a fake gateway."""
    return StripeGateway()
