import hashlib
import hmac
import json
import time
from uuid import uuid4

import pytest
import stripe
from httpx import AsyncClient

from vivaform_api.core.settings import AppSettings
from vivaform_api.services.stripe_gateway import StripeGateway, get_stripe_gateway

pytestmark = pytest.mark.asyncio

CHECKOUT = {"plan": "monthly", "success_url": "https://app.example.com/success", "cancel_url": "https://app.example.com/cancel"}


def stripe_subscription(user_id: str, status: str = "active", price: str = "price_annual", sub_id: str = "sub_1"):
    return {
        "id": sub_id,
        "object": "subscription",
        "customer": "cus_1",
        "status": status,
        "metadata": {"user_id": user_id},
        "items": {"data": [{"price": {"id": price}}]},
        "current_period_end": 1790000000,
    }


def event(event_type: str, obj, event_id: str = "evt_1"):
    return {"id": event_id, "type": event_type, "data": {"object": obj}}


async def post_event(client: AsyncClient, signature: str):
    return await client.post(
        "/api/v1/webhooks/stripe",
        content=b'{"id": "evt"}',
        headers={"Stripe-Signature": signature, "Content-Type": "application/json"},
    )


async def test_no_subscription_by_default(client: AsyncClient, user_headers):
    response = await client.get("/api/v1/subscriptions", headers=user_headers)
    assert response.status_code == 200
    assert response.json() is None


async def test_checkout_session(client: AsyncClient, user_auth, user_headers, stripe_gateway):
    response = await client.post("/api/v1/subscriptions/checkout", json=CHECKOUT, headers=user_headers)
    assert response.status_code == 200
    assert response.json() == {"url": "https://checkout.stripe.test/cs_test_1", "id": "cs_test_1"}

    params = stripe_gateway.checkout_calls[0]
    assert params["mode"] == "subscription"
    assert params["line_items"] == [{"price": "price_monthly", "quantity": 1}]
    assert params["customer_email"] == "user@example.com"
    assert params["metadata"] == {"user_id": user_auth["user"]["id"], "plan": "monthly"}
    assert params["subscription_data"]["metadata"]["user_id"] == user_auth["user"]["id"]
    assert params["success_url"] == "https://app.example.com/success?session_id={CHECKOUT_SESSION_ID}"


async def test_checkout_rejects_unknown_plan(client: AsyncClient, user_headers):
    response = await client.post(
        "/api/v1/subscriptions/checkout", json={**CHECKOUT, "plan": "lifetime"}, headers=user_headers
    )
    assert response.status_code == 422


async def test_webhook_requires_valid_signature(client: AsyncClient):
    missing = await client.post("/api/v1/webhooks/stripe", content=b"{}")
    assert missing.status_code == 400
    assert missing.json()["error"]["message"] == "Missing Stripe signature"

    invalid = await post_event(client, "t=1,v1=forged")
    assert invalid.status_code == 400
    assert invalid.json()["error"]["message"] == "Invalid Stripe signature"


async def test_subscription_updated_then_deleted(client: AsyncClient, user_auth, user_headers, stripe_gateway):
    user_id = user_auth["user"]["id"]
    stripe_gateway.events["sig_updated"] = event("customer.subscription.updated", stripe_subscription(user_id))
    stripe_gateway.events["sig_deleted"] = event(
        "customer.subscription.deleted", stripe_subscription(user_id, status="canceled"), "evt_2"
    )

    response = await post_event(client, "sig_updated")
    assert response.status_code == 200
    assert response.json() == {"received": True}

    me = (await client.get("/api/v1/auth/me", headers=user_headers)).json()
    assert me["tier"] == "PREMIUM"
    sub = (await client.get("/api/v1/subscriptions", headers=user_headers)).json()
    assert sub["status"] == "active"
    assert sub["stripe_price_id"] == "price_annual"
    assert sub["stripe_customer_id"] == "cus_1"
    assert sub["current_period_end"].startswith("2026-09-21")

    assert (await post_event(client, "sig_deleted")).status_code == 200
    me = (await client.get("/api/v1/auth/me", headers=user_headers)).json()
    assert me["tier"] == "FREE"
    assert (await client.get("/api/v1/subscriptions", headers=user_headers)).json() is None


async def test_past_due_subscription_downgrades(client: AsyncClient, user_auth, user_headers, stripe_gateway):
    user_id = user_auth["user"]["id"]
    stripe_gateway.events["sig_active"] = event("customer.subscription.created", stripe_subscription(user_id))
    stripe_gateway.events["sig_past_due"] = event(
        "customer.subscription.updated", stripe_subscription(user_id, status="past_due"), "evt_2"
    )
    await post_event(client, "sig_active")
    await post_event(client, "sig_past_due")

    me = (await client.get("/api/v1/auth/me", headers=user_headers)).json()
    assert me["tier"] == "FREE"
    sub = (await client.get("/api/v1/subscriptions", headers=user_headers)).json()
    assert sub["status"] == "past_due"


async def test_checkout_completed_event(client: AsyncClient, user_auth, user_headers, stripe_gateway):
    user_id = user_auth["user"]["id"]
    stripe_gateway.subscriptions["sub_2"] = stripe_subscription(user_id, price="price_quarterly", sub_id="sub_2")
    stripe_gateway.events["sig_checkout"] = event(
        "checkout.session.completed",
        {"id": "cs_1", "object": "checkout.session", "subscription": "sub_2", "metadata": {"user_id": user_id}},
    )

    assert (await post_event(client, "sig_checkout")).status_code == 200
    sub = (await client.get("/api/v1/subscriptions", headers=user_headers)).json()
    assert sub["stripe_subscription_id"] == "sub_2"
    assert sub["stripe_price_id"] == "price_quarterly"


async def test_subscription_event_without_user_is_rejected(client: AsyncClient, stripe_gateway):
    payload = stripe_subscription("ignored")
    payload["metadata"] = {}
    stripe_gateway.events["sig_orphan"] = event("customer.subscription.updated", payload)
    response = await post_event(client, "sig_orphan")
    assert response.status_code == 400


async def test_unknown_event_is_acknowledged(client: AsyncClient, stripe_gateway):
    stripe_gateway.events["sig_other"] = event("customer.created", {"id": "cus_9"})
    response = await post_event(client, "sig_other")
    assert response.json() == {"received": True}


async def test_sync_session(client: AsyncClient, user_auth, user_headers, stripe_gateway):
    user_id = user_auth["user"]["id"]
    stripe_gateway.subscriptions["sub_3"] = stripe_subscription(user_id, price="price_monthly", sub_id="sub_3")
    stripe_gateway.checkout_sessions["cs_mine"] = {"id": "cs_mine", "subscription": "sub_3", "metadata": {"user_id": user_id}}
    stripe_gateway.checkout_sessions["cs_theirs"] = {
        "id": "cs_theirs",
        "subscription": "sub_4",
        "metadata": {"user_id": str(uuid4())},
    }

    forbidden = await client.post(
        "/api/v1/subscriptions/sync-session", json={"session_id": "cs_theirs"}, headers=user_headers
    )
    assert forbidden.status_code == 403

    response = await client.post("/api/v1/subscriptions/sync-session", json={"session_id": "cs_mine"}, headers=user_headers)
    assert response.status_code == 200
    assert response.json()["stripe_subscription_id"] == "sub_3"
    assert (await client.get("/api/v1/auth/me", headers=user_headers)).json()["tier"] == "PREMIUM"


async def test_portal(client: AsyncClient, user_auth, user_headers, premium_headers, stripe_gateway):
    body = {"return_url": "https://app.example.com/settings"}
    assert (await client.post("/api/v1/subscriptions/portal", json=body, headers=user_headers)).status_code == 403
    no_customer = await client.post("/api/v1/subscriptions/portal", json=body, headers=premium_headers)
    assert no_customer.status_code == 400

    stripe_gateway.events["sig"] = event("customer.subscription.updated", stripe_subscription(user_auth["user"]["id"]))
    await post_event(client, "sig")
    response = await client.post("/api/v1/subscriptions/portal", json=body, headers=user_headers)
    assert response.status_code == 200
    assert response.json() == {"url": "https://billing.stripe.test/cus_1"}

    # existing customers are reused for a new checkout
    await client.post("/api/v1/subscriptions/checkout", json=CHECKOUT, headers=user_headers)
    assert stripe_gateway.checkout_calls[-1]["customer"] == "cus_1"
    assert "customer_email" not in stripe_gateway.checkout_calls[-1]


def sign(payload: bytes, secret: str = "whsec_test") -> str:
    timestamp = int(time.time())
    signed = f"{timestamp}.".encode() + payload
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


async def test_signed_webhook_through_stripe_sdk(client: AsyncClient, user_auth, user_headers):
    from vivaform_api.api.main import app

    app.dependency_overrides.pop(get_stripe_gateway)
    body = {
        "id": "evt_live_1",
        "object": "event",
        "type": "customer.subscription.updated",
        "data": {"object": stripe_subscription(user_auth["user"]["id"], price="price_monthly")},
    }
    payload = json.dumps(body).encode()

    response = await client.post(
        "/api/v1/webhooks/stripe",
        content=payload,
        headers={"Stripe-Signature": sign(payload), "Content-Type": "application/json"},
    )
    assert response.status_code == 200, response.text
    assert (await client.get("/api/v1/auth/me", headers=user_headers)).json()["tier"] == "PREMIUM"
    sub = (await client.get("/api/v1/subscriptions", headers=user_headers)).json()
    assert sub["stripe_price_id"] == "price_monthly"

    forged = await client.post(
        "/api/v1/webhooks/stripe",
        content=payload,
        headers={"Stripe-Signature": sign(payload, secret="whsec_other"), "Content-Type": "application/json"},
    )
    assert forged.status_code == 400


def test_construct_event_returns_plain_dict():
    payload = json.dumps(
        {"id": "evt_2", "object": "event", "type": "customer.created", "data": {"object": {"id": "cus_9", "metadata": {}}}}
    ).encode()
    gateway = StripeGateway(AppSettings(STRIPE_WEBHOOK_SECRET="whsec_test"))

    result = gateway.construct_event(payload, sign(payload))
    assert type(result) is dict
    assert type(result["data"]["object"]) is dict
    assert result["data"]["object"].get("id") == "cus_9"


async def test_checkout_session_is_converted_to_dict(monkeypatch):
    calls = []

    def fake_create(**params):
        calls.append(params)
        session = stripe.StripeObject(id="cs_live_1")
        session["url"] = "https://checkout.stripe.com/c/cs_live_1"
        return session

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)
    gateway = StripeGateway(AppSettings(STRIPE_API_KEY="sk_test_123"))

    result = await gateway.create_checkout_session(mode="subscription")
    assert type(result) is dict
    assert result.get("url") == "https://checkout.stripe.com/c/cs_live_1"
    assert calls == [{"api_key": "sk_test_123", "mode": "subscription"}]


async def test_gateway_without_api_key_is_unavailable():
    from fastapi import HTTPException

    with pytest.raises(HTTPException) as excinfo:
        await StripeGateway(AppSettings(STRIPE_API_KEY=None)).retrieve_subscription("sub_1")
    assert excinfo.value.status_code == 503
