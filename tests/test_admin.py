from datetime import datetime, timezone
from uuid import uuid4

import pytest
from httpx import AsyncClient

from conftest import create_user, login_headers
from vivaform_api.db.models.admin import FeatureToggle
from vivaform_api.db.models.billing import Subscription
from vivaform_api.services.features import is_enabled_for, rollout_bucket

pytestmark = pytest.mark.asyncio


async def add_subscription(session_maker, user_id, price_id, status="active"):
    async with session_maker() as session:
        session.add(
            Subscription(user_id=user_id, stripe_price_id=price_id, status=status,
                         stripe_subscription_id=f"sub_{uuid4().hex[:8]}", stripe_customer_id="cus_test")
        )
        await session.commit()


async def test_admin_routes_require_admin_role(client: AsyncClient, user_headers, session_maker):
    assert (await client.get("/api/v1/admin/users", headers=user_headers)).status_code == 403
    assert (await client.get("/api/v1/admin/users")).status_code == 401

    await create_user(session_maker, "support@example.com", role="SUPPORT")
    support = await login_headers(client, "support@example.com")
    assert (await client.get("/api/v1/admin/settings", headers=support)).status_code == 403


async def test_list_users_with_filters(client: AsyncClient, admin_headers, user_headers):
    await client.post(
        "/api/v1/nutrition",
        json={"meal_type": "lunch", "food": "Soup", "calories": 200, "protein": 5, "fat": 5, "carbs": 20},
        headers=user_headers,
    )

    everyone = (await client.get("/api/v1/admin/users", headers=admin_headers)).json()
    assert everyone["pagination"]["total"] == 2

    found = (await client.get("/api/v1/admin/users", params={"q": "user@"}, headers=admin_headers)).json()
    assert [u["email"] for u in found["users"]] == ["user@example.com"]
    assert found["users"][0]["counts"]["nutrition"] == 1

    premium = (await client.get("/api/v1/admin/users", params={"tier": "PREMIUM"}, headers=admin_headers)).json()
    assert [u["email"] for u in premium["users"]] == ["admin@example.com"]

    by_email = (
        await client.get("/api/v1/admin/users", params={"sort_by": "email", "sort_dir": "asc"}, headers=admin_headers)
    ).json()
    assert [u["email"] for u in by_email["users"]] == ["admin@example.com", "user@example.com"]


async def test_export_users_csv_is_audited(client: AsyncClient, admin_headers, user_headers):
    response = await client.get("/api/v1/admin/users/export", params={"format": "csv"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="users.csv"' in response.headers["content-disposition"]
    lines = response.text.strip().splitlines()
    assert lines[0].startswith("id,email,name,role,tier,email_verified,created_at")
    assert len(lines) == 3

    logs = (await client.get("/api/v1/admin/audit-logs", params={"action": "DATA_EXPORTED"}, headers=admin_headers)).json()
    assert logs["total"] == 1
    assert logs["logs"][0]["metadata"]["format"] == "csv"


async def test_export_rejects_unknown_format(client: AsyncClient, admin_headers):
    response = await client.get("/api/v1/admin/users/export", params={"format": "json"}, headers=admin_headers)
    assert response.status_code == 422


async def test_change_role_and_details(client: AsyncClient, admin_headers, user_auth):
    user_id = user_auth["user"]["id"]
    response = await client.patch(
        f"/api/v1/admin/users/{user_id}/role", json={"role": "SUPPORT"}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["role"] == "SUPPORT"

    invalid = await client.patch(f"/api/v1/admin/users/{user_id}/role", json={"role": "ROOT"}, headers=admin_headers)
    assert invalid.status_code == 422

    details = (await client.get(f"/api/v1/admin/users/{user_id}", headers=admin_headers)).json()
    assert details["user"]["role"] == "SUPPORT"
    assert details["profile"] is None
    assert details["subscription"] is None

    logs = (
        await client.get("/api/v1/admin/audit-logs", params={"action": "user.role_changed"}, headers=admin_headers)
    ).json()
    assert logs["logs"][0]["entity_id"] == user_id
    assert logs["logs"][0]["metadata"] == {"from": "USER", "to": "SUPPORT"}
    assert logs["logs"][0]["actor_email"] == "admin@example.com"

    missing = await client.get(f"/api/v1/admin/users/{uuid4()}", headers=admin_headers)
    assert missing.status_code == 404


async def test_failed_audit_write_keeps_role_change(client: AsyncClient, admin_headers, user_auth, monkeypatch):
    from vivaform_api.services import audit as audit_module

    real_audit_log = audit_module.AuditLog
    # action is NOT NULL, so the insert fails at flush
    monkeypatch.setattr(audit_module, "AuditLog", lambda **fields: real_audit_log(**{**fields, "action": None}))

    user_id = user_auth["user"]["id"]
    response = await client.patch(
        f"/api/v1/admin/users/{user_id}/role", json={"role": "SUPPORT"}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["role"] == "SUPPORT"
    assert response.json()["email"] == user_auth["user"]["email"]

    monkeypatch.setattr(audit_module, "AuditLog", real_audit_log)
    details = (await client.get(f"/api/v1/admin/users/{user_id}", headers=admin_headers)).json()
    assert details["user"]["role"] == "SUPPORT"
    logs = (
        await client.get("/api/v1/admin/audit-logs", params={"action": "user.role_changed"}, headers=admin_headers)
    ).json()
    assert logs["logs"] == []


async def test_stats(client: AsyncClient, admin_headers, user_headers):
    stats = (await client.get("/api/v1/admin/stats/users", headers=admin_headers)).json()
    assert stats["total_users"] == 2
    assert stats["free_users"] == 1
    assert stats["premium_users"] == 1
    assert stats["new_this_week"] == 2

    system = (await client.get("/api/v1/admin/stats/system", headers=admin_headers)).json()
    assert system["nutrition_entries"] == 0
    assert system["food_items"] == 0


async def test_overview(client: AsyncClient, admin_headers, session_maker):
    monthly = await create_user(session_maker, "monthly@example.com", tier="PREMIUM")
    quarterly = await create_user(session_maker, "quarterly@example.com", tier="PREMIUM")
    lapsed = await create_user(session_maker, "lapsed@example.com")
    await add_subscription(session_maker, monthly.id, "price_monthly")
    await add_subscription(session_maker, quarterly.id, "price_quarterly", status="trialing")
    await add_subscription(session_maker, lapsed.id, "price_annual", status="canceled")

    kpis = (await client.get("/api/v1/admin/overview/kpis", headers=admin_headers)).json()
    assert kpis["total_users"] == 4
    assert kpis["new_users"] == 4
    assert kpis["premium_users"] == 3
    assert kpis["active_subscriptions"] == 2
    assert kpis["mrr_estimate"] == 18.32
    assert kpis["conversion_rate"] == 75.0

    today = datetime.now(timezone.utc).date().isoformat()
    trend = (
        await client.get("/api/v1/admin/overview/revenue-trend", params={"from": today, "to": today}, headers=admin_headers)
    ).json()
    assert trend == [{"date": today, "value": 18.32}]

    new_users = (
        await client.get("/api/v1/admin/overview/new-users", params={"compare": True}, headers=admin_headers)
    ).json()
    assert len(new_users["points"]) == 30
    assert new_users["total"] == 4
    assert new_users["previous_total"] == 0

    distribution = (await client.get("/api/v1/admin/overview/subscriptions-distribution", headers=admin_headers)).json()
    assert distribution["by_status"] == {"active": 1, "trialing": 1, "canceled": 1}
    assert distribution["by_plan"] == {"monthly": 1, "quarterly": 1, "annual": 1}

    subs = (await client.get("/api/v1/admin/subs", params={"plan": "monthly"}, headers=admin_headers)).json()
    assert [s["plan"] for s in subs["subscriptions"]] == ["monthly"]


async def test_overview_rejects_inverted_period(client: AsyncClient, admin_headers):
    response = await client.get(
        "/api/v1/admin/overview/kpis", params={"from": "2026-03-10", "to": "2026-03-01"}, headers=admin_headers
    )
    assert response.status_code == 400


async def test_food_moderation(client: AsyncClient, admin_headers, user_headers):
    created = await client.post(
        "/api/v1/foods", json={"name": "Grandma's Pierogi", "category": "Dumplings", "calories": 220}, headers=user_headers
    )
    food_id = created.json()["id"]

    pending = (await client.get("/api/v1/admin/food-items", params={"verified": False}, headers=admin_headers)).json()
    assert [f["id"] for f in pending["foods"]] == [food_id]

    verified = await client.patch(
        f"/api/v1/admin/food-items/{food_id}/verify", json={"verified": True}, headers=admin_headers
    )
    assert verified.json()["verified"] is True

    assert (await client.delete(f"/api/v1/admin/food-items/{food_id}", headers=admin_headers)).status_code == 204
    assert (await client.delete(f"/api/v1/admin/food-items/{food_id}", headers=admin_headers)).status_code == 404

    actions = (await client.get("/api/v1/admin/audit-logs", params={"entity": "food_item"}, headers=admin_headers)).json()
    assert sorted(log["action"] for log in actions["logs"]) == ["food.deleted", "food.verified"]


async def test_settings_whitelist(client: AsyncClient, admin_headers):
    response = await client.patch(
        "/api/v1/admin/settings",
        json={"app.support_email": "help@example.com", "billing.trial_days": 7, "debug": True},
        headers=admin_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["updated"] == ["app.support_email", "billing.trial_days"]
    assert body["ignored"] == ["debug"]

    settings = (await client.get("/api/v1/admin/settings", headers=admin_headers)).json()
    assert settings == {"app.support_email": "help@example.com", "billing.trial_days": 7}

    logs = (await client.get("/api/v1/admin/audit-logs", params={"action": "settings.updated"}, headers=admin_headers)).json()
    assert logs["logs"][0]["metadata"] == {"keys": ["app.support_email", "billing.trial_days"]}


def test_rollout_bucket_is_stable():
    user_id = uuid4()
    bucket = rollout_bucket("meal_plan", user_id)
    assert 0 <= bucket < 100
    assert rollout_bucket("meal_plan", str(user_id)) == bucket


def test_is_enabled_for():
    user_id = uuid4()
    bucket = rollout_bucket("quiz_preview", user_id)
    assert is_enabled_for(None, user_id) is False
    assert is_enabled_for(FeatureToggle(key="quiz_preview", enabled=False, rollout_percent=100), user_id) is False
    assert is_enabled_for(FeatureToggle(key="quiz_preview", enabled=True, rollout_percent=100), user_id) is True
    assert is_enabled_for(FeatureToggle(key="quiz_preview", enabled=True, rollout_percent=0), user_id) is False
    half = FeatureToggle(key="quiz_preview", enabled=True, rollout_percent=50)
    assert is_enabled_for(half, user_id) is (bucket < 50)


async def test_feature_toggles_and_evaluation(client: AsyncClient, admin_headers, user_headers):
    assert (await client.get("/api/v1/features/meal_plan", headers=user_headers)).json() == {
        "key": "meal_plan",
        "enabled": False,
    }

    put = await client.put(
        "/api/v1/admin/feature-toggles/meal_plan",
        json={"enabled": True, "rollout_percent": 100, "description": "Weekly plan", "metadata": {"owner": "growth"}},
        headers=admin_headers,
    )
    assert put.status_code == 200
    assert put.json()["metadata"] == {"owner": "growth"}
    assert (await client.get("/api/v1/features/meal_plan", headers=user_headers)).json()["enabled"] is True

    await client.put(
        "/api/v1/admin/feature-toggles/meal_plan", json={"enabled": True, "rollout_percent": 0}, headers=admin_headers
    )
    assert (await client.get("/api/v1/features/meal_plan", headers=user_headers)).json()["enabled"] is False

    listed = (await client.get("/api/v1/admin/feature-toggles", headers=admin_headers)).json()
    assert [t["key"] for t in listed] == ["meal_plan"]

    assert (await client.delete("/api/v1/admin/feature-toggles/meal_plan", headers=admin_headers)).status_code == 204
    assert (await client.get("/api/v1/admin/feature-toggles/meal_plan", headers=admin_headers)).status_code == 404

    logs = (
        await client.get("/api/v1/admin/audit-logs", params={"action": "feature_toggle.updated"}, headers=admin_headers)
    ).json()
    assert logs["total"] == 3


async def test_invalid_rollout_percent(client: AsyncClient, admin_headers):
    response = await client.put(
        "/api/v1/admin/feature-toggles/x", json={"enabled": True, "rollout_percent": 150}, headers=admin_headers
    )
    assert response.status_code == 422


async def test_ticket_lifecycle(client: AsyncClient, admin_headers, user_headers):
    opened = await client.post(
        "/api/v1/support/tickets",
        json={"subject": "Cannot sync my subscription", "body": "Paid but still on the free plan", "priority": "high"},
        headers=user_headers,
    )
    assert opened.status_code == 201
    ticket = opened.json()
    assert ticket["status"] == "open"
    assert ticket["replies"] == []

    queue = (await client.get("/api/v1/admin/tickets", params={"status": "open"}, headers=admin_headers)).json()
    assert [t["id"] for t in queue["tickets"]] == [ticket["id"]]

    replied = await client.patch(
        f"/api/v1/admin/tickets/{ticket['id']}/reply", json={"body": "Looking into it"}, headers=admin_headers
    )
    assert replied.status_code == 200
    assert replied.json()["status"] == "pending"
    assert replied.json()["replies"][0]["is_staff"] is True

    resolved = await client.patch(
        f"/api/v1/admin/tickets/{ticket['id']}", json={"status": "resolved"}, headers=admin_headers
    )
    assert resolved.json()["status"] == "resolved"

    again = await client.patch(
        f"/api/v1/admin/tickets/{ticket['id']}/reply", json={"body": "Fixed"}, headers=admin_headers
    )
    assert again.json()["status"] == "resolved"
    assert len(again.json()["replies"]) == 2

    mine = (await client.get("/api/v1/support/tickets", headers=user_headers)).json()
    assert [t["status"] for t in mine["tickets"]] == ["resolved"]

    logs = (await client.get("/api/v1/admin/audit-logs", params={"entity": "ticket"}, headers=admin_headers)).json()
    assert logs["total"] == 3
    assert {log["action"] for log in logs["logs"]} == {"ticket.updated"}


async def test_user_sees_only_own_tickets(client: AsyncClient, user_headers, session_maker):
    await client.post("/api/v1/support/tickets", json={"subject": "Question", "body": "Hi"}, headers=user_headers)
    await create_user(session_maker, "second@example.com")
    other = await login_headers(client, "second@example.com")
    assert (await client.get("/api/v1/support/tickets", headers=other)).json()["tickets"] == []
