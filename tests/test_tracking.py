import pytest
from httpx import AsyncClient

from conftest import register, bearer

pytestmark = pytest.mark.asyncio


def meal(food: str, calories: int, when: str, meal_type: str = "lunch"):
    return {"date": when, "meal_type": meal_type, "food": food, "calories": calories, "protein": 10, "fat": 5, "carbs": 20}


async def test_nutrition_day_list_and_summary(client: AsyncClient, user_headers):
    for payload in (
        meal("Oats", 300, "2026-03-01T08:00:00Z", "breakfast"),
        meal("Salad", 450, "2026-03-01T13:00:00Z"),
        meal("Pizza", 900, "2026-03-02T19:00:00Z", "dinner"),
    ):
        response = await client.post("/api/v1/nutrition", json=payload, headers=user_headers)
        assert response.status_code == 201

    day = await client.get("/api/v1/nutrition", params={"date": "2026-03-01"}, headers=user_headers)
    assert day.status_code == 200
    assert [e["food"] for e in day.json()] == ["Oats", "Salad"]

    summary = await client.get("/api/v1/nutrition/summary", params={"date": "2026-03-01"}, headers=user_headers)
    assert summary.json() == {"calories": 750, "protein": 20, "fat": 10, "carbs": 40}


async def test_nutrition_invalid_date_is_400(client: AsyncClient, user_headers):
    response = await client.get("/api/v1/nutrition", params={"date": "yesterday"}, headers=user_headers)
    assert response.status_code == 400


async def test_nutrition_delete_is_scoped_to_owner(client: AsyncClient, user_headers):
    created = await client.post("/api/v1/nutrition", json=meal("Soup", 200, "2026-03-01T12:00:00Z"), headers=user_headers)
    entry_id = created.json()["id"]

    other = bearer(await register(client, "other@example.com"))
    assert (await client.delete(f"/api/v1/nutrition/{entry_id}", headers=other)).status_code == 404

    assert (await client.delete(f"/api/v1/nutrition/{entry_id}", headers=user_headers)).status_code == 204
    assert (await client.delete(f"/api/v1/nutrition/{entry_id}", headers=user_headers)).status_code == 404


async def test_nutrition_rejects_negative_calories(client: AsyncClient, user_headers):
    response = await client.post("/api/v1/nutrition", json=meal("Bad", -1, "2026-03-01T12:00:00Z"), headers=user_headers)
    assert response.status_code == 422


async def test_water_total(client: AsyncClient, user_headers):
    for amount, when in ((250, "2026-03-01T08:00:00Z"), (500, "2026-03-01T12:00:00Z"), (300, "2026-03-02T08:00:00Z")):
        response = await client.post("/api/v1/water", json={"amount_ml": amount, "date": when}, headers=user_headers)
        assert response.status_code == 201

    total = await client.get("/api/v1/water/total", params={"date": "2026-03-01"}, headers=user_headers)
    assert total.json() == {"total_ml": 750}
    entries = await client.get("/api/v1/water", params={"date": "2026-03-02"}, headers=user_headers)
    assert [e["amount_ml"] for e in entries.json()] == [300]


async def test_weight_history_latest_and_progress(client: AsyncClient, user_headers):
    for weight, when in ((82.5, "2026-03-01T07:00:00Z"), (81.9, "2026-03-08T07:00:00Z"), (80.75, "2026-03-15T07:00:00Z")):
        response = await client.post("/api/v1/weight", json={"weight_kg": weight, "date": when}, headers=user_headers)
        assert response.status_code == 201

    history = await client.get("/api/v1/weight", headers=user_headers)
    assert [e["weight_kg"] for e in history.json()] == [82.5, 81.9, 80.75]

    limited = await client.get("/api/v1/weight", params={"limit": 2}, headers=user_headers)
    assert [e["weight_kg"] for e in limited.json()] == [81.9, 80.75]

    ranged = await client.get(
        "/api/v1/weight", params={"from": "2026-03-02", "to": "2026-03-10"}, headers=user_headers
    )
    assert [e["weight_kg"] for e in ranged.json()] == [81.9]

    latest = await client.get("/api/v1/weight/latest", headers=user_headers)
    assert latest.json()["weight_kg"] == 80.75

    progress = await client.get("/api/v1/weight/progress", headers=user_headers)
    assert progress.json()["delta"] == -1.75
    assert progress.json()["start"]["weight_kg"] == 82.5


async def test_weight_latest_empty(client: AsyncClient, user_headers):
    response = await client.get("/api/v1/weight/latest", headers=user_headers)
    assert response.status_code == 200
    assert response.json() is None
    progress = await client.get("/api/v1/weight/progress", headers=user_headers)
    assert progress.json() == {"delta": 0, "start": None, "end": None}


async def test_weight_limit_bounds(client: AsyncClient, user_headers):
    assert (await client.get("/api/v1/weight", params={"limit": 91}, headers=user_headers)).status_code == 422
    assert (await client.get("/api/v1/weight", params={"limit": 0}, headers=user_headers)).status_code == 422
