from datetime import date
from uuid import UUID, uuid4

import pytest
from httpx import AsyncClient

from vivaform_api.core.numbers import round_half_up
from vivaform_api.services.dashboard import calculate_health_score, calculate_streak, goal_completion
from vivaform_api.services.recommendations import AnalysisData, apply_rules

pytestmark = pytest.mark.asyncio


def analysis(**overrides) -> AnalysisData:
    values = dict(
        user_id=uuid4(),
        average_calories=2000,
        target_calories=2000.0,
        average_protein=125,
        target_protein=125,
        average_water=1000,
        target_water=2500,
        weight_delta=-1.0,
        days_since_last_weight=2,
        last_week_entries=10,
    )
    values.update(overrides)
    return AnalysisData(**values)


class TestRules:
    def test_matching_rules_are_ordered_by_priority(self):
        data = analysis(average_calories=1500, average_protein=50, average_water=2500, weight_delta=0.1, days_since_last_weight=3)
        titles = [rule.title for rule in apply_rules(data)]
        assert titles == [
            "Increase your protein intake",
            "You're eating too few calories",
            "Weight plateau detected",
            "Perfect hydration!",
        ]

    def test_on_target_and_overdue_weigh_in(self):
        data = analysis(average_calories=2050, days_since_last_weight=10)
        titles = [rule.title for rule in apply_rules(data)]
        assert titles == ["Drink more water", "Time to weigh yourself", "You're doing great!"]

    def test_missing_targets_skip_target_rules(self):
        data = analysis(target_calories=None, target_protein=None, target_water=None, days_since_last_weight=999, weight_delta=0)
        assert [rule.title for rule in apply_rules(data)] == ["Time to weigh yourself"]

    def test_body_mentions_numbers(self):
        rule = apply_rules(analysis(average_calories=3000))[0]
        assert rule.title == "Calorie intake is above target"
        assert "3000 kcal" in rule.body and "2000 kcal" in rule.body


class TestDashboardFunctions:
    def test_health_score(self):
        score = calculate_health_score(1800, 1000, 3)
        assert score.breakdown.model_dump() == {"nutrition": 95, "hydration": 50, "activity": 70, "consistency": 100}
        assert score.overall == 79

    def test_health_score_rounds_halves_up(self):
        # (41 + 100) / 2 = 70.5
        score = calculate_health_score(820, 0, 3)
        assert score.breakdown.nutrition == 71
        assert score.overall == round_half_up((71 + 0 + 70 + 100) / 4)
        assert score.trend == "stable"

    def test_health_score_empty_day_is_declining(self):
        score = calculate_health_score(0, 0, 0)
        assert score.overall == 18
        assert score.trend == "declining"

    def test_streak_counts_from_yesterday(self):
        days = ["2026-03-01", "2026-03-02", "2026-03-03", "2026-03-06", "2026-03-07"]
        assert calculate_streak(days, date(2026, 3, 8)) == {"current": 2, "longest": 3}
        assert calculate_streak(days, date(2026, 3, 7)) == {"current": 2, "longest": 3}
        assert calculate_streak(days, date(2026, 3, 10)) == {"current": 0, "longest": 3}
        assert calculate_streak([], date(2026, 3, 10)) == {"current": 0, "longest": 0}

    @pytest.mark.parametrize(
        "start,current,target,expected",
        [(90, 85, 80, 50), (90, 95, 80, 0), (90, 75, 80, 100), (80, 80, 80, 100), (80, 81, 80, 0)],
    )
    def test_goal_completion(self, start, current, target, expected):
        assert goal_completion(start, current, target) == expected


async def test_generate_without_recent_data(client: AsyncClient, user_headers):
    response = await client.post("/api/v1/recommendations/generate", headers=user_headers)
    assert response.status_code == 200
    assert response.json() == {"message": "Generated 0 recommendations", "count": 0, "recommendations": []}


async def test_generate_stores_recommendations(client: AsyncClient, user_headers):
    payload = {"meal_type": "lunch", "food": "Salad", "calories": 500, "protein": 20, "fat": 10, "carbs": 40}
    assert (await client.post("/api/v1/nutrition", json=payload, headers=user_headers)).status_code == 201

    response = await client.post("/api/v1/recommendations/generate", headers=user_headers)
    body = response.json()
    assert body["count"] == 1
    assert body["recommendations"][0]["title"] == "Time to weigh yourself"

    latest = await client.get("/api/v1/recommendations/latest", headers=user_headers)
    assert [r["title"] for r in latest.json()] == ["Time to weigh yourself"]


async def test_daily_overview(client: AsyncClient, user_headers):
    await client.post(
        "/api/v1/nutrition",
        json={"date": "2026-03-01T08:00:00Z", "meal_type": "breakfast", "food": "Oats", "calories": 300,
              "protein": 10, "fat": 5, "carbs": 50},
        headers=user_headers,
    )
    await client.post("/api/v1/water", json={"amount_ml": 400, "date": "2026-03-01T09:00:00Z"}, headers=user_headers)
    await client.post("/api/v1/weight", json={"weight_kg": 80.5, "date": "2026-03-01T07:00:00Z"}, headers=user_headers)

    response = await client.get("/api/v1/dashboard/daily", params={"date": "2026-03-01"}, headers=user_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["date"] == "2026-03-01"
    assert body["nutrition"]["summary"]["calories"] == 300
    assert body["water"]["total_ml"] == 400
    assert body["weight"]["latest"]["weight_kg"] == 80.5


async def test_daily_dashboard_today(client: AsyncClient, user_headers):
    payload = {"meal_type": "breakfast", "food": "Oats", "calories": 500, "protein": 20, "fat": 10, "carbs": 60}
    await client.post("/api/v1/nutrition", json=payload, headers=user_headers)

    response = await client.get("/api/v1/dashboard/v2/daily", headers=user_headers)
    assert response.status_code == 200
    body = response.json()

    assert body["health_score"]["overall"] == 33
    assert body["health_score"]["trend"] == "declining"
    assert body["metrics"]["calories"]["value"] == 500
    assert body["metrics"]["calories"]["target"] == 2000

    timeline = {slot["meal_type"]: slot for slot in body["meal_timeline"]}
    assert timeline["breakfast"]["logged"] is True
    assert timeline["breakfast"]["items"] == ["Oats"]
    assert timeline["dinner"]["logged"] is False

    streaks = {s["type"]: s for s in body["streaks"]}
    assert streaks["daily-logging"]["current"] == 1
    assert streaks["water-goal"]["current"] == 0

    achievements = {a["id"]: a for a in body["achievements"]}
    assert achievements["first-meal"]["unlocked"] is True
    assert achievements["week-warrior"]["progress"] == 14

    insight_ids = [i["id"] for i in body["insights"]]
    assert insight_ids == ["protein-gap", "hydration", "weigh-in"]
    assert body["goal_progress"]["primary_goal"]["type"] == "LOSE_WEIGHT"
    assert body["goal_progress"]["weekly_progress"]["meals_logged"] == 1


@pytest.mark.parametrize(
    "value, digits, expected",
    [(70.5, 0, 71), (2.5, 0, 3), (-2.5, 0, -2), (17.49, 0, 17), (0.125, 2, 0.13), (22.85, 1, 22.9)],
)
def test_round_half_up(value, digits, expected):
    assert round_half_up(value, digits) == expected


@pytest.mark.parametrize("target_weight, trend", [(90, "down"), (70, "up")])
async def test_weight_metric_trend_compares_current_with_target(
    client: AsyncClient, user_auth, user_headers, session_maker, target_weight, trend
):
    from vivaform_api.repositories.users import UserRepository

    async with session_maker() as session:
        await UserRepository(session).upsert_profile(UUID(user_auth["user"]["id"]), {"target_weight_kg": target_weight})
    await client.post("/api/v1/weight", json={"weight_kg": 80}, headers=user_headers)

    body = (await client.get("/api/v1/dashboard/v2/daily", headers=user_headers)).json()
    weight = body["metrics"]["weight"]
    assert (weight["value"], weight["target"]) == (80, target_weight)
    assert weight["trend"] == trend
