import pytest
from httpx import AsyncClient

from vivaform_api.repositories.users import UserRepository
from vivaform_api.services.quiz_calculator import calculate_bmr, calculate_quiz_result
from vivaform_api.services.quiz_funnel import (
    QUIZ_STEPS,
    can_proceed,
    derive_plan_type,
    evaluate_funnel,
    progress_percent,
    visible_steps,
)
from vivaform_api.services.quiz_normalizer import normalize_answers


class TestCalculator:
    def test_weight_loss_male(self):
        result = calculate_quiz_result(
            {"height_cm": 180, "current_weight_kg": 80, "target_weight_kg": 71, "gender": "male",
             "activity_level": "moderate"}
        )
        assert result["bmi"] == 24.7
        assert result["bmi_category"] == "normal"
        assert result["bmr"] == 1780
        assert result["tdee"] == 2759
        assert result["goal"] == "lose"
        assert result["recommended_calories"] == 2259
        assert result["daily_calorie_deficit"] == 500
        assert result["weekly_weight_change_kg"] == 0.45
        assert result["estimated_weeks"] == 20
        assert result["macros"] == {"protein": 169, "fat": 75, "carbs": 226}

    def test_maintain_within_two_kg(self):
        result = calculate_quiz_result(
            {"height_cm": 165, "current_weight_kg": 60, "target_weight_kg": 61, "gender": "female",
             "activity_level": "sedentary"}
        )
        assert result["goal"] == "maintain"
        assert result["bmr"] == 1320
        assert result["recommended_calories"] == result["tdee"] == 1584
        assert result["daily_calorie_deficit"] == 0
        assert result["estimated_weeks"] == 0

    def test_calorie_floor(self):
        result = calculate_quiz_result(
            {"height_cm": 150, "current_weight_kg": 45, "target_weight_kg": 40, "gender": "female",
             "activity_level": "sedentary"}
        )
        assert result["recommended_calories"] == 1200

    def test_gain_adds_surplus(self):
        result = calculate_quiz_result({"height_cm": 180, "current_weight_kg": 60, "target_weight_kg": 70})
        assert result["goal"] == "gain"
        assert result["recommended_calories"] == result["tdee"] + 300

    def test_defaults_for_missing_metrics(self):
        result = calculate_quiz_result({})
        assert result["goal"] == "lose"
        assert result["bmr"] == calculate_bmr(70, 170)

    def test_advice_mentions_sleep_and_water(self):
        result = calculate_quiz_result({"sleep_hours": 6, "daily_water_ml": 1500})
        assert "7-9 hours of sleep" in result["advice"]
        assert "2 liters of water" in result["advice"]


class TestNormalizer:
    def test_imperial_units_and_aliases(self):
        answers = normalize_answers(
            {"raw_height_ft": 5, "raw_height_in": 10, "raw_weight_lbs": 180, "activity_level": "high",
             "diet_preference": "anti_inflammatory"}
        )
        assert answers["height_cm"] == 177.8
        assert answers["current_weight_kg"] == 81.6
        assert answers["target_weight_kg"] == 81.6
        assert answers["activity_level"] == "active"
        assert answers["exercise_regularly"] is True
        assert answers["diet_plan"] == "anti-inflammatory"
        assert answers["daily_water_ml"] == 2448
        assert answers["meal_complexity"] == "medium"
        assert answers["cooking_time_minutes"] == 25
        assert answers["goal_timeline"] == "3_months"

    def test_weekly_rhythm_maps_activity(self):
        assert normalize_answers({"weekly_rhythm": "balanced_mix"})["activity_level"] == "moderate"
        assert normalize_answers({"weekly_rhythm": "travel_shift"})["activity_level"] == "moderate"
        assert normalize_answers({"weekly_rhythm": "desk_bound"})["activity_level"] == "sedentary"

    def test_weight_history_aliases(self):
        answers = normalize_answers(
            {"weight_loss_rebound": "first_time", "weight_history_last_ideal": "under_6_months"}
        )
        assert answers["weight_history"] == "never_tried"
        assert answers["weight_history_last_ideal"] == "lt_1y"
        assert normalize_answers({"weight_history_last_ideal": "over_three_years"})["weight_history_last_ideal"] == "3_5y"

    def test_sleep_slider_and_habits(self):
        answers = normalize_answers({"sleep_quality": 2, "eating_habits": ["skip_breakfast", "stress_snacking"]})
        assert answers["sleep_hours"] == 6.2
        assert answers["routine_confidence"] == 6
        assert answers["skip_breakfast"] is True
        assert answers["eat_when_stressed"] is True

    def test_lists_are_cleaned(self):
        assert "food_allergies" not in normalize_answers({"food_allergies": ["none"]})
        answers = normalize_answers(
            {"food_allergies": ["Nuts", "nuts", " Dairy "], "food_intolerances": ["lactose"], "avoid_foods": ["Lactose"]}
        )
        assert answers["food_allergies"] == ["Nuts", "Dairy"]
        assert answers["avoided_foods"] == ["lactose"]

    def test_cooking_style(self):
        answers = normalize_answers({"cooking_style": "chef"})
        assert answers["meal_complexity"] == "complex"
        assert answers["cooking_time_minutes"] == 40

    def test_out_of_range_values_dropped(self):
        answers = normalize_answers({"height_cm": 300, "weight_kg": "abc"})
        assert "height_cm" not in answers
        assert "current_weight_kg" not in answers
        assert answers["daily_water_ml"] == 2000


class TestFunnel:
    def test_carnivore_safety_step_visibility(self):
        default_ids = [s.id for s in visible_steps({})]
        assert "carnivore_safety" not in default_ids
        assert len(default_ids) == len(QUIZ_STEPS) - 1

        risky = {"diet_preference": "carnivore", "health_conditions": ["thyroid"]}
        assert "carnivore_safety" in [s.id for s in visible_steps(risky)]

        overridden = {**risky, "diet_safety_override": "mediterranean"}
        assert "carnivore_safety" not in [s.id for s in visible_steps(overridden)]

    def test_can_proceed_body_metrics(self):
        index = [s.id for s in visible_steps({})].index("body_metrics")
        assert can_proceed(index, {"age_years": 30, "height_cm": 170, "weight_kg": 70})
        assert not can_proceed(index, {"age_years": 17, "height_cm": 170, "weight_kg": 70})
        assert not can_proceed(index, {"age_years": 30, "height_cm": 100, "weight_kg": 70})
        assert can_proceed(index, {"age_years": 30, "raw_height_ft": 5, "raw_height_in": 10, "raw_weight_lbs": 180})

    def test_can_proceed_generic_steps(self):
        assert can_proceed(0, {"consent_non_medical": True})
        assert not can_proceed(0, {"consent_non_medical": False})
        assert not can_proceed(1, {})
        assert can_proceed(1, {"primary_goal": "weight_loss"})
        assert can_proceed(999, {})

    def test_progress_percent(self):
        assert progress_percent(0, 28) == 4
        assert progress_percent(27, 28) == 100
        assert progress_percent(3, 0) == 0

    @pytest.mark.parametrize(
        "answers, plan",
        [
            ({"diet_safety_override": "mediterranean", "diet_preference": "carnivore"}, "mediterranean"),
            ({"diet_preference": "carnivore", "health_conditions": ["inflammation"]}, "anti_inflammatory"),
            ({"diet_preference": "carnivore", "health_conditions": ["heart_guard"]}, "mediterranean"),
            ({"diet_preference": "carnivore", "health_conditions": ["none"]}, "carnivore"),
            ({"diet_preference": "anti_inflammatory"}, "anti_inflammatory"),
            ({"primary_goal": "muscle_gain"}, "carnivore"),
            ({"primary_goal": "muscle_gain", "health_conditions": ["blood_sugar"]}, "mediterranean"),
            ({"food_likes": ["plant_forward"]}, "anti_inflammatory"),
            ({}, "mediterranean"),
        ],
    )
    def test_derive_plan_type(self, answers, plan):
        assert derive_plan_type(answers) == plan

    def test_evaluate_funnel(self):
        state = evaluate_funnel({"primary_goal": "weight_loss"}, 1)
        assert state["current_step"] == "primary_goal"
        assert state["can_proceed"] is True
        assert state["plan_type"] == "mediterranean"
        assert evaluate_funnel({}, 500)["current_step"] is None


@pytest.mark.asyncio
async def test_public_quiz_endpoints(client: AsyncClient):
    steps = await client.get("/api/v1/quiz/steps")
    assert steps.status_code == 200
    assert steps.json()[0]["id"] == "welcome_consent"

    funnel = await client.post("/api/v1/quiz/funnel", json={"answers": {}, "step_index": 0})
    assert funnel.json()["can_proceed"] is False

    bmi = await client.post("/api/v1/quiz/bmi", json={"height_cm": 180, "weight_kg": 81})
    assert bmi.json() == {"bmi": 25.0, "category": "Overweight"}

    preview = await client.post("/api/v1/quiz/preview", json={"height_cm": 180, "weight_kg": 80, "gender": "male"})
    assert preview.status_code == 200
    assert preview.json()["goal"] == "maintain"
    assert preview.json()["recommended_calories"] == 2759


@pytest.mark.asyncio
async def test_submit_updates_body_profile(client: AsyncClient, user_headers, session_maker):
    assert (await client.get("/api/v1/quiz/profile", headers=user_headers)).status_code == 404

    answers = {"height_cm": 180, "weight_kg": 80, "target_weight_kg": 71, "gender": "male",
               "activity_level": "moderate", "diet_preference": "carnivore"}
    response = await client.post("/api/v1/quiz/submit", json={"answers": answers, "version": "2"}, headers=user_headers)
    assert response.status_code == 200, response.text
    assert response.json()["stored"] is True

    stored = await client.get("/api/v1/quiz/profile", headers=user_headers)
    assert stored.json()["answers"]["diet_preference"] == "carnivore"
    assert stored.json()["version"] == "2"

    async with session_maker() as session:
        users = UserRepository(session)
        user = await users.get_by_email("user@example.com")
        profile = await users.get_profile(user.id)
        assert profile.recommended_calories == 2259
        assert profile.diet_plan == "carnivore"
        assert profile.goal == "LOSE_WEIGHT"
        assert profile.activity_level == "MODERATE"

    patched = await client.patch("/api/v1/quiz/profile", json={"answers": {"target_weight_kg": 80}}, headers=user_headers)
    assert patched.status_code == 200
    async with session_maker() as session:
        users = UserRepository(session)
        user = await users.get_by_email("user@example.com")
        profile = await users.get_profile(user.id)
        assert profile.goal == "MAINTAIN_WEIGHT"
        assert profile.recommended_calories == 2759


@pytest.mark.asyncio
async def test_lead_capture_upserts(client: AsyncClient):
    payload = {"email": "Lead@Example.com", "client_id": " abc ", "step": 7, "type": "midpoint"}
    first = await client.post("/api/v1/quiz/leads", json=payload)
    assert first.status_code == 200
    second = await client.post("/api/v1/quiz/leads", json={**payload, "step": 12})
    assert second.json()["lead_id"] == first.json()["lead_id"]
