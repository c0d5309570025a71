from types import SimpleNamespace

import pytest
from httpx import AsyncClient

from vivaform_api.repositories.catalog import FoodRepository, MealTemplateRepository
from vivaform_api.repositories.users import UserRepository
from vivaform_api.services.meal_plan import (
    allowed_complexities,
    filter_templates,
    macro_targets,
    meal_slots,
    select_best_meal,
)

pytestmark = pytest.mark.asyncio


def food(name: str, category: str, verified: bool = True, **extra):
    values = {"name": name, "category": category, "calories": 100, "protein": 1, "fat": 1, "carbs": 1,
              "verified": verified}
    values.update(extra)
    return values


async def seed_foods(session_maker):
    async with session_maker() as session:
        repo = FoodRepository(session)
        await repo.create(food("Apple", "Fruits"))
        await repo.create(food("Apple Pie", "Desserts", verified=False, brand="Granny"))
        await repo.create(food("Pineapple", "Fruits", barcode="4000000000001"))
        await repo.create(food("Granola", "Grains", verified=False, brand="Apple Farms"))


async def test_search_orders_verified_first(client: AsyncClient, session_maker):
    await seed_foods(session_maker)
    response = await client.get("/api/v1/foods/search", params={"query": "APPLE"})
    assert response.status_code == 200
    data = response.json()
    assert data["total_count"] == 4
    names = [f["name"] for f in data["foods"]]
    assert names[:2] == ["Apple", "Pineapple"]
    assert set(names[2:]) == {"Apple Pie", "Granola"}


async def test_search_with_category_and_limit(client: AsyncClient, session_maker):
    await seed_foods(session_maker)
    response = await client.get("/api/v1/foods/search", params={"query": "apple", "category": "Fruits", "limit": 1})
    data = response.json()
    assert data["total_count"] == 2
    assert [f["name"] for f in data["foods"]] == ["Apple"]


async def test_categories_popular_and_barcode(client: AsyncClient, session_maker):
    await seed_foods(session_maker)
    assert (await client.get("/api/v1/foods/categories")).json() == ["Desserts", "Fruits", "Grains"]

    popular = (await client.get("/api/v1/foods/popular")).json()
    assert [f["name"] for f in popular] == ["Apple", "Pineapple"]

    found = await client.get("/api/v1/foods/barcode/4000000000001")
    assert found.json()["name"] == "Pineapple"
    assert (await client.get("/api/v1/foods/barcode/0000")).status_code == 404


async def test_submitted_food_is_unverified(client: AsyncClient, user_headers, session_maker):
    await seed_foods(session_maker)
    payload = {"name": "Homemade Bread", "category": "Grains", "calories": 250, "barcode": "123"}
    response = await client.post("/api/v1/foods", json=payload, headers=user_headers)
    assert response.status_code == 201
    assert response.json()["verified"] is False

    duplicate = await client.post("/api/v1/foods", json={**payload, "name": "Other"}, headers=user_headers)
    assert duplicate.status_code == 400


def template(name, category, calories, protein=20, fat=10, carbs=30, diets=("mediterranean",), allergens=(),
             avoided=()):
    return SimpleNamespace(
        name=name, category=category, calories=calories, protein=protein, fat=fat, carbs=carbs,
        diet_plans=list(diets), allergens=list(allergens), avoided_ingredients=list(avoided),
    )


def test_macro_targets_per_diet():
    assert macro_targets(2000, "mediterranean") == {"protein": 125, "fat": 67, "carbs": 225}
    assert macro_targets(2000, "carnivore") == {"protein": 175, "fat": 133, "carbs": 25}
    assert macro_targets(2000, "unknown") == macro_targets(2000, "mediterranean")


def test_meal_slots():
    assert meal_slots(3, False) == ["breakfast", "lunch", "dinner"]
    assert meal_slots(3, True) == ["lunch", "dinner"]
    assert meal_slots(5, False) == ["breakfast", "lunch", "dinner", "snack", "snack"]
    assert meal_slots(None, None) == ["breakfast", "lunch", "dinner"]


def test_allowed_complexities():
    assert allowed_complexities("simple") == ["simple"]
    assert allowed_complexities("medium") == ["simple", "medium"]
    assert allowed_complexities("complex") == ["simple", "medium", "complex"]


def test_filter_templates_drops_allergens_and_other_diets():
    templates = [
        template("Yogurt", "breakfast", 300, allergens=["Dairy"]),
        template("Steak", "dinner", 600, diets=["carnivore"]),
        template("Salad", "lunch", 400, avoided=["meat"]),
        template("Fish", "dinner", 450),
    ]
    kept = filter_templates(templates, "mediterranean", ["dairy"], ["Meat"])
    assert [t.name for t in kept] == ["Fish"]


def test_select_best_meal_prefers_unused_and_closest():
    targets = {"protein": 90, "fat": 30, "carbs": 90}
    templates = [
        template("Small", "lunch", 300, protein=30, fat=10, carbs=30),
        template("Big", "lunch", 800, protein=30, fat=10, carbs=30),
    ]
    assert select_best_meal(templates, "lunch", 320, targets, []).name == "Small"
    assert select_best_meal(templates, "lunch", 320, targets, ["Small"]).name == "Big"
    assert select_best_meal(templates, "lunch", 320, targets, ["Small", "Big"]).name == "Small"
    assert select_best_meal(templates, "snack", 320, targets, []) is None


async def test_meal_plan_requires_premium(client: AsyncClient, user_headers):
    response = await client.get("/api/v1/nutrition/meal-plan", headers=user_headers)
    assert response.status_code == 400
    assert "premium feature" in response.json()["error"]["message"]


async def test_meal_plan_requires_quiz_profile(client: AsyncClient, premium_headers):
    response = await client.get("/api/v1/nutrition/meal-plan", headers=premium_headers)
    assert response.status_code == 400
    assert "complete the quiz" in response.json()["error"]["message"]


async def test_meal_plan_for_premium_user(client: AsyncClient, premium_headers, session_maker):
    from vivaform_api.db.seed import MEAL_TEMPLATES

    async with session_maker() as session:
        repo = MealTemplateRepository(session)
        for values in MEAL_TEMPLATES:
            await repo.create(dict(values))
        users = UserRepository(session)
        user = await users.get_by_email("premium@example.com")
        await users.upsert_profile(
            user.id,
            {"recommended_calories": 1800, "diet_plan": "carnivore", "meals_per_day": 4, "food_allergies": ["eggs"]},
        )

    response = await client.get("/api/v1/nutrition/meal-plan", headers=premium_headers)
    assert response.status_code == 200, response.text
    data = response.json()
    assert data["diet_plan"] == "carnivore"
    assert data["target_macros"]["calories"] == 1800
    assert len(data["days"]) == 7
    first_day = data["days"][0]
    assert [m["meal_type"] for m in first_day["meals"]] == ["Breakfast", "Lunch", "Dinner", "Snack"]
    assert first_day["meals"][0]["name"] == "Bacon & Sausage Breakfast"
    assert all("Boiled Eggs" != m["name"] for day in data["days"] for m in day["meals"])
