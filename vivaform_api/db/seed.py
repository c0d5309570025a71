"""
Database seeding utilities for reference data.

Seeds:
- Verified food catalog (Fruits, Vegetables, Meat, Fish, Dairy, Grains, Legumes, Nuts)
- Meal templates for the mediterranean, carnivore and anti-inflammatory diet plans
- Default feature toggles and application settings
- An admin account from SEED_ADMIN_EMAIL / SEED_ADMIN_PASSWORD (if both are set)

Every step is idempotent: existing rows are left untouched.

Usage:
  python -m vivaform_api.cli migrate upgrade
  python -m vivaform_api.cli seed
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from vivaform_api.core.security import get_password_hash
from vivaform_api.core.settings import get_app_settings
from vivaform_api.db.models.admin import FeatureToggle
from vivaform_api.db.session import session_scope
from vivaform_api.repositories.admin import AppSettingRepository, FeatureToggleRepository
from vivaform_api.repositories.catalog import FoodRepository, MealTemplateRepository
from vivaform_api.repositories.users import UserRepository

logger = logging.getLogger(__name__)

# name, category, kcal, protein, fat, carbs, fiber, serving size, serving grams (per 100 g)
FOODS: List[Tuple[str, str, float, float, float, float, float, str, float]] = [
    ("Apple", "Fruits", 52, 0.3, 0.2, 14, 2.4, "1 medium (182g)", 182),
    ("Banana", "Fruits", 89, 1.1, 0.3, 23, 2.6, "1 medium (118g)", 118),
    ("Orange", "Fruits", 47, 0.9, 0.1, 12, 2.4, "1 medium (154g)", 154),
    ("Strawberries", "Fruits", 32, 0.7, 0.3, 8, 2.0, "1 cup (152g)", 152),
    ("Blueberries", "Fruits", 57, 0.7, 0.3, 14, 2.4, "1 cup (148g)", 148),
    ("Avocado", "Fruits", 160, 2.0, 15, 9, 6.7, "1 medium (201g)", 201),
    ("Broccoli", "Vegetables", 34, 2.8, 0.4, 7, 2.6, "1 cup chopped (91g)", 91),
    ("Spinach", "Vegetables", 23, 2.9, 0.4, 4, 2.2, "1 cup raw (30g)", 30),
    ("Carrots", "Vegetables", 41, 0.9, 0.2, 10, 2.8, "1 medium (61g)", 61),
    ("Tomatoes", "Vegetables", 18, 0.9, 0.2, 4, 1.2, "1 medium (123g)", 123),
    ("Bell Pepper", "Vegetables", 31, 1.0, 0.3, 7, 2.5, "1 medium (119g)", 119),
    ("Cucumber", "Vegetables", 16, 0.7, 0.1, 4, 0.5, "1 medium (301g)", 301),
    ("Chicken Breast", "Meat", 165, 31, 3.6, 0, 0, "100g", 100),
    ("Beef Sirloin", "Meat", 271, 25, 18, 0, 0, "100g", 100),
    ("Pork Tenderloin", "Meat", 143, 26, 3.5, 0, 0, "100g", 100),
    ("Ground Turkey", "Meat", 189, 27, 8.3, 0, 0, "100g", 100),
    ("Salmon", "Fish", 208, 25, 12, 0, 0, "100g fillet", 100),
    ("Tuna", "Fish", 144, 30, 1.0, 0, 0, "100g", 100),
    ("Cod", "Fish", 82, 18, 0.7, 0, 0, "100g fillet", 100),
    ("Whole Milk", "Dairy", 61, 3.2, 3.3, 4.8, 0, "1 cup (244g)", 244),
    ("Greek Yogurt", "Dairy", 97, 9.0, 5.0, 4.0, 0, "1 cup (245g)", 245),
    ("Cheddar Cheese", "Dairy", 403, 25, 33, 1.3, 0, "1 slice (28g)", 28),
    ("Cottage Cheese", "Dairy", 98, 11, 4.3, 3.4, 0, "1/2 cup (113g)", 113),
    ("Brown Rice", "Grains", 111, 2.6, 0.9, 23, 1.8, "1 cup cooked (195g)", 195),
    ("Quinoa", "Grains", 120, 4.4, 1.9, 22, 2.8, "1 cup cooked (185g)", 185),
    ("Oats", "Grains", 68, 2.4, 1.4, 12, 1.7, "1 cup cooked (234g)", 234),
    ("Whole Wheat Bread", "Grains", 247, 13, 4.2, 41, 6.0, "1 slice (28g)", 28),
    ("Chickpeas", "Legumes", 164, 8.9, 2.6, 27, 7.6, "1 cup cooked (164g)", 164),
    ("Lentils", "Legumes", 116, 9.0, 0.4, 20, 7.9, "1 cup cooked (198g)", 198),
    ("Almonds", "Nuts", 579, 21, 50, 22, 12, "1 oz (28g)", 28),
    ("Walnuts", "Nuts", 654, 15, 65, 14, 6.7, "1 oz (28g)", 28),
]

MED = "mediterranean"
CARN = "carnivore"
ANTI = "anti-inflammatory"

MEAL_TEMPLATES: List[Dict[str, Any]] = [
    # mediterranean
    dict(name="Greek Yogurt with Honey & Walnuts", category="breakfast", diet_plans=[MED, ANTI],
         calories=320, protein=18, fat=14, carbs=32, cooking_time_minutes=5, complexity="simple",
         allergens=["dairy", "nuts"], avoided_ingredients=[],
         ingredients=["Greek yogurt", "Honey", "Walnuts", "Berries"],
         instructions="Top yogurt with walnuts, berries and a drizzle of honey."),
    dict(name="Mediterranean Omelette", category="breakfast", diet_plans=[MED],
         calories=340, protein=22, fat=24, carbs=8, cooking_time_minutes=12, complexity="simple",
         allergens=["eggs", "dairy"], avoided_ingredients=[],
         ingredients=["Eggs", "Spinach", "Tomatoes", "Feta cheese", "Olive oil"],
         instructions="Whisk eggs, cook with vegetables in olive oil, finish with feta."),
    dict(name="Grilled Chicken Salad", category="lunch", diet_plans=[MED],
         calories=420, protein=38, fat=20, carbs=18, cooking_time_minutes=20, complexity="simple",
         allergens=[], avoided_ingredients=[],
         ingredients=["Chicken breast", "Lettuce", "Cucumber", "Tomatoes", "Olives", "Olive oil"],
         instructions="Grill chicken, slice and serve over salad dressed with olive oil."),
    dict(name="Salmon with Quinoa & Vegetables", category="lunch", diet_plans=[MED, ANTI],
         calories=520, protein=36, fat=22, carbs=42, cooking_time_minutes=30, complexity="medium",
         allergens=["fish"], avoided_ingredients=[],
         ingredients=["Salmon fillet", "Quinoa", "Zucchini", "Bell peppers", "Lemon"],
         instructions="Bake salmon, cook quinoa and roast vegetables."),
    dict(name="Mediterranean Baked Fish", category="dinner", diet_plans=[MED],
         calories=380, protein=34, fat=16, carbs=20, cooking_time_minutes=35, complexity="medium",
         allergens=["fish"], avoided_ingredients=[],
         ingredients=["Cod fillet", "Tomatoes", "Olives", "Capers", "Garlic", "Olive oil"],
         instructions="Bake fish with tomatoes, olives and capers at 200°C."),
    dict(name="Chicken Souvlaki with Tzatziki", category="dinner", diet_plans=[MED],
         calories=460, protein=40, fat=18, carbs=30, cooking_time_minutes=30, complexity="medium",
         allergens=["dairy"], avoided_ingredients=[],
         ingredients=["Chicken breast", "Greek yogurt", "Cucumber", "Garlic", "Pita bread"],
         instructions="Marinate and grill chicken skewers, serve with tzatziki and pita."),
    # carnivore
    dict(name="Ribeye Steak with Eggs", category="breakfast", diet_plans=[CARN],
         calories=620, protein=54, fat=44, carbs=2, cooking_time_minutes=15, complexity="simple",
         allergens=["eggs"], avoided_ingredients=[],
         ingredients=["Ribeye steak", "Eggs", "Butter", "Salt"],
         instructions="Pan-sear steak in butter, fry eggs in same pan."),
    dict(name="Bacon & Sausage Breakfast", category="breakfast", diet_plans=[CARN],
         calories=580, protein=38, fat=48, carbs=0, cooking_time_minutes=12, complexity="simple",
         allergens=[], avoided_ingredients=[],
         ingredients=["Bacon strips", "Pork sausages", "Butter"],
         instructions="Cook bacon and sausages in butter until crispy."),
    dict(name="Grilled Beef Burger Patties", category="lunch", diet_plans=[CARN],
         calories=540, protein=46, fat=38, carbs=0, cooking_time_minutes=15, complexity="simple",
         allergens=[], avoided_ingredients=[],
         ingredients=["Ground beef", "Salt", "Butter"],
         instructions="Form patties, grill or pan-fry in butter."),
    dict(name="Grilled Chicken Thighs", category="lunch", diet_plans=[CARN],
         calories=480, protein=42, fat=34, carbs=0, cooking_time_minutes=20, complexity="simple",
         allergens=[], avoided_ingredients=[],
         ingredients=["Chicken thighs", "Salt", "Butter"],
         instructions="Season chicken, grill or bake until cooked through."),
    dict(name="Pan-Seared Lamb Chops", category="dinner", diet_plans=[CARN],
         calories=580, protein=48, fat=42, carbs=0, cooking_time_minutes=15, complexity="medium",
         allergens=[], avoided_ingredients=[],
         ingredients=["Lamb chops", "Butter", "Salt"],
         instructions="Sear lamb chops in hot pan with butter, 3-4 minutes per side."),
    dict(name="Salmon Steak with Butter", category="dinner", diet_plans=[CARN],
         calories=520, protein=44, fat=38, carbs=0, cooking_time_minutes=12, complexity="simple",
         allergens=["fish"], avoided_ingredients=[],
         ingredients=["Salmon steak", "Butter", "Salt"],
         instructions="Pan-fry salmon in butter until cooked through."),
    # anti-inflammatory
    dict(name="Berry Smoothie Bowl", category="breakfast", diet_plans=[ANTI],
         calories=290, protein=12, fat=8, carbs=48, cooking_time_minutes=5, complexity="simple",
         allergens=[], avoided_ingredients=["dairy"],
         ingredients=["Mixed berries", "Banana", "Almond milk", "Chia seeds", "Flaxseeds"],
         instructions="Blend berries with almond milk, top with seeds."),
    dict(name="Turmeric Scrambled Eggs", category="breakfast", diet_plans=[ANTI],
         calories=260, protein=18, fat=18, carbs=6, cooking_time_minutes=8, complexity="simple",
         allergens=["eggs"], avoided_ingredients=[],
         ingredients=["Eggs", "Turmeric", "Black pepper", "Olive oil", "Spinach"],
         instructions="Scramble eggs with turmeric and spinach in olive oil."),
    dict(name="Ginger Chicken Stir-Fry", category="lunch", diet_plans=[ANTI],
         calories=410, protein=36, fat=16, carbs=34, cooking_time_minutes=20, complexity="medium",
         allergens=[], avoided_ingredients=[],
         ingredients=["Chicken breast", "Ginger", "Broccoli", "Bell peppers", "Brown rice", "Garlic"],
         instructions="Stir-fry chicken with ginger and vegetables, serve over brown rice."),
    dict(name="Turmeric Lentil Bowl", category="lunch", diet_plans=[ANTI],
         calories=380, protein=20, fat=12, carbs=52, cooking_time_minutes=30, complexity="simple",
         allergens=[], avoided_ingredients=["meat"],
         ingredients=["Red lentils", "Turmeric", "Coconut milk", "Spinach", "Sweet potato", "Onion"],
         instructions="Cook lentils with turmeric and coconut milk, add sweet potato and spinach."),
    dict(name="Baked Salmon with Sweet Potato", category="dinner", diet_plans=[ANTI],
         calories=460, protein=38, fat=20, carbs=36, cooking_time_minutes=35, complexity="simple",
         allergens=["fish"], avoided_ingredients=[],
         ingredients=["Salmon fillet", "Sweet potato", "Olive oil", "Rosemary", "Garlic"],
         instructions="Bake salmon and sweet potato with olive oil and herbs at 180°C."),
    dict(name="Green Curry with Vegetables", category="dinner", diet_plans=[ANTI],
         calories=390, protein=14, fat=18, carbs=48, cooking_time_minutes=25, complexity="medium",
         allergens=[], avoided_ingredients=["meat", "dairy"],
         ingredients=["Coconut milk", "Green curry paste", "Tofu", "Broccoli", "Bell peppers", "Brown rice"],
         instructions="Simmer vegetables and tofu in coconut curry, serve over rice."),
    # snacks
    dict(name="Apple with Almond Butter", category="snack", diet_plans=[MED, ANTI],
         calories=180, protein=6, fat=10, carbs=20, cooking_time_minutes=2, complexity="simple",
         allergens=["nuts"], avoided_ingredients=[],
         ingredients=["Apple", "Almond butter"],
         instructions="Slice apple, serve with almond butter."),
    dict(name="Boiled Eggs", category="snack", diet_plans=[MED, CARN, ANTI],
         calories=140, protein=12, fat=10, carbs=2, cooking_time_minutes=10, complexity="simple",
         allergens=["eggs"], avoided_ingredients=[],
         ingredients=["Eggs"],
         instructions="Boil eggs for 8-10 minutes, cool and peel."),
    dict(name="Beef Jerky", category="snack", diet_plans=[CARN],
         calories=160, protein=26, fat=6, carbs=2, cooking_time_minutes=0, complexity="simple",
         allergens=[], avoided_ingredients=[],
         ingredients=["Beef jerky"],
         instructions="Portion 50g of beef jerky."),
    dict(name="Cucumber & Hummus", category="snack", diet_plans=[MED, ANTI],
         calories=120, protein=4, fat=6, carbs=14, cooking_time_minutes=3, complexity="simple",
         allergens=[], avoided_ingredients=["meat"],
         ingredients=["Cucumber", "Hummus"],
         instructions="Slice cucumber, serve with hummus."),
]

# key, enabled, rollout percent, description
FEATURE_TOGGLES: List[Tuple[str, bool, int, str]] = [
    ("dashboard_v2", True, 100, "Dashboard with streaks, achievements and insights"),
    ("meal_plan", True, 100, "Weekly meal plan for premium users"),
    ("daily_recommendations", True, 100, "Scheduled daily recommendations"),
    ("quiz_preview", False, 0, "Live preview during the onboarding quiz"),
]

DEFAULT_APP_SETTINGS: Dict[str, Any] = {
    "app.name": "VivaForm",
    "app.support_email": "support@vivaform.app",
    "app.maintenance_mode": False,
    "quiz.default_version": 1,
    "billing.trial_days": 0,
    "recommendations.enabled": True,
}


# PUBLIC_INTERFACE
async def seed_all() -> None:
    """
    Seed the database with reference data.

    This function:
      - Inserts catalog foods and meal templates that are missing (matched by name)
      - Creates default feature toggles and settings keys that do not exist yet
      - Creates the configured admin account, or promotes it if it already exists
    """
    async with session_scope() as session:
        foods = await _seed_foods(session)
        templates = await _seed_meal_templates(session)
        toggles = await _seed_feature_toggles(session)
        await _seed_app_settings(session)
        await _seed_admin(session)
    logger.info("Seed done: %d foods, %d meal templates, %d toggles created", foods, templates, toggles)


async def _seed_foods(session: AsyncSession) -> int:
    repo = FoodRepository(session)
    created = 0
    for name, category, kcal, protein, fat, carbs, fiber, serving, grams in FOODS:
        if await repo.get_by_name(name):
            continue
        await repo.create(
            {
                "name": name,
                "category": category,
                "calories": kcal,
                "protein": protein,
                "fat": fat,
                "carbs": carbs,
                "fiber": fiber,
                "serving_size": serving,
                "serving_size_grams": grams,
                "verified": True,
            }
        )
        created += 1
    return created


async def _seed_meal_templates(session: AsyncSession) -> int:
    repo = MealTemplateRepository(session)
    created = 0
    for values in MEAL_TEMPLATES:
        if await repo.get_by_name(values["name"]):
            continue
        await repo.create(dict(values))
        created += 1
    return created


async def _seed_feature_toggles(session: AsyncSession) -> int:
    repo = FeatureToggleRepository(session)
    created = 0
    for key, enabled, rollout, description in FEATURE_TOGGLES:
        if await repo.get(key):
            continue
        await repo.save(FeatureToggle(key=key, enabled=enabled, rollout_percent=rollout, description=description))
        created += 1
    return created


async def _seed_app_settings(session: AsyncSession) -> None:
    repo = AppSettingRepository(session)
    existing = await repo.as_dict()
    missing = {k: v for k, v in DEFAULT_APP_SETTINGS.items() if k not in existing}
    if missing:
        await repo.upsert_many(missing)


async def _seed_admin(session: AsyncSession) -> None:
    settings = get_app_settings()
    if not settings.SEED_ADMIN_EMAIL or not settings.SEED_ADMIN_PASSWORD:
        logger.info("SEED_ADMIN_EMAIL/SEED_ADMIN_PASSWORD not set; skipping admin account")
        return
    repo = UserRepository(session)
    user = await repo.get_by_email(settings.SEED_ADMIN_EMAIL)
    if user is None:
        await repo.create(
            email=settings.SEED_ADMIN_EMAIL,
            password_hash=get_password_hash(settings.SEED_ADMIN_PASSWORD),
            name="Admin",
            role="ADMIN",
            tier="PREMIUM",
        )
        logger.info("Created admin account %s", settings.SEED_ADMIN_EMAIL)
    elif user.role != "ADMIN":
        user.role = "ADMIN"
        await repo.save(user)
        logger.info("Promoted %s to ADMIN", settings.SEED_ADMIN_EMAIL)
