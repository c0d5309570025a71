"""
Onboarding quiz funnel: step table, conditional visibility, step validation and
plan derivation.

Steps are static data; everything here is pure and works on the raw funnel
answers (snake_case keys as posted by the client).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from vivaform_api.core.numbers import round_half_up

CARNIVORE_WITH_CHRONIC_CONDITIONS = "carnivore_with_chronic_conditions"
CARNIVORE_BLOCKERS = frozenset({"blood_sugar", "heart_guard", "inflammation", "gut_support", "thyroid"})

PLAN_TYPES = ("mediterranean", "carnivore", "anti_inflammatory")


@dataclass(frozen=True)
class QuizStep:
    id: str
    group: str
    ui_type: str
    question: str
    fields: Tuple[str, ...] = ()
    options: Tuple[str, ...] = ()
    condition: Optional[str] = None
    depends_on: Tuple[str, ...] = field(default=())


QUIZ_STEPS: Tuple[QuizStep, ...] = (
    QuizStep("welcome_consent", "onboarding", "info",
             "Find a nutrition plan that fits your real life", ("consent_non_medical",)),
    QuizStep("primary_goal", "goals", "single_choice", "What is your main goal right now?", ("primary_goal",),
             ("weight_loss", "muscle_gain", "maintenance", "energy_health", "food_relationship")),
    QuizStep("gender_identity", "demographics", "single_choice", "What's your gender?", ("gender",),
             ("female", "male", "non_binary", "prefer_not_say")),
    QuizStep("body_metrics", "body_metrics", "number_inputs", "Your stats",
             ("age_years", "unit_system", "height_cm", "weight_kg", "raw_height_ft", "raw_height_in",
              "raw_weight_lbs")),
    QuizStep("weight_loss_rebound", "body_metrics", "single_choice", "Have you tried losing weight before?",
             ("weight_loss_rebound",),
             ("first_time", "lost_and_kept_off", "lost_and_regained", "not_weight_focused")),
    QuizStep("ideal_weight_timing", "body_metrics", "single_choice",
             "When was the last time you felt comfortable at your ideal weight?", ("weight_history_last_ideal",),
             ("under_6_months", "six_to_twelve_months", "one_to_three_years", "over_three_years")),
    QuizStep("bmi_health_insight", "body_metrics", "info", "A quick health snapshot"),
    QuizStep("email_capture", "onboarding", "text_input", "Want friendly tips and recipe ideas by email?",
             ("email",)),
    QuizStep("activity_level", "activity", "single_choice", "How active is a typical week for you?",
             ("activity_level",), ("sedentary", "light", "moderate", "high")),
    QuizStep("weekly_rhythm", "lifestyle", "single_choice", "What's your typical week like?", ("weekly_rhythm",),
             ("desk_bound", "balanced_mix", "travel_shift", "high_output")),
    QuizStep("sleep_quality", "lifestyle", "slider", "How is your sleep lately?", ("sleep_quality",)),
    QuizStep("diet_choice", "plan_choice", "single_choice", "Which diet plan are you interested in?",
             ("diet_preference",), PLAN_TYPES),
    QuizStep("eating_habits", "eating", "multi_choice", "How would you describe your eating habits?",
             ("eating_habits",),
             ("structured", "stress_snacking", "skip_meals", "skip_breakfast", "late_eating", "eat_out_often",
              "on_the_go", "mindful")),
    QuizStep("premium_value_teaser", "milestone", "info", "Premium unlock keeps streak boosts active"),
    QuizStep("flavor_identity", "eating", "multi_choice", "Which food vibes feel non-negotiable?", ("food_likes",),
             ("plant_forward", "hearty_meals", "seafood_focus", "sweet_balance", "simple_swaps")),
    QuizStep("clothes_size", "body_metrics", "dual_input", "Current and desired clothing size (EU)",
             ("clothing_size_current", "clothing_size_goal"),
             ("32", "34", "36", "38", "40", "42", "44", "46", "48", "50", "52", "54", "not_sure")),
    QuizStep("meat_preferences", "preferences", "multi_choice", "Which meat and protein sources do you prefer?",
             ("meat_preferences",),
             ("chicken", "turkey", "beef", "pork", "fish", "seafood", "vegetarian", "no_meat")),
    QuizStep("cooking_styles", "preferences", "multi_choice", "Which cooking styles feel most like you?",
             ("preferred_cooking_styles",), ("quick_meals", "one_pot", "oven_bakes", "salads", "soups", "grill")),
    QuizStep("protein_preference", "preferences", "multi_choice", "Which proteins feel best to you?",
             ("protein_preferences",),
             ("lean_poultry", "grassfed_beef", "seafood", "plant_power", "eggs", "dairy")),
    QuizStep("allergy_callout", "preferences", "multi_choice", "Any allergies or intolerances we must avoid?",
             ("food_allergies",), ("none", "gluten", "dairy", "eggs", "nuts", "shellfish", "soy", "nightshades")),
    QuizStep("intolerance_callout", "preferences", "multi_choice",
             "Any sensitivities or intolerances worth noting?", ("food_intolerances",),
             ("lactose", "fodmap", "histamine", "spicy", "caffeine", "other")),
    QuizStep("health_check", "health", "multi_choice", "Any health guardrails we should respect?",
             ("health_conditions",),
             ("none", "blood_sugar", "thyroid", "heart_guard", "gut_support", "inflammation")),
    QuizStep("carnivore_safety", "plan_choice", "single_choice", "Carnivore is locked for safety right now",
             ("diet_safety_override",), ("mediterranean", "anti_inflammatory"),
             condition=CARNIVORE_WITH_CHRONIC_CONDITIONS, depends_on=("diet_preference", "health_conditions")),
    QuizStep("cooking_style", "preferences", "single_choice", "How do you like to prep meals?",
             ("cooking_style",), ("speed", "balanced", "chef", "no_cook")),
    QuizStep("cooking_confidence", "preferences", "single_choice", "How confident are you in the kitchen?",
             ("cooking_confidence",), ("beginner", "intermediate", "expert")),
    QuizStep("cooking_skill_tags", "preferences", "multi_choice",
             "Pick the kitchen moves you enjoy (or want to learn)", ("cooking_skill_tags",),
             ("sheet_pan", "instant_pot", "grilling", "batch_cooking", "smoothie_bowls", "no_cook")),
    QuizStep("calculating_plan", "milestone", "info", "Calculating your personal plan"),
    QuizStep("member_testimonials", "milestone", "info", "Real members, real receipts"),
    QuizStep("final_offer", "offer", "single_choice", "Choose how you want to activate your plan",
             ("chosen_subscription_path",), ("premium", "free")),
)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _between(value: Any, low: float, high: float) -> bool:
    return _is_number(value) and low <= value <= high


# PUBLIC_INTERFACE
def has_carnivore_safety_risk(answers: Dict[str, Any]) -> bool:
    conditions = answers.get("health_conditions") or []
    return any(c != "none" and c in CARNIVORE_BLOCKERS for c in conditions)


# PUBLIC_INTERFACE
def should_show_step(step: QuizStep, answers: Dict[str, Any]) -> bool:
    if step.condition != CARNIVORE_WITH_CHRONIC_CONDITIONS:
        return True
    wants_carnivore = (answers.get("diet_preference") or answers.get("final_plan_type")) == "carnivore"
    if not wants_carnivore or answers.get("diet_safety_override"):
        return False
    return has_carnivore_safety_risk(answers)


# PUBLIC_INTERFACE
def visible_steps(answers: Dict[str, Any]) -> List[QuizStep]:
    return [step for step in QUIZ_STEPS if should_show_step(step, answers)]


def _filled(value: Any) -> bool:
    if isinstance(value, list):
        return len(value) > 0
    if isinstance(value, bool):
        return value
    return value is not None and value != ""


# PUBLIC_INTERFACE
def can_proceed(step_index: int, answers: Dict[str, Any]) -> bool:
    """
    Whether the visible step at `step_index` is complete.

    The body-metrics step needs an age of 18..90 plus either metric
    (120..230 cm, 35..250 kg) or imperial (4..7 ft, 0..11 in, 70..600 lb) values;
    every other step needs all of its fields filled. Out-of-range indexes pass.
    """
    steps = visible_steps(answers)
    if step_index < 0 or step_index >= len(steps):
        return True
    step = steps[step_index]
    if step.id == "body_metrics":
        metric = _between(answers.get("height_cm"), 120, 230) and _between(answers.get("weight_kg"), 35, 250)
        imperial = (
            _between(answers.get("raw_height_ft"), 4, 7)
            and _between(answers.get("raw_height_in"), 0, 11)
            and _between(answers.get("raw_weight_lbs"), 70, 600)
        )
        return _between(answers.get("age_years"), 18, 90) and (metric or imperial)
    return all(_filled(answers.get(name)) for name in step.fields)


# PUBLIC_INTERFACE
def progress_percent(step_index: int, total_steps: int) -> int:
    if total_steps <= 0:
        return 0
    return min(100, round_half_up((step_index + 1) / total_steps * 100))


# PUBLIC_INTERFACE
def derive_plan_type(answers: Dict[str, Any]) -> str:
    """
    Final diet plan: an explicit safety override wins, then a non-carnivore
    preference, then carnivore when it is safe; otherwise a heuristic on goal,
    food likes and health conditions.
    """
    conditions = answers.get("health_conditions") or []
    likes = answers.get("food_likes") or []
    goal = answers.get("primary_goal")
    heart_or_bp = "heart_guard" in conditions or "blood_sugar" in conditions
    inflammation = "inflammation" in conditions or "gut_support" in conditions
    safer = "anti_inflammatory" if inflammation else "mediterranean"

    override = answers.get("diet_safety_override")
    if override:
        return override
    preference = answers.get("diet_preference")
    if preference and preference != "carnivore":
        return preference
    if preference == "carnivore":
        return safer if has_carnivore_safety_risk(answers) else "carnivore"

    if "plant_forward" in likes or inflammation or goal in ("energy_health", "food_relationship"):
        plan = "anti_inflammatory"
    elif not heart_or_bp and (goal == "muscle_gain" or "hearty_meals" in likes):
        plan = "carnivore"
    else:
        plan = "mediterranean"
    if plan == "carnivore" and has_carnivore_safety_risk(answers):
        return safer
    return plan


# PUBLIC_INTERFACE
def evaluate_funnel(answers: Dict[str, Any], step_index: int) -> Dict[str, Any]:
    """Funnel state for a client at `step_index`."""
    steps = visible_steps(answers)
    current = steps[step_index] if 0 <= step_index < len(steps) else None
    return {
        "visible_steps": [step.id for step in steps],
        "current_step": current.id if current else None,
        "can_proceed": can_proceed(step_index, answers),
        "progress_percent": progress_percent(step_index, len(steps)),
        "plan_type": derive_plan_type(answers),
    }
