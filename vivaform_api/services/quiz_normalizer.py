"""
Converts raw funnel answers (mixed units, free-form aliases, nested legacy
shapes) into the canonical answer set used by the calculator and the profile.
"""
from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional

from vivaform_api.core.numbers import round_half_up

CM_PER_INCH = 2.54
KG_PER_POUND = 0.45359237

ACTIVITY_ALIASES = {
    "sedentary": "sedentary",
    "desk_bound": "sedentary",
    "office": "sedentary",
    "light": "light",
    "casual": "light",
    "commuting": "light",
    "balanced": "moderate",
    "balanced_mix": "moderate",
    "moderate": "moderate",
    "shift_worker": "moderate",
    "traveler": "moderate",
    "travel_shift": "moderate",
    "active": "active",
    "high": "active",
    "high_output": "active",
    "intense": "athlete",
    "athlete": "athlete",
}
ACTIVE_LEVELS = ("moderate", "active", "athlete")

MEAL_COMPLEXITY_BY_STYLE = {
    "no_cook": "simple",
    "speed": "simple",
    "simple": "simple",
    "balanced": "medium",
    "homestyle": "medium",
    "foodie": "medium",
    "chef": "complex",
    "adventurous": "complex",
}
COOKING_TIME_BY_STYLE = {
    "no_cook": 5,
    "speed": 15,
    "simple": 15,
    "balanced": 25,
    "homestyle": 30,
    "foodie": 30,
    "chef": 40,
    "adventurous": 35,
}
COOKING_TIME_BY_COMPLEXITY = {"simple": 15, "medium": 25, "complex": 40}

MOTIVATION_BY_GOAL = {
    "weight_loss": "appearance",
    "fat_loss": "appearance",
    "tone_up": "appearance",
    "muscle_gain": "performance",
    "performance": "performance",
    "energy": "wellbeing",
    "healthy_habits": "health",
    "lifestyle": "health",
    "maintenance": "wellbeing",
    "stress_relief": "wellbeing",
    "medical_condition": "medical",
    "digestive_relief": "medical",
    "postpartum": "health",
}
GOAL_TIMELINE_BY_GOAL = {
    "weight_loss": "3_months",
    "fat_loss": "3_months",
    "tone_up": "6_months",
    "muscle_gain": "6_months",
    "maintenance": "no_rush",
    "lifestyle": "no_rush",
    "reboot": "1_month",
    "medical_condition": "6_months",
    "digestive_relief": "6_months",
}
DEFAULT_GOAL_TIMELINE = "3_months"

SLEEP_QUALITY_TO_HOURS = {1: 5.5, 2: 6.2, 3: 7, 4: 7.5, 5: 8}

DIET_PLANS = ("mediterranean", "carnivore", "anti-inflammatory")
DIET_PLAN_ALIASES = {
    "mediterranean": "mediterranean",
    "mediterranean_style": "mediterranean",
    "anti_inflammatory": "anti-inflammatory",
    "antiinflammatory": "anti-inflammatory",
    "antiinflam": "anti-inflammatory",
    "carnivore": "carnivore",
    "high_protein": "carnivore",
}

EXERCISE_FREQUENCY_HINTS = {
    "never": False,
    "rarely": False,
    "sometimes": True,
    "weekly": True,
    "often": True,
    "daily": True,
    "always": True,
    "unsure": None,
}
HABIT_FREQUENCY_ALIASES = {
    "never": "never",
    "none": "never",
    "rarely": "rarely",
    "occasionally": "sometimes",
    "sometimes": "sometimes",
    "weekly": "often",
    "often": "often",
    "daily": "daily",
    "everyday": "daily",
}
COMFORT_SOURCE_ALIASES = {
    "food": "food",
    "eating": "food",
    "snacks": "food",
    "exercise": "exercise",
    "workout": "exercise",
    "fitness": "exercise",
    "social": "social",
    "friends": "social",
    "people": "social",
    "rest": "rest",
    "sleep": "rest",
    "relax": "rest",
    "hobbies": "hobbies",
    "crafts": "hobbies",
    "creativity": "hobbies",
}
THEME_ALIASES = {
    "light": "light",
    "bright": "light",
    "dark": "dark",
    "night": "dark",
    "auto": "auto",
    "system": "auto",
    "system_default": "auto",
}
WEIGHT_HISTORY_ALIASES = {
    "never_tried": "never_tried",
    "first_time": "never_tried",
    "lost_and_regained": "lost_and_regained",
    "lost_and_maintained": "lost_and_maintained",
    "lost_and_kept_off": "lost_and_maintained",
}
WEIGHT_HISTORY_LAST_IDEAL_ALIASES = {
    "lt_1y": "lt_1y",
    "last_year": "lt_1y",
    "under_6_months": "lt_1y",
    "six_to_twelve_months": "lt_1y",
    "one_to_three_years": "1_3y",
    "one_three_years": "1_3y",
    "1_3y": "1_3y",
    "three_to_five_years": "3_5y",
    "three_five_years": "3_5y",
    "3_5y": "3_5y",
    "over_three_years": "3_5y",
    "gt_5y": "gt_5y",
    "more_than_five_years": "gt_5y",
    "never": "never",
}
EAT_OUT_FREQUENCY_ALIASES = {
    "never": "never",
    "rarely": "rarely",
    "sometimes": "sometimes",
    "weekly": "often",
    "often": "often",
    "daily": "often",
}

_TRUE_WORDS = ("yes", "y", "true", "1", "always")
_FALSE_WORDS = ("no", "n", "false", "0", "never")


def normalize_key(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", value.lower()).strip("_")


def to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if value == value and abs(value) != float("inf") else None
    if isinstance(value, str) and value.strip():
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def normalize_number(
    value: Any, minimum: Optional[float] = None, maximum: Optional[float] = None, precision: Optional[int] = None
) -> Optional[float]:
    """Parse `value`; out-of-range values become None."""
    number = to_number(value)
    if number is None:
        return None
    if minimum is not None and number < minimum:
        return None
    if maximum is not None and number > maximum:
        return None
    if precision is not None:
        number = round_half_up(number, precision)
        if precision == 0:
            number = int(number)
    return number


def to_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    return None


def to_string_list(value: Any) -> Optional[List[str]]:
    """Trimmed, case-insensitively de-duplicated strings; None when empty."""
    if not isinstance(value, list):
        return None
    return merge_distinct([v.strip() for v in value if isinstance(v, str) and v.strip()])


def merge_distinct(*lists: Optional[Iterable[str]]) -> Optional[List[str]]:
    seen = set()
    result: List[str] = []
    for items in lists:
        for item in items or []:
            if item.lower() not in seen:
                seen.add(item.lower())
                result.append(item)
    return result or None


def first_string(*values: Any) -> Optional[str]:
    for value in values:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _nested(payload: Dict[str, Any], *path: str) -> Any:
    node: Any = payload
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def _first_present(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def _alias(table: Dict[str, Any], raw: Optional[str]) -> Any:
    return table.get(normalize_key(raw)) if raw else None


def extract_height_cm(payload: Dict[str, Any]) -> Optional[float]:
    direct = normalize_number(
        _first_present(payload.get("height_cm"), _nested(payload, "body", "height", "cm")), 80, 250, 1
    )
    if direct is not None:
        return direct
    meters = normalize_number(payload.get("height_m"), 0.9, 2.5, 2)
    if meters is not None:
        return normalize_number(meters * 100, 80, 250, 1)
    feet = normalize_number(
        _first_present(payload.get("height_ft"), payload.get("raw_height_ft"), _nested(payload, "body", "height", "ft")),
        2, 8, 0,
    )
    inches = normalize_number(
        _first_present(payload.get("height_in"), payload.get("raw_height_in"), _nested(payload, "body", "height", "in")),
        0, 11, 0,
    )
    total_inches = (feet or 0) * 12 + (inches or 0)
    if total_inches > 0:
        return normalize_number(total_inches * CM_PER_INCH, 80, 250, 1)
    return None


def extract_weight_kg(payload: Dict[str, Any]) -> Optional[float]:
    direct = normalize_number(
        _first_present(payload.get("weight_kg"), _nested(payload, "body", "weight", "kg")), 35, 300, 1
    )
    if direct is not None:
        return direct
    pounds = normalize_number(
        _first_present(payload.get("weight_lb"), payload.get("raw_weight_lbs"), _nested(payload, "body", "weight", "lb")),
        70, 650, 1,
    )
    if pounds is not None:
        return normalize_number(pounds * KG_PER_POUND, 35, 300, 1)
    return None


def map_diet_plan(payload: Dict[str, Any]) -> Optional[str]:
    raw = first_string(
        payload.get("diet_plan"),
        payload.get("final_plan_type"),
        payload.get("diet_safety_override"),
        payload.get("diet_preference"),
        _nested(payload, "diet", "plan"),
    )
    if not raw:
        return None
    key = normalize_key(raw)
    if key in DIET_PLAN_ALIASES:
        return DIET_PLAN_ALIASES[key]
    literal = key.replace("_", "-")
    return literal if literal in DIET_PLANS else None


def map_activity_level(payload: Dict[str, Any]) -> Optional[str]:
    raw = first_string(
        payload.get("activity_level"), payload.get("weekly_rhythm"), _nested(payload, "habits", "activity_level")
    )
    return _alias(ACTIVITY_ALIASES, raw)


def map_sleep_hours(payload: Dict[str, Any]) -> Optional[float]:
    direct = normalize_number(payload.get("sleep_hours"), 3, 12, 1)
    if direct is not None:
        return direct
    slider = normalize_number(payload.get("sleep_quality"), 1, 5, 0)
    return SLEEP_QUALITY_TO_HOURS.get(slider) if slider is not None else None


def map_meal_complexity(payload: Dict[str, Any]) -> Optional[str]:
    direct = first_string(payload.get("meal_complexity"))
    if direct and normalize_key(direct) in COOKING_TIME_BY_COMPLEXITY:
        return normalize_key(direct)
    style = _alias(MEAL_COMPLEXITY_BY_STYLE, first_string(payload.get("cooking_style")))
    if style:
        return style
    confidence = first_string(payload.get("cooking_confidence"))
    if confidence:
        key = normalize_key(confidence)
        if key == "beginner":
            return "simple"
        if key in ("intermediate", "comfortable"):
            return "medium"
        if key in ("expert", "chef"):
            return "complex"
    return None


def map_cooking_time(payload: Dict[str, Any]) -> Optional[int]:
    direct = normalize_number(
        _first_present(payload.get("cooking_time_minutes"), _nested(payload, "habits", "cooking_time_minutes")),
        5, 120, 0,
    )
    if direct is not None:
        return direct
    by_style = _alias(COOKING_TIME_BY_STYLE, first_string(payload.get("cooking_style")))
    if by_style is not None:
        return by_style
    complexity = map_meal_complexity(payload)
    return COOKING_TIME_BY_COMPLEXITY[complexity] if complexity else None


def map_exercise_regularly(payload: Dict[str, Any]) -> Optional[bool]:
    direct = to_bool(
        _first_present(payload.get("exercise_regularly"), _nested(payload, "habits", "exercise_regularly"))
    )
    if direct is not None:
        return direct
    frequency = first_string(payload.get("exercise_frequency"), payload.get("workout_frequency"))
    if frequency and normalize_key(frequency) in EXERCISE_FREQUENCY_HINTS:
        return EXERCISE_FREQUENCY_HINTS[normalize_key(frequency)]
    activity = map_activity_level(payload)
    return activity in ACTIVE_LEVELS if activity else None


def map_gender(payload: Dict[str, Any]) -> Optional[str]:
    raw = first_string(payload.get("gender"), payload.get("sex"))
    if not raw:
        return None
    key = normalize_key(raw)
    if key in ("female", "f", "woman", "she"):
        return "female"
    if key in ("male", "m", "man", "he"):
        return "male"
    return "other"


def _routine_confidence(payload: Dict[str, Any]) -> Optional[int]:
    direct = normalize_number(payload.get("routine_confidence"), 1, 10, 0)
    if direct is not None:
        return direct
    stress = normalize_number(payload.get("stress_level"), 1, 10, 0)
    if stress is not None:
        return max(1, min(10, 11 - stress))
    sleep_quality = normalize_number(payload.get("sleep_quality"), 1, 5, 0)
    if sleep_quality is not None:
        return max(1, min(10, 4 + sleep_quality))
    return None


def _daily_water_ml(payload: Dict[str, Any], weight_kg: Optional[float]) -> int:
    direct = normalize_number(_first_present(payload.get("daily_water_ml"), payload.get("water_ml")), 500, 6000, 0)
    if direct is not None:
        return direct
    if weight_kg is not None:
        return min(4500, max(1500, round_half_up(weight_kg * 30)))
    return 2000


# PUBLIC_INTERFACE
def normalize_answers(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Canonical answers from raw funnel input.

    Keys whose value cannot be determined are omitted. Meal complexity defaults
    to medium, daily water to 30 ml/kg (1500..4500) or 2000 ml, and the target
    weight to the current weight.
    """
    payload = payload or {}
    height_cm = extract_height_cm(payload)
    weight_kg = extract_weight_kg(payload)
    target = normalize_number(
        _first_present(payload.get("target_weight_kg"), payload.get("goal_weight_kg"), payload.get("desired_weight_kg")),
        35, 250, 1,
    )
    activity = map_activity_level(payload)
    complexity = map_meal_complexity(payload) or "medium"
    habits = set(to_string_list(payload.get("eating_habits")) or [])
    goal_raw = first_string(payload.get("primary_goal"), payload.get("goal"))

    skip_breakfast = to_bool(payload.get("skip_breakfast"))
    if skip_breakfast is None and "skip_breakfast" in habits:
        skip_breakfast = True
    snacks = to_bool(payload.get("snack_between_meals"))
    if snacks is None and ("grazer" in habits or "on_the_go" in habits):
        snacks = True
    try_new_foods = to_bool(_first_present(payload.get("try_new_foods"), payload.get("adventurous_eater")))
    if try_new_foods is None and normalize_key(first_string(payload.get("cooking_style")) or "") == "adventurous":
        try_new_foods = True
    late_eating = to_bool(payload.get("late_eating"))
    if late_eating is None and "late_eating" in habits:
        late_eating = True

    answers = {
        "diet_plan": map_diet_plan(payload),
        "height_cm": height_cm,
        "current_weight_kg": weight_kg,
        "target_weight_kg": target if target is not None else weight_kg,
        "goal_timeline": _alias(GOAL_TIMELINE_BY_GOAL, goal_raw) or DEFAULT_GOAL_TIMELINE,
        "meals_per_day": normalize_number(
            _first_present(payload.get("meals_per_day"), _nested(payload, "habits", "meals_per_day")), 1, 6, 0
        ),
        "skip_breakfast": skip_breakfast,
        "snack_between_meals": snacks,
        "sleep_hours": map_sleep_hours(payload),
        "activity_level": activity,
        "exercise_regularly": map_exercise_regularly(payload),
        "meal_complexity": complexity,
        "try_new_foods": try_new_foods,
        "cooking_time_minutes": map_cooking_time(payload) or COOKING_TIME_BY_COMPLEXITY[complexity],
        "food_allergies": [a for a in to_string_list(payload.get("food_allergies")) or [] if a.lower() != "none"]
        or None,
        "avoided_foods": merge_distinct(
            to_string_list(payload.get("food_intolerances")),
            to_string_list(payload.get("avoid_foods")),
            to_string_list(payload.get("food_dislikes")),
        ),
        "eat_when_stressed": True if "stress_snacking" in habits else None,
        "main_motivation": _alias(
            MOTIVATION_BY_GOAL, first_string(payload.get("primary_goal"), payload.get("goal"), payload.get("main_motivation"))
        ),
        "routine_confidence": _routine_confidence(payload),
        "daily_water_ml": _daily_water_ml(payload, weight_kg),
        "want_reminders": to_bool(
            _first_present(payload.get("want_reminders"), payload.get("notifications_opt_in"), payload.get("reminders"))
        ),
        "track_activity": to_bool(_first_present(payload.get("track_activity"), payload.get("activity_tracking"))),
        "fast_food_frequency": _alias(HABIT_FREQUENCY_ALIASES, first_string(payload.get("fast_food_frequency"))),
        "cook_at_home_frequency": _alias(HABIT_FREQUENCY_ALIASES, first_string(payload.get("cook_at_home_frequency"))),
        "wake_up_time": first_string(payload.get("wake_up_time")),
        "dinner_time": first_string(payload.get("dinner_time")),
        "stress_level": normalize_number(payload.get("stress_level"), 1, 10, 0),
        "comfort_source": _alias(COMFORT_SOURCE_ALIASES, first_string(payload.get("comfort_source"))),
        "connect_health_app": to_bool(payload.get("connect_health_app")),
        "theme": _alias(THEME_ALIASES, first_string(payload.get("theme"), payload.get("app_theme"))),
        "gender": map_gender(payload),
        "birth_date": first_string(payload.get("birth_date"), payload.get("dob")),
        "weight_history": _alias(
            WEIGHT_HISTORY_ALIASES, first_string(payload.get("weight_history"), payload.get("weight_loss_rebound"))
        ),
        "weight_history_last_ideal": _alias(
            WEIGHT_HISTORY_LAST_IDEAL_ALIASES, first_string(payload.get("weight_history_last_ideal"))
        ),
        "clothes_size_current": first_string(payload.get("clothes_size_current"), payload.get("clothing_size_current")),
        "clothes_size_target": first_string(payload.get("clothes_size_target"), payload.get("clothing_size_goal")),
        "late_eating": late_eating,
        "eat_out_frequency": _alias(EAT_OUT_FREQUENCY_ALIASES, first_string(payload.get("eat_out_frequency"))),
        "meat_preferences": to_string_list(payload.get("meat_preferences")),
        "preferred_cooking_styles": to_string_list(payload.get("preferred_cooking_styles")),
    }
    return {key: value for key, value in answers.items() if value is not None}
