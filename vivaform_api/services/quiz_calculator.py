from __future__ import annotations

import math
from datetime import date
from typing import Any, Dict, Optional

from vivaform_api.core.numbers import round_half_up

ACTIVITY_MULTIPLIERS = {
    "sedentary": 1.2,
    "light": 1.375,
    "moderate": 1.55,
    "active": 1.725,
    "athlete": 1.9,
}
DEFAULT_HEIGHT_CM = 170
DEFAULT_WEIGHT_KG = 70
DEFAULT_TARGET_WEIGHT_KG = 65
DEFAULT_ACTIVITY = "moderate"
DEFAULT_AGE = 30
MIN_CALORIES = 1200
KCAL_PER_KG = 7700

GOAL_ENUMS = {"lose": "LOSE_WEIGHT", "maintain": "MAINTAIN_WEIGHT", "gain": "GAIN_WEIGHT"}


def calculate_bmi(weight_kg: float, height_cm: float) -> float:
    height_m = height_cm / 100
    return round_half_up(weight_kg / (height_m * height_m), 1)


def bmi_category(bmi: float) -> str:
    if bmi < 18.5:
        return "underweight"
    if bmi < 25:
        return "normal"
    if bmi < 30:
        return "overweight"
    return "obese"


def _age(birth_date: Optional[Any]) -> int:
    if not birth_date:
        return DEFAULT_AGE
    try:
        year = birth_date.year if isinstance(birth_date, date) else int(str(birth_date)[:4])
    except ValueError:
        return DEFAULT_AGE
    return date.today().year - year


# PUBLIC_INTERFACE
def calculate_bmr(weight_kg: float, height_cm: float, gender: Optional[str] = None, birth_date=None) -> int:
    """Mifflin-St Jeor; only the birth year is used for the age."""
    base = 10 * weight_kg + 6.25 * height_cm - 5 * _age(birth_date)
    return round_half_up(base - 161 if gender == "female" else base + 5)


def calculate_tdee(bmr: float, activity_level: Optional[str]) -> int:
    return round_half_up(bmr * ACTIVITY_MULTIPLIERS.get(activity_level or "", 1.2))


def weight_goal(current_kg: float, target_kg: float) -> str:
    diff = target_kg - current_kg
    if abs(diff) < 2:
        return "maintain"
    return "lose" if diff < 0 else "gain"


def recommended_calories(tdee: int, goal: str) -> int:
    if goal == "lose":
        return max(MIN_CALORIES, tdee - 500)
    if goal == "gain":
        return tdee + 300
    return tdee


def macros_for(calories: float) -> Dict[str, int]:
    """30% protein, 30% fat, 40% carbs."""
    return {
        "protein": round_half_up(calories * 0.3 / 4),
        "fat": round_half_up(calories * 0.3 / 9),
        "carbs": round_half_up(calories * 0.4 / 4),
    }


def build_advice(goal: str, answers: Dict[str, Any]) -> str:
    if goal == "lose":
        advice = ["You can achieve your goal by reducing 500 kcal/day and staying active."]
    elif goal == "gain":
        advice = ["Focus on progressive strength training and a calorie surplus for healthy weight gain."]
    else:
        advice = ["Maintain your current weight by balancing calories in and calories out."]

    if answers.get("sleep_hours") and answers["sleep_hours"] < 7:
        advice.append("Try to get 7-9 hours of sleep, it helps regulate hunger hormones.")
    if answers.get("activity_level") == "sedentary" or answers.get("exercise_regularly") is False:
        advice.append("Adding 30 minutes of daily movement can boost your metabolism and mood.")
    if answers.get("daily_water_ml") and answers["daily_water_ml"] < 2000:
        advice.append("Aim for at least 2 liters of water daily, hydration supports metabolism.")
    if answers.get("stress_level") and answers["stress_level"] >= 4:
        advice.append("Managing stress is key. Consider mindfulness or regular breaks throughout the day.")
    return " ".join(advice)


# PUBLIC_INTERFACE
def calculate_quiz_result(answers: Dict[str, Any]) -> Dict[str, Any]:
    """
    Body metrics, calorie goal, macros and a timeline estimate from canonical quiz answers.

    Missing height, weights and activity fall back to 170 cm, 70 kg, 65 kg and
    moderate activity.
    """
    height = answers.get("height_cm") or DEFAULT_HEIGHT_CM
    current = answers.get("current_weight_kg") or DEFAULT_WEIGHT_KG
    target = answers.get("target_weight_kg") or DEFAULT_TARGET_WEIGHT_KG
    activity = answers.get("activity_level") or DEFAULT_ACTIVITY

    bmi = calculate_bmi(current, height)
    bmr = calculate_bmr(current, height, answers.get("gender"), answers.get("birth_date"))
    tdee = calculate_tdee(bmr, activity)
    goal = weight_goal(current, target)
    calories = recommended_calories(tdee, goal)

    deficit = abs(calories - tdee)
    if goal == "maintain":
        weekly_change = 0.0
        weeks = 0
    else:
        weekly_change = deficit * 7 / KCAL_PER_KG
        weeks = math.ceil(abs(target - current) / weekly_change) if weekly_change else 0

    return {
        "bmi": bmi,
        "bmi_category": bmi_category(bmi),
        "bmr": bmr,
        "tdee": tdee,
        "recommended_calories": calories,
        "daily_calorie_deficit": 0 if goal == "maintain" else deficit,
        "weekly_weight_change_kg": round_half_up(weekly_change, 2),
        "estimated_weeks": weeks,
        "macros": macros_for(calories),
        "advice": build_advice(goal, answers),
        "goal": goal,
    }
