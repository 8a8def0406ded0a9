"""
application.calories - Daily calorie target from biometric data.

Mifflin-St Jeor BMR, an activity multiplier, a goal adjustment scaled by
BMI, and a gender/BMI safety floor the target never drops below.
Every function here returns None instead of raising on bad input.
"""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Optional

from domain.models import UserProfile, parse_birth_date

logger = logging.getLogger(__name__)

UNDERWEIGHT_BMI = 18.5

# (keywords, multiplier), checked in order; default is sedentary.
_ACTIVITY_MULTIPLIERS: tuple[tuple[tuple[str, ...], float], ...] = (
    (("минимальн", "сидяч", "sedentary"), 1.2),
    (("слаб", "легк", "light"), 1.375),
    (("средн", "умерен", "moderate"), 1.55),
    (("высок", "тяжел", "high"), 1.725),
    (("экстра", "экстрем", "extreme"), 1.9),
)
_DEFAULT_MULTIPLIER = 1.2

_WEIGHT_LOSS_KEYWORDS = ("похуден", "сброс", "weight loss")
_GAIN_KEYWORDS = ("набор", "мышц", "muscle", "спорт", "sport")
_GAIN_SURPLUS = 400


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def is_female(gender: str) -> bool:
    g = (gender or "").strip().lower()
    return "жен" in g or g == "female"


def age_on(birth: date, today: date) -> int:
    """Completed years between birth and today."""
    years = today.year - birth.year
    if (today.month, today.day) < (birth.month, birth.day):
        years -= 1
    return years


def activity_multiplier(activity_level: str) -> float:
    act = (activity_level or "").lower()
    for keywords, multiplier in _ACTIVITY_MULTIPLIERS:
        if any(k in act for k in keywords):
            return multiplier
    return _DEFAULT_MULTIPLIER


def is_weight_loss_goal(profile: UserProfile) -> bool:
    return any(
        any(k in goal.lower() for k in _WEIGHT_LOSS_KEYWORDS)
        for goal in profile.goals
    )


def is_gain_goal(profile: UserProfile) -> bool:
    return any(
        any(k in goal.lower() for k in _GAIN_KEYWORDS)
        for goal in profile.goals
    )


def body_mass_index(profile: UserProfile) -> Optional[float]:
    """weight / (height in metres)^2, or None without usable numbers."""
    weight, height = profile.weight, profile.height
    if not _positive(weight) or not _positive(height):
        return None
    metres = height / 100
    return weight / (metres * metres)


def calorie_floor(female: bool, bmi: float) -> int:
    """Minimum daily calories by gender and BMI bracket."""
    if bmi < 30:
        return 1400 if female else 1800
    if bmi < 40:
        return 1600 if female else 2000
    return 1800 if female else 2200


def weight_loss_deficit(bmi: float) -> int:
    if bmi >= 40:
        return 900
    if bmi >= 30:
        return 750
    return 500


def _positive(value: Optional[float]) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value > 0
    )


# ---------------------------------------------------------------------------
# Target
# ---------------------------------------------------------------------------

def calculate_target(profile: UserProfile, today: Optional[date] = None) -> Optional[int]:
    """Recommended daily calories, or None when weight, height, birth date
    or gender is missing or unusable."""
    if not profile.gender or not profile.gender.strip():
        logger.debug("Calorie target skipped: no gender")
        return None

    bmi = body_mass_index(profile)
    birth = parse_birth_date(profile.birth_date)
    if bmi is None or birth is None:
        logger.debug("Calorie target skipped: weight/height/birth date missing")
        return None

    age = age_on(birth, today or date.today())
    if age <= 0:
        logger.debug("Calorie target skipped: birth date %s is not in the past", birth)
        return None

    female = is_female(profile.gender)
    bmr = 10 * profile.weight + 6.25 * profile.height - 5 * age
    bmr += -161 if female else 5

    tdee = bmr * activity_multiplier(profile.activity_level)

    # Weight loss wins over gain when the goal list holds both.
    target = tdee
    if is_weight_loss_goal(profile):
        target = tdee - weight_loss_deficit(bmi)
    elif is_gain_goal(profile):
        target = tdee + _GAIN_SURPLUS

    floor = calorie_floor(female, bmi)
    if target < floor:
        logger.info("Calorie target %.0f below floor %d, using floor", target, floor)
        target = floor

    result = int(round(target))
    logger.info(
        "Calorie target %d kcal (BMR %.0f, TDEE %.0f, BMI %.1f, floor %d)",
        result, bmr, tdee, bmi, floor,
    )
    return result


def underweight_warning(profile: UserProfile) -> Optional[str]:
    """Warning text when a weight-loss goal meets an underweight BMI."""
    bmi = body_mass_index(profile)
    if bmi is None or bmi >= UNDERWEIGHT_BMI or not is_weight_loss_goal(profile):
        return None
    return (
        f"❌ ВНИМАНИЕ: Ваш ИМТ составляет {bmi:.1f}, что значительно ниже нормы "
        "(18.5-24.9). Снижение веса при таких показателях приведет к истощению "
        "организма, потере мышечной массы и нарушению работы жизненно важных "
        "систем. Пожалуйста, измените цель, например, на поддержание веса."
    )
