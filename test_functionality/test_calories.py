"""Daily calorie target, safety floor and underweight warning."""

from datetime import date

import pytest

from application.calories import (
    activity_multiplier,
    age_on,
    body_mass_index,
    calculate_target,
    calorie_floor,
    underweight_warning,
)
from domain.models import UserProfile

TODAY = date(2025, 6, 16)


def _profile(**overrides) -> UserProfile:
    settings = {
        "weight": 80,
        "height": 180,
        "birthDate": "1990-01-10",
        "gender": "мужской",
        "activityLevel": "Средняя активность",
        "nutritionGoal": "Поддержание веса",
    }
    settings.update(overrides)
    return UserProfile.from_settings(settings)


def test_maintenance_target():
    # BMR 10*80 + 6.25*180 - 5*35 + 5 = 1755, x1.55 = 2720.25
    assert calculate_target(_profile(), TODAY) == 2720


def test_weight_loss_subtracts_deficit():
    assert calculate_target(_profile(nutritionGoal="Похудение"), TODAY) == 2220


def test_gain_adds_surplus():
    assert calculate_target(_profile(nutritionGoal="Набор мышечной массы"), TODAY) == 3120


def test_weight_loss_wins_over_gain():
    goals = ["Набор мышечной массы", "Похудение"]
    assert calculate_target(_profile(nutritionGoal=goals), TODAY) == 2220


def test_target_never_below_floor():
    # BMR 10*50 + 6.25*165 - 5*25 - 161 = 1245.25, x1.2 - 500 < 1400
    profile = _profile(
        weight=50, height=165, birthDate="2000-01-01", gender="женский",
        activityLevel="Минимальная", nutritionGoal="Похудение",
    )
    assert calculate_target(profile, TODAY) == 1400


def test_obese_male_floor_bracket():
    assert calorie_floor(female=False, bmi=35) == 2000
    assert calorie_floor(female=True, bmi=45) == 1800
    assert calorie_floor(female=True, bmi=22) == 1400


@pytest.mark.parametrize("overrides", [
    {"gender": ""},
    {"weight": None},
    {"height": 0},
    {"birthDate": "not a date"},
    {"birthDate": "2030-01-01"},
])
def test_missing_or_unusable_data_gives_none(overrides):
    assert calculate_target(_profile(**overrides), TODAY) is None


def test_activity_multiplier_defaults_to_sedentary():
    assert activity_multiplier("") == 1.2
    assert activity_multiplier("Высокая") == 1.725
    assert activity_multiplier("light") == 1.375


def test_age_counts_completed_years():
    assert age_on(date(1990, 6, 17), TODAY) == 34
    assert age_on(date(1990, 6, 16), TODAY) == 35


def test_body_mass_index():
    assert body_mass_index(_profile()) == pytest.approx(24.69, abs=0.01)
    assert body_mass_index(_profile(height=None)) is None


def test_underweight_warning_only_for_weight_loss():
    thin = dict(weight=50, height=170)
    warning = underweight_warning(_profile(nutritionGoal="Похудение", **thin))
    assert warning is not None
    assert "17.3" in warning
    assert underweight_warning(_profile(nutritionGoal="Поддержание веса", **thin)) is None
    assert underweight_warning(_profile(nutritionGoal="Похудение")) is None
