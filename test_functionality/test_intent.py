"""Request classification and requested day counts."""

import pytest

from application.intent import classify, requested_days
from domain.models import RequestType


@pytest.mark.parametrize("message", [
    "Составь план питания на неделю",
    "Меню на 3 дня, пожалуйста",
    "сделай мне рацион для похудения",
    "Нужен план питания",
    "распиши меню на завтра",
])
def test_plan_requests(message):
    assert classify(message) == RequestType.MEAL_PLAN


@pytest.mark.parametrize("message", [
    "Дай рецепт сырников",
    "Как приготовить плов?",
    "Какие ингредиенты нужны для борща",
    "Пошаговый способ приготовления лазаньи",
])
def test_recipe_requests(message):
    assert classify(message) == RequestType.RECIPE


@pytest.mark.parametrize("message", [
    "Что лучше съесть на ужин?",
    "Сколько белка в твороге?",
    "Привет!",
    "Какой у меня план на день?",
    "",
    "   ",
])
def test_everything_else_is_text(message):
    assert classify(message) == RequestType.TEXT


def test_meal_time_words_alone_do_not_make_a_recipe():
    assert classify("завтрак") == RequestType.TEXT
    assert classify("Хочу лёгкий ужин") == RequestType.TEXT


def test_regeneration_of_a_plan():
    assert classify("Составь план питания на 2 дня", is_regeneration=True) == (
        RequestType.REGENERATION_MEAL_PLAN
    )


def test_another_plan_needs_context_or_regeneration():
    assert classify("давай другой план") == RequestType.TEXT
    assert classify("давай другой план", is_regeneration=True) == RequestType.REGENERATION_MEAL_PLAN
    assert classify("хочу новое меню без мяса") == RequestType.MEAL_PLAN


def test_plan_wins_over_recipe():
    assert classify("Составь меню на неделю с рецептами") == RequestType.MEAL_PLAN


def test_classification_ignores_case_and_spacing():
    assert classify("  ПЛАН    ПИТАНИЯ  ") == RequestType.MEAL_PLAN


@pytest.mark.parametrize("message, days", [
    ("план питания на 1 день", 1),
    ("меню на один день", 1),
    ("рацион на неделю", 7),
    ("план на 7 дней", 7),
    ("меню на 3 дня", 3),
    ("план питания на 10 дней", 10),
    ("план питания", None),
])
def test_requested_days(message, days):
    assert requested_days(message) == days
