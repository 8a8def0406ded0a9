"""Meal-plan extraction, normalization, correction and rendering."""

import json

import pytest

from application.parsing.plan_parser import PLACEHOLDER_PREFIX, PlanParser, day_word, render_plan
from application.meal_labels import get_meal_labels
from application.parsing.realism import RealismCorrector

HEADER = "Ваша суточная норма калорий для достижения вашей цели: 2000 ккал.\nПлан на 1 день:\n"


def _day(*meals):
    return {"meals": [
        {"type": t, "recipeName": n, "calories": c, "portionSize": p} for t, n, c, p in meals
    ]}


def test_missing_calories_are_redistributed_from_target():
    raw = '{"meals":[{"type":"breakfast","recipeName":"Омлет","calories":0,"portionSize":250}]}'
    parsed = PlanParser().parse(raw, 3, calorie_target=2000)

    assert parsed.strategy == "json_object"
    breakfast = parsed.days[0].meals[0]
    assert breakfast.type == "breakfast"
    assert breakfast.calories == 500


def test_day_is_padded_to_frequency_with_placeholders():
    raw = HEADER + json.dumps([_day(("breakfast", "Овсянка", 400, 300))], ensure_ascii=False)
    parsed = PlanParser().parse(raw, 4)

    meals = parsed.days[0].meals
    assert [m.type for m in meals] == ["breakfast", "lunch", "dinner", "snack"]
    assert all(m.recipe_name.startswith(PLACEHOLDER_PREFIX) for m in meals[1:])
    assert parsed.calorie_norm == 2000


def test_extra_meals_are_cut_to_frequency():
    raw = json.dumps([_day(
        ("breakfast", "Каша", 400, 300),
        ("lunch", "Курица с рисом", 600, 350),
        ("dinner", "Рыба с овощами", 450, 300),
        ("snack", "Йогурт", 150, 150),
    )], ensure_ascii=False)
    parsed = PlanParser().parse(raw, 3)

    assert parsed.strategy == "json_array"
    assert [m.recipe_name for m in parsed.days[0].meals] == [
        "Каша", "Курица с рисом", "Рыба с овощами",
    ]


def test_unknown_types_are_dropped():
    raw = json.dumps([_day(("brunch", "Блины", 500, 200), ("dinner", "Суп", 300, 400))])
    parsed = PlanParser().parse(raw, 2)
    names = [m.recipe_name for m in parsed.days[0].meals]
    assert names[0] == "Суп"
    assert names[1].startswith(PLACEHOLDER_PREFIX)


def test_days_truncated_to_request_with_warning():
    days = [_day(("breakfast", f"Каша {i}", 400, 300)) for i in range(1, 6)]
    parsed = PlanParser().parse(json.dumps(days, ensure_ascii=False), 1, requested_days=3)

    assert len(parsed.days) == 3
    assert parsed.days[0].warning.startswith("⚠️")
    assert parsed.text.startswith("⚠️")
    assert "План на 3 дня:" in parsed.text


def test_days_truncated_to_stated_count():
    days = [_day(("breakfast", f"Каша {i}", 400, 300)) for i in range(1, 4)]
    raw = "Ваша суточная норма калорий: 1800 ккал.\nПлан на 2 дня:\n" + json.dumps(days, ensure_ascii=False)
    parsed = PlanParser().parse(raw, 1)
    assert len(parsed.days) == 2


def test_target_overrides_stated_norm():
    raw = HEADER.replace("2000", "2600") + json.dumps([_day(("breakfast", "Каша", 0, 300))])
    parsed = PlanParser().parse(raw, 1, calorie_target=2000)
    assert parsed.calorie_norm == 2000
    assert "Ваша суточная норма калорий: 2000 ккал." in parsed.text


def test_realism_correction_runs_after_redistribution():
    raw = json.dumps([_day(("breakfast", "Салат из огурцов", 900, 150))], ensure_ascii=False)
    meal = PlanParser().parse(raw, 1).days[0].meals[0]
    assert meal.calories / meal.portion_size <= 2.0


def test_text_grammar_with_day_headers():
    raw = (
        "Конечно! Вот ваш план.\n"
        "Ваша суточная норма калорий: 2100 ккал.\n"
        "План на 2 дня:\n"
        "**День 1**\n"
        "Завтрак: Овсянка с ягодами (450 ккал, 300 г)\n"
        "Обед: Гречка с курицей (700 ккал, 400 г)\n"
        "Ужин: Творог с зеленью - 350 ккал\n"
        "День 2\n"
        "Завтрак: Омлет (400 ккал, 250 г)\n"
        "Обед: Борщ (500 ккал, 450 г)\n"
        "Ужин: Запечённая рыба (450 ккал, 300 г)\n"
    )
    parsed = PlanParser().parse(raw, 3)

    assert parsed.strategy == "text_grammar"
    assert len(parsed.days) == 2
    first = parsed.days[0].meals
    assert (first[0].recipe_name, first[0].calories, first[0].portion_size) == (
        "Овсянка с ягодами", 450, 300,
    )
    assert first[2].recipe_name == "Творог с зеленью"
    assert first[2].calories == 350
    assert parsed.calorie_norm == 2100


def test_rendered_plan_parses_back_to_itself():
    raw = HEADER + json.dumps([_day(
        ("breakfast", "Сырники", 450, 200),
        ("lunch", "Курица с булгуром", 650, 350),
        ("dinner", "Овощное рагу", 350, 350),
        ("snack", "Яблоко", 80, 150),
    )], ensure_ascii=False)
    first = PlanParser().parse(raw, 4)
    second = PlanParser().parse(first.text, 4)

    assert second.strategy == "text_grammar"
    assert second.text == first.text


def test_error_object_is_echoed():
    parsed = PlanParser().parse('{"error": "Недостаточно данных"}', 3)
    assert parsed.days == []
    assert parsed.text == "Недостаточно данных"


def test_dish_object_yields_a_dish():
    raw = json.dumps({
        "name": "Паста с томатами",
        "ingredients": ["паста 100 г", "томаты 150 г"],
        "instruction": ["Отварить пасту", "Добавить соус"],
        "calories": 520,
        "portionSize": 300,
    }, ensure_ascii=False)
    parsed = PlanParser().parse(raw, 3)

    assert parsed.days == []
    assert parsed.dish.recipe_name == "Паста с томатами"
    assert parsed.text.startswith("Блюдо: Паста с томатами")


def test_unstructured_reply_is_echoed():
    parsed = PlanParser().parse("<p>Извините, не могу помочь.</p>", 3)
    assert parsed.strategy == "raw_echo"
    assert parsed.is_empty
    assert parsed.text == "Извините, не могу помочь."


def test_render_plan_single_day_has_no_day_header():
    labels = get_meal_labels(1)
    raw = json.dumps([_day(("breakfast", "Каша", 400, 300))], ensure_ascii=False)
    days = PlanParser().parse(raw, 1).days
    text = render_plan(days, labels, 1800)
    assert text == (
        "Ваша суточная норма калорий: 1800 ккал.\n"
        "План на 1 день:\n"
        "Завтрак: Каша (400 ккал, 300 г)"
    )


def test_day_word():
    assert [day_word(n) for n in (1, 2, 5, 11, 21, 22)] == [
        "день", "дня", "дней", "дней", "день", "дня",
    ]


def test_meal_lines_without_day_headers_survive_trailing_advice():
    raw = (
        "Завтрак: Овсянка (300 ккал, 250 г)\n"
        "Обед: Куриный суп (450 ккал, 400 г)\n"
        "Ужин: Рыба с овощами (400 ккал, 300 г)\n"
        "Пейте воду и отдыхайте каждый день хотя бы час.\n"
    )
    parsed = PlanParser().parse(raw, 3)

    assert parsed.strategy == "text_grammar"
    assert len(parsed.days) == 1
    assert [m.recipe_name for m in parsed.days[0].meals] == [
        "Овсянка", "Куриный суп", "Рыба с овощами",
    ]


def test_preamble_before_first_day_line_is_dropped():
    raw = (
        "Обед: не пропускайте его\n"
        "День 1\n"
        "Завтрак: Омлет (350 ккал, 200 г)\n"
    )
    meals = PlanParser().parse(raw, 1).days[0].meals
    assert [m.recipe_name for m in meals] == ["Омлет"]


def test_duplicate_slot_is_dropped_not_reused():
    raw = json.dumps([_day(
        ("breakfast", "Каша", 400, 300),
        ("breakfast", "Блины", 450, 200),
        ("lunch", "Плов", 600, 350),
    )], ensure_ascii=False)
    meals = PlanParser().parse(raw, 3).days[0].meals

    assert [m.type for m in meals] == ["breakfast", "lunch", "dinner"]
    assert meals[0].recipe_name == "Каша"
    assert meals[1].recipe_name == "Плов"
    assert meals[2].recipe_name.startswith(PLACEHOLDER_PREFIX)


@pytest.mark.parametrize("frequency", range(1, 8))
def test_short_day_is_padded_to_any_frequency(frequency):
    raw = json.dumps([_day(("breakfast", "Каша", 400, 300))], ensure_ascii=False)
    meals = PlanParser().parse(raw, frequency).days[0].meals

    assert len(meals) == frequency
    assert [m.type for m in meals] == list(get_meal_labels(frequency))


@pytest.mark.parametrize("frequency", range(1, 8))
def test_long_day_is_cut_to_any_frequency(frequency):
    types = list(get_meal_labels(frequency + 2))
    raw = json.dumps([_day(*[(t, f"Блюдо {i}", 300, 250) for i, t in enumerate(types)])],
                     ensure_ascii=False)
    meals = PlanParser().parse(raw, frequency).days[0].meals

    assert len(meals) == frequency
    assert len({m.type for m in meals}) == frequency


def test_parsing_is_deterministic():
    raw = HEADER + json.dumps([_day(
        ("breakfast", "Сырники", 0, 200),
        ("lunch", "Борщ", 800, 200),
    )], ensure_ascii=False)
    assert PlanParser().parse(raw, 3) == PlanParser().parse(raw, 3)


def test_every_parsed_meal_ends_inside_its_density_band():
    raw = json.dumps([_day(
        ("breakfast", "Греческий салат", 900, 150),
        ("lunch", "Борщ", 800, 200),
        ("dinner", "Смузи", 600, 200),
        ("snack", "Печенье", 700, 100),
        ("snack1", "Куриная грудка", 50, 300),
        ("snack2", "Плов", 800, 300),
    )], ensure_ascii=False)
    meals = PlanParser().parse(raw, 6).days[0].meals
    corrector = RealismCorrector()

    assert len(meals) == 6
    for meal in meals:
        assert corrector.band_for(meal.recipe_name).contains(meal.calories / meal.portion_size)
