"""Slot keys and labels per meal frequency."""

from application.meal_labels import UNKNOWN_LABEL, get_meal_labels, label_for, label_to_slot


def test_base_frequencies():
    assert list(get_meal_labels(1)) == ["breakfast"]
    assert list(get_meal_labels(2)) == ["breakfast", "dinner"]
    assert list(get_meal_labels(3)) == ["breakfast", "lunch", "dinner"]
    assert list(get_meal_labels(4)) == ["breakfast", "lunch", "dinner", "snack"]
    assert list(get_meal_labels(5)) == ["breakfast", "lunch", "dinner", "snack", "snack2"]


def test_large_frequency_numbers_extra_snacks():
    labels = get_meal_labels(7)
    assert list(labels) == ["breakfast", "lunch", "dinner", "snack", "snack1", "snack2", "snack3"]
    assert labels["snack3"] == "Перекус"


def test_custom_labels_replace_labels_not_keys():
    labels = get_meal_labels(3, ["Утро", "День", "Вечер"])
    assert labels == {"breakfast": "Утро", "lunch": "День", "dinner": "Вечер"}


def test_custom_labels_with_wrong_length_are_ignored():
    assert get_meal_labels(3, ["Утро"])["breakfast"] == "Завтрак"


def test_label_to_slot():
    assert label_to_slot("Завтрак") == "breakfast"
    assert label_to_slot("  второй   завтрак ") == "snack"
    assert label_to_slot("Полдник") == "snack"
    assert label_to_slot("Бранч") is None
    assert label_to_slot("") is None


def test_label_for_falls_back_to_family():
    labels = get_meal_labels(4)
    assert label_for("snack2", labels) == "Перекус"
    assert label_for("brunch", labels) == UNKNOWN_LABEL
