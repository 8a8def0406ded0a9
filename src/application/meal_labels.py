"""
application.meal_labels - Meal-slot keys and their user-facing labels.

Slot keys (breakfast, lunch, dinner, snack, snack2, snack1..) are stable
identifiers used in JSON and in storage; labels are the localized names
shown to the user.
"""

from __future__ import annotations

from typing import Optional, Sequence

BREAKFAST = "Завтрак"
LUNCH = "Обед"
DINNER = "Ужин"
SNACK = "Перекус"
UNKNOWN_LABEL = "Приём пищи"

_BASE_LABELS: dict[int, dict[str, str]] = {
    1: {"breakfast": BREAKFAST},
    2: {"breakfast": BREAKFAST, "dinner": DINNER},
    3: {"breakfast": BREAKFAST, "lunch": LUNCH, "dinner": DINNER},
    4: {"breakfast": BREAKFAST, "lunch": LUNCH, "dinner": DINNER, "snack": SNACK},
    5: {
        "breakfast": BREAKFAST, "lunch": LUNCH, "dinner": DINNER,
        "snack": SNACK, "snack2": SNACK,
    },
}

# Localized label (lower case) -> slot family, longest first for matching.
_LABEL_TO_SLOT: dict[str, str] = {
    "второй завтрак": "snack",
    "завтрак": "breakfast",
    "обед": "lunch",
    "полдник": "snack",
    "ужин": "dinner",
    "перекус": "snack",
    "breakfast": "breakfast",
    "lunch": "lunch",
    "dinner": "dinner",
    "snack": "snack",
}


def get_meal_labels(
    frequency: int, custom_labels: Optional[Sequence[str]] = None,
) -> dict[str, str]:
    """Ordered slot-key -> label mapping for a meal frequency.

    Custom labels replace the labels only when there is exactly one per
    slot; the slot keys themselves never change.
    """
    frequency = max(1, int(frequency or 1))
    if frequency in _BASE_LABELS:
        labels = dict(_BASE_LABELS[frequency])
    else:
        labels = dict(_BASE_LABELS[4])
        for i in range(1, frequency - 4 + 1):
            labels[f"snack{i}"] = SNACK

    if custom_labels and len(custom_labels) == frequency:
        labels = {
            key: (str(custom).strip() or default)
            for (key, default), custom in zip(labels.items(), custom_labels)
        }
    return labels


def label_to_slot(label: str) -> Optional[str]:
    """Map a localized label back to a slot family (breakfast/lunch/dinner/snack)."""
    text = " ".join((label or "").strip().lower().split())
    return _LABEL_TO_SLOT.get(text) if text else None


def label_for(slot_key: str, labels: dict[str, str]) -> str:
    if slot_key in labels:
        return labels[slot_key]
    family = slot_key.rstrip("0123456789")
    for key, value in labels.items():
        if key.rstrip("0123456789") == family:
            return value
    return UNKNOWN_LABEL
