"""
application.parsing.dish_text - Human-readable dish card and its scraper.

``render_dish`` writes the card shown in chat; ``scrape_dish`` reads the
same section headers back, so a rendered card always scrapes to the
dish it came from. The scraper also accepts model prose that uses the
same headers.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Optional

from domain.models import Ingredient, PlanMeal

_NUMBER = r"(\d+(?:[.,]\d+)?)"

_NAME = re.compile(r"Блюдо:\s*(.+)", re.IGNORECASE)
_INGREDIENTS = re.compile(
    r"Ингредиенты:\s*([\s\S]*?)(?=\n\s*\n|Инструкция|Время приготовления|$)",
    re.IGNORECASE,
)
_INSTRUCTION = re.compile(
    r"Инструкция(?: приготовления)?:\s*([\s\S]*?)"
    r"(?=\n\s*\n|Время приготовления|Приятного аппетита!|$)",
    re.IGNORECASE,
)
_COOKING_TIME = re.compile(r"Время приготовления:\s*(\d+)", re.IGNORECASE)
_MACROS = re.compile(
    r"Количество белков, жиров, углеводов:\s*"
    rf"белки\s*[-—–]\s*{_NUMBER}\s*г,\s*"
    rf"жиры\s*[-—–]\s*{_NUMBER}\s*г,\s*"
    rf"углеводы\s*[-—–]\s*{_NUMBER}\s*г",
    re.IGNORECASE,
)
_CALORIES = re.compile(r"Количество килокалорий на порцию:\s*(\d+)", re.IGNORECASE)
_PORTION = re.compile(r"Порция:\s*(\d+)\s*г", re.IGNORECASE)

_TITLE_REJECT_PREFIXES = ("конечно,", "вот")


def fmt_number(value: float) -> str:
    """12.0 -> "12", 12.25 -> "12.2"."""
    value = round(float(value or 0), 1)
    return str(int(value)) if value == int(value) else str(value)


def format_ingredients(items: Iterable[Ingredient]) -> str:
    lines = []
    for item in items:
        if item.grams:
            lines.append(f"- {item.name} — {fmt_number(item.grams)} г")
        else:
            lines.append(f"- {item.name}")
    return "\n".join(lines)


def join_text(value: Any, numbered: bool = False) -> str:
    """Ingredients or steps given as a list become one line per item."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        items = [str(v).strip() for v in value if str(v).strip()]
        if numbered:
            return "\n".join(f"{i}. {item}" for i, item in enumerate(items, 1))
        return "\n".join(f"- {item}" for item in items)
    return str(value).strip()


def render_dish(meal: PlanMeal) -> str:
    return (
        f"Блюдо: {meal.recipe_name}\n\n"
        f"Ингредиенты:\n{meal.ingredients}\n\n"
        f"Инструкция приготовления:\n{meal.instruction}\n\n"
        f"Время приготовления: {meal.cooking_time} минут.\n"
        f"Порция: {meal.portion_size} г.\n"
        f"Количество килокалорий на порцию: {meal.calories} ккал.\n"
        "Количество белков, жиров, углеводов: "
        f"белки - {fmt_number(meal.proteins)} г, "
        f"жиры - {fmt_number(meal.fats)} г, "
        f"углеводы - {fmt_number(meal.carbs)} г.\n\n"
        "Приятного аппетита!"
    )


def _to_float(text: str) -> float:
    return float(text.replace(",", "."))


def _extract_name(text: str) -> Optional[str]:
    match = _NAME.search(text)
    if match and match.group(1).strip():
        return match.group(1).strip()

    # Fall back to the line right above the ingredients header.
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    for i, line in enumerate(lines):
        if "ингредиенты" in line.lower():
            if i == 0:
                return None
            title = lines[i - 1].strip("#* ")
            if (
                title
                and not title.lower().startswith(_TITLE_REJECT_PREFIXES)
                and len(title) < 100
            ):
                return title
            return None
    return None


def scrape_dish(text: str, meal_type: str = "breakfast") -> Optional[PlanMeal]:
    """Rebuild a dish from a rendered card or header-structured prose.

    Returns None unless a name, an ingredient block and an instruction
    are all present.
    """
    text = (text or "").replace("\r\n", "\n").replace("**", "")
    name = _extract_name(text)

    match = _INGREDIENTS.search(text)
    ingredients = match.group(1).strip() if match else ""
    match = _INSTRUCTION.search(text)
    instruction = match.group(1).strip() if match else ""

    if not name or not ingredients or not instruction:
        return None

    match = _COOKING_TIME.search(text)
    cooking_time = int(match.group(1)) if match else 0
    match = _CALORIES.search(text)
    calories = int(match.group(1)) if match else 0
    match = _PORTION.search(text)
    portion = int(match.group(1)) if match else 0
    macros = _MACROS.search(text)

    return PlanMeal(
        type=meal_type,
        recipe_name=name,
        calories=calories,
        portion_size=portion,
        proteins=_to_float(macros.group(1)) if macros else 0.0,
        fats=_to_float(macros.group(2)) if macros else 0.0,
        carbs=_to_float(macros.group(3)) if macros else 0.0,
        ingredients=ingredients,
        instruction=instruction,
        cooking_time=cooking_time,
    )
