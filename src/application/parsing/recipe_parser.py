"""
application.parsing.recipe_parser - Turn a recipe reply into one dish.

Strategies, in order:

    json_object       -> {"name", "ingredients": [...], "instruction", ...}
    structural_scrape -> "Блюдо: / Ингредиенты: / Инструкция:" prose
    raw_echo          -> the cleaned reply, no dish

When ingredients come as a structured array, each ingredient's calories
are recomputed from its macros (4/9/4) and the dish totals are the sums
over ingredients, whatever totals the model stated.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from application.parsing.dish_text import format_ingredients, join_text, render_dish, scrape_dish
from application.parsing.json_extract import NO_JSON, extract_json, strip_markup
from domain.models import Ingredient, ParsedRecipe, PlanMeal

logger = logging.getLogger(__name__)

DEFAULT_PORTION = 200


def _num(value: Any) -> float:
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return max(0.0, float(value))
    match = re.search(r"\d+(?:[.,]\d+)?", str(value))
    return float(match.group().replace(",", ".")) if match else 0.0


def is_dish_object(value: Any) -> bool:
    """A JSON object carrying a name, ingredients and an instruction."""
    return (
        isinstance(value, dict)
        and bool(value.get("name") or value.get("recipeName"))
        and bool(value.get("ingredients"))
        and bool(value.get("instruction"))
    )


def parse_ingredients(value: Any) -> list[Ingredient]:
    """Structured ingredients with calories recomputed from macros."""
    if not isinstance(value, list):
        return []
    items = []
    for raw in value:
        if not isinstance(raw, dict):
            continue
        item = Ingredient(
            name=str(raw.get("name") or "").strip(),
            grams=_num(raw.get("grams", raw.get("amount"))),
            proteins=_num(raw.get("proteins")),
            fats=_num(raw.get("fats")),
            carbs=_num(raw.get("carbs")),
            calories=_num(raw.get("calories")),
        )
        if item.has_macros:
            item = Ingredient(
                name=item.name, grams=item.grams, proteins=item.proteins,
                fats=item.fats, carbs=item.carbs, calories=round(item.energy(), 1),
            )
        items.append(item)
    return items


def ingredients_text(value: Any) -> str:
    """Ingredients as display text, whatever shape the model used."""
    if isinstance(value, list) and any(isinstance(v, dict) for v in value):
        return format_ingredients(parse_ingredients(value))
    return join_text(value)


def dish_from_json(data: dict[str, Any], meal_type: str = "breakfast") -> PlanMeal:
    """Build a dish from a recipe object, enforcing energy balance."""
    name = str(data.get("name") or data.get("recipeName") or "").strip()
    calories = _num(data.get("calories"))
    proteins = _num(data.get("proteins"))
    fats = _num(data.get("fats"))
    carbs = _num(data.get("carbs"))
    portion = _num(data.get("portionSize", data.get("portion_size")))

    items = parse_ingredients(data.get("ingredients"))
    if items:
        if any(i.has_macros for i in items):
            proteins = sum(i.proteins for i in items)
            fats = sum(i.fats for i in items)
            carbs = sum(i.carbs for i in items)
        summed = sum(i.calories for i in items)
        if summed > 0:
            if abs(summed - calories) > 5:
                logger.warning(
                    "Recipe %r states %.0f kcal, ingredients sum to %.0f kcal",
                    name, calories, summed,
                )
            calories = summed
        if not portion:
            portion = sum(i.grams for i in items)

    return PlanMeal(
        type=meal_type,
        recipe_name=name,
        calories=int(round(calories)),
        portion_size=int(round(portion)) or DEFAULT_PORTION,
        proteins=round(proteins, 1),
        fats=round(fats, 1),
        carbs=round(carbs, 1),
        ingredients=ingredients_text(data.get("ingredients")),
        instruction=join_text(data.get("instruction"), numbered=True),
        cooking_time=int(_num(data.get("cookingTime", data.get("cooking_time")))),
    )


class RecipeParser:
    """Parses recipe replies; never raises."""

    def parse(self, raw: str) -> ParsedRecipe:
        raw = raw or ""

        data = extract_json(raw, accept=lambda v: isinstance(v, dict))
        if data is not NO_JSON:
            if data.get("error"):
                logger.warning("Model reported an error instead of a recipe: %s", data["error"])
                return ParsedRecipe(text=str(data["error"]), strategy="json_object")
            if data.get("name") or data.get("recipeName"):
                dish = dish_from_json(data)
                logger.debug("Recipe strategy json_object matched: %s", dish.recipe_name)
                return ParsedRecipe(dish=dish, text=render_dish(dish), strategy="json_object")

        dish = scrape_dish(strip_markup(raw))
        if dish is not None:
            if not dish.portion_size:
                dish.portion_size = DEFAULT_PORTION
            logger.debug("Recipe strategy structural_scrape matched: %s", dish.recipe_name)
            return ParsedRecipe(dish=dish, text=render_dish(dish), strategy="structural_scrape")

        logger.info("No recipe structure found, echoing cleaned reply")
        return ParsedRecipe(text=strip_markup(raw), strategy="raw_echo")
