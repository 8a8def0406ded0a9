"""
application.intent - Rule-based request classification.

Maps a raw user message to a RequestType with ordered regex families.
The meal-plan family is tried first, the recipe family second, and
anything else is plain TEXT. Pure functions: no state, no I/O.
"""

from __future__ import annotations

import re
from typing import Optional

from domain.models import RequestType

# ---------------------------------------------------------------------------
# Pattern families
# ---------------------------------------------------------------------------

# Tokens proving the message is about food at all.
_NUTRITION_CONTEXT = re.compile(
    r"питани|рацион|меню|\bед[аыуеой]\b|калори|ккал|блюд|кбжу|диет|"
    r"похуд|завтрак|обед|ужин|перекус"
)

# Planning phrases that are unambiguous on their own.
_PLAN_EXPLICIT = (
    re.compile(r"план\w*\s+питани"),
    re.compile(
        r"(?:меню|рацион|питани[ея])\s+на\s+"
        r"(?:\d+|день|дня|дней|недел\w*|месяц|сегодня|завтра|"
        r"(?:один|два|три|четыре|пять|шесть|семь)\s+(?:день|дня|дней))"
    ),
    re.compile(r"расписани\w*\s+(?:питани|еды|при[её]м)"),
)

# Planning phrases that need a nutrition-context token somewhere in the text.
_PLAN_CONTEXTUAL = (
    re.compile(
        r"\b(?:составь|сделай|придумай|создай|напиши|подбери|распиши|дай|"
        r"разработай|сгенерируй|сформируй)\w*\b.*\b(?:план|меню|рацион)"
    ),
    re.compile(
        r"\bплан\w*\s+на\s+(?:\d+|один|два|три|четыре|пять|шесть|семь)\s*"
        r"(?:дн|день|дня|дней)|\bплан\w*\s+на\s+недел"
    ),
)

# "другой план" / "новый план" / "ещё один план".
_PLAN_ANOTHER = re.compile(r"\b(?:друг|нов|ещ[её]\s+одн?)\w*\s+(?:план|меню|рацион)")

_RECIPE = re.compile(
    r"рецепт|"
    r"как\s+(?:приготовить|сделать|сварить|испечь|пожарить|запечь|потушить)|"
    r"\bприготовь|ингредиент|способ\w*\s+приготовлени|пошагов"
)


def _normalize(content: str) -> str:
    return " ".join((content or "").strip().lower().split())


def _is_meal_plan(text: str, is_regeneration: bool) -> bool:
    if any(p.search(text) for p in _PLAN_EXPLICIT):
        return True
    has_context = bool(_NUTRITION_CONTEXT.search(text))
    if has_context and any(p.search(text) for p in _PLAN_CONTEXTUAL):
        return True
    return bool(_PLAN_ANOTHER.search(text)) and (has_context or is_regeneration)


def classify(content: str, is_regeneration: bool = False) -> RequestType:
    """Classify a user message.

    A bare "план на день" without any food word stays TEXT, and meal-time
    words alone ("ужин", "завтрак") never make a recipe request.
    """
    text = _normalize(content)
    if not text:
        return RequestType.TEXT

    if _is_meal_plan(text, is_regeneration):
        if is_regeneration:
            return RequestType.REGENERATION_MEAL_PLAN
        return RequestType.MEAL_PLAN

    if _RECIPE.search(text):
        return RequestType.RECIPE

    return RequestType.TEXT


# ---------------------------------------------------------------------------
# Requested day count
# ---------------------------------------------------------------------------

_ONE_DAY = re.compile(r"\b(?:1|один)\s*(?:день|дня)\b|\bплан\s+на\s+день\b")
_WEEK = re.compile(r"\b(?:неделю|недели|7\s*дней)\b")
_N_DAYS = re.compile(r"\b(\d+)\s*(?:день|дня|дней)\b")


def requested_days(content: str) -> Optional[int]:
    """Number of plan days the user asked for, or None if not stated."""
    text = _normalize(content)
    if _ONE_DAY.search(text):
        return 1
    if _WEEK.search(text):
        return 7
    match = _N_DAYS.search(text)
    if match:
        days = int(match.group(1))
        return days if days > 0 else None
    return None
