"""
application.parsing.plan_parser - Turn a meal-plan reply into PlanDays.

The reply is expected to be a header line ("Ваша суточная норма калорий
...: X ккал. План на N дней:") followed by a JSON array of days, but
models drift. Extraction runs an ordered list of named strategies and
stops at the first that matches:

    json_array   -> top-level array of day objects (or of meals)
    json_object  -> {"meals": [...]}, {"days": [...]}, a dish, or {"error"}
    text_grammar -> "<Label>: <Name> (<N> ккал, <M> г)" lines, "День N" headers
    raw_echo     -> the cleaned reply, no structure

Whatever matched is then normalized to the user's meal slots, missing
calories are redistributed from the daily norm, implausible densities are
corrected, and the plan is rendered back into canonical lines.
Parsing never raises.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from application.meal_labels import get_meal_labels, label_for, label_to_slot
from application.parsing.json_extract import NO_JSON, extract_json, strip_markup
from application.parsing.realism import RealismCorrector
from application.parsing.recipe_parser import dish_from_json, ingredients_text, is_dish_object
from application.parsing.dish_text import join_text, render_dish
from domain.models import ParsedPlan, PlanDay, PlanMeal

logger = logging.getLogger(__name__)

DEFAULT_PORTION = 300
PLACEHOLDER_PREFIX = "Дополнительный перекус"
NORM_MISMATCH_TOLERANCE = 50

# Share of the daily norm per slot when a meal comes without calories.
MEAL_SHARES: dict[str, float] = {
    "breakfast": 0.25,
    "lunch": 0.35,
    "dinner": 0.2,
    "snack": 0.1,
    "snack1": 0.1,
    "snack2": 0.1,
    "snack3": 0.08,
}
DEFAULT_SHARE = 0.1

_NORM_PATTERNS = (
    re.compile(r"Ваша суточная норма калорий[^:\n]*:\s*(\d+)\s*ккал", re.IGNORECASE),
    re.compile(r"суточная норма[^:\n]*:\s*(\d+)\s*ккал", re.IGNORECASE),
    re.compile(r"норма калорий[^:\n]*:\s*(\d+)\s*ккал", re.IGNORECASE),
)
_DAYS_PATTERNS = (
    re.compile(r"План на\s*(\d+)\s*(?:дн|дня|дней|день)", re.IGNORECASE),
    re.compile(r"на\s*(\d+)\s*(?:дн|дня|дней|день)", re.IGNORECASE),
)

_DAY_HEADER = re.compile(r"^день\s+\d+\b[^()]*$", re.IGNORECASE)
_FIRST_DAY_LINE = re.compile(r"^[\s*#]*день\s+\d+", re.IGNORECASE | re.MULTILINE)
_MEAL_LINE = re.compile(r"^(?P<label>[^:]{1,40}?)\s*:\s*(?P<rest>.+)$")
_MEAL_PRIMARY = re.compile(r"^(.+?)\s*\((\d+)\s*ккал(?:,\s*(\d+)\s*г)?\)")
_MEAL_RELAXED = re.compile(r"^(.+?)\s*[(,\-–—]\s*(\d+)\s*(?:ккал|kcal)", re.IGNORECASE)
_PORTION = re.compile(r"(\d+)\s*(?:г|гр|g)\b", re.IGNORECASE)
_MARKDOWN = re.compile(r"\*+|^#+\s*|^\s*(?:[-•]|\d+[.)])\s+", re.MULTILINE)
_INT = re.compile(r"-?\d+")


def day_word(n: int) -> str:
    if n % 10 == 1 and n % 100 != 11:
        return "день"
    if 2 <= n % 10 <= 4 and not 12 <= n % 100 <= 14:
        return "дня"
    return "дней"


def stated_calorie_norm(text: str) -> Optional[int]:
    for pattern in _NORM_PATTERNS:
        match = pattern.search(text or "")
        if match:
            return int(match.group(1)) or None
    return None


def stated_day_count(text: str) -> Optional[int]:
    for pattern in _DAYS_PATTERNS:
        match = pattern.search(text or "")
        if match:
            return int(match.group(1)) or None
    return None


def sanitize_intro(text: str) -> str:
    """Drop any preamble before the calorie-norm header or the first "День N" line."""
    idx = text.lower().find("ваша суточная норма калорий")
    if idx == -1:
        match = _FIRST_DAY_LINE.search(text)
        idx = match.start() if match else -1
    return text[idx:].strip() if idx != -1 else text.strip()


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------

def to_int(value: Any) -> int:
    """350, 350.4, "350 ккал" -> 350; anything else -> 0."""
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, (int, float)):
        return int(round(value))
    match = _INT.search(str(value))
    return int(match.group()) if match else 0


def to_float(value: Any) -> float:
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    match = re.search(r"-?\d+(?:[.,]\d+)?", str(value))
    return float(match.group().replace(",", ".")) if match else 0.0


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

@dataclass
class _RawMeal:
    label: str
    name: str
    calories: int = 0
    portion_size: int = 0
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class _Extraction:
    """What a strategy found, before normalization."""
    days: list[list[_RawMeal]] = field(default_factory=list)
    dish: Optional[PlanMeal] = None
    error: Optional[str] = None


def _is_meal_dict(value: Any) -> bool:
    return isinstance(value, dict) and ("type" in value or "recipeName" in value)


def _raw_meal_from_json(meal: dict[str, Any]) -> _RawMeal:
    return _RawMeal(
        label=str(meal.get("type") or ""),
        name=str(meal.get("recipeName") or meal.get("name") or "").replace("*", "").strip(),
        calories=to_int(meal.get("calories")),
        portion_size=to_int(meal.get("portionSize", meal.get("portion_size"))),
        extra=meal,
    )


def _day_from_json(day: Any) -> list[_RawMeal]:
    meals = day.get("meals") if isinstance(day, dict) else None
    if not isinstance(meals, list):
        return []
    return [_raw_meal_from_json(m) for m in meals if isinstance(m, dict)]


def _json_array(text: str) -> Optional[_Extraction]:
    value = extract_json(
        text,
        accept=lambda v: isinstance(v, list) and bool(v) and all(isinstance(d, dict) for d in v),
    )
    if value is NO_JSON:
        return None
    if all(_is_meal_dict(v) and "meals" not in v for v in value):
        return _Extraction(days=[[_raw_meal_from_json(m) for m in value]])
    return _Extraction(days=[_day_from_json(d) for d in value])


def _json_object(text: str) -> Optional[_Extraction]:
    value = extract_json(text, accept=lambda v: isinstance(v, dict))
    if value is NO_JSON:
        return None
    if value.get("error"):
        return _Extraction(error=str(value["error"]))
    if is_dish_object(value):
        return _Extraction(dish=dish_from_json(value, meal_type="lunch"))
    if isinstance(value.get("meals"), list):
        return _Extraction(days=[_day_from_json(value)])
    for key in ("days", "plan"):
        if isinstance(value.get(key), list):
            return _Extraction(days=[_day_from_json(d) for d in value[key]])
    return None


def _parse_meal_rest(label: str, rest: str) -> _RawMeal:
    rest = rest.strip()
    match = _MEAL_PRIMARY.match(rest)
    if match:
        return _RawMeal(
            label=label,
            name=match.group(1).strip(),
            calories=int(match.group(2)),
            portion_size=int(match.group(3)) if match.group(3) else 0,
        )
    match = _MEAL_RELAXED.match(rest)
    if match:
        portion = _PORTION.search(rest[match.end():])
        return _RawMeal(
            label=label,
            name=match.group(1).strip(),
            calories=int(match.group(2)),
            portion_size=int(portion.group(1)) if portion else 0,
        )
    name = rest.split(" (", 1)[0].strip()
    return _RawMeal(label=label, name=name)


def _text_grammar(text: str, labels: dict[str, str]) -> Optional[_Extraction]:
    cleaned = strip_markup(text)
    days = _grammar_days(sanitize_intro(cleaned), labels)
    if not days:
        days = _grammar_days(cleaned, labels)
    if not days:
        return None
    return _Extraction(days=days)


def _grammar_days(text: str, labels: dict[str, str]) -> list[list[_RawMeal]]:
    body = _MARKDOWN.sub("", text)
    known_custom = {v.strip().lower() for v in labels.values()}

    days: list[list[_RawMeal]] = []
    current: list[_RawMeal] = []
    for line in body.splitlines():
        line = line.strip()
        if not line:
            continue
        if _DAY_HEADER.match(line):
            if current:
                days.append(current)
            current = []
            continue
        match = _MEAL_LINE.match(line)
        if not match:
            continue
        label = match.group("label").strip()
        if label.lower() not in known_custom and label_to_slot(label) is None:
            continue
        current.append(_parse_meal_rest(label, match.group("rest")))
    if current:
        days.append(current)
    return days


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class PlanParser:
    """Parses plan replies; see module docstring for the strategy order."""

    def __init__(self, corrector: Optional[RealismCorrector] = None):
        self._corrector = corrector or RealismCorrector()

    def parse(
        self,
        raw: str,
        meal_frequency: int,
        calorie_target: Optional[int] = None,
        requested_days: Optional[int] = None,
        custom_labels: Optional[Sequence[str]] = None,
    ) -> ParsedPlan:
        raw = raw or ""
        frequency = max(1, int(meal_frequency or 1))
        labels = get_meal_labels(frequency, custom_labels)

        strategies: tuple[tuple[str, Callable[[str], Optional[_Extraction]]], ...] = (
            ("json_array", _json_array),
            ("json_object", _json_object),
            ("text_grammar", lambda text: _text_grammar(text, labels)),
        )
        for name, strategy in strategies:
            try:
                found = strategy(raw)
            except Exception:
                logger.exception("Plan strategy %s failed, trying the next one", name)
                continue
            if found is None:
                continue
            logger.debug("Plan strategy %s matched", name)
            return self._build(name, found, raw, frequency, labels, calorie_target, requested_days)

        logger.info("No plan structure found, echoing cleaned reply")
        return ParsedPlan(text=strip_markup(raw), strategy="raw_echo")

    # -- assembly -----------------------------------------------------------

    def _build(
        self,
        strategy: str,
        found: _Extraction,
        raw: str,
        frequency: int,
        labels: dict[str, str],
        calorie_target: Optional[int],
        requested_days: Optional[int],
    ) -> ParsedPlan:
        if found.error is not None:
            logger.warning("Model reported an error instead of a plan: %s", found.error)
            return ParsedPlan(text=found.error, strategy=strategy)
        if found.dish is not None:
            return ParsedPlan(dish=found.dish, text=render_dish(found.dish), strategy=strategy)

        days = [PlanDay(meals=self._normalize_day(d, frequency, labels)) for d in found.days]
        days = [d for d in days if d.meals]

        stated_days = stated_day_count(raw)
        limit = requested_days or stated_days
        if limit and len(days) > limit:
            logger.info("Plan truncated from %d to %d day(s)", len(days), limit)
            days[0].warning = (
                f"⚠️ План сокращён до {limit} {day_word(limit)}: "
                f"получено {len(days)} {day_word(len(days))}."
            )
            days = days[:limit]

        norm = self._calorie_norm(raw, calorie_target)
        for day in days:
            self._fill_day(day, norm)

        return ParsedPlan(
            days=days,
            text=render_plan(days, labels, norm),
            calorie_norm=norm,
            strategy=strategy,
        )

    @staticmethod
    def _calorie_norm(raw: str, calorie_target: Optional[int]) -> Optional[int]:
        stated = stated_calorie_norm(raw)
        if calorie_target and stated and abs(stated - calorie_target) > NORM_MISMATCH_TOLERANCE:
            logger.warning(
                "Model stated %d kcal but the target is %d kcal, using the target",
                stated, calorie_target,
            )
        return calorie_target or stated

    @staticmethod
    def _resolve_slot(label: str, labels: dict[str, str], used: set[str]) -> Optional[str]:
        """Unused slot key for a JSON type or a localized label.

        None when the label is unknown or every matching slot is taken.
        """
        text = label.strip().lower()
        if text in labels and text not in used:
            return text

        candidates = [k for k, v in labels.items() if v.strip().lower() == text]
        if not candidates:
            family = text.rstrip("0123456789") if text in labels else label_to_slot(text)
            if family is None:
                family = text.rstrip("0123456789")
            candidates = [k for k in labels if k.rstrip("0123456789") == family]
        if not candidates:
            return None
        return next((key for key in candidates if key not in used), None)

    def _normalize_day(
        self, raw_meals: list[_RawMeal], frequency: int, labels: dict[str, str],
    ) -> list[PlanMeal]:
        meals: list[PlanMeal] = []
        used: set[str] = set()
        for raw_meal in raw_meals:
            if len(meals) >= frequency:
                break
            slot = self._resolve_slot(raw_meal.label, labels, used)
            if slot is None or not raw_meal.name or raw_meal.calories < 0:
                logger.debug("Dropping meal %r (%r)", raw_meal.name, raw_meal.label)
                continue
            used.add(slot)
            extra = raw_meal.extra
            meals.append(PlanMeal(
                type=slot,
                recipe_name=raw_meal.name,
                calories=raw_meal.calories,
                portion_size=max(0, raw_meal.portion_size),
                proteins=max(0.0, to_float(extra.get("proteins"))),
                fats=max(0.0, to_float(extra.get("fats"))),
                carbs=max(0.0, to_float(extra.get("carbs"))),
                ingredients=ingredients_text(extra.get("ingredients")),
                instruction=join_text(extra.get("instruction"), numbered=True),
                cooking_time=to_int(extra.get("cookingTime")),
            ))

        placeholder = 0
        free_slots = [k for k in labels if k not in used]
        while len(meals) < frequency and free_slots:
            placeholder += 1
            meals.append(PlanMeal(
                type=free_slots.pop(0),
                recipe_name=f"{PLACEHOLDER_PREFIX} {placeholder}",
            ))
        return meals

    def _fill_day(self, day: PlanDay, norm: Optional[int]) -> None:
        share_sum = sum(MEAL_SHARES.get(m.type, DEFAULT_SHARE) for m in day.meals)
        divisor = max(share_sum, 1.0)
        for meal in day.meals:
            if norm and meal.calories <= 0:
                share = MEAL_SHARES.get(meal.type, DEFAULT_SHARE)
                meal.calories = int(round(norm * share / divisor))
            if meal.calories > 0 and meal.portion_size <= 0:
                meal.portion_size = DEFAULT_PORTION
            self._corrector.correct(meal)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def render_plan(days: list[PlanDay], labels: dict[str, str], calorie_norm: Optional[int]) -> str:
    """Canonical text for a plan: warning, norm line, day count, meal lines."""
    parts: list[str] = []
    if days and days[0].warning:
        parts.append(days[0].warning + "\n\n")
    if calorie_norm:
        parts.append(f"Ваша суточная норма калорий: {calorie_norm} ккал.\n")
    if days:
        parts.append(f"План на {len(days)} {day_word(len(days))}:\n")

    blocks = []
    for i, day in enumerate(days, 1):
        lines = [
            f"{label_for(m.type, labels)}: {m.recipe_name} ({m.calories} ккал, {m.portion_size} г)"
            for m in day.meals
        ]
        if len(days) > 1:
            lines.insert(0, f"День {i}")
        blocks.append("\n".join(lines))
    parts.append("\n\n".join(blocks))
    return "".join(parts).strip()
