"""
domain.models - Value objects for the AI response pipeline.

These are plain data containers with no infrastructure dependencies
(no HTTP, no SQLite, no LangChain). Parsers and the prompt assembler
consume and produce them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional, Union


# ---------------------------------------------------------------------------
# Request type
# ---------------------------------------------------------------------------

class RequestType(str, Enum):
    """What kind of answer a user message asks for."""
    TEXT = "TEXT"
    MEAL_PLAN = "MEAL_PLAN"
    RECIPE = "RECIPE"
    REGENERATION_MEAL_PLAN = "REGENERATION_MEAL_PLAN"

    @property
    def is_plan(self) -> bool:
        return self in (RequestType.MEAL_PLAN, RequestType.REGENERATION_MEAL_PLAN)


# ---------------------------------------------------------------------------
# User profile
# ---------------------------------------------------------------------------

# Keys of the settings document that are scalars handled explicitly.
_CORE_SETTINGS_KEYS = {
    "email", "password", "id", "userId", "createdAt", "updatedAt",
    "weight", "height", "birthDate", "birthdate", "dateOfBirth",
    "gender", "activityLevel", "nutritionGoal", "mealFrequency",
    "customMealLabels", "flexibleDays", "currentProducts",
}

_CUSTOM_INPUTS_SUFFIX = "CustomInputs"


@dataclass(frozen=True)
class UserProfile:
    """Snapshot of the user's nutrition settings for one request.

    ``categories`` maps a settings field (e.g. "allergies") to the
    categories the user picked; ``clarifications`` maps the same field to
    the free-text explanations the user typed for individual categories.
    """
    weight: Optional[float] = None
    height: Optional[float] = None
    birth_date: Optional[Union[date, str]] = None
    gender: str = ""
    activity_level: str = ""
    nutrition_goal: Union[str, list[str]] = ""
    meal_frequency: int = 3
    custom_meal_labels: list[str] = field(default_factory=list)
    flexible_days: list[str] = field(default_factory=list)
    current_products: str = ""
    categories: dict[str, Any] = field(default_factory=dict)
    clarifications: dict[str, dict[str, str]] = field(default_factory=dict)

    @property
    def goals(self) -> list[str]:
        """Nutrition goal(s) as a list of non-empty strings."""
        if isinstance(self.nutrition_goal, (list, tuple)):
            return [str(g) for g in self.nutrition_goal if str(g).strip()]
        return [self.nutrition_goal] if str(self.nutrition_goal).strip() else []

    @classmethod
    def from_settings(cls, settings: dict[str, Any]) -> UserProfile:
        """Build a profile from the raw camelCase settings document."""
        birth = (
            settings.get("birthDate")
            or settings.get("birthdate")
            or settings.get("dateOfBirth")
        )

        activity = settings.get("activityLevel") or ""
        if isinstance(activity, (list, tuple)):
            activity = activity[0] if activity else ""

        categories: dict[str, Any] = {}
        clarifications: dict[str, dict[str, str]] = {}
        for key, value in settings.items():
            if key.endswith(_CUSTOM_INPUTS_SUFFIX):
                if isinstance(value, dict):
                    base = key[: -len(_CUSTOM_INPUTS_SUFFIX)]
                    clarifications[base] = {
                        str(k): str(v) for k, v in value.items() if v is not None
                    }
                continue
            if key in _CORE_SETTINGS_KEYS or value is None:
                continue
            categories[key] = value

        return cls(
            weight=_to_float(settings.get("weight")),
            height=_to_float(settings.get("height")),
            birth_date=birth or None,
            gender=str(settings.get("gender") or ""),
            activity_level=str(activity),
            nutrition_goal=settings.get("nutritionGoal") or "",
            meal_frequency=_to_frequency(settings.get("mealFrequency")),
            custom_meal_labels=list(settings.get("customMealLabels") or []),
            flexible_days=list(settings.get("flexibleDays") or []),
            current_products=str(settings.get("currentProducts") or ""),
            categories=categories,
            clarifications=clarifications,
        )


# ---------------------------------------------------------------------------
# Plan / recipe structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Ingredient:
    """One line of a structured recipe, amounts per portion."""
    name: str = ""
    grams: float = 0.0
    proteins: float = 0.0
    fats: float = 0.0
    carbs: float = 0.0
    calories: float = 0.0

    @property
    def has_macros(self) -> bool:
        return (self.proteins + self.fats + self.carbs) > 0

    def energy(self) -> float:
        """Calories derived from macros (4/9/4 kcal per gram)."""
        return self.proteins * 4 + self.fats * 9 + self.carbs * 4


@dataclass
class PlanMeal:
    """A single meal slot of a plan day, or a standalone dish.

    Mutable: the plan parser fills in missing calories and portions and
    repairs implausible energy densities in place.
    """
    type: str = "breakfast"
    recipe_name: str = ""
    calories: int = 0
    portion_size: int = 0
    proteins: float = 0.0
    fats: float = 0.0
    carbs: float = 0.0
    ingredients: str = ""
    instruction: str = ""
    cooking_time: int = 0
    dish_id: Optional[int] = None

    def is_valid(self) -> bool:
        return bool(self.recipe_name and self.recipe_name.strip()) and self.calories >= 0


@dataclass
class PlanDay:
    """Ordered meals of one day plus an optional warning."""
    meals: list[PlanMeal] = field(default_factory=list)
    warning: str = ""


@dataclass(frozen=True)
class ParsedPlan:
    """Result of parsing a meal-plan reply.

    text:         user-facing rendering (canonical lines or echoed raw text).
    calorie_norm: daily calorie figure used for the plan, if any.
    strategy:     name of the extraction strategy that produced the result.
    """
    dish: Optional[PlanMeal] = None
    days: list[PlanDay] = field(default_factory=list)
    text: str = ""
    calorie_norm: Optional[int] = None
    strategy: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.days and self.dish is None


@dataclass(frozen=True)
class ParsedRecipe:
    """Result of parsing a recipe reply."""
    dish: Optional[PlanMeal] = None
    text: str = ""
    strategy: str = ""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_frequency(value: Any) -> int:
    try:
        return max(1, int(value))
    except (TypeError, ValueError):
        return 3


def parse_birth_date(value: Union[date, datetime, str, None]) -> Optional[date]:
    """Accept a date, a datetime or an ISO string; return None when invalid."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None
