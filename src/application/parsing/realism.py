"""
application.parsing.realism - Energy-density sanity check for plan meals.

Models sometimes state physically impossible pairs such as 900 kcal for a
150 g salad. Each meal's dish category is inferred from its name; when
kcal/g falls outside the category's band, either the calories or the
portion is moved back to the band's target density. The portion is
adjusted when fixing the calories would change them by more than 30%.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from domain.models import PlanMeal

logger = logging.getLogger(__name__)

MAX_CALORIE_CHANGE = 0.3


@dataclass(frozen=True)
class DensityBand:
    """Plausible kcal/g range and the densities corrections aim for."""
    low: float
    high: float
    low_target: float
    high_target: float

    def contains(self, ratio: float) -> bool:
        return self.low <= ratio <= self.high


GENERIC_BAND = DensityBand(low=0.3, high=2.5, low_target=0.5, high_target=2.0)

# (category, name keywords, band); the keyword found earliest in the name wins.
DEFAULT_CATEGORIES: tuple[tuple[str, tuple[str, ...], DensityBand], ...] = (
    ("soup", ("суп", "борщ", "щи", "бульон", "солянк", "рассольник", "уха", "окрошк"),
     DensityBand(low=0.2, high=1.2, low_target=0.4, high_target=0.9)),
    ("drink", ("чай", "кофе", "смузи", "кефир", "сок", "компот", "морс", "молоко",
               "напиток", "коктейль", "ряженк", "айран", "какао", "вода"),
     DensityBand(low=0.0, high=1.2, low_target=0.0, high_target=0.8)),
    ("salad", ("салат", "овощ"),
     DensityBand(low=0.15, high=2.0, low_target=0.4, high_target=1.5)),
    ("dense", ("орех", "миндал", "арахис", "семечк", "выпечк", "печенье", "сыр",
               "блин", "оладь", "бутерброд", "тост", "шоколад", "гранол", "мюсли",
               "батончик", "хлеб", "пирог", "кекс", "торт", "круассан"),
     DensityBand(low=0.8, high=5.0, low_target=1.5, high_target=4.0)),
)


SHORT_KEYWORD_LEN = 2


def keyword_pattern(keywords: tuple[str, ...]) -> re.Pattern:
    """Keywords anchored at a word start; short ones must be the whole word."""
    parts = [
        rf"\b{re.escape(k)}\b" if len(k) <= SHORT_KEYWORD_LEN else rf"\b{re.escape(k)}"
        for k in keywords
    ]
    return re.compile("|".join(parts))


class RealismCorrector:
    """Repairs calorie/portion pairs that violate their category band."""

    def __init__(
        self,
        categories: tuple[tuple[str, tuple[str, ...], DensityBand], ...] = DEFAULT_CATEGORIES,
        generic: DensityBand = GENERIC_BAND,
    ):
        self._categories = categories
        self._generic = generic
        self._patterns = [(category, keyword_pattern(keywords)) for category, keywords, _ in categories]

    def category_for(self, recipe_name: str) -> str:
        """Category of the keyword found earliest in the name.

        "Сырники с какао" is dense, not a drink: the leading noun wins.
        """
        name = (recipe_name or "").lower()
        best: Optional[tuple[int, str]] = None
        for category, pattern in self._patterns:
            match = pattern.search(name)
            if match and (best is None or match.start() < best[0]):
                best = (match.start(), category)
        return best[1] if best else "generic"

    def band_for(self, recipe_name: str) -> DensityBand:
        category = self.category_for(recipe_name)
        for name, _, band in self._categories:
            if name == category:
                return band
        return self._generic

    def correct(self, meal: PlanMeal) -> bool:
        """Fix ``meal`` in place. Returns True when something changed."""
        if meal.portion_size <= 0 or meal.calories <= 0:
            return False

        band = self.band_for(meal.recipe_name)
        ratio = meal.calories / meal.portion_size
        target: Optional[float] = None
        if ratio > band.high:
            target = band.high_target
        elif ratio < band.low:
            target = band.low_target
        if not target:
            return False

        logger.warning(
            "Implausible density for %r: %d g = %d kcal (%.2f kcal/g, band %.2f-%.2f)",
            meal.recipe_name, meal.portion_size, meal.calories, ratio, band.low, band.high,
        )
        corrected = int(round(meal.portion_size * target))
        if abs(corrected - meal.calories) > meal.calories * MAX_CALORIE_CHANGE:
            meal.portion_size = max(1, int(round(meal.calories / target)))
            logger.info("Portion adjusted to %d g for %d kcal", meal.portion_size, meal.calories)
        else:
            meal.calories = corrected
            logger.info("Calories adjusted to %d kcal for %d g", meal.calories, meal.portion_size)
        return True
