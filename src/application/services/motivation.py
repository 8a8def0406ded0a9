"""
application.services.motivation - Optional encouragement under a plan.

The random source is injected so tests can pin the outcome. Decoration
happens after parsing and never feeds back into it.
"""

from __future__ import annotations

import random
from typing import Optional, Sequence

PHRASES = (
    "Вы на верном пути, продолжайте двигаться к своей цели!",
    "Каждый шаг приближает Вас к лучшей версии себя!",
    "Вы справляетесь, держите фокус и не сдавайтесь!",
    "Ваша дисциплина — ключ к успеху, так держать!",
    "Маленькие усилия каждый день приведут к большим результатам!",
)


class MotivationPicker:
    """Appends a phrase with probability ``probability``."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        probability: float = 0.3,
        phrases: Sequence[str] = PHRASES,
    ):
        self._rng = rng or random.Random()
        self._probability = probability
        self._phrases = tuple(phrases)

    def pick(self) -> Optional[str]:
        if not self._phrases or self._rng.random() >= self._probability:
            return None
        return self._rng.choice(self._phrases)

    def decorate(self, text: str) -> str:
        phrase = self.pick()
        return f"{text}\n\n{phrase}" if phrase else text
