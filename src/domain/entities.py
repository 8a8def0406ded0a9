"""
domain.entities - Persistence-aware types (have IDs, timestamps).

Decoupled from any persistence strategy: no SQL concerns, no DB imports.
Timestamps are set by the repository implementations, not by the entities
themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from domain.models import PlanMeal, RequestType


@dataclass
class ConversationMessage:
    """A single turn of a chat.

    User messages have ``is_user=True`` and no ``ai_response_type``;
    assistant messages always carry one. ``raw_content`` keeps the
    unsanitized model output so a reply can be re-parsed when liked.
    """
    id: Optional[int] = None
    chat_id: str = ""
    user_id: Optional[int] = None
    is_user: bool = False
    content: str = ""
    raw_content: str = ""
    created_at: str = ""
    dish_id: Optional[int] = None
    plan_id: Optional[int] = None
    ai_response_type: Optional[RequestType] = None
    is_liked: bool = False

    @property
    def role(self) -> str:
        return "user" if self.is_user else "assistant"


@dataclass
class Dish:
    """A saved dish, unique on (name, user_id)."""
    id: Optional[int] = None
    user_id: Optional[int] = None
    name: str = ""
    ingredients: str = ""
    instruction: str = ""
    proteins: float = 0.0
    fats: float = 0.0
    carbs: float = 0.0
    calories: int = 0
    portion_size: int = 0
    cooking_time: int = 0
    is_favorite: bool = False
    created_at: str = ""
    updated_at: str = ""


@dataclass
class MealPlan:
    """One stored day of a plan."""
    id: Optional[int] = None
    user_id: Optional[int] = None
    date: str = ""
    visible: bool = True
    meals: list[PlanMeal] = field(default_factory=list)
    created_at: str = ""
