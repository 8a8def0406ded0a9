"""
domain.ports - Abstract interfaces (Protocols) for all system boundaries.

These define WHAT the assistant needs without specifying HOW. Infrastructure
modules provide concrete implementations. Application services depend only
on these protocols, never on concrete classes.

Using typing.Protocol (structural typing) instead of ABC: any class that
implements the methods satisfies the port without explicit inheritance.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence, runtime_checkable

from langchain_core.messages import BaseMessage

from domain.entities import ConversationMessage, Dish
from domain.models import PlanDay, PlanMeal, UserProfile


# ---------------------------------------------------------------------------
# Model Port
# ---------------------------------------------------------------------------

@runtime_checkable
class ModelGatewayPort(Protocol):
    """Send an assembled prompt to the language model, return raw text."""

    async def fetch(
        self,
        messages: Sequence[BaseMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str: ...


# ---------------------------------------------------------------------------
# Collaborator Ports
# ---------------------------------------------------------------------------

@runtime_checkable
class UserProfileStore(Protocol):
    """Read-only access to the user's nutrition settings."""

    async def get_settings(self, user_id: int) -> UserProfile | None: ...


@runtime_checkable
class QuotaGuard(Protocol):
    """Raise LimitExceededError when the user may not make another request."""

    async def check_limit(self, user_id: int) -> None: ...


@runtime_checkable
class ConversationStore(Protocol):
    """Chat history persistence."""

    async def get_history(self, chat_id: str) -> list[ConversationMessage]: ...
    async def get_message(self, chat_id: str, message_id: int) -> ConversationMessage | None: ...
    async def append(self, message: ConversationMessage) -> ConversationMessage: ...
    async def update(self, message: ConversationMessage) -> None: ...


@runtime_checkable
class DishStore(Protocol):
    """Dish persistence, deduplicated by (name, user_id)."""

    async def upsert(self, meal: PlanMeal, user_id: int, favorite: bool = False) -> Dish: ...


@runtime_checkable
class PlanStore(Protocol):
    """Meal-plan persistence. Returns the id of the first stored day."""

    async def create_plan(
        self, days: list[PlanDay], user_id: int, message_id: int | None,
    ) -> int | None: ...
