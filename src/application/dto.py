"""
application.dto - Data Transfer Objects for service input/output.

These are the structured results that AssistantService returns to callers
(REST endpoints, CLI adapters).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from domain.entities import ConversationMessage
from domain.models import RequestType


@dataclass(frozen=True)
class AssistantResponse:
    """One completed turn: the user message and the assistant reply."""
    user_message: ConversationMessage
    assistant_message: ConversationMessage
    type: RequestType


@dataclass(frozen=True)
class FavoriteResult:
    """IDs created when a reply is added to favorites."""
    dish_id: Optional[int] = None
    plan_id: Optional[int] = None
