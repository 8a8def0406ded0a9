"""
Shared fixtures: in-memory stand-ins for every collaborator port.

Async code is driven with asyncio.run() inside plain test functions.
"""

from __future__ import annotations

import random
from datetime import date
from typing import Optional

import pytest

from application.parsing.plan_parser import PlanParser
from application.parsing.recipe_parser import RecipeParser
from application.prompt_assembler import PromptAssembler
from application.services.assistant import AssistantService
from application.services.motivation import MotivationPicker
from domain.entities import ConversationMessage, Dish
from domain.exceptions import LimitExceededError
from domain.models import PlanDay, PlanMeal, UserProfile

TODAY = date(2025, 6, 16)  # a Monday


class FakeGateway:
    """Returns queued replies and records every call."""

    def __init__(self, *replies: str):
        self.replies = list(replies)
        self.calls: list[dict] = []

    async def fetch(self, messages, temperature=None, max_tokens=None) -> str:
        self.calls.append({
            "messages": list(messages),
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        return self.replies.pop(0)


class FakeProfiles:
    def __init__(self, profiles: Optional[dict[int, UserProfile]] = None):
        self.profiles = profiles or {}

    async def get_settings(self, user_id: int) -> Optional[UserProfile]:
        return self.profiles.get(user_id)


class FakeQuota:
    def __init__(self, blocked: bool = False):
        self.blocked = blocked
        self.checked: list[int] = []

    async def check_limit(self, user_id: int) -> None:
        self.checked.append(user_id)
        if self.blocked:
            raise LimitExceededError("Daily request limit reached")


class InMemoryConversations:
    def __init__(self):
        self.messages: list[ConversationMessage] = []
        self.updates: list[int] = []

    async def get_history(self, chat_id: str) -> list[ConversationMessage]:
        return [m for m in self.messages if m.chat_id == chat_id]

    async def get_message(self, chat_id: str, message_id: int) -> Optional[ConversationMessage]:
        for m in self.messages:
            if m.chat_id == chat_id and m.id == message_id:
                return m
        return None

    async def append(self, message: ConversationMessage) -> ConversationMessage:
        message.id = len(self.messages) + 1
        message.created_at = f"2025-06-16T10:00:{message.id:02d}"
        self.messages.append(message)
        return message

    async def update(self, message: ConversationMessage) -> None:
        self.updates.append(message.id)


class InMemoryDishes:
    def __init__(self):
        self.dishes: dict[tuple[str, int], Dish] = {}

    async def upsert(self, meal: PlanMeal, user_id: int, favorite: bool = False) -> Dish:
        key = (meal.recipe_name.strip(), user_id)
        existing = self.dishes.get(key)
        dish = Dish(
            id=existing.id if existing else len(self.dishes) + 1,
            user_id=user_id,
            name=key[0],
            ingredients=meal.ingredients,
            instruction=meal.instruction,
            proteins=meal.proteins,
            fats=meal.fats,
            carbs=meal.carbs,
            calories=meal.calories,
            portion_size=meal.portion_size,
            cooking_time=meal.cooking_time,
            is_favorite=favorite or bool(existing and existing.is_favorite),
        )
        self.dishes[key] = dish
        return dish


class InMemoryPlans:
    def __init__(self):
        self.plans: list[tuple[list[PlanDay], int, Optional[int]]] = []

    async def create_plan(self, days, user_id, message_id) -> Optional[int]:
        if not days:
            return None
        self.plans.append((days, user_id, message_id))
        return 100 + len(self.plans)


class NeverMotivate(MotivationPicker):
    def __init__(self):
        super().__init__(rng=random.Random(0), probability=0.0)


@pytest.fixture
def profile() -> UserProfile:
    return UserProfile.from_settings({
        "weight": 80,
        "height": 180,
        "birthDate": "1990-01-10",
        "gender": "мужской",
        "activityLevel": "Средняя активность",
        "nutritionGoal": "Поддержание веса",
        "mealFrequency": 3,
        "allergies": ["Орехи"],
    })


@pytest.fixture
def underweight_profile() -> UserProfile:
    return UserProfile.from_settings({
        "weight": 50,
        "height": 170,
        "birthDate": "2000-03-01",
        "gender": "женский",
        "activityLevel": "Минимальная",
        "nutritionGoal": ["Похудение"],
        "mealFrequency": 3,
    })


@pytest.fixture
def stores():
    """(profiles, quota, conversations, dishes, plans) with user 1 configured."""
    return FakeProfiles(), FakeQuota(), InMemoryConversations(), InMemoryDishes(), InMemoryPlans()


@pytest.fixture
def make_service(stores, profile):
    profiles, quota, conversations, dishes, plans = stores
    profiles.profiles[1] = profile

    def _make(*replies: str) -> tuple[AssistantService, FakeGateway]:
        gateway = FakeGateway(*replies)
        service = AssistantService(
            gateway=gateway,
            profiles=profiles,
            quota=quota,
            conversations=conversations,
            dishes=dishes,
            plans=plans,
            assembler=PromptAssembler(clock=lambda: TODAY),
            plan_parser=PlanParser(),
            recipe_parser=RecipeParser(),
            motivation=NeverMotivate(),
            clock=lambda: TODAY,
        )
        return service, gateway

    return _make
