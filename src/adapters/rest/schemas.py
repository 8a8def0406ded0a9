"""Pydantic models for REST API request/response validation."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from application.dto import AssistantResponse
from domain.entities import ConversationMessage, Dish


# --- Chat ---

class ChatBody(BaseModel):
    content: str = Field(..., min_length=1, max_length=4000)


class MessageOut(BaseModel):
    id: Optional[int]
    is_user: bool
    content: str
    created_at: str
    ai_response_type: Optional[str] = None
    dish_id: Optional[int] = None
    plan_id: Optional[int] = None
    is_liked: bool = False

    @classmethod
    def from_entity(cls, message: ConversationMessage) -> MessageOut:
        return cls(
            id=message.id,
            is_user=message.is_user,
            content=message.content,
            created_at=message.created_at,
            ai_response_type=message.ai_response_type.value if message.ai_response_type else None,
            dish_id=message.dish_id,
            plan_id=message.plan_id,
            is_liked=message.is_liked,
        )


class ChatResponseOut(BaseModel):
    user_message: MessageOut
    assistant_message: MessageOut
    type: str

    @classmethod
    def from_dto(cls, response: AssistantResponse) -> ChatResponseOut:
        return cls(
            user_message=MessageOut.from_entity(response.user_message),
            assistant_message=MessageOut.from_entity(response.assistant_message),
            type=response.type.value,
        )


# --- Favorites ---

class FavoriteOut(BaseModel):
    dish_id: Optional[int] = None
    plan_id: Optional[int] = None


# --- Recipes ---

class RecipeBody(BaseModel):
    recipe_name: str = Field(..., min_length=1, max_length=200)
    calories: Optional[int] = Field(None, gt=0)


class DishOut(BaseModel):
    id: Optional[int]
    name: str
    ingredients: str
    instruction: str
    proteins: float
    fats: float
    carbs: float
    calories: int
    portion_size: int
    cooking_time: int
    is_favorite: bool

    @classmethod
    def from_entity(cls, dish: Dish) -> DishOut:
        return cls(
            id=dish.id,
            name=dish.name,
            ingredients=dish.ingredients,
            instruction=dish.instruction,
            proteins=dish.proteins,
            fats=dish.fats,
            carbs=dish.carbs,
            calories=dish.calories,
            portion_size=dish.portion_size,
            cooking_time=dish.cooking_time,
            is_favorite=dish.is_favorite,
        )
