"""
application.services.assistant - The AI response pipeline.

Each request runs the same sequence:

    1. Quota check (before any model work)
    2. Classify the message
    3. Calculate the calorie target (plans only)
    4. Assemble the prompt
    5. Fetch the model reply
    6. Parse it into a plan, a dish, or plain text
    7. Persist the messages (and a dish for recipe replies)

Regeneration reruns 2-6 for the last user message and overwrites the
previous assistant reply in place. Favoriting re-parses a stored reply's
raw model output and saves the dish or plan it contains.

All collaborators are injected. Stateless per call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from application.calories import calculate_target, underweight_warning
from application.context import RequestContext
from application.dto import AssistantResponse, FavoriteResult
from application.intent import classify, requested_days
from application.parsing.json_extract import strip_markup
from application.parsing.plan_parser import PLACEHOLDER_PREFIX, PlanParser
from application.parsing.recipe_parser import RecipeParser
from application.prompt_assembler import PromptAssembler
from application.services.motivation import MotivationPicker
from domain.entities import ConversationMessage, Dish
from domain.exceptions import (
    FavoriteParseError,
    InvalidFavoriteError,
    InvalidInputError,
    MessageNotFoundError,
    ProfileNotFoundError,
    RecipeGenerationError,
)
from domain.models import RequestType, UserProfile
from domain.ports import (
    ConversationStore,
    DishStore,
    ModelGatewayPort,
    PlanStore,
    QuotaGuard,
    UserProfileStore,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationOptions:
    """Sampling parameters per request kind."""
    text_temperature: float = 0.5
    plan_temperature: float = 0.5
    plan_max_tokens: int = 8192
    regeneration_temperature: float = 0.9
    recipe_temperature: float = 0.5


@dataclass(frozen=True)
class _Reply:
    text: str
    raw: str
    type: RequestType
    dish_id: Optional[int] = None


class AssistantService:
    """Orchestrates classification, prompting, the model call and parsing."""

    def __init__(
        self,
        gateway: ModelGatewayPort,
        profiles: UserProfileStore,
        quota: QuotaGuard,
        conversations: ConversationStore,
        dishes: DishStore,
        plans: PlanStore,
        assembler: PromptAssembler,
        plan_parser: Optional[PlanParser] = None,
        recipe_parser: Optional[RecipeParser] = None,
        motivation: Optional[MotivationPicker] = None,
        options: GenerationOptions = GenerationOptions(),
        clock: Callable[[], date] = date.today,
    ):
        self._gateway = gateway
        self._profiles = profiles
        self._quota = quota
        self._conversations = conversations
        self._dishes = dishes
        self._plans = plans
        self._assembler = assembler
        self._plan_parser = plan_parser or PlanParser()
        self._recipe_parser = recipe_parser or RecipeParser()
        self._motivation = motivation or MotivationPicker()
        self._options = options
        self._clock = clock

    # ------------------------------------------------------------------
    # Chat turn
    # ------------------------------------------------------------------

    async def generate_response(
        self, chat_id: str, user_id: int, content: str,
    ) -> AssistantResponse:
        """Answer a new user message in a chat."""
        content = (content or "").strip()
        if not content:
            raise InvalidInputError("Message content must not be empty")

        ctx = RequestContext(user_id=user_id, chat_id=chat_id)
        await self._quota.check_limit(user_id)
        profile = await self._load_profile(user_id)

        user_message = await self._conversations.append(ConversationMessage(
            chat_id=chat_id, user_id=user_id, is_user=True, content=content,
        ))
        history = await self._conversations.get_history(chat_id)

        intent = classify(content, is_regeneration=False)
        logger.info("[%s] Classified as %s: %s", ctx, intent.value, content[:80])

        reply = await self._answer(ctx, intent, profile, history, content)
        assistant_message = await self._conversations.append(ConversationMessage(
            chat_id=chat_id,
            user_id=user_id,
            is_user=False,
            content=reply.text,
            raw_content=reply.raw,
            ai_response_type=reply.type,
            dish_id=reply.dish_id,
        ))
        return AssistantResponse(user_message, assistant_message, reply.type)

    async def regenerate(self, chat_id: str, user_id: int) -> AssistantResponse:
        """Produce a new answer to the last user message, replacing the old one."""
        ctx = RequestContext(user_id=user_id, chat_id=chat_id)
        await self._quota.check_limit(user_id)
        profile = await self._load_profile(user_id)

        history = await self._conversations.get_history(chat_id)
        user_index = next(
            (i for i in range(len(history) - 1, -1, -1) if history[i].is_user), None,
        )
        if user_index is None:
            raise MessageNotFoundError("Nothing to regenerate in this chat")
        user_message = history[user_index]
        previous = next((m for m in history[user_index + 1:] if not m.is_user), None)

        intent = classify(user_message.content, is_regeneration=True)
        logger.info("[%s] Regenerating reply as %s", ctx, intent.value)

        reply = await self._answer(ctx, intent, profile, history, user_message.content)

        if previous is None:
            assistant_message = await self._conversations.append(ConversationMessage(
                chat_id=chat_id,
                user_id=user_id,
                is_user=False,
                content=reply.text,
                raw_content=reply.raw,
                ai_response_type=reply.type,
                dish_id=reply.dish_id,
            ))
        else:
            previous.content = reply.text
            previous.raw_content = reply.raw
            previous.ai_response_type = reply.type
            previous.dish_id = reply.dish_id
            previous.plan_id = None
            previous.is_liked = False
            await self._conversations.update(previous)
            assistant_message = previous
        return AssistantResponse(user_message, assistant_message, intent)

    # ------------------------------------------------------------------
    # Favorites and standalone recipes
    # ------------------------------------------------------------------

    async def favorite(self, chat_id: str, user_id: int, message_id: int) -> FavoriteResult:
        """Save the dish or plan contained in an assistant reply."""
        ctx = RequestContext(user_id=user_id, chat_id=chat_id)
        await self._quota.check_limit(user_id)

        message = await self._conversations.get_message(chat_id, message_id)
        if message is None:
            raise MessageNotFoundError(f"Message {message_id} not found")
        if message.is_liked:
            raise InvalidFavoriteError("Message is already in favorites")
        if message.is_user:
            raise InvalidFavoriteError("User messages cannot be added to favorites")
        response_type = message.ai_response_type
        if response_type is None or not (response_type.is_plan or response_type == RequestType.RECIPE):
            raise InvalidFavoriteError("Only meal plans and recipes can be added to favorites")

        raw = message.raw_content or message.content
        if response_type == RequestType.RECIPE:
            result = await self._favorite_recipe(raw, user_id)
        else:
            result = await self._favorite_plan(raw, user_id, message)

        message.is_liked = True
        message.dish_id = result.dish_id
        message.plan_id = result.plan_id
        await self._conversations.update(message)
        logger.info(
            "[%s] Message %s added to favorites (dish=%s, plan=%s)",
            ctx, message_id, result.dish_id, result.plan_id,
        )
        return result

    async def create_recipe(
        self, user_id: int, recipe_name: str, calories: Optional[int] = None,
    ) -> Dish:
        """Generate a full recipe for a named dish and save it."""
        recipe_name = (recipe_name or "").strip()
        if not recipe_name:
            raise InvalidInputError("Recipe name must not be empty")

        ctx = RequestContext(user_id=user_id)
        profile = await self._load_profile(user_id)
        messages = self._assembler.assemble(
            RequestType.RECIPE, profile, [], "",
            recipe_name=recipe_name, recipe_calories=calories,
        )
        raw = await self._gateway.fetch(messages, temperature=self._options.recipe_temperature)
        parsed = self._recipe_parser.parse(raw)
        if parsed.dish is None:
            raise RecipeGenerationError(f"Could not build a recipe for {recipe_name!r}")
        if not parsed.dish.recipe_name:
            parsed.dish.recipe_name = recipe_name

        dish = await self._dishes.upsert(parsed.dish, user_id)
        logger.info("[%s] Recipe %r saved as dish %s", ctx, dish.name, dish.id)
        return dish

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _load_profile(self, user_id: int) -> UserProfile:
        profile = await self._profiles.get_settings(user_id)
        if profile is None:
            raise ProfileNotFoundError(f"Settings for user {user_id} not found")
        return profile

    async def _answer(
        self,
        ctx: RequestContext,
        intent: RequestType,
        profile: UserProfile,
        history: list[ConversationMessage],
        content: str,
    ) -> _Reply:
        if intent.is_plan:
            return await self._answer_plan(ctx, intent, profile, history, content)
        if intent == RequestType.RECIPE:
            return await self._answer_recipe(ctx, profile, history, content)

        messages = self._assembler.assemble(intent, profile, history, content)
        raw = await self._gateway.fetch(messages, temperature=self._options.text_temperature)
        return _Reply(text=strip_markup(raw), raw=raw, type=RequestType.TEXT)

    async def _answer_plan(
        self,
        ctx: RequestContext,
        intent: RequestType,
        profile: UserProfile,
        history: list[ConversationMessage],
        content: str,
    ) -> _Reply:
        warning = underweight_warning(profile)
        if warning:
            logger.info("[%s] Weight-loss plan refused: BMI below normal", ctx)
            return _Reply(text=warning, raw=warning, type=RequestType.TEXT)

        target = calculate_target(profile, self._clock())
        days = requested_days(content)
        logger.info("[%s] Plan request: target=%s kcal, days=%s", ctx, target, days)

        messages = self._assembler.assemble(
            intent, profile, history, content, calorie_target=target, days=days,
        )
        temperature = (
            self._options.regeneration_temperature
            if intent == RequestType.REGENERATION_MEAL_PLAN
            else self._options.plan_temperature
        )
        raw = await self._gateway.fetch(
            messages, temperature=temperature, max_tokens=self._options.plan_max_tokens,
        )
        parsed = self._plan_parser.parse(
            raw,
            profile.meal_frequency,
            calorie_target=target,
            requested_days=days,
            custom_labels=profile.custom_meal_labels,
        )
        logger.info(
            "[%s] Plan parsed via %s: %d day(s)", ctx, parsed.strategy, len(parsed.days),
        )
        text = self._motivation.decorate(parsed.text) if parsed.days else parsed.text
        return _Reply(text=text, raw=raw, type=RequestType.MEAL_PLAN)

    async def _answer_recipe(
        self,
        ctx: RequestContext,
        profile: UserProfile,
        history: list[ConversationMessage],
        content: str,
    ) -> _Reply:
        messages = self._assembler.assemble(RequestType.RECIPE, profile, history, content)
        raw = await self._gateway.fetch(messages, temperature=self._options.recipe_temperature)
        parsed = self._recipe_parser.parse(raw)
        logger.info("[%s] Recipe parsed via %s", ctx, parsed.strategy)

        dish_id = None
        if parsed.dish is not None and parsed.dish.is_valid():
            dish = await self._dishes.upsert(parsed.dish, ctx.user_id)
            dish_id = dish.id
        return _Reply(text=parsed.text, raw=raw, type=RequestType.RECIPE, dish_id=dish_id)

    async def _favorite_recipe(self, raw: str, user_id: int) -> FavoriteResult:
        parsed = self._recipe_parser.parse(raw)
        if parsed.dish is None or not parsed.dish.is_valid():
            raise FavoriteParseError("Could not extract a recipe from this message")
        dish = await self._dishes.upsert(parsed.dish, user_id, favorite=True)
        return FavoriteResult(dish_id=dish.id)

    async def _favorite_plan(
        self, raw: str, user_id: int, message: ConversationMessage,
    ) -> FavoriteResult:
        profile = await self._load_profile(user_id)
        parsed = self._plan_parser.parse(
            raw, profile.meal_frequency, custom_labels=profile.custom_meal_labels,
        )

        if parsed.dish is not None and not parsed.days:
            dish = await self._dishes.upsert(parsed.dish, user_id, favorite=True)
            return FavoriteResult(dish_id=dish.id)
        if not parsed.days:
            raise FavoriteParseError("Could not extract a meal plan from this message")

        for day in parsed.days:
            for meal in day.meals:
                if not meal.recipe_name.strip() or meal.recipe_name.startswith(PLACEHOLDER_PREFIX):
                    continue
                dish = await self._dishes.upsert(meal, user_id)
                meal.dish_id = dish.id

        plan_id = await self._plans.create_plan(parsed.days, user_id, message.id)
        return FavoriteResult(plan_id=plan_id)
