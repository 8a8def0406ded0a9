"""
application.prompt_assembler - Builds the message sequence sent to the model.

Every request gets a system message with the assistant persona, a bounded
slice of the chat history (the just-submitted user message excluded, it is
appended once at the end) and a final instruction specific to the intent:

    TEXT                    plain prose, no markdown
    MEAL_PLAN               fixed calorie target, slot labels, chat
                            restrictions, flexible days, header + JSON days
    REGENERATION_MEAL_PLAN  as MEAL_PLAN plus "do not repeat" material
    RECIPE                  one strict JSON object, ingredient energy balance

Messages are LangChain message objects; the gateway converts them to
{role, content} pairs.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Optional, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from application.calories import age_on
from application.meal_labels import get_meal_labels
from application.parsing.dish_text import scrape_dish
from application.parsing.json_extract import strip_markup
from domain.entities import ConversationMessage
from domain.models import RequestType, UserProfile, parse_birth_date

logger = logging.getLogger(__name__)

NOT_SPECIFIED = "не указано"

RESTRICTION_KEYWORDS = (
    "не люблю", "убери", "без ", "удали", "замени",
    "не хочу", "исключи", "избегай", "нельзя",
)
RESTRICTION_SCAN_DEPTH = 10

AVOID_REPLIES = 3
AVOID_MAX_CHARS = 5000

WEEKDAYS = ("Понедельник", "Вторник", "Среда", "Четверг", "Пятница", "Суббота", "Воскресенье")

# Settings field -> label used in the profile block.
FIELD_LABELS = {
    "favoriteFoods": "Любимые продукты, блюда и напитки",
    "cookingPreferences": "Предпочтения по приготовлению",
    "cookingTimeConstraints": "Временные ограничения на готовку",
    "allergies": "Аллергии и непереносимости",
    "dietType": "Тип диеты",
    "personalRestrictions": "Личные ограничения",
    "mealTimePreferences": "Предпочтения по времени приема пищи",
    "nutritionPreferences": "Предпочтения по калорийности и макронутриентам",
    "budgetPreferences": "Бюджетные предпочтения",
    "cookingExperience": "Опыт в кулинарии",
    "activityLevel": "Уровень активности",
    "flexibleDayFrequency": "Частота гибких дней",
    "flexibleDays": "Конкретные гибкие дни",
    "hasOven": "Есть ли у вас доступ к духовке?",
    "currentProducts": "Продукты, которые у пользователя есть",
}

# Fields where a selected category keeps its label next to the clarification.
CATEGORY_AND_CLARIFICATION_FIELDS = frozenset({
    "cookingPreferences", "cookingTimeConstraints", "allergies", "dietType",
    "personalRestrictions", "nutritionPreferences", "budgetPreferences",
    "cookingExperience", "activityLevel", "flexibleDayFrequency",
})

_EMPTY_CATEGORIES = ("другое", "нет")
_PLACEHOLDER_MARKERS = ("(указать)", "(введите)")


@dataclass(frozen=True)
class ContextWindows:
    """How many past messages each intent replays."""
    text: int = 25
    plan: int = 15
    regeneration: int = 6
    recipe: int = 0

    def for_intent(self, intent: RequestType) -> int:
        if intent == RequestType.REGENERATION_MEAL_PLAN:
            return self.regeneration
        if intent == RequestType.MEAL_PLAN:
            return self.plan
        if intent == RequestType.RECIPE:
            return self.recipe
        return self.text


# ---------------------------------------------------------------------------
# Profile serialization
# ---------------------------------------------------------------------------

def _is_placeholder(item: str) -> bool:
    lower = item.lower()
    return any(marker in lower for marker in _PLACEHOLDER_MARKERS)


def _category_values(key: str, value: Any, clarifications: dict[str, str]) -> list[str]:
    if isinstance(value, bool):
        return ["да" if value else "нет"]
    if not isinstance(value, (list, tuple)):
        text = str(value).strip()
        return [text] if text and text.lower() not in _EMPTY_CATEGORIES else []

    values: list[str] = []
    for raw_item in value:
        item = str(raw_item).strip()
        if not item:
            continue
        clarification = (clarifications.get(str(raw_item)) or clarifications.get(item) or "").strip()
        is_empty_category = item.lower() in _EMPTY_CATEGORIES

        if not clarification:
            if not is_empty_category and not _is_placeholder(item):
                values.append(item)
            continue

        if key == "mealTimePreferences":
            values.append(f"{item}: {clarification}")
        elif (
            key in CATEGORY_AND_CLARIFICATION_FIELDS
            and not is_empty_category
            and not _is_placeholder(item)
        ):
            values.append(f"{item} ({clarification})")
        else:
            values.append(clarification)
    return values


def serialize_profile(
    profile: UserProfile, today: date, meal_frequency: Optional[int] = None,
) -> str:
    """Compact "key: value; ..." block describing the user."""
    birth = parse_birth_date(profile.birth_date)
    age = str(age_on(birth, today)) if birth else NOT_SPECIFIED
    goal = ", ".join(profile.goals) or NOT_SPECIFIED

    fields = [
        f"mealFrequency: {meal_frequency or profile.meal_frequency}",
        f"gender: {profile.gender or NOT_SPECIFIED}",
        f"height: {_fmt_measure(profile.height, 'cm')}",
        f"weight: {_fmt_measure(profile.weight, 'kg')}",
        f"age: {age}",
        f"birthdate: {birth.isoformat() if birth else NOT_SPECIFIED}",
        f"nutritionGoal: {goal}",
    ]
    if profile.activity_level:
        fields.append(f"{FIELD_LABELS['activityLevel']}: {profile.activity_level}")
    if profile.flexible_days:
        fields.append(f"{FIELD_LABELS['flexibleDays']}: {', '.join(profile.flexible_days)}")

    for key, value in profile.categories.items():
        values = _category_values(key, value, profile.clarifications.get(key, {}))
        if not values:
            continue
        fields.append(f"{FIELD_LABELS.get(key, key)}: {', '.join(values)}")
        if key == "favoriteFoods" and profile.current_products:
            fields.append(f"{FIELD_LABELS['currentProducts']}: {profile.current_products}")

    products_line = f"{FIELD_LABELS['currentProducts']}: {profile.current_products}"
    if profile.current_products and products_line not in fields:
        fields.append(products_line)

    return "; ".join(fields)


def _fmt_measure(value: Optional[float], unit: str) -> str:
    if not value:
        return NOT_SPECIFIED
    number = int(value) if float(value).is_integer() else value
    return f"{number}{unit}"


# ---------------------------------------------------------------------------
# History helpers
# ---------------------------------------------------------------------------

def select_context(
    history: Sequence[ConversationMessage], content: str, limit: int,
) -> list[ConversationMessage]:
    """Last ``limit`` non-empty messages, minus the current user message.

    Only the latest user turn equal to ``content`` is the current one;
    an earlier identical question stays in the context.
    """
    if limit <= 0:
        return []
    current = next(
        (i for i in range(len(history) - 1, -1, -1)
         if history[i].is_user and history[i].content == content),
        None,
    )
    kept = [
        m for i, m in enumerate(history)
        if i != current and m.content and m.content.strip()
    ]
    return kept[-limit:]


def _replay_content(message: ConversationMessage) -> str:
    if not message.is_user and message.dish_id:
        dish = scrape_dish(message.content)
        if dish is not None:
            return json.dumps({
                "name": dish.recipe_name,
                "ingredients": dish.ingredients,
                "instruction": dish.instruction,
                "cookingTime": dish.cooking_time,
                "calories": dish.calories,
                "proteins": dish.proteins,
                "fats": dish.fats,
                "carbs": dish.carbs,
                "portionSize": dish.portion_size,
            }, ensure_ascii=False)
        return json.dumps({"content": strip_markup(message.content)}, ensure_ascii=False)
    return strip_markup(message.content)


def to_langchain(message: ConversationMessage) -> BaseMessage:
    content = _replay_content(message)
    if message.is_user:
        return HumanMessage(content=content)
    return AIMessage(content=content)


def collapse_roles(messages: list[BaseMessage]) -> list[BaseMessage]:
    """Keep only the first of consecutive messages with the same role."""
    collapsed: list[BaseMessage] = []
    for message in messages:
        if collapsed and collapsed[-1].type == message.type:
            continue
        collapsed.append(message)
    return collapsed


def chat_restrictions(history: Sequence[ConversationMessage], content: str) -> list[str]:
    """Recent user messages that ask to exclude something."""
    recent = [m.content for m in history if m.is_user and m.content][-RESTRICTION_SCAN_DEPTH:]
    if content and (not recent or recent[-1] != content):
        recent.append(content)
    found: list[str] = []
    for text in recent:
        lower = text.lower()
        if any(k in lower for k in RESTRICTION_KEYWORDS) and lower not in found:
            found.append(lower)
    return found


# ---------------------------------------------------------------------------
# Assembler
# ---------------------------------------------------------------------------

class PromptAssembler:
    """Builds per-intent prompts. Pure apart from reading the clock."""

    def __init__(
        self,
        windows: ContextWindows = ContextWindows(),
        assistant_name: str = "Frello",
        clock: Callable[[], date] = date.today,
    ):
        self._windows = windows
        self._name = assistant_name
        self._clock = clock

    @property
    def base_system_message(self) -> str:
        return (
            f"Вы — {self._name}, надёжный и опытный персональный помощник в области питания. "
            "Отвечаете вежливо и профессионально, обращаясь только на «Вы». "
            "Ваш тон: спокойная экспертность, поддержка и забота. "
            "Не упоминайте данные пользователя в ответе."
        )

    def assemble(
        self,
        intent: RequestType,
        profile: UserProfile,
        history: Sequence[ConversationMessage],
        content: str,
        calorie_target: Optional[int] = None,
        *,
        days: Optional[int] = None,
        recipe_name: Optional[str] = None,
        recipe_calories: Optional[int] = None,
    ) -> list[BaseMessage]:
        today = self._clock()
        settings = serialize_profile(profile, today)
        if intent == RequestType.MEAL_PLAN:
            messages = self._plan(profile, history, content, calorie_target, days, settings, today)
        elif intent == RequestType.REGENERATION_MEAL_PLAN:
            messages = self._regeneration(profile, history, content, calorie_target, days, settings)
        elif intent == RequestType.RECIPE:
            messages = self._recipe(history, content, settings, recipe_name, recipe_calories)
        else:
            messages = self._text(history, content, settings)
        logger.debug("Assembled %d message(s) for %s", len(messages), intent.value)
        return messages

    # -- intents ------------------------------------------------------------

    def _context(
        self, intent: RequestType, history: Sequence[ConversationMessage], content: str,
    ) -> list[BaseMessage]:
        selected = select_context(history, content, self._windows.for_intent(intent))
        return [to_langchain(m) for m in selected]

    def _text(self, history, content: str, settings: str) -> list[BaseMessage]:
        system = (
            f"{self.base_system_message} Вы — {self._name}, эксперт по питанию и диетологии. "
            "НЕ используйте **, ***, ---, ###, #, _ и другие символы форматирования. "
            "Пишите обычным текстом."
        )
        return [
            SystemMessage(content=system),
            *self._context(RequestType.TEXT, history, content),
            HumanMessage(content=f"ОБЯЗАТЕЛЬНО УЧТИ МОИ ДАННЫЕ: {settings} Мой запрос: {content}"),
        ]

    def _plan(
        self, profile, history, content: str, calorie_target, days, settings: str, today: date,
    ) -> list[BaseMessage]:
        parts = [
            f"Текущая дата: {today.strftime('%d.%m.%Y')}, день недели: {WEEKDAYS[today.weekday()]}.",
            "Составьте персональный план питания. ПОСЛЕ ВСЕХ РАСЧЕТОВ ОБЯЗАТЕЛЬНО ВЫВЕДИ ПОЛНЫЙ ПЛАН ПИТАНИЯ.",
            f"ОБЯЗАТЕЛЬНО УЧТИ МОИ ДАННЫЕ: {settings}",
            self._slots_instruction(profile),
        ]
        restrictions = chat_restrictions(history, content)
        if restrictions:
            quoted = "\n".join(f'- "{r}"' for r in restrictions)
            parts.append(
                "КРИТИЧЕСКИ ВАЖНО - ОГРАНИЧЕНИЯ ИЗ ЧАТА:\n"
                f"Пользователь недавно писал:\n{quoted}\n"
                "ПОЛНОСТЬЮ ИСКЛЮЧИ эти продукты и блюда из плана. "
                "НЕ используй их ни в каком виде и НЕ пиши \"замена\" в скобках."
            )
        parts.append(self._flexible_days_instruction(profile))
        parts.append(self._plan_json_instruction(calorie_target, days))
        instruction = "\n\n".join(p for p in parts if p)
        return [
            SystemMessage(content=self.base_system_message),
            *self._context(RequestType.MEAL_PLAN, history, content),
            HumanMessage(content=f"{instruction}\n\nМой запрос: {content}."),
        ]

    def _regeneration(
        self, profile, history, content: str, calorie_target, days, settings: str,
    ) -> list[BaseMessage]:
        previous = [
            strip_markup(m.content) for m in history
            if not m.is_user and m.content and m.content.strip()
        ][-AVOID_REPLIES:]
        avoid = "\n\n".join(previous)[:AVOID_MAX_CHARS]

        parts = [
            self.base_system_message,
            f"ОБЯЗАТЕЛЬНО УЧТИ МОИ ДАННЫЕ: {settings}",
            self._slots_instruction(profile),
        ]
        if avoid:
            parts.append(
                "ИЗБЕГАЙ повторения предыдущих планов. Запрещенные рецепты и структуры: "
                f"{avoid}. Генерируй полностью новые блюда."
            )
        parts.append(self._flexible_days_instruction(profile))
        parts.append(self._plan_json_instruction(calorie_target, days))
        system = "\n\n".join(p for p in parts if p)

        context = collapse_roles(self._context(RequestType.REGENERATION_MEAL_PLAN, history, content))
        return [SystemMessage(content=system), *context, HumanMessage(content=content)]

    def _recipe(
        self, history, content: str, settings: str,
        recipe_name: Optional[str], recipe_calories: Optional[int],
    ) -> list[BaseMessage]:
        name_rule = recipe_name or "запросу пользователя"
        calorie_rule = (
            f"- calories ДОЛЖНО быть близко к {recipe_calories} ккал (допуск ±30 ккал). "
            "Если не сходится, подгони grams ингредиентов, а не просто перепиши число.\n"
            if recipe_calories else ""
        )
        instruction = (
            "СИСТЕМНАЯ ИНСТРУКЦИЯ ДЛЯ ГЕНЕРАЦИИ РЕЦЕПТА:\n"
            "Верни ТОЛЬКО валидный JSON (без текста вокруг) по схеме ниже.\n\n"
            "СХЕМА (ОДНА ПОРЦИЯ):\n"
            "{\n"
            '  "name": "string",\n'
            '  "ingredients": [\n'
            '    {"name": "string", "grams": number, "proteins": number, '
            '"fats": number, "carbs": number, "calories": number}\n'
            "  ],\n"
            '  "instruction": "string",\n'
            '  "cookingTime": number,\n'
            '  "portionSize": number,\n'
            '  "proteins": number,\n'
            '  "fats": number,\n'
            '  "carbs": number,\n'
            '  "calories": number\n'
            "}\n\n"
            "ПРАВИЛА (КРИТИЧЕСКИ ВАЖНО):\n"
            f'- "name" — название блюда на русском, строго соответствует "{name_rule}".\n'
            '- "ingredients" — МАССИВ, а не строка. Для каждого ингредиента укажи grams '
            "и его БЖУ и калории НА ЭТУ ПОРЦИЮ.\n"
            '- Итоговые "proteins", "fats", "carbs", "calories" — СУММА по всем ингредиентам.\n'
            "- calories = proteins×4 + fats×9 + carbs×4 (допуск ±5 ккал из-за округлений).\n"
            '- "portionSize" — итоговый вес порции в граммах, примерно сумма граммов ингредиентов.\n'
            f"{calorie_rule}"
            "ТОЛЬКО JSON, без markdown, пояснений и приветствий."
        )
        system = f"{self.base_system_message}\n\nОБЯЗАТЕЛЬНО УЧТИ МОИ ДАННЫЕ: {settings}\n\n{instruction}"

        user_content = content
        if not user_content:
            user_content = f"Рецепт {recipe_name}. Выдай один JSON объект с одним рецептом"
            if recipe_calories:
                user_content += f" на {recipe_calories} ккал"
            user_content += "."
        return [
            SystemMessage(content=system),
            *self._context(RequestType.RECIPE, history, content),
            HumanMessage(content=user_content),
        ]

    # -- plan instruction blocks ---------------------------------------------

    @staticmethod
    def _slots_instruction(profile: UserProfile) -> str:
        labels = get_meal_labels(profile.meal_frequency, profile.custom_meal_labels)
        slots = ", ".join(f"{key} ({label})" for key, label in labels.items())
        return (
            f"Количество приёмов пищи в день: {len(labels)}. "
            f"В каждом дне используй ровно эти значения \"type\": {slots}."
        )

    @staticmethod
    def _flexible_days_instruction(profile: UserProfile) -> str:
        flexible = [d for d in profile.flexible_days if str(d).strip()]
        if not flexible:
            return ""
        plan_days = max(1, 7 - len(flexible))
        return (
            "КРИТИЧЕСКИ ВАЖНО - ГИБКИЕ ДНИ:\n"
            f"Пользователь указал гибкие дни: {', '.join(flexible)}.\n"
            f"Генерируй план ТОЛЬКО на {plan_days} дней, исключая гибкие дни. "
            "НЕ создавай меню для гибких дней."
        )

    @staticmethod
    def _plan_json_instruction(calorie_target: Optional[int], days: Optional[int]) -> str:
        norm = str(calorie_target) if calorie_target else "[итоговое выбранное число калорий в день]"
        days_text = str(days) if days else "[количество]"
        target_rule = (
            f"- ЦЕЛЕВАЯ КАЛОРИЙНОСТЬ: {calorie_target} ккал в день. Это значение рассчитано заранее, "
            "НЕ пересчитывай и НЕ изменяй его. Сумма всех \"calories\" за день ДОЛЖНА быть "
            f"{calorie_target} (±50 ккал).\n"
            if calorie_target else ""
        )
        return (
            f"Верни ТОЛЬКО фразу «Ваша суточная норма калорий для достижения вашей цели: {norm} ккал. "
            f"План на {days_text} дней:» и JSON-массив дней, где каждый день — объект с полем \"meals\". "
            "Каждый \"meals\" — массив объектов с полями: type, recipeName, calories, portionSize.\n\n"
            "СХЕМА:\n"
            f"Ваша суточная норма калорий для достижения вашей цели: {norm} ккал.\n"
            f"План на {days_text} дней:\n"
            '[{"meals": [{"type": "breakfast", "recipeName": "...", "calories": 0, "portionSize": 0}]}]\n\n'
            "ПРАВИЛА:\n"
            "- Распределяй калории по приёмам пищи: завтрак 20–30%, обед 30–35%, ужин 15–20%, "
            "перекусы 10–15% каждый.\n"
            "- ВСЕГДА возвращай массив, даже если это один день.\n"
            '- "recipeName" — ТОЛЬКО на русском языке, конкретное название блюда.\n'
            '- "calories" и "portionSize" (в граммах) — ОБЯЗАТЕЛЬНЫЕ целые числа.\n'
            f"{target_rule}"
            '- Если план на 1 день, НЕ ПИШИ заголовок "День 1".\n'
            "- Сумма калорий всех приёмов пищи в каждом дне ДОЛЖНА быть равна суточной норме (±50 ккал).\n"
            "- ТОЛЬКО фраза о суточной норме и количестве дней, затем JSON, без приветствий, "
            "markdown и пояснений."
        )
