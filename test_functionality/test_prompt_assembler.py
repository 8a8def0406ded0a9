"""Prompt assembly per intent."""

from datetime import date

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from application.prompt_assembler import (
    ContextWindows,
    PromptAssembler,
    chat_restrictions,
    select_context,
    serialize_profile,
)
from domain.entities import ConversationMessage
from domain.models import RequestType, UserProfile

TODAY = date(2025, 6, 16)


def _history(n):
    messages = []
    for i in range(n):
        messages.append(ConversationMessage(id=2 * i + 1, is_user=True, content=f"вопрос {i}"))
        messages.append(ConversationMessage(
            id=2 * i + 2, is_user=False, content=f"ответ {i}", ai_response_type=RequestType.TEXT,
        ))
    return messages


def _assembler(**kwargs):
    return PromptAssembler(clock=lambda: TODAY, **kwargs)


def test_serialize_profile(profile):
    text = serialize_profile(profile, TODAY)
    assert "gender: мужской" in text
    assert "height: 180cm" in text
    assert "weight: 80kg" in text
    assert "age: 35" in text
    assert "Аллергии и непереносимости: Орехи" in text


def test_serialize_profile_clarifications():
    profile = UserProfile.from_settings({
        "allergies": ["Лактоза", "Другое"],
        "allergiesCustomInputs": {"Другое": "киви", "Лактоза": "сильная"},
        "mealTimePreferences": ["Завтрак"],
        "mealTimePreferencesCustomInputs": {"Завтрак": "в 7 утра"},
        "hasOven": False,
    })
    text = serialize_profile(profile, TODAY)
    assert "Аллергии и непереносимости: Лактоза (сильная), киви" in text
    assert "Предпочтения по времени приема пищи: Завтрак: в 7 утра" in text
    assert "Есть ли у вас доступ к духовке?: нет" in text
    assert "age: не указано" in text


def test_select_context_limits_and_excludes_current_message():
    history = _history(20) + [ConversationMessage(is_user=True, content="текущий")]
    selected = select_context(history, "текущий", 5)
    assert len(selected) == 5
    assert all(m.content != "текущий" for m in selected)
    assert selected[-1].content == "ответ 19"
    assert select_context(history, "текущий", 0) == []


def test_select_context_keeps_earlier_identical_question():
    history = [
        ConversationMessage(is_user=True, content="Что съесть на ужин?"),
        ConversationMessage(is_user=False, content="Рыбу с овощами."),
        ConversationMessage(is_user=True, content="Что съесть на ужин?"),
    ]
    selected = select_context(history, "Что съесть на ужин?", 10)
    assert [m.content for m in selected] == ["Что съесть на ужин?", "Рыбу с овощами."]
    assert selected[0] is history[0]


def test_text_prompt(profile):
    messages = _assembler().assemble(RequestType.TEXT, profile, _history(30), "Что съесть?")

    assert isinstance(messages[0], SystemMessage)
    assert "Frello" in messages[0].content
    assert len(messages) == 1 + 25 + 1
    assert isinstance(messages[-1], HumanMessage)
    assert messages[-1].content.startswith("ОБЯЗАТЕЛЬНО УЧТИ МОИ ДАННЫЕ:")
    assert messages[-1].content.endswith("Мой запрос: Что съесть?")


def test_plan_prompt_pins_target(profile):
    messages = _assembler().assemble(
        RequestType.MEAL_PLAN, profile, _history(3), "План питания на 3 дня", calorie_target=2720, days=3,
    )
    final = messages[-1].content

    assert "Текущая дата: 16.06.2025, день недели: Понедельник." in final
    assert "ЦЕЛЕВАЯ КАЛОРИЙНОСТЬ: 2720 ккал" in final
    assert "План на 3 дней:" in final
    assert "breakfast (Завтрак), lunch (Обед), dinner (Ужин)" in final
    assert final.endswith("Мой запрос: План питания на 3 дня.")


def test_plan_prompt_lists_chat_restrictions(profile):
    history = [ConversationMessage(is_user=True, content="Убери рыбу из меню")]
    messages = _assembler().assemble(RequestType.MEAL_PLAN, profile, history, "Составь план питания")
    assert '"убери рыбу из меню"' in messages[-1].content


def test_chat_restrictions_include_current_message():
    assert chat_restrictions([], "План питания без глютена") == ["план питания без глютена"]


def test_flexible_days(profile):
    flexible = UserProfile.from_settings({"flexibleDays": ["Суббота", "Воскресенье"]})
    messages = _assembler().assemble(RequestType.MEAL_PLAN, flexible, [], "План питания на неделю")
    assert "Генерируй план ТОЛЬКО на 5 дней" in messages[-1].content


def test_regeneration_prompt_avoids_previous_replies(profile):
    history = [
        ConversationMessage(is_user=True, content="план питания"),
        ConversationMessage(is_user=False, content="Завтрак: Омлет (400 ккал, 250 г)",
                            ai_response_type=RequestType.MEAL_PLAN),
    ]
    messages = _assembler().assemble(
        RequestType.REGENERATION_MEAL_PLAN, profile, history, "план питания", calorie_target=2000,
    )
    assert "ИЗБЕГАЙ повторения" in messages[0].content
    assert "Омлет" in messages[0].content
    assert messages[-1] == HumanMessage(content="план питания")


def test_regeneration_collapses_repeated_roles(profile):
    history = [
        ConversationMessage(is_user=False, content="a", ai_response_type=RequestType.TEXT),
        ConversationMessage(is_user=False, content="b", ai_response_type=RequestType.TEXT),
        ConversationMessage(is_user=True, content="c"),
    ]
    messages = _assembler(windows=ContextWindows(regeneration=6)).assemble(
        RequestType.REGENERATION_MEAL_PLAN, profile, history, "новый план",
    )
    context = messages[1:-1]
    assert [type(m) for m in context] == [AIMessage, HumanMessage]


def test_recipe_prompt_has_no_history_and_pins_name(profile):
    messages = _assembler().assemble(
        RequestType.RECIPE, profile, _history(5), "", recipe_name="Плов", recipe_calories=600,
    )
    assert len(messages) == 2
    assert 'строго соответствует "Плов"' in messages[0].content
    assert "близко к 600 ккал" in messages[0].content
    assert messages[1].content == "Рецепт Плов. Выдай один JSON объект с одним рецептом на 600 ккал."


def test_persona_name_is_configurable(profile):
    messages = PromptAssembler(assistant_name="Нутри").assemble(RequestType.TEXT, profile, [], "привет")
    assert "Вы — Нутри" in messages[0].content
