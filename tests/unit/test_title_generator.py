"""Tests for chat session title generation."""

import pytest

from plan_chat.memory.title_generator import ChatTitleGenerator, is_generic_title
from plan_chat.models.domain import ChatMessage, ChatSession, ConversationTurn
from tests.fakes import FakeLLM


def _turn(i, chat_id="c1"):
    return ConversationTurn(
        id=f"t{i}",
        plan_id="p1",
        user_id="u1",
        chat_id=chat_id,
        user_message="How many linear feet of parapet flashing are on the roof?",
        assistant_message="1,240 LF",
    )


def test_generic_titles():
    assert is_generic_title(None)
    assert is_generic_title("New Chat")
    assert is_generic_title("Chat 2024-01-05")
    assert is_generic_title("Roof")
    assert not is_generic_title("Roofing Quantity Analysis")


@pytest.mark.asyncio
async def test_title_from_llm(chat_store):
    generator = ChatTitleGenerator(chat_store, llm=FakeLLM(answers=['"Parapet Flashing Quantities"']))
    title = await generator.generate_title([ChatMessage(role="user", content="flashing?")])
    assert title == "Parapet Flashing Quantities"


@pytest.mark.asyncio
async def test_title_request_omits_temperature_for_reasoning_models(chat_store):
    llm = FakeLLM(answers=["Roofing Quantity Review"])
    generator = ChatTitleGenerator(chat_store, llm=llm, model="gpt-5-mini")

    await generator.generate_title([ChatMessage(role="user", content="roofing?")])

    assert llm.calls[0]["temperature"] is None


@pytest.mark.asyncio
async def test_falls_back_to_first_user_message(chat_store):
    generator = ChatTitleGenerator(chat_store, llm=FakeLLM(fail=True))
    messages = [ChatMessage(role="user", content="x" * 80), ChatMessage(role="assistant", content="ok")]

    assert await generator.generate_title(messages) == "x" * 50


@pytest.mark.asyncio
async def test_overlong_title_falls_back(chat_store):
    generator = ChatTitleGenerator(chat_store, llm=FakeLLM(answers=["T" * 61]))
    title = await generator.generate_title([ChatMessage(role="user", content="Roof question")])
    assert title == "Roof question"


@pytest.mark.asyncio
async def test_update_title_for_generic_session(chat_store):
    chat_store.sessions["c1"] = ChatSession(chat_id="c1", plan_id="p1", user_id="u1", title="New Chat")
    chat_store.turns = [_turn(1)]
    generator = ChatTitleGenerator(chat_store, llm=FakeLLM(answers=["Parapet Flashing Takeoff"]))

    title = await generator.update_title_if_needed("c1", "u1")

    assert title == "Parapet Flashing Takeoff"
    assert chat_store.sessions["c1"].title == "Parapet Flashing Takeoff"


@pytest.mark.asyncio
async def test_descriptive_title_is_kept(chat_store):
    chat_store.sessions["c1"] = ChatSession(chat_id="c1", plan_id="p1", user_id="u1", title="Roofing Quantity Analysis")
    chat_store.turns = [_turn(1)]
    llm = FakeLLM()
    generator = ChatTitleGenerator(chat_store, llm=llm)

    assert await generator.update_title_if_needed("c1", "u1") is None
    assert llm.calls == []


@pytest.mark.asyncio
async def test_long_sessions_are_not_renamed(chat_store):
    chat_store.sessions["c1"] = ChatSession(chat_id="c1", plan_id="p1", user_id="u1", title="New Chat")
    chat_store.turns = [_turn(i) for i in range(3)]
    generator = ChatTitleGenerator(chat_store, llm=FakeLLM())

    assert await generator.update_title_if_needed("c1", "u1") is None
    assert chat_store.sessions["c1"].title == "New Chat"


@pytest.mark.asyncio
async def test_other_users_session_is_ignored(chat_store):
    chat_store.sessions["c1"] = ChatSession(chat_id="c1", plan_id="p1", user_id="someone-else", title="New Chat")
    generator = ChatTitleGenerator(chat_store, llm=FakeLLM())
    assert await generator.update_title_if_needed("c1", "u1") is None
