"""Tests for context assembly and bounding."""

import pytest

from plan_chat.config.constants import SUMMARY_TURN_MARKER
from plan_chat.context.context_builder import ContextBuilder, is_overview_question
from plan_chat.memory.conversation_memory import ConversationMemory
from plan_chat.models.domain import (
    ConversationContext,
    ConversationTurn,
    NormalizedTakeoffItem,
    RelatedSheet,
    RetrievalResult,
    SheetMetadata,
    TakeoffRecord,
    TextChunk,
)
from plan_chat.models.schemas import QuestionClassification
from plan_chat.retrieval.retrieval_engine import RetrievalEngine
from tests.fakes import FakeChunkSearcher


def _turn(i):
    return ConversationTurn(id=f"turn-{i}", plan_id="p1", user_id="u1", user_message=f"q{i}", assistant_message=f"a{i}")


def _items(n):
    return [
        NormalizedTakeoffItem(id=f"i{k}", category="Concrete", name=f"Footing {k}", quantity=10.0, total_cost=100.0)
        for k in range(n)
    ]


def test_overview_keywords():
    assert is_overview_question("Give me an overview of the takeoff")
    assert is_overview_question("Can you SUMMARIZE everything?")
    assert not is_overview_question("How much roofing?")


def test_totals_cover_only_truncated_items(settings):
    builder = ContextBuilder(None, None, settings)
    classification = QuestionClassification(question_type="TAKEOFF_QUANTITY", targets=["footing"])

    context = builder.assemble(
        "how many footings",
        classification,
        ConversationContext(),
        RetrievalResult(takeoff_items=_items(8)),
        item_cap=3,
    )

    summary = context.takeoff_context.summary
    assert summary.total_items == 3
    assert summary.total_quantity == 30.0
    assert summary.total_cost == 300.0
    assert [i.id for i in context.takeoff_context.items] == ["i0", "i1", "i2"]


def test_zero_totals_become_none(settings):
    builder = ContextBuilder(None, None, settings)
    context = builder.assemble(
        "what about drywall",
        QuestionClassification(),
        ConversationContext(),
        RetrievalResult(takeoff_items=[NormalizedTakeoffItem(id="x", name="Drywall")]),
    )
    assert context.takeoff_context.summary.total_quantity is None
    assert context.takeoff_context.summary.total_cost is None
    assert context.takeoff_context.items[0].category == "Uncategorized"


def test_summary_becomes_leading_pseudo_turn(settings):
    builder = ContextBuilder(None, None, settings)
    conversation = ConversationContext(recent_turns=[_turn(1), _turn(2)], compressed_summary="Discussed roofing.")

    context = builder.assemble("next", QuestionClassification(), conversation, RetrievalResult())

    first = context.recent_conversation[0]
    assert first.user == SUMMARY_TURN_MARKER
    assert first.assistant == "Discussed roofing."
    assert [e.user for e in context.recent_conversation[1:]] == ["q1", "q2"]
    assert "Previous conversation has been compressed to save context window" in context.notes


def test_blueprint_summary_and_sheet_names(settings):
    builder = ContextBuilder(None, None, settings)
    chunks = [
        TextChunk("c1", "TPO membrane", page_number=3, sheet_metadata=SheetMetadata(sheet_id="A-201"), similarity=0.8),
        TextChunk("c2", "Parapet flashing", page_number=3, similarity=0.7),
        TextChunk("c3", "Gutters", page_number=4, similarity=0.6),
    ]
    context = builder.assemble(
        "roof", QuestionClassification(), ConversationContext(), RetrievalResult(semantic_chunks=chunks)
    )

    assert context.blueprint_context.summary == "Found 3 relevant blueprint snippets from 2 pages"
    assert context.blueprint_context.chunks[0].sheet_name == "A-201"
    assert context.blueprint_context.chunks[1].sheet_name is None
    assert context.global_scope_summary == "Context includes: 3 blueprint snippets."


def test_empty_context_messages(settings):
    builder = ContextBuilder(None, None, settings)
    context = builder.assemble("hello", QuestionClassification(), ConversationContext(), RetrievalResult())

    assert context.blueprint_context.summary == "No relevant blueprint snippets found"
    assert context.global_scope_summary == "Limited context available for this query."
    assert context.notes == []


def test_notes_and_scope_summary(settings):
    builder = ContextBuilder(None, None, settings)
    classification = QuestionClassification(
        question_type="TAKEOFF_QUANTITY", targets=["roof", "flashing"], pages=[3], strict_takeoff_only=True
    )
    retrieval = RetrievalResult(
        takeoff_items=_items(1),
        related_sheets=[RelatedSheet(page_number=3), RelatedSheet(page_number=4)],
    )

    context = builder.assemble("roof", classification, ConversationContext(), retrieval)

    assert context.notes == [
        "User specifically asked about page 3",
        "Query targets: roof, flashing",
        "This is a strict takeoff-only question - no blueprint speculation allowed",
    ]
    assert context.global_scope_summary == "Context includes: 1 matching takeoff item, 2 related sheets."


def test_related_sheets_are_capped(settings):
    builder = ContextBuilder(None, None, settings)
    sheets = [RelatedSheet(page_number=p) for p in range(1, 30)]
    context = builder.assemble(
        "sheets", QuestionClassification(), ConversationContext(), RetrievalResult(related_sheets=sheets)
    )
    assert len(context.related_sheets) == settings.related_sheet_limit


@pytest.mark.asyncio
async def test_build_uses_overview_cap(settings, plan_store, chat_store, background):
    plan_store.takeoffs.append(
        TakeoffRecord(
            takeoff_id="t",
            plan_id="p1",
            user_id="u1",
            items=[{"id": f"i{k}", "name": f"Item {k}", "quantity": 1} for k in range(60)],
        )
    )
    retrieval = RetrievalEngine(FakeChunkSearcher(), plan_store, settings)
    memory = ConversationMemory(chat_store, background)
    builder = ContextBuilder(retrieval, memory, settings)

    context = await builder.build("p1", "u1", None, QuestionClassification(), "Give me an overview")

    assert context.takeoff_context.summary.total_items == 60
    assert context.takeoff_context.summary.total_quantity == 60.0
