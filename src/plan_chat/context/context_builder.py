"""Merge retrieval output and conversation memory into one bounded PlanContext."""

from __future__ import annotations

import asyncio

from plan_chat.config.constants import OVERVIEW_KEYWORDS, SUMMARY_TURN_MARKER
from plan_chat.config.settings import Settings
from plan_chat.memory.conversation_memory import ConversationMemory
from plan_chat.models.domain import (
    BlueprintChunk,
    BlueprintContext,
    ConversationContext,
    ConversationExchange,
    PlanContext,
    RetrievalResult,
    TakeoffContext,
    TakeoffContextItem,
    TakeoffSummary,
)
from plan_chat.models.schemas import QuestionClassification
from plan_chat.observability.logger import get_logger
from plan_chat.retrieval.retrieval_engine import RetrievalEngine

logger = get_logger("context_builder")


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def is_overview_question(question: str) -> bool:
    q = question.lower()
    return any(keyword in q for keyword in OVERVIEW_KEYWORDS)


class ContextBuilder:
    def __init__(
        self,
        retrieval: RetrievalEngine,
        memory: ConversationMemory,
        settings: Settings,
    ) -> None:
        self._retrieval = retrieval
        self._memory = memory
        self._settings = settings

    async def build(
        self,
        plan_id: str,
        user_id: str,
        job_id: str | None,
        classification: QuestionClassification,
        question: str,
    ) -> PlanContext:
        overview = is_overview_question(question)
        item_cap = (
            self._settings.overview_item_limit if overview else self._settings.takeoff_item_limit
        )

        conversation, retrieval = await asyncio.gather(
            self._memory.get_recent_context(
                plan_id,
                user_id,
                window_size=self._settings.memory_window,
                fetch_limit=self._settings.memory_fetch_limit,
            ),
            self._retrieval.retrieve(
                plan_id,
                user_id,
                job_id,
                question,
                classification.targets,
                classification.pages,
                include_all_items=overview,
                item_limit=item_cap,
            ),
        )
        return self.assemble(question, classification, conversation, retrieval, item_cap)

    def assemble(
        self,
        question: str,
        classification: QuestionClassification,
        conversation: ConversationContext,
        retrieval: RetrievalResult,
        item_cap: int | None = None,
    ) -> PlanContext:
        """Pure bounding step: truncate every source to its cap and summarize what is left."""
        item_cap = item_cap or self._settings.takeoff_item_limit

        recent = [
            ConversationExchange(user=t.user_message, assistant=t.assistant_message)
            for t in conversation.recent_turns
        ]
        if conversation.compressed_summary:
            recent.insert(
                0, ConversationExchange(user=SUMMARY_TURN_MARKER, assistant=conversation.compressed_summary)
            )

        items = retrieval.takeoff_items[:item_cap]
        # Totals cover only the items that made it into the prompt.
        total_quantity = sum(i.quantity for i in items if i.quantity)
        total_cost = sum(i.total_cost for i in items if i.total_cost)
        takeoff = TakeoffContext(
            items=[
                TakeoffContextItem(
                    id=item.id or "unknown",
                    name=item.display_name,
                    category=item.category or "Uncategorized",
                    quantity=item.quantity,
                    unit=item.unit,
                    unit_cost=item.unit_cost,
                    cost_total=item.total_cost,
                    location=item.location,
                    page_number=item.page_number,
                )
                for item in items
            ],
            summary=TakeoffSummary(
                total_items=len(items),
                total_quantity=total_quantity if total_quantity > 0 else None,
                total_cost=total_cost if total_cost > 0 else None,
            ),
        )

        chunks = retrieval.semantic_chunks[: self._settings.semantic_chunk_limit]
        chunk_pages = {c.page_number for c in chunks if c.page_number}
        blueprint = BlueprintContext(
            chunks=[
                BlueprintChunk(
                    text=c.snippet_text,
                    page_number=c.page_number,
                    sheet_name=(
                        (c.sheet_metadata.sheet_title or c.sheet_metadata.sheet_id)
                        if c.sheet_metadata
                        else None
                    ),
                    similarity=c.similarity,
                )
                for c in chunks
            ],
            summary=(
                f"Found {_plural(len(chunks), 'relevant blueprint snippet')} "
                f"from {_plural(len(chunk_pages), 'page')}"
                if chunks
                else "No relevant blueprint snippets found"
            ),
        )

        sheets = retrieval.related_sheets[: self._settings.related_sheet_limit]

        scope_parts = []
        if items:
            scope_parts.append(_plural(len(items), "matching takeoff item"))
        if chunks:
            scope_parts.append(_plural(len(chunks), "blueprint snippet"))
        if sheets:
            scope_parts.append(_plural(len(sheets), "related sheet"))
        scope_summary = (
            f"Context includes: {', '.join(scope_parts)}."
            if scope_parts
            else "Limited context available for this query."
        )

        notes = []
        if classification.pages:
            label = "page" if len(classification.pages) == 1 else "pages"
            notes.append(
                f"User specifically asked about {label} {', '.join(str(p) for p in classification.pages)}"
            )
        if classification.targets:
            notes.append(f"Query targets: {', '.join(classification.targets)}")
        if classification.strict_takeoff_only:
            notes.append("This is a strict takeoff-only question - no blueprint speculation allowed")
        if conversation.compressed_summary:
            notes.append("Previous conversation has been compressed to save context window")

        logger.debug(
            "context_assembled",
            turns=len(recent),
            items=len(items),
            chunks=len(chunks),
            sheets=len(sheets),
        )

        return PlanContext(
            query=question,
            classification=classification,
            recent_conversation=recent,
            project_metadata=retrieval.project_metadata,
            takeoff_context=takeoff,
            blueprint_context=blueprint,
            related_sheets=sheets,
            global_scope_summary=scope_summary,
            notes=notes,
        )
