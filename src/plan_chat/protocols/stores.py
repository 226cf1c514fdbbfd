"""Protocols for the persistence collaborators the pipeline reads and writes."""

from __future__ import annotations

from typing import Any, Protocol

from plan_chat.models.domain import (
    ChatSession,
    ConversationTurn,
    JobRecord,
    PageText,
    PlanRecord,
    RelatedSheet,
    TakeoffRecord,
    TextChunk,
)


class ChunkSearcher(Protocol):
    async def search(self, plan_id: str, query: str, limit: int = 12) -> list[TextChunk]: ...

    async def count_chunks(self, plan_id: str) -> int: ...


class PlanStore(Protocol):
    async def get_plan(self, plan_id: str) -> PlanRecord | None: ...

    async def get_job(self, job_id: str) -> JobRecord | None: ...

    async def get_latest_takeoff(
        self, plan_id: str, user_id: str | None = None
    ) -> TakeoffRecord | None: ...

    async def update_takeoff_items(self, takeoff_id: str, items: list[dict[str, Any]]) -> None: ...

    async def get_sheet_index(self, plan_id: str) -> list[RelatedSheet]: ...

    async def get_sheets_by_pages(self, plan_id: str, pages: list[int]) -> list[RelatedSheet]: ...

    async def get_page_texts(self, plan_id: str) -> list[PageText]: ...


class ConversationStore(Protocol):
    async def append_turn(self, turn: ConversationTurn) -> None: ...

    async def get_recent_turns(
        self, plan_id: str, user_id: str, limit: int = 8
    ) -> list[ConversationTurn]: ...

    async def update_summaries(self, turn_ids: list[str], summary: str) -> None: ...

    async def get_session(self, chat_id: str, user_id: str) -> ChatSession | None: ...

    async def get_session_messages(self, chat_id: str) -> list[ConversationTurn]: ...

    async def update_session_title(self, chat_id: str, title: str) -> None: ...
