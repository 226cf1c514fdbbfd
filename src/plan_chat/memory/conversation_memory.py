"""Conversation memory: append-only turn log with compression of older turns."""

from __future__ import annotations

import asyncio
from typing import Any
from uuid import uuid4

from plan_chat.config.constants import (
    NO_CUSTOM_TEMPERATURE_MODELS,
    SUMMARY_FALLBACK_ASSISTANT_CHARS,
    SUMMARY_FALLBACK_USER_CHARS,
)
from plan_chat.config.settings import temperature_for
from plan_chat.exceptions import StorageError
from plan_chat.models.domain import ChatMessage, ConversationContext, ConversationTurn
from plan_chat.observability.logger import get_logger
from plan_chat.pipeline.background import BackgroundTasks
from plan_chat.protocols.llm import LLMProvider
from plan_chat.protocols.stores import ConversationStore

logger = get_logger("memory")

SUMMARIZER_SYSTEM_PROMPT = """You are a conversation summarizer. Compress the following conversation into a concise summary (300-600 tokens) that preserves:
- Key topics discussed
- Important decisions or findings
- Questions asked and answers given
- Any specific items, pages, or quantities mentioned

Be concise but preserve essential context."""


def fallback_summary(turns: list[ConversationTurn]) -> str:
    return "\n".join(
        f"Q: {t.user_message[:SUMMARY_FALLBACK_USER_CHARS]}... "
        f"A: {t.assistant_message[:SUMMARY_FALLBACK_ASSISTANT_CHARS]}..."
        for t in turns
    )


class ConversationMemory:
    def __init__(
        self,
        store: ConversationStore,
        background: BackgroundTasks,
        llm: LLMProvider | None = None,
        summary_model: str | None = None,
        summary_temperature: float | None = 0.3,
        summary_max_tokens: int = 600,
        summary_timeout_s: float = 20.0,
        no_temperature_models: frozenset[str] | set[str] = NO_CUSTOM_TEMPERATURE_MODELS,
    ) -> None:
        self._store = store
        self._background = background
        self._llm = llm
        self._summary_model = summary_model
        self._summary_temperature = summary_temperature
        self._summary_max_tokens = summary_max_tokens
        self._summary_timeout_s = summary_timeout_s
        self._no_temperature_models = no_temperature_models

    def record(
        self,
        plan_id: str,
        user_id: str,
        job_id: str | None,
        user_message: str,
        assistant_message: str,
        metadata: dict[str, Any] | None = None,
        chat_id: str | None = None,
    ) -> asyncio.Task:
        """Schedule the turn write and return without waiting for it.

        A failed write is logged by the background runner and never reaches
        the caller.
        """
        return self._background.spawn(
            self.record_turn(plan_id, user_id, job_id, user_message, assistant_message, metadata, chat_id),
            name=f"record_turn:{plan_id}",
        )

    async def record_turn(
        self,
        plan_id: str,
        user_id: str,
        job_id: str | None,
        user_message: str,
        assistant_message: str,
        metadata: dict[str, Any] | None = None,
        chat_id: str | None = None,
    ) -> ConversationTurn:
        turn = ConversationTurn(
            id=str(uuid4()),
            plan_id=plan_id,
            user_id=user_id,
            job_id=job_id,
            chat_id=chat_id,
            user_message=user_message,
            assistant_message=assistant_message,
            metadata=metadata or {},
        )
        try:
            await self._store.append_turn(turn)
        except Exception as e:
            raise StorageError(f"Failed to record chat turn: {e}") from e
        logger.debug("turn_recorded", plan_id=plan_id, turn_id=turn.id)
        return turn

    async def get_recent_context(
        self,
        plan_id: str,
        user_id: str,
        window_size: int = 4,
        fetch_limit: int = 8,
    ) -> ConversationContext:
        """Last ``window_size`` turns verbatim plus a summary of the older fetched ones.

        Never raises: a store failure yields an empty context and a summarizer
        failure falls back to truncated Q/A text.
        """
        try:
            turns = await self._store.get_recent_turns(plan_id, user_id, limit=fetch_limit)
        except Exception as e:
            logger.warning("conversation_fetch_failed", plan_id=plan_id, error=str(e))
            return ConversationContext()

        window = min(window_size, fetch_limit)
        if len(turns) <= window:
            return ConversationContext(recent_turns=turns)

        older = turns[: len(turns) - window]
        recent = turns[len(turns) - window :]

        if all(t.summary for t in older):
            summary = "\n\n".join(dict.fromkeys(t.summary for t in older))
        else:
            summary = await self.summarize(older)
            self._background.spawn(
                self._store.update_summaries([t.id for t in older], summary),
                name=f"update_summaries:{plan_id}",
            )

        return ConversationContext(recent_turns=recent, compressed_summary=summary)

    async def summarize(self, turns: list[ConversationTurn]) -> str:
        if not turns:
            return ""
        if self._llm is None:
            return fallback_summary(turns)

        conversation = "\n\n".join(
            f"User: {t.user_message}\nAssistant: {t.assistant_message}" for t in turns
        )
        messages = [
            ChatMessage(role="system", content=SUMMARIZER_SYSTEM_PROMPT),
            ChatMessage(role="user", content=f"Summarize this conversation:\n\n{conversation}"),
        ]
        try:
            response = await asyncio.wait_for(
                self._llm.generate(
                    messages,
                    model=self._summary_model,
                    max_tokens=self._summary_max_tokens,
                    temperature=temperature_for(
                        self._summary_model, self._summary_temperature, self._no_temperature_models
                    ),
                ),
                timeout=self._summary_timeout_s,
            )
            summary = response.content.strip()
        except Exception as e:
            logger.warning("conversation_summary_failed", turns=len(turns), error=str(e))
            return fallback_summary(turns)

        return summary or fallback_summary(turns)
