"""Descriptive titles for chat sessions that still carry a generic one."""

from __future__ import annotations

from plan_chat.config.constants import (
    GENERIC_CHAT_TITLES,
    NO_CUSTOM_TEMPERATURE_MODELS,
    TITLE_FALLBACK_LENGTH,
    TITLE_MAX_LENGTH,
)
from plan_chat.config.settings import temperature_for
from plan_chat.models.domain import ChatMessage, ConversationTurn
from plan_chat.observability.logger import get_logger
from plan_chat.protocols.llm import LLMProvider
from plan_chat.protocols.stores import ConversationStore

logger = get_logger("title_generator")

TITLE_SYSTEM_PROMPT = """You are a helpful assistant that generates concise, descriptive titles for construction plan chat conversations.

Rules:
- Generate a title that captures the main topic or question being discussed
- Keep it short: 3-8 words maximum
- Be specific: "Missing Measurements Review" not "Chat about plans"
- Focus on the primary subject: takeoff items, measurements, scope, specific trades, etc.
- Use title case (capitalize important words)
- Don't include words like "Chat", "Discussion", or "Conversation" unless necessary
- Examples: "Roofing Quantity Analysis", "Missing Door Measurements", "Electrical Scope Review", "Concrete Footing Dimensions"

Return ONLY the title, nothing else."""

MIN_MESSAGES = 2
MAX_MESSAGES = 4
CONTEXT_MESSAGES = 6


def is_generic_title(title: str | None) -> bool:
    if not title:
        return True
    return title.startswith("Chat ") or len(title) < 10 or title in GENERIC_CHAT_TITLES


def _as_messages(turns: list[ConversationTurn]) -> list[ChatMessage]:
    messages: list[ChatMessage] = []
    for turn in turns:
        messages.append(ChatMessage(role="user", content=turn.user_message))
        messages.append(ChatMessage(role="assistant", content=turn.assistant_message))
    return messages


def _first_user_message_title(messages: list[ChatMessage]) -> str:
    first = next((m.content for m in messages if m.role == "user"), "")
    return first[:TITLE_FALLBACK_LENGTH].strip() or "Chat"


class ChatTitleGenerator:
    def __init__(
        self,
        store: ConversationStore,
        llm: LLMProvider | None = None,
        model: str | None = None,
        temperature: float | None = 0.7,
        no_temperature_models: frozenset[str] | set[str] = NO_CUSTOM_TEMPERATURE_MODELS,
    ) -> None:
        self._store = store
        self._llm = llm
        self._model = model
        self._temperature = temperature
        self._no_temperature_models = no_temperature_models

    async def generate_title(self, messages: list[ChatMessage]) -> str:
        if self._llm is None:
            return _first_user_message_title(messages)

        conversation = "\n\n".join(
            f"{'User' if m.role == 'user' else 'Assistant'}: {m.content}"
            for m in messages[:CONTEXT_MESSAGES]
        )
        try:
            response = await self._llm.generate(
                [
                    ChatMessage(role="system", content=TITLE_SYSTEM_PROMPT),
                    ChatMessage(
                        role="user",
                        content=f"Generate a concise title for this conversation:\n\n{conversation}",
                    ),
                ],
                model=self._model,
                max_tokens=30,
                temperature=temperature_for(self._model, self._temperature, self._no_temperature_models),
            )
        except Exception as e:
            logger.warning("title_generation_failed", error=str(e))
            return _first_user_message_title(messages)

        title = response.content.strip().strip('"')
        if not title or len(title) > TITLE_MAX_LENGTH:
            return _first_user_message_title(messages)
        return title

    async def update_title_if_needed(self, chat_id: str, user_id: str) -> str | None:
        """Rename a generic session once it holds 2-4 messages. Returns the new title, if any."""
        session = await self._store.get_session(chat_id, user_id)
        if session is None or not is_generic_title(session.title):
            return None

        messages = _as_messages(await self._store.get_session_messages(chat_id))[:CONTEXT_MESSAGES]
        if not MIN_MESSAGES <= len(messages) <= MAX_MESSAGES:
            return None

        title = await self.generate_title(messages)
        await self._store.update_session_title(chat_id, title)
        logger.info("chat_title_updated", chat_id=chat_id, title=title)
        return title
