"""Protocol for LLM providers."""

from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel

from plan_chat.models.domain import ChatMessage, LLMResponse


class LLMProvider(Protocol):
    async def generate(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        max_tokens: int = 1500,
        temperature: float | None = None,
    ) -> LLMResponse: ...

    async def generate_structured(
        self,
        messages: list[ChatMessage],
        response_schema: type[BaseModel],
        model: str | None = None,
        max_tokens: int = 200,
    ) -> BaseModel: ...
