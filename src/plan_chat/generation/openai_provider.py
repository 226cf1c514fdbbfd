"""OpenAI chat-completions LLM provider."""

from __future__ import annotations

import json

from openai import AsyncOpenAI
from pydantic import BaseModel

from plan_chat.exceptions import ClassificationError, GenerationError
from plan_chat.models.domain import ChatMessage, LLMResponse
from plan_chat.observability.logger import get_logger

logger = get_logger("openai")


class OpenAIProvider:
    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
    ) -> None:
        self._client = AsyncOpenAI(api_key=api_key, base_url=base_url or None)
        self._model = model

    async def generate(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        max_tokens: int = 1500,
        temperature: float | None = None,
    ) -> LLMResponse:
        params = {
            "model": model or self._model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "max_completion_tokens": max_tokens,
        }
        # Some reasoning models only accept the default temperature.
        if temperature is not None:
            params["temperature"] = temperature

        try:
            response = await self._client.chat.completions.create(**params)
        except Exception as e:
            raise GenerationError(f"OpenAI generation failed: {e}") from e

        choice = response.choices[0] if response.choices else None
        content = (choice.message.content if choice else None) or ""
        finish_reason = choice.finish_reason if choice else None
        logger.debug("openai_generated", model=params["model"], chars=len(content), finish_reason=finish_reason)
        return LLMResponse(content=content, finish_reason=finish_reason)

    async def generate_structured(
        self,
        messages: list[ChatMessage],
        response_schema: type[BaseModel],
        model: str | None = None,
        max_tokens: int = 200,
    ) -> BaseModel:
        try:
            response = await self._client.chat.completions.create(
                model=model or self._model,
                messages=[{"role": m.role, "content": m.content} for m in messages],
                max_completion_tokens=max_tokens,
                response_format={"type": "json_object"},
            )
        except Exception as e:
            raise GenerationError(f"OpenAI structured generation failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        try:
            return response_schema.model_validate(json.loads(content or "{}"))
        except ValueError as e:
            raise ClassificationError(f"OpenAI returned malformed structured output: {e}") from e
