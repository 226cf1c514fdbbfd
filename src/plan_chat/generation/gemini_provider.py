"""Google Gemini LLM provider using the google-genai SDK."""

from __future__ import annotations

import json

from google import genai
from google.genai import types
from pydantic import BaseModel

from plan_chat.exceptions import ClassificationError, GenerationError
from plan_chat.models.domain import ChatMessage, LLMResponse
from plan_chat.observability.logger import get_logger

logger = get_logger("gemini")


def _to_contents(messages: list[ChatMessage]) -> tuple[str | None, list[types.Content]]:
    """Split chat messages into a system instruction and Gemini conversation contents."""
    system_parts = [m.content for m in messages if m.role == "system"]
    contents = [
        types.Content(
            role="model" if m.role == "assistant" else "user",
            parts=[types.Part(text=m.content)],
        )
        for m in messages
        if m.role != "system"
    ]
    return ("\n\n".join(system_parts) or None), contents


class GeminiProvider:
    def __init__(self, api_key: str, model: str = "gemini-2.0-flash") -> None:
        self._client = genai.Client(api_key=api_key)
        self._model = model

    async def generate(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        max_tokens: int = 1500,
        temperature: float | None = None,
    ) -> LLMResponse:
        system, contents = _to_contents(messages)
        try:
            config = types.GenerateContentConfig(max_output_tokens=max_tokens)
            if temperature is not None:
                config.temperature = temperature
            if system:
                config.system_instruction = system

            response = await self._client.aio.models.generate_content(
                model=model or self._model,
                contents=contents,
                config=config,
            )
        except Exception as e:
            raise GenerationError(f"Gemini generation failed: {e}") from e

        finish_reason = None
        if response.candidates and response.candidates[0].finish_reason:
            finish_reason = str(response.candidates[0].finish_reason)
        return LLMResponse(content=response.text or "", finish_reason=finish_reason)

    async def generate_structured(
        self,
        messages: list[ChatMessage],
        response_schema: type[BaseModel],
        model: str | None = None,
        max_tokens: int = 200,
    ) -> BaseModel:
        system, contents = _to_contents(messages)
        try:
            config = types.GenerateContentConfig(
                temperature=0.0,
                max_output_tokens=max_tokens,
                response_mime_type="application/json",
            )
            if system:
                config.system_instruction = system

            response = await self._client.aio.models.generate_content(
                model=model or self._model,
                contents=contents,
                config=config,
            )
        except Exception as e:
            raise GenerationError(f"Gemini structured generation failed: {e}") from e

        try:
            return response_schema.model_validate(json.loads(response.text or "{}"))
        except ValueError as e:
            raise ClassificationError(f"Gemini returned malformed structured output: {e}") from e
