"""Construct the configured LLM provider and embedder once at process start."""

from __future__ import annotations

from plan_chat.config.settings import Settings
from plan_chat.embeddings.openai_embedder import OpenAIEmbedder
from plan_chat.exceptions import ConfigurationError
from plan_chat.generation.gemini_provider import GeminiProvider
from plan_chat.generation.openai_provider import OpenAIProvider
from plan_chat.protocols.llm import LLMProvider


def create_llm_provider(settings: Settings) -> LLMProvider:
    provider = settings.llm_provider.strip().lower()
    if provider == "openai":
        if not settings.openai_api_key:
            raise ConfigurationError("PLAN_CHAT_OPENAI_API_KEY is not set")
        return OpenAIProvider(
            api_key=settings.openai_api_key,
            model=settings.default_model,
            base_url=settings.openai_base_url,
        )
    if provider == "gemini":
        if not settings.google_api_key:
            raise ConfigurationError("PLAN_CHAT_GOOGLE_API_KEY is not set")
        return GeminiProvider(api_key=settings.google_api_key, model=settings.default_model)
    raise ConfigurationError(f"Unknown LLM provider: {settings.llm_provider!r}")


def create_embedder(settings: Settings) -> OpenAIEmbedder:
    if not settings.openai_api_key:
        raise ConfigurationError("PLAN_CHAT_OPENAI_API_KEY is not set; embeddings are unavailable")
    return OpenAIEmbedder(
        api_key=settings.openai_api_key,
        model=settings.embedding_model,
        batch_size=settings.embedding_batch_size,
        dimensions=settings.embedding_dimensions,
        base_url=settings.openai_base_url,
    )
