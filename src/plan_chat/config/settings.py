"""Central configuration via Pydantic Settings. All values driven by env vars."""

from __future__ import annotations

from pydantic_settings import BaseSettings

from plan_chat.config.constants import NO_CUSTOM_TEMPERATURE_MODELS


class Settings(BaseSettings):
    # API Keys
    openai_api_key: str = ""
    google_api_key: str = ""
    openai_base_url: str = ""  # optional gateway endpoint

    # LLM
    llm_provider: str = "openai"  # "openai" or "gemini"
    default_model: str = "gpt-4o-mini"
    classifier_model: str = ""  # falls back to default_model
    summary_model: str = ""  # falls back to default_model
    no_custom_temperature_models: str = ",".join(sorted(NO_CUSTOM_TEMPERATURE_MODELS))

    # Per-mode generation parameters
    takeoff_max_tokens: int = 500
    copilot_max_tokens: int = 1500
    modify_max_tokens: int = 3000
    takeoff_temperature: float = 0.3
    copilot_temperature: float = 0.6
    modify_temperature: float = 0.4
    classifier_max_tokens: int = 200

    # Embedding
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int | None = None  # model default when unset
    embedding_batch_size: int = 20

    # Retrieval
    semantic_chunk_limit: int = 12
    takeoff_item_limit: int = 50
    overview_item_limit: int = 200
    related_sheet_limit: int = 10
    target_match_threshold: float = 0.4

    # Plan text chunking
    chunk_max_chars: int = 900
    chunk_min_chars: int = 250

    # Conversation memory
    memory_window: int = 4
    memory_fetch_limit: int = 8
    summary_timeout_s: float = 20.0
    summary_max_tokens: int = 600

    # Modification detection
    detect_update_claims: bool = True
    update_claim_min_matches: int = 1

    # Storage paths
    sqlite_db_path: str = "data/plan_chat.db"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    log_json: bool = False

    model_config = {"env_file": ".env", "env_prefix": "PLAN_CHAT_"}

    @property
    def models_without_temperature(self) -> set[str]:
        return {m.strip() for m in self.no_custom_temperature_models.split(",") if m.strip()}

    def temperature_for(self, model: str | None, temperature: float | None) -> float | None:
        return temperature_for(model, temperature, self.models_without_temperature)


def temperature_for(
    model: str | None,
    temperature: float | None,
    no_temperature_models: frozenset[str] | set[str] = NO_CUSTOM_TEMPERATURE_MODELS,
) -> float | None:
    """The temperature to send, or ``None`` for models that only accept their default."""
    if model is not None and model in no_temperature_models:
        return None
    return temperature
