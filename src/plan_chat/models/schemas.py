"""Pydantic models for classification output and API request/response serialization."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class QuestionType(str, Enum):
    TAKEOFF_COST = "TAKEOFF_COST"
    TAKEOFF_QUANTITY = "TAKEOFF_QUANTITY"
    TAKEOFF_MODIFY = "TAKEOFF_MODIFY"
    TAKEOFF_ANALYZE = "TAKEOFF_ANALYZE"
    PAGE_CONTENT = "PAGE_CONTENT"
    BLUEPRINT_CONTEXT = "BLUEPRINT_CONTEXT"
    COMBINED = "COMBINED"
    OTHER = "OTHER"


class ModificationIntent(str, Enum):
    ADD = "add"
    REMOVE = "remove"
    UPDATE = "update"
    ANALYZE_MISSING = "analyze_missing"
    NONE = "none"


class ResponseMode(str, Enum):
    TAKEOFF = "TAKEOFF"
    COPILOT = "COPILOT"
    TAKEOFF_MODIFY = "TAKEOFF_MODIFY"


MUTATING_QUESTION_TYPES = frozenset({QuestionType.TAKEOFF_MODIFY, QuestionType.TAKEOFF_ANALYZE})
NUMERIC_QUESTION_TYPES = frozenset({QuestionType.TAKEOFF_COST, QuestionType.TAKEOFF_QUANTITY})


class QuestionClassification(BaseModel):
    """Immutable classifier output consumed by every downstream stage."""

    model_config = ConfigDict(frozen=True)

    question_type: QuestionType = QuestionType.OTHER
    targets: list[str] = Field(default_factory=list)
    pages: list[int] | None = None
    levels: list[str] | None = None
    strict_takeoff_only: bool = False
    modification_intent: ModificationIntent = ModificationIntent.NONE

    @model_validator(mode="before")
    @classmethod
    def _mutations_are_never_strict(cls, data: Any) -> Any:
        # Mutation and analysis requests always route to the modification template.
        if isinstance(data, dict):
            data = dict(data)
            data["question_type"] = _parse_question_type(data.get("question_type"))
            if data["question_type"] in MUTATING_QUESTION_TYPES:
                data["strict_takeoff_only"] = False
            elif "strict_takeoff_only" in data:
                data["strict_takeoff_only"] = bool(data["strict_takeoff_only"])
        return data

    @field_validator("modification_intent", mode="before")
    @classmethod
    def _coerce_intent(cls, value: Any) -> Any:
        if value is None:
            return ModificationIntent.NONE
        if isinstance(value, ModificationIntent):
            return value
        try:
            return ModificationIntent(str(value).strip().lower())
        except ValueError:
            return ModificationIntent.NONE

    @field_validator("targets", mode="before")
    @classmethod
    def _coerce_targets(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        return [str(t).strip() for t in value if t is not None and str(t).strip()]

    @field_validator("pages", mode="before")
    @classmethod
    def _coerce_pages(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return None
        pages: list[int] = []
        for page in value:
            try:
                pages.append(int(page))
            except (TypeError, ValueError):
                continue
        return pages or None

    @field_validator("levels", mode="before")
    @classmethod
    def _coerce_levels(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return None
        return [str(level) for level in value if level]


def _parse_question_type(value: Any) -> QuestionType:
    if isinstance(value, QuestionType):
        return value
    try:
        return QuestionType(str(value).strip().upper())
    except ValueError:
        return QuestionType.OTHER


class PlanChatRequest(BaseModel):
    plan_id: str
    user_id: str
    question: str = Field(min_length=1)
    job_id: str | None = None
    model: str | None = None
    chat_id: str | None = None


class RetrievalStats(BaseModel):
    semantic_chunks: int
    takeoff_items: int
    related_sheets: int


class AnswerMetadata(BaseModel):
    retrieval_stats: RetrievalStats
    context_size: int
    modifications_applied: bool = False
    latency_ms: float = 0.0
    trace_id: str | None = None
    stage_durations_ms: dict[str, float] = Field(default_factory=dict)


class PlanChatResponse(BaseModel):
    answer: str
    classification: QuestionClassification
    mode: ResponseMode
    metadata: AnswerMetadata


class ReindexResponse(BaseModel):
    plan_id: str
    chunk_count: int
    page_count: int
    warnings: list[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str
    llm_configured: bool
    indexer_configured: bool
