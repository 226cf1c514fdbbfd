"""Core domain objects used throughout the pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from datetime import datetime, timezone
from typing import Any

from plan_chat.models.schemas import QuestionClassification


@dataclass
class SheetMetadata:
    sheet_id: str | None = None
    sheet_title: str | None = None


@dataclass
class TextChunk:
    chunk_id: str
    snippet_text: str
    page_number: int | None = None
    sheet_metadata: SheetMetadata | None = None
    similarity: float = 0.0


@dataclass
class PageText:
    plan_id: str
    page_number: int
    text: str


@dataclass
class NormalizedTakeoffItem:
    id: str
    category: str | None = None
    subcategory: str | None = None
    name: str | None = None
    description: str | None = None
    quantity: float | None = None
    unit: str | None = None
    unit_cost: float | None = None
    total_cost: float | None = None
    location: str | None = None
    page_number: int | None = None
    page_reference: str | None = None
    notes: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @property
    def display_name(self) -> str:
        return self.name or self.description or "Item"


ITEM_FIELD_NAMES = frozenset(f.name for f in fields(NormalizedTakeoffItem))


@dataclass
class TakeoffRecord:
    takeoff_id: str
    plan_id: str
    user_id: str | None
    items: Any  # raw, producer-specific payload
    created_at: datetime | None = None


@dataclass
class RelatedSheet:
    page_number: int
    sheet_id: str | None = None
    title: str | None = None
    discipline: str | None = None
    sheet_type: str | None = None


@dataclass
class PlanRecord:
    plan_id: str
    title: str | None = None
    file_name: str | None = None
    job_id: str | None = None


@dataclass
class JobRecord:
    job_id: str
    name: str | None = None
    location: str | None = None


@dataclass
class QuantityCategory:
    category: str
    total: float
    unit: str | None = None


@dataclass
class CostCategory:
    category: str
    total: float


@dataclass
class ProjectMetadata:
    job_name: str | None
    plan_title: str | None
    plan_file_name: str | None
    address: str | None
    disciplines: list[str] = field(default_factory=list)
    major_quantity_categories: list[QuantityCategory] = field(default_factory=list)
    major_cost_categories: list[CostCategory] = field(default_factory=list)
    sheet_index_summary: list[RelatedSheet] = field(default_factory=list)


@dataclass
class RetrievalResult:
    semantic_chunks: list[TextChunk] = field(default_factory=list)
    takeoff_items: list[NormalizedTakeoffItem] = field(default_factory=list)
    related_sheets: list[RelatedSheet] = field(default_factory=list)
    project_metadata: ProjectMetadata | None = None


@dataclass
class ConversationTurn:
    id: str
    plan_id: str
    user_id: str
    user_message: str
    assistant_message: str
    job_id: str | None = None
    chat_id: str | None = None
    summary: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: dict = field(default_factory=dict)


@dataclass
class ConversationContext:
    recent_turns: list[ConversationTurn] = field(default_factory=list)
    compressed_summary: str | None = None


@dataclass
class ChatSession:
    chat_id: str
    plan_id: str
    user_id: str
    title: str | None = None


@dataclass
class ConversationExchange:
    user: str
    assistant: str


@dataclass
class TakeoffContextItem:
    id: str
    name: str
    category: str
    quantity: float | None = None
    unit: str | None = None
    unit_cost: float | None = None
    cost_total: float | None = None
    location: str | None = None
    page_number: int | None = None


@dataclass
class TakeoffSummary:
    total_items: int
    total_quantity: float | None = None
    total_cost: float | None = None


@dataclass
class TakeoffContext:
    items: list[TakeoffContextItem] = field(default_factory=list)
    summary: TakeoffSummary = field(default_factory=lambda: TakeoffSummary(total_items=0))


@dataclass
class BlueprintChunk:
    text: str
    page_number: int | None = None
    sheet_name: str | None = None
    similarity: float | None = None


@dataclass
class BlueprintContext:
    chunks: list[BlueprintChunk] = field(default_factory=list)
    summary: str = "No relevant blueprint snippets found"


@dataclass
class PlanContext:
    query: str
    classification: QuestionClassification
    recent_conversation: list[ConversationExchange] = field(default_factory=list)
    project_metadata: ProjectMetadata | None = None
    takeoff_context: TakeoffContext = field(default_factory=TakeoffContext)
    blueprint_context: BlueprintContext = field(default_factory=BlueprintContext)
    related_sheets: list[RelatedSheet] = field(default_factory=list)
    global_scope_summary: str = ""
    notes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(replace(self, classification=None))
        data["classification"] = self.classification.model_dump(mode="json")
        return data


@dataclass
class TakeoffModification:
    action: str  # "add", "update", "remove"
    item: dict[str, Any] | None = None
    item_id: str | None = None
    reason: str = ""

    @classmethod
    def add(cls, item: dict[str, Any], reason: str = "") -> TakeoffModification:
        return cls(action="add", item=item, reason=reason)

    @classmethod
    def update(cls, item_id: str, item: dict[str, Any], reason: str = "") -> TakeoffModification:
        return cls(action="update", item=item, item_id=item_id, reason=reason)

    @classmethod
    def remove(cls, item_id: str, reason: str = "") -> TakeoffModification:
        return cls(action="remove", item_id=item_id, reason=reason)


@dataclass
class ParsedModification:
    modifications: list[TakeoffModification]
    explanation: str
    needs_confirmation: bool = False


@dataclass
class ModificationResult:
    success: bool
    modifications: list[TakeoffModification]
    updated_items: list[NormalizedTakeoffItem]
    message: str
    warnings: list[str] = field(default_factory=list)


@dataclass
class MissingCategory:
    category: str
    evidence: list[str]
    suggested_items: list[str] = field(default_factory=list)


@dataclass
class MissingMeasurement:
    item: str
    needed_measurements: list[str]
    guidance: str


@dataclass
class MissingScopeAnalysis:
    missing_categories: list[MissingCategory] = field(default_factory=list)
    missing_measurements: list[MissingMeasurement] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


@dataclass
class ChatMessage:
    role: str  # "system", "user", "assistant"
    content: str


@dataclass
class LLMResponse:
    content: str
    finish_reason: str | None = None


@dataclass
class IndexResult:
    plan_id: str
    chunk_count: int
    page_count: int
    warnings: list[str] = field(default_factory=list)
