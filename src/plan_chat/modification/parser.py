"""Extraction of takeoff modifications from answer or question text.

Parsing is a chain of strategies. Each one reports ``none``, ``partial`` or
``full``; the chain stops at the first ``full`` result and otherwise
accumulates what the ``partial`` ones found. The fenced-JSON strategy is
exact, the natural-language one is best effort.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Protocol

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from plan_chat.config.constants import SMALL_NUMBER_WORDS
from plan_chat.models.domain import NormalizedTakeoffItem, ParsedModification, TakeoffModification
from plan_chat.models.schemas import ModificationIntent, QuestionClassification, QuestionType
from plan_chat.observability.logger import get_logger
from plan_chat.retrieval.fuzzy import normalize_string, strip_plural
from plan_chat.retrieval.normalization import DEFAULT_CATEGORY, parse_number

logger = get_logger("modification_parser")

UPDATE_FIELDS = ("quantity", "unit_cost", "unit", "location", "page_number", "description")

# Descriptions that are sentence fragments rather than takeoff items
SKIP_WORDS = re.compile(
    r"\b(?:takeoff|estimate|items?|quantities|costs|get them|priced out|and costs|missing|still)\b"
)
FALSE_POSITIVE_ADDS = ("quantities", "costs", "get them", "priced out", "and costs")

TYPO_FIXES = {"extingushers": "extinguishers", "extingusher": "extinguisher"}

_LEADING_ARTICLES = re.compile(r"^(?:the|a|an|those|these|some)\s+", re.IGNORECASE)
_FENCED_BLOCK = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)

_NUMBER = r"\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?|" + "|".join(SMALL_NUMBER_WORDS)
_ITEM = r"[^,.;:\n]+?"
_ITEM_END = r"(?=\s+(?:at|@|for|to|in|from|with)\b|[,.;:\n]|$)"

UPDATE_CLAIM_PATTERNS = (
    re.compile(
        r"(?:updated|update|updating|added|add|adding|set|setting)\s+[^,.]+?\s+(?:to|with|at)\s+"
        r"(?:a\s+)?(?:quantity\s+of\s+)?\d+",
        re.IGNORECASE,
    ),
    re.compile(
        r"(?:I've|I'll|I will)\s+(?:updated|update|add|added|set|setting)\s+[^,.]+",
        re.IGNORECASE,
    ),
)

COST_PATTERNS = (
    re.compile(r"(?:at|@|\$)\s*(\d+(?:\.\d+)?)\s*(?:each|per|ea)\b", re.IGNORECASE),
    re.compile(r"\$\s*(\d+(?:\.\d+)?)\s*(?:each|per|ea)\b", re.IGNORECASE),
    re.compile(r"cost.*?\$\s*(\d+(?:\.\d+)?)", re.IGNORECASE),
    re.compile(r"slotted.*?\$\s*(\d+(?:\.\d+)?)", re.IGNORECASE),
)


def detect_update_claims(text: str) -> int:
    """Number of places where the text claims a change was made to the takeoff."""
    return sum(len(pattern.findall(text)) for pattern in UPDATE_CLAIM_PATTERNS)


def parse_quantity(token: str | None) -> float | None:
    if not token:
        return None
    token = token.lower()
    if token in SMALL_NUMBER_WORDS:
        return float(SMALL_NUMBER_WORDS[token])
    try:
        return float(token.replace(",", ""))
    except ValueError:
        return None


def normalize_for_matching(text: str) -> str:
    lowered = text.lower()
    for typo, fixed in TYPO_FIXES.items():
        lowered = lowered.replace(typo, fixed)
    return " ".join(strip_plural(w) for w in normalize_string(lowered).split())


def find_existing_item(
    description: str, items: list[NormalizedTakeoffItem]
) -> NormalizedTakeoffItem | None:
    """Identity match: normalized equality, containment, or at least half the words shared."""
    wanted = normalize_for_matching(description)
    if not wanted:
        return None
    wanted_words = [w for w in wanted.split() if len(w) > 2]

    for item in items:
        existing = normalize_for_matching(item.name or item.description or "")
        if not existing:
            continue
        if existing == wanted or existing in wanted or wanted in existing:
            return item
        existing_words = [w for w in existing.split() if len(w) > 2]
        if wanted_words and existing_words:
            shared = [w for w in wanted_words if w in existing_words]
            if len(shared) / max(len(wanted_words), len(existing_words)) >= 0.5:
                return item
    return None


def clean_description(text: str) -> str:
    text = text.strip().strip("*`\"' ")
    return _LEADING_ARTICLES.sub("", text).strip()


class ParseStatus(str, Enum):
    NONE = "none"
    PARTIAL = "partial"
    FULL = "full"


@dataclass
class StrategyResult:
    status: ParseStatus
    modifications: list[TakeoffModification] = field(default_factory=list)


class ParseStrategy(Protocol):
    name: str

    def parse(
        self,
        text: str,
        classification: QuestionClassification,
        items: list[NormalizedTakeoffItem],
    ) -> StrategyResult: ...


def _add_or_update(
    description: str,
    quantity: float | None,
    unit_cost: float | None,
    classification: QuestionClassification,
    items: list[NormalizedTakeoffItem],
    reason: str,
) -> TakeoffModification:
    existing = find_existing_item(description, items)
    if existing is not None:
        data: dict[str, Any] = {}
        if quantity is not None:
            data["quantity"] = quantity
            if not existing.unit:
                data["unit"] = "EA"
        if unit_cost is not None:
            data["unit_cost"] = unit_cost
        return TakeoffModification.update(existing.id, data, reason="User requested to update this item")

    item: dict[str, Any] = {
        "description": description,
        "category": classification.targets[0] if classification.targets else DEFAULT_CATEGORY,
    }
    if quantity is not None:
        item["quantity"] = quantity
        item["unit"] = "EA"
    if unit_cost is not None:
        item["unit_cost"] = unit_cost
    return TakeoffModification.add(item, reason=reason)


class _ItemPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    category: str | None = None
    name: str | None = None
    description: str | None = None
    quantity: float | None = None
    unit: str | None = None
    unit_cost: float | None = None
    location: str | None = None
    page_number: int | None = None
    notes: str | None = None

    @field_validator("quantity", "unit_cost", mode="before")
    @classmethod
    def _lenient_number(cls, value: Any) -> float | None:
        return parse_number(value)

    @field_validator("page_number", mode="before")
    @classmethod
    def _lenient_page(cls, value: Any) -> int | None:
        number = parse_number(value)
        if number is None or number <= 0 or not number.is_integer():
            return None
        return int(number)


class _ModificationPayload(BaseModel):
    action: Literal["add", "update", "remove"]
    item_id: str | None = Field(default=None, validation_alias=AliasChoices("item_id", "itemId", "id"))
    item: _ItemPayload | None = None
    reason: str | None = None


class JsonBlockStrategy:
    """A fenced ``{"modifications": [...]}`` block, one entry per change."""

    name = "json_block"

    def parse(
        self,
        text: str,
        classification: QuestionClassification,
        items: list[NormalizedTakeoffItem],
    ) -> StrategyResult:
        for block in _FENCED_BLOCK.findall(text):
            try:
                data = json.loads(block)
            except ValueError:
                continue
            entries = data.get("modifications") if isinstance(data, dict) else None
            if not isinstance(entries, list):
                continue

            modifications = []
            for entry in entries:
                try:
                    payload = _ModificationPayload.model_validate(entry)
                except ValidationError as e:
                    logger.debug("modification_entry_invalid", error=str(e))
                    continue
                modification = self._convert(payload, classification, items)
                if modification is not None:
                    modifications.append(modification)

            if modifications:
                return StrategyResult(ParseStatus.FULL, modifications)
        return StrategyResult(ParseStatus.NONE)

    @staticmethod
    def _convert(
        payload: _ModificationPayload,
        classification: QuestionClassification,
        items: list[NormalizedTakeoffItem],
    ) -> TakeoffModification | None:
        if payload.action == "remove":
            if not payload.item_id:
                return None
            return TakeoffModification.remove(payload.item_id, payload.reason or "AI suggested removal")

        if payload.item is None:
            return None
        fields = payload.item.model_dump(exclude_none=True)

        if payload.action == "update":
            if not payload.item_id:
                return None
            return TakeoffModification.update(
                payload.item_id, fields, payload.reason or "AI suggested update"
            )

        description = payload.item.description or payload.item.name
        if not description:
            return None
        existing = find_existing_item(description, items)
        if existing is not None:
            data = {k: v for k, v in fields.items() if k in UPDATE_FIELDS}
            return TakeoffModification.update(
                existing.id, data, payload.reason or "AI updated existing item with quantities/costs"
            )

        fields.pop("name", None)
        fields["description"] = description
        fields.setdefault(
            "category", classification.targets[0] if classification.targets else DEFAULT_CATEGORY
        )
        return TakeoffModification.add(fields, payload.reason or "AI suggested addition")


@dataclass(frozen=True)
class PatternFamily:
    name: str
    pattern: re.Pattern
    action: str  # "upsert" or "remove"
    intents: frozenset[ModificationIntent]


_UPSERT_INTENTS = frozenset({ModificationIntent.ADD, ModificationIntent.UPDATE})
_REMOVE_INTENTS = frozenset({ModificationIntent.REMOVE})

# Earlier families win when matches overlap.
PATTERN_FAMILIES = (
    PatternFamily(
        "update_to",
        re.compile(
            rf"\b(?:updated|update|updating|set|setting|changed|change)\s+(?:the\s+)?(?P<item>{_ITEM})"
            rf"(?:\s+on\s+{_ITEM})?\s+(?:to|at|with)\s+(?:a\s+)?(?:quantity\s+of\s+)?"
            rf"(?P<qty>{_NUMBER})\b",
            re.IGNORECASE,
        ),
        "upsert",
        _UPSERT_INTENTS,
    ),
    PatternFamily(
        "add_n",
        re.compile(
            rf"\b(?:add|adding|added|include|including|included)\s+(?:those\s+|these\s+|the\s+)?"
            rf"(?P<qty>{_NUMBER})\s+(?:of\s+)?(?:the\s+)?(?P<item>{_ITEM}){_ITEM_END}",
            re.IGNORECASE,
        ),
        "upsert",
        _UPSERT_INTENTS,
    ),
    PatternFamily(
        "n_to_takeoff",
        re.compile(
            rf"\b(?P<qty>{_NUMBER})\s+(?P<item>{_ITEM})\s+(?:to|for|in)\s+(?:the\s+)?takeoff\b",
            re.IGNORECASE,
        ),
        "upsert",
        _UPSERT_INTENTS,
    ),
    PatternFamily(
        "add_item",
        re.compile(
            rf"\b(?:add|adding|added|include|including)\s+(?P<item>{_ITEM}){_ITEM_END}",
            re.IGNORECASE,
        ),
        "upsert",
        _UPSERT_INTENTS,
    ),
    PatternFamily(
        "remove",
        re.compile(
            rf"\b(?:remove|removed|removing|delete|deleted|exclude|shouldn't include|should not include)"
            rf"\s+(?P<item>{_ITEM}){_ITEM_END}",
            re.IGNORECASE,
        ),
        "remove",
        _REMOVE_INTENTS,
    ),
)


def _find_cost(text: str, start: int, end: int) -> float | None:
    window = text[max(0, start - 100) : min(len(text), end + 200)]
    for pattern in COST_PATTERNS:
        match = pattern.search(window)
        if match:
            return float(match.group(1))
    return None


class NaturalLanguageStrategy:
    """Regex families over prose such as "updated the fire extinguishers to a quantity of 2"."""

    name = "natural_language"

    def __init__(self, families: tuple[PatternFamily, ...] = PATTERN_FAMILIES) -> None:
        self._families = families

    def parse(
        self,
        text: str,
        classification: QuestionClassification,
        items: list[NormalizedTakeoffItem],
    ) -> StrategyResult:
        intent = classification.modification_intent
        claimed: list[tuple[int, int]] = []
        modifications: list[TakeoffModification] = []

        for family in self._families:
            if intent not in family.intents:
                continue
            for match in family.pattern.finditer(text):
                start, end = match.span()
                if any(start < c_end and c_start < end for c_start, c_end in claimed):
                    continue
                modification = self._convert(family, match, text, classification, items)
                if modification is None:
                    continue
                claimed.append((start, end))
                modifications.append(modification)

        if not modifications:
            return StrategyResult(ParseStatus.NONE)
        return StrategyResult(ParseStatus.PARTIAL, modifications)

    @staticmethod
    def _convert(
        family: PatternFamily,
        match: re.Match,
        text: str,
        classification: QuestionClassification,
        items: list[NormalizedTakeoffItem],
    ) -> TakeoffModification | None:
        description = clean_description(match.group("item"))
        quantity = parse_quantity(match.groupdict().get("qty"))

        if quantity is None:
            first, _, rest = description.partition(" ")
            if first.lower() in SMALL_NUMBER_WORDS and rest:
                quantity = float(SMALL_NUMBER_WORDS[first.lower()])
                description = clean_description(rest)

        if len(description) <= 3 or SKIP_WORDS.search(description.lower()):
            return None

        if family.action == "remove":
            existing = find_existing_item(description, items)
            if existing is None:
                return None
            return TakeoffModification.remove(existing.id, "User requested to remove this item")

        unit_cost = _find_cost(text, *match.span())
        return _add_or_update(
            description, quantity, unit_cost, classification, items, "User requested to add this item"
        )


def should_parse(classification: QuestionClassification) -> bool:
    return classification.question_type == QuestionType.TAKEOFF_MODIFY and (
        classification.modification_intent
        not in (ModificationIntent.NONE, ModificationIntent.ANALYZE_MISSING)
    )


class ModificationParser:
    def __init__(self, strategies: list[ParseStrategy] | None = None) -> None:
        self._strategies = strategies or [JsonBlockStrategy(), NaturalLanguageStrategy()]

    def parse(
        self,
        text: str,
        classification: QuestionClassification,
        current_items: list[NormalizedTakeoffItem],
    ) -> ParsedModification:
        modifications: list[TakeoffModification] = []
        if not text or not should_parse(classification):
            return ParsedModification(modifications=modifications, explanation=text)

        for strategy in self._strategies:
            result = strategy.parse(text, classification, current_items)
            if result.status == ParseStatus.FULL:
                modifications = result.modifications
                break
            if result.status == ParseStatus.PARTIAL:
                modifications.extend(result.modifications)

        logger.debug("modifications_parsed", count=len(modifications))
        return ParsedModification(modifications=modifications, explanation=text)


def deduplicate_modifications(modifications: list[TakeoffModification]) -> list[TakeoffModification]:
    """One update per item id (non-null fields merged), one add per description, removals kept."""
    updates: dict[str, TakeoffModification] = {}
    for mod in modifications:
        if mod.action != "update" or not mod.item_id:
            continue
        data = {k: v for k, v in (mod.item or {}).items() if v is not None}
        if mod.item_id in updates:
            updates[mod.item_id].item.update(data)
        elif data:
            updates[mod.item_id] = TakeoffModification.update(mod.item_id, data, mod.reason)

    result = list(updates.values())
    seen_adds: set[str] = set()
    seen_removes: set[str] = set()
    for mod in modifications:
        if mod.action == "add" and mod.item:
            raw = str(mod.item.get("description") or "").lower()
            description = normalize_for_matching(raw)
            if len(description) <= 3 or description in seen_adds:
                continue
            if any(phrase in raw for phrase in FALSE_POSITIVE_ADDS):
                continue
            seen_adds.add(description)
            result.append(mod)
        elif mod.action == "remove" and mod.item_id and mod.item_id not in seen_removes:
            seen_removes.add(mod.item_id)
            result.append(mod)
    return result
