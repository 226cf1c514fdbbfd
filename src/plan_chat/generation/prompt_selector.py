"""Template selection and rendering of a PlanContext into the final user prompt.

Both entry points are pure string functions. Template priority:
strict flag, then modification/analysis types, then numeric types, else copilot.
"""

from __future__ import annotations

import json
from dataclasses import asdict

from plan_chat.generation.prompt_templates import (
    CLOSING_INSTRUCTIONS,
    COPILOT_MODE_SYSTEM_PROMPT,
    MODIFY_CLOSING_INSTRUCTIONS,
    MODIFY_MODE_SYSTEM_PROMPT,
    STRICT_CLOSING_INSTRUCTIONS,
    TAKEOFF_MODE_SYSTEM_PROMPT,
    USER_PROMPT_HEADER,
)
from plan_chat.models.domain import (
    BlueprintChunk,
    ConversationExchange,
    PlanContext,
    ProjectMetadata,
    RelatedSheet,
    TakeoffContext,
    TakeoffContextItem,
)
from plan_chat.models.schemas import (
    MUTATING_QUESTION_TYPES,
    NUMERIC_QUESTION_TYPES,
    QuestionClassification,
    ResponseMode,
)

SYSTEM_PROMPTS = {
    ResponseMode.TAKEOFF: TAKEOFF_MODE_SYSTEM_PROMPT,
    ResponseMode.COPILOT: COPILOT_MODE_SYSTEM_PROMPT,
    ResponseMode.TAKEOFF_MODIFY: MODIFY_MODE_SYSTEM_PROMPT,
}

CLOSINGS = {
    ResponseMode.TAKEOFF: STRICT_CLOSING_INSTRUCTIONS,
    ResponseMode.COPILOT: CLOSING_INSTRUCTIONS,
    ResponseMode.TAKEOFF_MODIFY: MODIFY_CLOSING_INSTRUCTIONS,
}

# Unit guesses for items whose producer left the unit blank, first keyword wins
UNIT_HINTS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("CY", ("concrete", "excavation", "backfill", "gravel", "fill")),
    ("SF", ("roof", "drywall", "flooring", "paint", "siding", "sheathing", "insulation", "slab", "tile")),
    ("LF", ("trim", "baseboard", "fence", "pipe", "conduit", "gutter", "flashing", "railing", "curb")),
)


def select_mode(classification: QuestionClassification) -> ResponseMode:
    if classification.strict_takeoff_only:
        return ResponseMode.TAKEOFF
    if classification.question_type in MUTATING_QUESTION_TYPES:
        return ResponseMode.TAKEOFF_MODIFY
    if classification.question_type in NUMERIC_QUESTION_TYPES:
        return ResponseMode.TAKEOFF
    return ResponseMode.COPILOT


def mode_reason(classification: QuestionClassification) -> str:
    if classification.strict_takeoff_only:
        return "strict_takeoff_only flag"
    return f"question_type: {classification.question_type.value}"


def select_system_prompt(classification: QuestionClassification) -> str:
    return SYSTEM_PROMPTS[select_mode(classification)]


def format_number(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}".rstrip("0").rstrip(".")


def format_currency(value: float) -> str:
    return f"${value:,.2f}"


def infer_unit(item: TakeoffContextItem) -> tuple[str | None, bool]:
    """Returns (unit, inferred)."""
    if item.unit:
        return item.unit.upper(), False
    text = f"{item.name} {item.category}".lower()
    for unit, keywords in UNIT_HINTS:
        if any(k in text for k in keywords):
            return unit, True
    return None, False


def format_quantity(value: float, unit: str | None) -> str:
    return f"{format_number(value)} {unit}" if unit else format_number(value)


def format_takeoff_item(item: TakeoffContextItem) -> str:
    line = f"- {item.name} [{item.category}]"
    if item.quantity is not None:
        unit, inferred = infer_unit(item)
        line += f": {format_quantity(item.quantity, unit)}"
        if inferred:
            line += " (unit inferred)"
    if item.unit_cost is not None:
        line += f" @ {format_currency(item.unit_cost)}"
    if item.cost_total is not None:
        line += f" = {format_currency(item.cost_total)}"
    where = [part for part in (item.location, f"page {item.page_number}" if item.page_number else None) if part]
    if where:
        line += f" ({', '.join(where)})"
    return f"{line} [ID: {item.id}]"


def _render_metadata(metadata: ProjectMetadata) -> str:
    return "PROJECT METADATA:\n" + json.dumps(asdict(metadata), separators=(",", ":"), default=str)


def _render_conversation(turns: list[ConversationExchange]) -> str:
    lines = ["CONVERSATION HISTORY:"]
    for turn in turns:
        lines.append(f"User: {turn.user}")
        lines.append(f"Assistant: {turn.assistant}")
    return "\n".join(lines)


def _render_takeoff(takeoff: TakeoffContext) -> str:
    summary = takeoff.summary
    lines = [f"TAKEOFF ITEMS ({summary.total_items}):"]
    lines.extend(format_takeoff_item(item) for item in takeoff.items)
    totals = [f"{summary.total_items} items"]
    if summary.total_quantity is not None:
        totals.append(f"total quantity {format_number(summary.total_quantity)}")
    if summary.total_cost is not None:
        totals.append(f"total cost {format_currency(summary.total_cost)}")
    lines.append(f"Takeoff summary: {', '.join(totals)}")
    return "\n".join(lines)


def _render_blueprint(chunks: list[BlueprintChunk], summary: str) -> str:
    by_page: dict[int | None, list[BlueprintChunk]] = {}
    for chunk in chunks:
        by_page.setdefault(chunk.page_number, []).append(chunk)

    lines = [f"BLUEPRINT SNIPPETS ({summary}):"]
    for page in sorted(by_page, key=lambda p: (p is None, p or 0)):
        group = by_page[page]
        sheet = next((c.sheet_name for c in group if c.sheet_name), None)
        heading = f"Page {page}" if page is not None else "Unknown page"
        lines.append(f"{heading} ({sheet}):" if sheet else f"{heading}:")
        lines.extend(f"  * {c.text}" for c in group)
    return "\n".join(lines)


def _render_sheets(sheets: list[RelatedSheet]) -> str:
    lines = ["RELATED SHEETS:"]
    for sheet in sheets:
        label = " ".join(part for part in (sheet.sheet_id, sheet.title) if part) or "Untitled"
        extra = ", ".join(part for part in (sheet.discipline, sheet.sheet_type) if part)
        lines.append(f"- Page {sheet.page_number}: {label}" + (f" ({extra})" if extra else ""))
    return "\n".join(lines)


def available_data(context: PlanContext, mode: ResponseMode) -> str:
    parts = []
    if context.takeoff_context.items:
        parts.append(f"{len(context.takeoff_context.items)} takeoff items")
    if context.blueprint_context.chunks and mode != ResponseMode.TAKEOFF:
        parts.append(f"{len(context.blueprint_context.chunks)} blueprint text snippets")
    if context.project_metadata:
        parts.append("project metadata")
    if context.related_sheets:
        parts.append(f"{len(context.related_sheets)} related sheet references")
    return ", ".join(parts) if parts else "limited context"


def build_user_prompt(question: str, context: PlanContext, mode: ResponseMode) -> str:
    """Flatten the context into a structured-plus-prose block.

    Blueprint snippets are left out entirely in TAKEOFF mode.
    """
    sections = [USER_PROMPT_HEADER.format(question=question)]

    if context.project_metadata:
        sections.append(_render_metadata(context.project_metadata))
    if context.recent_conversation:
        sections.append(_render_conversation(context.recent_conversation))
    if context.takeoff_context.items:
        sections.append(_render_takeoff(context.takeoff_context))
    if context.blueprint_context.chunks and mode != ResponseMode.TAKEOFF:
        sections.append(
            _render_blueprint(context.blueprint_context.chunks, context.blueprint_context.summary)
        )
    if context.related_sheets:
        sections.append(_render_sheets(context.related_sheets))
    if context.global_scope_summary:
        sections.append(f"SCOPE: {context.global_scope_summary}")
    if context.notes:
        sections.append("NOTES:\n" + "\n".join(f"- {note}" for note in context.notes))

    sections.append(CLOSINGS[mode].format(available_data=available_data(context, mode)))
    return "\n\n".join(sections)
