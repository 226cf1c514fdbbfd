"""Extra prompt sections appended in modification mode."""

from __future__ import annotations

from plan_chat.models.domain import MissingScopeAnalysis, NormalizedTakeoffItem
from plan_chat.models.schemas import ModificationIntent, QuestionClassification, QuestionType

MAX_MATCHING_ITEMS = 5
EVIDENCE_PREVIEW_CHARS = 150


def _matching_items(target: str, items: list[NormalizedTakeoffItem]) -> list[NormalizedTakeoffItem]:
    target = target.lower()
    matches = []
    for item in items:
        name = (item.name or item.description or "").lower()
        if not name:
            continue
        if name in target or target in name or any(len(w) > 2 and w in target for w in name.split()):
            matches.append(item)
    return matches


def _describe_item(item: NormalizedTakeoffItem) -> str:
    parts = [f"- {item.name or item.description or 'Unnamed item'}"]
    if item.quantity is not None:
        parts.append(f"(qty: {item.quantity:g})")
    if item.unit_cost is not None:
        parts.append(f"(cost: ${item.unit_cost:g})")
    parts.append(f"[ID: {item.id}]")
    return " ".join(parts)


def format_modification_instructions(
    classification: QuestionClassification, items: list[NormalizedTakeoffItem]
) -> str:
    lines: list[str] = []
    intent = classification.modification_intent

    if classification.question_type == QuestionType.TAKEOFF_MODIFY:
        lines.append("\n---\nTAKEOFF MODIFICATION REQUESTED")
        if intent == ModificationIntent.ADD:
            lines.append("The user wants to ADD or UPDATE items in the takeoff.")
            lines.append("**CRITICAL: Before adding, check if the item already exists in the current takeoff.**")
            lines.append(
                "If an item exists but has quantity 0 or missing cost, UPDATE it instead of adding a duplicate."
            )
            lines.append(
                "For each item to add/update, provide: category, description, quantity (if available), "
                "unit, unit_cost (if known), location, page_number."
            )
            lines.append("If quantity is not available, explain what measurements are needed.")

            if classification.targets:
                target = classification.targets[0]
                matches = _matching_items(target, items)[:MAX_MATCHING_ITEMS]
                if matches:
                    lines.append(f'\n**EXISTING ITEMS THAT MIGHT MATCH "{target}":**')
                    lines.extend(_describe_item(item) for item in matches)
                    lines.append('**If one of these matches, use "update" action with the item_id instead of "add".**')
        elif intent == ModificationIntent.REMOVE:
            lines.append("The user wants to REMOVE items from the takeoff.")
            lines.append("Identify which items from the current takeoff should be removed.")
            lines.append("Explain why each item should be removed.")
        elif intent == ModificationIntent.UPDATE:
            lines.append("The user wants to UPDATE items in the takeoff.")
            lines.append("Identify which items need updates and what should change.")
    elif classification.question_type == QuestionType.TAKEOFF_ANALYZE:
        lines.append("\n---\nTAKEOFF ANALYSIS REQUESTED")
        lines.append("Analyze the current takeoff and identify:")
        lines.append("1. Missing categories or items mentioned in the plans but not in the takeoff")
        lines.append("2. Items missing quantity measurements")
        lines.append("3. What measurements are needed to complete the takeoff")
        lines.append("4. Recommendations for improving the takeoff")

    if items:
        lines.append(f"\nCurrent takeoff has {len(items)} items.")
        lines.append("Use this as reference when suggesting additions or identifying what's missing.")

    return "\n".join(lines)


def format_missing_scope(analysis: MissingScopeAnalysis) -> str:
    """Render the missing-scope block, or an empty string when nothing was found."""
    if not analysis.recommendations:
        return ""

    lines = ["\n\n---\nMISSING SCOPE ANALYSIS:"]
    if analysis.missing_categories:
        lines.append(f"\nMissing Categories ({len(analysis.missing_categories)}):")
        for idx, category in enumerate(analysis.missing_categories, start=1):
            lines.append(f"{idx}. {category.category}")
            if category.evidence:
                lines.append(f"   Evidence: {category.evidence[0][:EVIDENCE_PREVIEW_CHARS]}...")

    if analysis.missing_measurements:
        lines.append(f"\nItems Missing Measurements ({len(analysis.missing_measurements)}):")
        for idx, measurement in enumerate(analysis.missing_measurements, start=1):
            lines.append(f"{idx}. {measurement.item}")
            lines.append(f"   Needed: {', '.join(measurement.needed_measurements)}")
            if measurement.guidance:
                lines.append(f"   {measurement.guidance}")

    lines.append("\n\nCRITICAL INSTRUCTIONS:")
    lines.append("- Automatically list ALL missing items and measurements in your response")
    lines.append('- Don\'t ask "Would you like me to list them?" - just list them immediately')
    lines.append("- Format as a clear bulleted list with item names, what's missing, and guidance")
    lines.append("- Be proactive and helpful - provide the full information upfront")
    return "\n".join(lines)
