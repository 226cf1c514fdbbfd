"""Applies parsed modifications to the latest takeoff and analyzes missing scope."""

from __future__ import annotations

from dataclasses import replace
from typing import Any
from uuid import uuid4

from plan_chat.config.constants import STANDARD_CATEGORIES
from plan_chat.exceptions import ModificationError
from plan_chat.models.domain import (
    ITEM_FIELD_NAMES,
    MissingCategory,
    MissingMeasurement,
    MissingScopeAnalysis,
    ModificationResult,
    NormalizedTakeoffItem,
    TakeoffModification,
)
from plan_chat.observability.logger import get_logger
from plan_chat.protocols.stores import PlanStore
from plan_chat.retrieval.normalization import DEFAULT_CATEGORY, normalize_takeoff_items

logger = get_logger("takeoff_modifier")

MAX_EVIDENCE = 3
EVIDENCE_CHARS = 200


def _total(quantity: float | None, unit_cost: float | None) -> float | None:
    if quantity and unit_cost:
        return quantity * unit_cost
    return None


def measurement_guidance(item: NormalizedTakeoffItem) -> tuple[list[str], str]:
    unit = (item.unit or "").lower()
    if "sq" in unit or "sf" in unit or "area" in unit:
        needed = ["length", "width", "or area"]
        guidance = "Measure the length and width (or find the area) from the plans to calculate square footage."
    elif "lf" in unit or "linear" in unit or "ln" in unit:
        needed = ["length"]
        guidance = "Measure the linear length from the plans."
    elif "cu" in unit or "cy" in unit or "volume" in unit:
        needed = ["length", "width", "height"]
        guidance = "Measure length, width, and height (or depth) from the plans to calculate volume."
    elif "ea" in unit or "each" in unit or "unit" in unit:
        needed = ["count"]
        guidance = "Count the number of items from the plans."
    else:
        needed = ["quantity"]
        guidance = f"Find the quantity or dimensions needed for {item.description or item.name} from the plans."

    if item.page_number:
        guidance += f" Check page {item.page_number} for these measurements."
    return needed, guidance


class TakeoffModifier:
    def __init__(self, plan_store: PlanStore) -> None:
        self._plans = plan_store

    async def load_items(
        self, plan_id: str, user_id: str | None = None
    ) -> tuple[list[NormalizedTakeoffItem], str | None]:
        record = await self._plans.get_latest_takeoff(plan_id, user_id)
        if record is None:
            return [], None
        return normalize_takeoff_items(record.items), record.takeoff_id

    async def apply(
        self, plan_id: str, user_id: str | None, modifications: list[TakeoffModification]
    ) -> ModificationResult:
        try:
            current, takeoff_id = await self.load_items(plan_id, user_id)
        except Exception as e:
            raise ModificationError(f"Failed to load takeoff for plan {plan_id}: {e}") from e

        if takeoff_id is None:
            return ModificationResult(
                success=False,
                modifications=[],
                updated_items=[],
                message="No takeoff analysis found for this plan. Please run takeoff analysis first.",
            )

        updated = list(current)
        warnings: list[str] = []
        for mod in modifications:
            if mod.action == "add" and mod.item:
                updated.append(self._new_item(mod.item))
            elif mod.action == "remove" and mod.item_id:
                index = self._index_of(updated, mod.item_id)
                if index is None:
                    warnings.append(f"Item {mod.item_id} not found for removal")
                else:
                    del updated[index]
            elif mod.action == "update" and mod.item_id and mod.item:
                index = self._index_of(updated, mod.item_id)
                if index is None:
                    warnings.append(f"Item {mod.item_id} not found for update")
                else:
                    updated[index] = self._merge(updated[index], mod.item)

        try:
            await self._plans.update_takeoff_items(takeoff_id, [item.to_dict() for item in updated])
        except Exception as e:
            logger.error("takeoff_save_failed", plan_id=plan_id, takeoff_id=takeoff_id, error=str(e))
            return ModificationResult(
                success=False,
                modifications=modifications,
                updated_items=current,
                message=f"Failed to save modifications: {e}",
                warnings=warnings,
            )

        logger.info(
            "takeoff_modified",
            plan_id=plan_id,
            takeoff_id=takeoff_id,
            modifications=len(modifications),
            items=len(updated),
            warnings=len(warnings),
        )
        return ModificationResult(
            success=True,
            modifications=modifications,
            updated_items=updated,
            message=f"Successfully applied {len(modifications)} modification(s)",
            warnings=warnings,
        )

    @staticmethod
    def _index_of(items: list[NormalizedTakeoffItem], item_id: str) -> int | None:
        for index, item in enumerate(items):
            if item.id == item_id:
                return index
        return None

    @staticmethod
    def _new_item(data: dict[str, Any]) -> NormalizedTakeoffItem:
        fields = {k: v for k, v in data.items() if k in ITEM_FIELD_NAMES and k != "id"}
        item = NormalizedTakeoffItem(id=f"ai-{uuid4().hex[:12]}", **fields)
        item.category = item.category or DEFAULT_CATEGORY
        item.name = item.name or item.description
        item.total_cost = _total(item.quantity, item.unit_cost)
        return item

    @staticmethod
    def _merge(item: NormalizedTakeoffItem, data: dict[str, Any]) -> NormalizedTakeoffItem:
        changes = {k: v for k, v in data.items() if k in ITEM_FIELD_NAMES and k != "id" and v is not None}
        merged = replace(item, **changes)
        merged.total_cost = _total(merged.quantity, merged.unit_cost) or item.total_cost
        return merged

    async def analyze_missing_scope(
        self, plan_id: str, user_id: str | None, chunks: list[str]
    ) -> MissingScopeAnalysis:
        """Trade categories the plan text mentions but the takeoff lacks, plus items without quantities."""
        items, _ = await self.load_items(plan_id, user_id)
        existing = {(item.category or DEFAULT_CATEGORY).lower() for item in items}

        analysis = MissingScopeAnalysis()
        for category in STANDARD_CATEGORIES:
            if category in existing:
                continue
            evidence = [text[:EVIDENCE_CHARS] for text in chunks if category in text.lower()]
            if evidence:
                analysis.missing_categories.append(
                    MissingCategory(category=category, evidence=evidence[:MAX_EVIDENCE])
                )

        for item in items:
            if item.quantity or not item.description:
                continue
            needed, guidance = measurement_guidance(item)
            analysis.missing_measurements.append(
                MissingMeasurement(item=item.description, needed_measurements=needed, guidance=guidance)
            )

        if analysis.missing_categories:
            names = ", ".join(c.category for c in analysis.missing_categories)
            analysis.recommendations.append(
                f"Found {len(analysis.missing_categories)} category(ies) mentioned in the plans "
                f"but not in the takeoff: {names}"
            )
        if analysis.missing_measurements:
            analysis.recommendations.append(
                f"{len(analysis.missing_measurements)} item(s) are missing quantity measurements. "
                "Review the plans to find the dimensions needed."
            )
        return analysis
