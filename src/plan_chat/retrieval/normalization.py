"""Normalization of heterogeneous raw takeoff records into NormalizedTakeoffItem.

Takeoff producers disagree on field names ("qty" vs "quantity", "sheet" vs
"page_reference", ...). Each logical attribute is resolved from an ordered list
of candidate source fields; the first non-empty value wins. Adding a producer
format is a matter of extending ``STRING_FIELDS`` / ``NUMERIC_FIELDS``.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Mapping
from typing import Any

from plan_chat.models.domain import NormalizedTakeoffItem
from plan_chat.observability.logger import get_logger

logger = get_logger("normalization")

DEFAULT_CATEGORY = "Uncategorized"

STRING_FIELDS: dict[str, tuple[str, ...]] = {
    "category": (
        "category",
        "Category",
        "trade_category",
        "discipline",
        "scope",
        "segment",
        "group",
    ),
    "subcategory": ("subcategory", "sub_category", "Subcategory", "scope_detail"),
    "name": ("name", "item_name", "title", "label", "description"),
    "description": ("description", "details", "notes", "item_description", "summary"),
    "location": (
        "location",
        "location_reference",
        "location_ref",
        "area",
        "room",
        "zone",
        "sheet_reference",
        "sheet",
        "sheetTitle",
    ),
    "page_reference": (
        "page_reference",
        "sheet_reference",
        "sheet",
        "sheet_title",
        "sheetName",
        "page_label",
    ),
    "unit": ("unit", "units", "measure_unit"),
    "notes": ("notes", "assumptions", "comments"),
    "id": ("id", "uuid", "item_id"),
}

NUMERIC_FIELDS: dict[str, tuple[str, ...]] = {
    "quantity": ("quantity", "qty", "amount"),
    "unit_cost": ("unit_cost", "unitCost", "unit_price"),
    "total_cost": ("total_cost", "totalCost", "extended_price"),
    "page_number": (
        "page_number",
        "pageNumber",
        "page",
        "plan_page_number",
        "sheet_page",
        "sheetNumber",
        "bounding_box.page",
    ),
}

_NUMBER_TOKEN = re.compile(r"-?\d[\d,]*(?:\.\d+)?")


def _lookup(record: Mapping[str, Any], path: str) -> Any:
    value: Any = record
    for part in path.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(part)
    return value


def coalesce_string(record: Mapping[str, Any], candidates: tuple[str, ...]) -> str | None:
    for path in candidates:
        value = _lookup(record, path)
        if value is None or isinstance(value, (Mapping, list)):
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def parse_number(value: Any) -> float | None:
    """Leniently parse a number: first numeric token, thousands separators stripped."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    else:
        match = _NUMBER_TOKEN.search(str(value))
        if not match:
            return None
        try:
            number = float(match.group(0).replace(",", ""))
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def coalesce_number(record: Mapping[str, Any], candidates: tuple[str, ...]) -> float | None:
    # Presence, not parseability, decides which candidate is used.
    for path in candidates:
        value = _lookup(record, path)
        if value is not None:
            return parse_number(value)
    return None


def _page_number(value: float | None) -> int | None:
    if value is None or not value.is_integer():
        return None
    return int(value)


def _source_items(raw: Any) -> list[Any]:
    if raw is None:
        return []
    if isinstance(raw, (str, bytes)):
        try:
            return _source_items(json.loads(raw))
        except (TypeError, ValueError):
            logger.warning("takeoff_items_unparsable", length=len(raw))
            return []
    if isinstance(raw, list):
        return raw
    if isinstance(raw, Mapping):
        for key in ("takeoffs", "items"):
            if isinstance(raw.get(key), list):
                return raw[key]
    return []


def normalize_item(record: Mapping[str, Any], index: int) -> NormalizedTakeoffItem:
    strings = {attr: coalesce_string(record, paths) for attr, paths in STRING_FIELDS.items()}
    numbers = {attr: coalesce_number(record, paths) for attr, paths in NUMERIC_FIELDS.items()}

    return NormalizedTakeoffItem(
        id=strings["id"] or f"item-{index + 1}",
        category=strings["category"] or DEFAULT_CATEGORY,
        subcategory=strings["subcategory"],
        name=strings["name"],
        description=strings["description"] or strings["name"],
        quantity=numbers["quantity"],
        unit=strings["unit"],
        unit_cost=numbers["unit_cost"],
        total_cost=numbers["total_cost"],
        location=strings["location"],
        page_number=_page_number(numbers["page_number"]),
        page_reference=strings["page_reference"],
        notes=strings["notes"],
    )


def normalize_takeoff_items(raw: Any) -> list[NormalizedTakeoffItem]:
    """Normalize any takeoff payload. Never raises; unusable entries are skipped.

    Accepts a list of records, a JSON string, or a mapping with a ``takeoffs``
    or ``items`` list. Already-normalized items pass through unchanged.
    """
    items: list[NormalizedTakeoffItem] = []
    for index, entry in enumerate(_source_items(raw)):
        if isinstance(entry, NormalizedTakeoffItem):
            items.append(entry)
            continue
        if not isinstance(entry, Mapping):
            continue
        items.append(normalize_item(entry, index))
    return items
