"""Tests for applying modifications and missing-scope analysis."""

import pytest

from plan_chat.exceptions import ModificationError
from plan_chat.models.domain import NormalizedTakeoffItem, TakeoffModification, TakeoffRecord
from plan_chat.modification.takeoff_modifier import TakeoffModifier, measurement_guidance


@pytest.fixture
def modifier(plan_store, sample_items):
    plan_store.takeoffs.append(TakeoffRecord(takeoff_id="to-1", plan_id="p1", user_id="u1", items=sample_items))
    return TakeoffModifier(plan_store)


@pytest.mark.asyncio
async def test_add_update_remove(modifier, plan_store):
    result = await modifier.apply(
        "p1",
        "u1",
        [
            TakeoffModification.add({"description": "Exit signs", "quantity": 6, "unit": "EA", "unit_cost": 85.0}),
            TakeoffModification.update("fe-1", {"quantity": 2, "unit": "EA", "unit_cost": 45.0}),
            TakeoffModification.remove("t-3"),
        ],
    )

    assert result.success
    assert result.message == "Successfully applied 3 modification(s)"
    assert result.warnings == []

    saved = {item["id"]: item for item in plan_store.takeoffs[0].items}
    assert "t-3" not in saved
    assert saved["fe-1"]["quantity"] == 2
    assert saved["fe-1"]["total_cost"] == 90.0
    added = next(item for item in saved.values() if item["id"].startswith("ai-"))
    assert added["name"] == "Exit signs"
    assert added["category"] == "Uncategorized"
    assert added["total_cost"] == 510.0


@pytest.mark.asyncio
async def test_missing_ids_become_warnings(modifier, plan_store):
    result = await modifier.apply(
        "p1",
        "u1",
        [TakeoffModification.remove("nope"), TakeoffModification.update("gone", {"quantity": 1})],
    )

    assert result.success
    assert result.warnings == ["Item nope not found for removal", "Item gone not found for update"]
    assert len(plan_store.takeoffs[0].items) == 4


@pytest.mark.asyncio
async def test_update_keeps_total_when_not_recomputable(modifier, plan_store):
    plan_store.takeoffs[0].items = [{"id": "x", "name": "Pavers", "quantity": 10, "total_cost": 300}]

    await modifier.apply("p1", "u1", [TakeoffModification.update("x", {"location": "Courtyard"})])

    saved = plan_store.takeoffs[0].items[0]
    assert saved["location"] == "Courtyard"
    assert saved["total_cost"] == 300


@pytest.mark.asyncio
async def test_no_takeoff(plan_store):
    result = await TakeoffModifier(plan_store).apply("p1", "u1", [TakeoffModification.remove("t-1")])
    assert not result.success
    assert result.message.startswith("No takeoff analysis found")


@pytest.mark.asyncio
async def test_load_failure_raises(modifier, plan_store):
    plan_store.fail_takeoff = True
    with pytest.raises(ModificationError):
        await modifier.apply("p1", "u1", [])


@pytest.mark.asyncio
async def test_save_failure_reports_unsuccessful(modifier, plan_store):
    async def broken(takeoff_id, items):
        raise RuntimeError("read-only database")

    plan_store.update_takeoff_items = broken
    result = await modifier.apply("p1", "u1", [TakeoffModification.remove("t-1")])

    assert not result.success
    assert "read-only database" in result.message
    assert [i.id for i in result.updated_items] == ["t-1", "t-2", "t-3", "fe-1"]


def test_measurement_guidance():
    needed, guidance = measurement_guidance(NormalizedTakeoffItem(id="a", unit="SF", page_number=2))
    assert needed == ["length", "width", "or area"]
    assert guidance.endswith("Check page 2 for these measurements.")
    assert measurement_guidance(NormalizedTakeoffItem(id="b", unit="LF"))[0] == ["length"]
    assert measurement_guidance(NormalizedTakeoffItem(id="c", unit="CY"))[0] == ["length", "width", "height"]
    assert measurement_guidance(NormalizedTakeoffItem(id="d", unit="EA"))[0] == ["count"]
    assert measurement_guidance(NormalizedTakeoffItem(id="e", description="Allowance"))[1] == (
        "Find the quantity or dimensions needed for Allowance from the plans."
    )


@pytest.mark.asyncio
async def test_analyze_missing_scope(modifier):
    chunks = [
        "ELECTRICAL PLAN: All branch circuits in EMT conduit.",
        "Roofing: 60 mil TPO membrane.",
        "Electrical panel LP-1 to be 225A.",
    ]

    analysis = await modifier.analyze_missing_scope("p1", "u1", chunks)

    categories = [c.category for c in analysis.missing_categories]
    assert categories == ["electrical"]
    assert len(analysis.missing_categories[0].evidence) == 2
    assert [m.item for m in analysis.missing_measurements] == ["Fire Extinguisher"]
    assert analysis.recommendations[0].startswith("Found 1 category(ies) mentioned in the plans")
    assert analysis.recommendations[1].startswith("1 item(s) are missing quantity measurements")


@pytest.mark.asyncio
async def test_analyze_without_findings(plan_store):
    analysis = await TakeoffModifier(plan_store).analyze_missing_scope("p1", "u1", [])
    assert analysis.recommendations == []
