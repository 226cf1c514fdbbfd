"""Tests for the four-way retrieval engine."""

import pytest

from plan_chat.models.domain import JobRecord, PlanRecord, RelatedSheet, TakeoffRecord, TextChunk
from plan_chat.retrieval.retrieval_engine import RetrievalEngine
from tests.fakes import FakeChunkSearcher


def _seed(plan_store, sample_items):
    plan_store.plans["p1"] = PlanRecord(plan_id="p1", title="Clinic", file_name="clinic.pdf", job_id="j1")
    plan_store.jobs["j1"] = JobRecord(job_id="j1", name="Riverside Clinic", location="120 River Rd")
    plan_store.takeoffs.append(TakeoffRecord(takeoff_id="t", plan_id="p1", user_id="u1", items=sample_items))
    plan_store.sheets["p1"] = [
        RelatedSheet(page_number=3, sheet_id="A-201", title="Roof Plan", discipline="Architectural"),
        RelatedSheet(page_number=4, sheet_id="E-101", title="Electrical Plan", discipline="Electrical"),
    ]


def _chunk(i, page=1):
    return TextChunk(chunk_id=f"c{i}", snippet_text=f"roof note {i}", page_number=page, similarity=0.9)


@pytest.mark.asyncio
async def test_retrieve_all_channels(settings, plan_store, sample_items):
    _seed(plan_store, sample_items)
    engine = RetrievalEngine(FakeChunkSearcher([_chunk(1, page=3)]), plan_store, settings)

    result = await engine.retrieve("p1", "u1", "j1", "roof flashing", ["roof"], pages=[4])

    assert [c.chunk_id for c in result.semantic_chunks] == ["c1"]
    assert [i.id for i in result.takeoff_items][:2] == ["t-1", "t-2"]
    assert [s.page_number for s in result.related_sheets] == [4, 3]
    assert result.project_metadata.job_name == "Riverside Clinic"
    assert result.project_metadata.address == "120 River Rd"
    assert result.project_metadata.disciplines == ["Architectural", "Electrical"]


@pytest.mark.asyncio
async def test_semantic_failure_does_not_affect_other_channels(settings, plan_store, sample_items):
    _seed(plan_store, sample_items)
    engine = RetrievalEngine(FakeChunkSearcher(fail=True), plan_store, settings)

    result = await engine.retrieve("p1", "u1", "j1", "roof", ["roof"])

    assert result.semantic_chunks == []
    assert result.takeoff_items
    assert result.project_metadata is not None


@pytest.mark.asyncio
async def test_takeoff_failure_is_isolated(settings, plan_store, sample_items):
    _seed(plan_store, sample_items)
    plan_store.fail_takeoff = True
    engine = RetrievalEngine(FakeChunkSearcher([_chunk(1)]), plan_store, settings)

    result = await engine.retrieve("p1", "u1", "j1", "roof", ["roof"], pages=[3])

    assert result.takeoff_items == []
    assert result.project_metadata is None
    assert len(result.semantic_chunks) == 1
    assert [s.page_number for s in result.related_sheets] == [3]


@pytest.mark.asyncio
async def test_no_targets_returns_no_items_unless_overview(settings, plan_store, sample_items):
    _seed(plan_store, sample_items)
    engine = RetrievalEngine(FakeChunkSearcher(), plan_store, settings)

    assert await engine.find_takeoff_items("p1", "u1", []) == []
    items = await engine.find_takeoff_items("p1", "u1", [], include_all_items=True, item_limit=2)
    assert [i.id for i in items] == ["t-1", "t-2"]


@pytest.mark.asyncio
async def test_item_ranking_prefers_stronger_matches(settings, plan_store):
    plan_store.takeoffs.append(
        TakeoffRecord(
            takeoff_id="t",
            plan_id="p1",
            user_id="u1",
            items=[
                {"id": "a", "name": "Windw trim"},
                {"id": "b", "name": "Aluminum window"},
                {"id": "c", "name": "Concrete slab"},
            ],
        )
    )
    engine = RetrievalEngine(FakeChunkSearcher(), plan_store, settings)

    items = await engine.find_takeoff_items("p1", "u1", ["window"])

    assert [i.id for i in items] == ["b", "a"]


@pytest.mark.asyncio
async def test_semantic_limit_is_passed_to_searcher(settings, plan_store):
    searcher = FakeChunkSearcher([_chunk(i) for i in range(30)])
    engine = RetrievalEngine(searcher, plan_store, settings)
    chunks = await engine.retrieve_semantic_chunks("p1", "roof")
    assert len(chunks) == settings.semantic_chunk_limit


@pytest.mark.asyncio
async def test_metadata_aggregates_categories(settings, plan_store, sample_items):
    _seed(plan_store, sample_items)
    engine = RetrievalEngine(FakeChunkSearcher(), plan_store, settings)

    metadata = await engine.get_project_metadata("p1", None)

    assert metadata.job_name is None
    assert metadata.plan_title == "Clinic"
    top = metadata.major_quantity_categories[0]
    assert top.category == "Roofing"
    assert top.total == 12400 + 1240
    assert [s.page_number for s in metadata.sheet_index_summary] == [3, 4]


@pytest.mark.asyncio
async def test_metadata_none_for_unknown_plan(settings, plan_store):
    engine = RetrievalEngine(FakeChunkSearcher(), plan_store, settings)
    assert await engine.get_project_metadata("missing", None) is None
