"""Integration tests for plan text indexing against SQLite."""

import tempfile
from pathlib import Path

import pytest

from plan_chat.exceptions import PlanIndexingError
from plan_chat.ingestion.plan_indexer import PlanTextChunker, PlanTextIndexer
from plan_chat.models.domain import PageText, RelatedSheet
from plan_chat.storage.sqlite_chunk_store import SQLiteChunkStore
from plan_chat.storage.sqlite_plan_store import SQLitePlanStore
from tests.fakes import FakeEmbedder


@pytest.fixture
async def stores():
    db_path = str(Path(tempfile.mkdtemp()) / "test.db")
    embedder = FakeEmbedder()
    plan_store = SQLitePlanStore(db_path)
    await plan_store.initialize()
    chunk_store = SQLiteChunkStore(db_path, embedder)
    await chunk_store.initialize()
    return plan_store, chunk_store, embedder


def _indexer(plan_store, chunk_store, embedder):
    return PlanTextIndexer(plan_store, chunk_store, embedder, PlanTextChunker(max_chars=200, min_chars=50))


async def test_index_and_search(stores):
    plan_store, chunk_store, embedder = stores
    await plan_store.save_sheets("p1", [RelatedSheet(page_number=3, sheet_id="A-201", title="Roof Plan")])
    await plan_store.save_page_texts(
        [
            PageText("p1", 3, "ROOF PLAN\n\n60 mil TPO roof membrane. Metal flashing at roof parapets."),
            PageText("p1", 4, "ELECTRICAL PLAN\n\nAll electrical branch circuits in EMT conduit."),
        ]
    )

    result = await _indexer(plan_store, chunk_store, embedder).index_plan("p1")
    hits = await chunk_store.search("p1", "roof")

    assert result.page_count == 2
    assert result.chunk_count == await chunk_store.count_chunks("p1")
    assert hits[0].page_number == 3
    assert hits[0].sheet_metadata.sheet_id == "A-201"


async def test_reindex_replaces_chunks(stores):
    plan_store, chunk_store, embedder = stores
    await plan_store.save_page_texts([PageText("p1", 1, "General notes.")])
    indexer = _indexer(plan_store, chunk_store, embedder)

    await indexer.index_plan("p1")
    await indexer.index_plan("p1")

    assert await chunk_store.count_chunks("p1") == 1


async def test_plan_without_pages(stores):
    plan_store, chunk_store, embedder = stores

    result = await _indexer(plan_store, chunk_store, embedder).index_plan("p1")

    assert result.chunk_count == 0
    assert result.warnings == ["No extracted page text is stored for this plan"]
    assert embedder.embed_texts_calls == 0


async def test_blank_pages_are_reported(stores):
    plan_store, chunk_store, embedder = stores
    await plan_store.save_page_texts([PageText("p1", 1, "   \n\n  "), PageText("p1", 2, "Door schedule.")])

    result = await _indexer(plan_store, chunk_store, embedder).index_plan("p1")

    assert result.chunk_count == 1
    assert result.warnings == ["Page 1 has no extractable text"]


async def test_embedding_failure_raises(stores):
    plan_store, chunk_store, _ = stores
    await plan_store.save_page_texts([PageText("p1", 1, "Door schedule.")])

    class BrokenEmbedder(FakeEmbedder):
        async def embed_texts(self, texts):
            raise RuntimeError("rate limited")

    with pytest.raises(PlanIndexingError):
        await _indexer(plan_store, chunk_store, BrokenEmbedder()).index_plan("p1")
