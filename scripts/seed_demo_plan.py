"""Seed a demo plan, job, takeoff, sheet index and page text for development."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from plan_chat.config.settings import Settings
from plan_chat.exceptions import ConfigurationError
from plan_chat.generation.factory import create_embedder
from plan_chat.ingestion.plan_indexer import PlanTextChunker, PlanTextIndexer
from plan_chat.models.domain import (
    ChatSession,
    JobRecord,
    PageText,
    PlanRecord,
    RelatedSheet,
    TakeoffRecord,
)
from plan_chat.storage.sqlite_chat_store import SQLiteChatStore
from plan_chat.storage.sqlite_chunk_store import SQLiteChunkStore
from plan_chat.storage.sqlite_plan_store import SQLitePlanStore

PLAN_ID = "demo-plan"
JOB_ID = "demo-job"
USER_ID = "demo-user"

SHEETS = [
    RelatedSheet(page_number=1, sheet_id="G-001", title="Cover Sheet & General Notes", discipline="General"),
    RelatedSheet(page_number=2, sheet_id="A-101", title="First Floor Plan", discipline="Architectural", sheet_type="plan"),
    RelatedSheet(page_number=3, sheet_id="A-201", title="Roof Plan", discipline="Architectural", sheet_type="plan"),
    RelatedSheet(page_number=4, sheet_id="E-101", title="Electrical Plan", discipline="Electrical", sheet_type="plan"),
]

PAGES = [
    PageText(
        PLAN_ID,
        1,
        "GENERAL NOTES\n\n1. All work shall comply with the 2021 IBC and local amendments. "
        "2. Contractor shall verify all dimensions in the field before ordering materials.\n\n"
        "3. Provide portable fire extinguishers per NFPA 10 at each exit and in the mechanical room.",
    ),
    PageText(
        PLAN_ID,
        2,
        "FIRST FLOOR PLAN\n\nInterior partitions: 3-5/8\" metal studs at 16\" o.c. with 5/8\" type X "
        "gypsum board each side. Fire-rated walls at corridors, 1 hour. "
        "Baseboard: 4\" rubber cove base throughout.",
    ),
    PageText(
        PLAN_ID,
        3,
        "ROOF PLAN\n\nRoofing: 60 mil TPO membrane over tapered polyiso insulation, minimum R-30. "
        "Provide pre-finished metal flashing at all parapets and roof penetrations. "
        "Gutters and downspouts: 6\" K-style aluminum.",
    ),
    PageText(
        PLAN_ID,
        4,
        "ELECTRICAL PLAN\n\nAll branch circuits in EMT conduit. Provide emergency lighting with "
        "battery backup at each exit. Panel LP-1 to be 225A, 120/208V, 3 phase.",
    ),
]

TAKEOFF_ITEMS = [
    {"id": "t-1", "category": "Roofing", "name": "TPO roof membrane", "quantity": 12400, "unit": "SF", "unit_cost": 6.25, "page_number": 3},
    {"id": "t-2", "category": "Roofing", "name": "Metal parapet flashing", "qty": "1,240", "unit": "LF", "unit_price": 18.5, "sheet": "A-201"},
    {"id": "t-3", "category": "Drywall", "item_name": "5/8 type X gypsum board", "quantity": 9800, "unit": "SF", "unitCost": 2.1, "pageNumber": 2},
    {"id": "t-4", "category": "Finishes", "description": "Rubber cove base", "quantity": None, "unit": "LF", "page": 2},
    {"id": "t-5", "category": "Fire Protection", "name": "Fire Extinguisher", "quantity": None, "unit": None},
]


async def main():
    settings = Settings()
    Path(settings.sqlite_db_path).parent.mkdir(parents=True, exist_ok=True)

    plan_store = SQLitePlanStore(settings.sqlite_db_path)
    await plan_store.initialize()
    chat_store = SQLiteChatStore(settings.sqlite_db_path)
    await chat_store.initialize()

    await plan_store.save_job(JobRecord(job_id=JOB_ID, name="Riverside Clinic", location="120 River Rd, Springfield"))
    await plan_store.save_plan(
        PlanRecord(plan_id=PLAN_ID, title="Riverside Clinic - Permit Set", file_name="riverside.pdf", job_id=JOB_ID)
    )
    await plan_store.save_sheets(PLAN_ID, SHEETS)
    await plan_store.save_page_texts(PAGES)
    await plan_store.save_takeoff(
        TakeoffRecord(takeoff_id="demo-takeoff", plan_id=PLAN_ID, user_id=USER_ID, items=TAKEOFF_ITEMS)
    )
    await chat_store.save_session(ChatSession(chat_id="demo-chat", plan_id=PLAN_ID, user_id=USER_ID, title="New Chat"))
    print(f"Seeded plan {PLAN_ID} with {len(PAGES)} pages and {len(TAKEOFF_ITEMS)} takeoff items")

    try:
        embedder = create_embedder(settings)
    except ConfigurationError as e:
        print(f"Skipping indexing: {e}")
        return

    chunk_store = SQLiteChunkStore(settings.sqlite_db_path, embedder)
    await chunk_store.initialize()
    indexer = PlanTextIndexer(
        plan_store=plan_store,
        chunk_store=chunk_store,
        embedder=embedder,
        chunker=PlanTextChunker(max_chars=settings.chunk_max_chars, min_chars=settings.chunk_min_chars),
    )
    result = await indexer.index_plan(PLAN_ID)
    print(f"Indexed {result.chunk_count} chunks from {result.page_count} pages")


if __name__ == "__main__":
    asyncio.run(main())
