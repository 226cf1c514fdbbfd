"""SQLite-backed store for plans, jobs, takeoffs, sheet index and page text."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

import aiosqlite

from plan_chat.models.domain import JobRecord, PageText, PlanRecord, RelatedSheet, TakeoffRecord
from plan_chat.storage.migrations import initialize_plan_db


class SQLitePlanStore:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        await initialize_plan_db(self._db_path)

    async def save_plan(self, plan: PlanRecord) -> str:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "INSERT OR REPLACE INTO plans (plan_id, title, file_name, job_id) VALUES (?, ?, ?, ?)",
                (plan.plan_id, plan.title, plan.file_name, plan.job_id),
            )
            await db.commit()
        return plan.plan_id

    async def save_job(self, job: JobRecord) -> str:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "INSERT OR REPLACE INTO jobs (job_id, name, location) VALUES (?, ?, ?)",
                (job.job_id, job.name, job.location),
            )
            await db.commit()
        return job.job_id

    async def get_plan(self, plan_id: str) -> PlanRecord | None:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute("SELECT * FROM plans WHERE plan_id = ?", (plan_id,)) as cursor:
                row = await cursor.fetchone()
                if row is None:
                    return None
                return PlanRecord(
                    plan_id=row["plan_id"],
                    title=row["title"],
                    file_name=row["file_name"],
                    job_id=row["job_id"],
                )

    async def get_job(self, job_id: str) -> JobRecord | None:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute("SELECT * FROM jobs WHERE job_id = ?", (job_id,)) as cursor:
                row = await cursor.fetchone()
                if row is None:
                    return None
                return JobRecord(job_id=row["job_id"], name=row["name"], location=row["location"])

    async def save_takeoff(self, takeoff: TakeoffRecord) -> str:
        created_at = takeoff.created_at or datetime.now(timezone.utc)
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "INSERT OR REPLACE INTO takeoffs (takeoff_id, plan_id, user_id, items, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    takeoff.takeoff_id,
                    takeoff.plan_id,
                    takeoff.user_id,
                    json.dumps(takeoff.items),
                    created_at.isoformat(),
                ),
            )
            await db.commit()
        return takeoff.takeoff_id

    async def get_latest_takeoff(
        self, plan_id: str, user_id: str | None = None
    ) -> TakeoffRecord | None:
        query = "SELECT * FROM takeoffs WHERE plan_id = ?"
        params: list[Any] = [plan_id]
        if user_id is not None:
            query += " AND user_id = ?"
            params.append(user_id)
        query += " ORDER BY created_at DESC, rowid DESC LIMIT 1"

        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(query, params) as cursor:
                row = await cursor.fetchone()
                if row is None:
                    return None
                return TakeoffRecord(
                    takeoff_id=row["takeoff_id"],
                    plan_id=row["plan_id"],
                    user_id=row["user_id"],
                    # Left as stored text; normalization handles JSON strings.
                    items=row["items"],
                    created_at=datetime.fromisoformat(row["created_at"]),
                )

    async def update_takeoff_items(self, takeoff_id: str, items: list[dict[str, Any]]) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "UPDATE takeoffs SET items = ? WHERE takeoff_id = ?",
                (json.dumps(items), takeoff_id),
            )
            await db.commit()

    async def save_sheets(self, plan_id: str, sheets: list[RelatedSheet]) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.executemany(
                "INSERT OR REPLACE INTO sheet_index "
                "(plan_id, page_number, sheet_id, title, discipline, sheet_type) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                [
                    (plan_id, s.page_number, s.sheet_id, s.title, s.discipline, s.sheet_type)
                    for s in sheets
                ],
            )
            await db.commit()

    async def get_sheet_index(self, plan_id: str) -> list[RelatedSheet]:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM sheet_index WHERE plan_id = ? ORDER BY page_number",
                (plan_id,),
            ) as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_sheet(row) for row in rows]

    async def get_sheets_by_pages(self, plan_id: str, pages: list[int]) -> list[RelatedSheet]:
        if not pages:
            return []
        placeholders = ",".join("?" for _ in pages)
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                f"SELECT * FROM sheet_index WHERE plan_id = ? AND page_number IN ({placeholders}) "
                "ORDER BY page_number",
                [plan_id, *pages],
            ) as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_sheet(row) for row in rows]

    async def save_page_texts(self, pages: list[PageText]) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.executemany(
                "INSERT OR REPLACE INTO plan_pages (plan_id, page_number, text) VALUES (?, ?, ?)",
                [(p.plan_id, p.page_number, p.text) for p in pages],
            )
            await db.commit()

    async def get_page_texts(self, plan_id: str) -> list[PageText]:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM plan_pages WHERE plan_id = ? ORDER BY page_number",
                (plan_id,),
            ) as cursor:
                rows = await cursor.fetchall()
                return [
                    PageText(plan_id=row["plan_id"], page_number=row["page_number"], text=row["text"])
                    for row in rows
                ]

    @staticmethod
    def _row_to_sheet(row: aiosqlite.Row) -> RelatedSheet:
        return RelatedSheet(
            page_number=row["page_number"],
            sheet_id=row["sheet_id"],
            title=row["title"],
            discipline=row["discipline"],
            sheet_type=row["sheet_type"],
        )
