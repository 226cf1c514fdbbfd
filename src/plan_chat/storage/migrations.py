"""Idempotent database schema creation."""

from __future__ import annotations

import aiosqlite

PLANS_TABLE = """
CREATE TABLE IF NOT EXISTS plans (
    plan_id TEXT PRIMARY KEY,
    title TEXT,
    file_name TEXT,
    job_id TEXT
)
"""

JOBS_TABLE = """
CREATE TABLE IF NOT EXISTS jobs (
    job_id TEXT PRIMARY KEY,
    name TEXT,
    location TEXT
)
"""

TAKEOFFS_TABLE = """
CREATE TABLE IF NOT EXISTS takeoffs (
    takeoff_id TEXT PRIMARY KEY,
    plan_id TEXT NOT NULL,
    user_id TEXT,
    items TEXT NOT NULL DEFAULT '[]',
    created_at TEXT NOT NULL
)
"""

TAKEOFFS_PLAN_INDEX = """
CREATE INDEX IF NOT EXISTS idx_takeoffs_plan_user ON takeoffs(plan_id, user_id, created_at)
"""

SHEET_INDEX_TABLE = """
CREATE TABLE IF NOT EXISTS sheet_index (
    plan_id TEXT NOT NULL,
    page_number INTEGER NOT NULL,
    sheet_id TEXT,
    title TEXT,
    discipline TEXT,
    sheet_type TEXT,
    PRIMARY KEY (plan_id, page_number)
)
"""

PLAN_PAGES_TABLE = """
CREATE TABLE IF NOT EXISTS plan_pages (
    plan_id TEXT NOT NULL,
    page_number INTEGER NOT NULL,
    text TEXT NOT NULL,
    PRIMARY KEY (plan_id, page_number)
)
"""

PLAN_CHUNKS_TABLE = """
CREATE TABLE IF NOT EXISTS plan_chunks (
    chunk_id TEXT PRIMARY KEY,
    plan_id TEXT NOT NULL,
    chunk_index INTEGER NOT NULL,
    page_number INTEGER,
    text TEXT NOT NULL,
    sheet_id TEXT,
    sheet_title TEXT,
    embedding TEXT NOT NULL
)
"""

PLAN_CHUNKS_PLAN_INDEX = """
CREATE INDEX IF NOT EXISTS idx_plan_chunks_plan_id ON plan_chunks(plan_id)
"""

CONVERSATION_TURNS_TABLE = """
CREATE TABLE IF NOT EXISTS conversation_turns (
    id TEXT PRIMARY KEY,
    plan_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    job_id TEXT,
    chat_id TEXT,
    user_message TEXT NOT NULL,
    assistant_message TEXT NOT NULL,
    summary TEXT,
    created_at TEXT NOT NULL,
    metadata TEXT NOT NULL DEFAULT '{}'
)
"""

CONVERSATION_TURNS_INDEX = """
CREATE INDEX IF NOT EXISTS idx_turns_plan_user ON conversation_turns(plan_id, user_id, created_at)
"""

CONVERSATION_TURNS_CHAT_INDEX = """
CREATE INDEX IF NOT EXISTS idx_turns_chat_id ON conversation_turns(chat_id, created_at)
"""

CHAT_SESSIONS_TABLE = """
CREATE TABLE IF NOT EXISTS chat_sessions (
    chat_id TEXT PRIMARY KEY,
    plan_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    title TEXT,
    created_at TEXT NOT NULL
)
"""


async def initialize_plan_db(db_path: str) -> None:
    async with aiosqlite.connect(db_path) as db:
        await db.execute(PLANS_TABLE)
        await db.execute(JOBS_TABLE)
        await db.execute(TAKEOFFS_TABLE)
        await db.execute(TAKEOFFS_PLAN_INDEX)
        await db.execute(SHEET_INDEX_TABLE)
        await db.execute(PLAN_PAGES_TABLE)
        await db.commit()


async def initialize_chunk_db(db_path: str) -> None:
    async with aiosqlite.connect(db_path) as db:
        await db.execute(PLAN_CHUNKS_TABLE)
        await db.execute(PLAN_CHUNKS_PLAN_INDEX)
        await db.commit()


async def initialize_chat_db(db_path: str) -> None:
    async with aiosqlite.connect(db_path) as db:
        await db.execute(CONVERSATION_TURNS_TABLE)
        await db.execute(CONVERSATION_TURNS_INDEX)
        await db.execute(CONVERSATION_TURNS_CHAT_INDEX)
        await db.execute(CHAT_SESSIONS_TABLE)
        await db.commit()
