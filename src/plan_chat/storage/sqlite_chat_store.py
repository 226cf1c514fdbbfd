"""SQLite-backed conversation turn log and chat sessions."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import aiosqlite

from plan_chat.models.domain import ChatSession, ConversationTurn
from plan_chat.storage.migrations import initialize_chat_db


class SQLiteChatStore:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        await initialize_chat_db(self._db_path)

    async def append_turn(self, turn: ConversationTurn) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "INSERT INTO conversation_turns "
                "(id, plan_id, user_id, job_id, chat_id, user_message, assistant_message, "
                "summary, created_at, metadata) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    turn.id,
                    turn.plan_id,
                    turn.user_id,
                    turn.job_id,
                    turn.chat_id,
                    turn.user_message,
                    turn.assistant_message,
                    turn.summary,
                    turn.created_at.isoformat(),
                    json.dumps(turn.metadata),
                ),
            )
            await db.commit()

    async def get_recent_turns(
        self, plan_id: str, user_id: str, limit: int = 8
    ) -> list[ConversationTurn]:
        """Most recent ``limit`` turns, oldest first."""
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM conversation_turns WHERE plan_id = ? AND user_id = ? "
                "ORDER BY created_at DESC, rowid DESC LIMIT ?",
                (plan_id, user_id, limit),
            ) as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_turn(row) for row in reversed(rows)]

    async def update_summaries(self, turn_ids: list[str], summary: str) -> None:
        if not turn_ids:
            return
        placeholders = ",".join("?" for _ in turn_ids)
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                f"UPDATE conversation_turns SET summary = ? WHERE id IN ({placeholders})",
                [summary, *turn_ids],
            )
            await db.commit()

    async def save_session(self, session: ChatSession) -> str:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "INSERT OR REPLACE INTO chat_sessions (chat_id, plan_id, user_id, title, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    session.chat_id,
                    session.plan_id,
                    session.user_id,
                    session.title,
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
            await db.commit()
        return session.chat_id

    async def get_session(self, chat_id: str, user_id: str) -> ChatSession | None:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM chat_sessions WHERE chat_id = ? AND user_id = ?",
                (chat_id, user_id),
            ) as cursor:
                row = await cursor.fetchone()
                if row is None:
                    return None
                return ChatSession(
                    chat_id=row["chat_id"],
                    plan_id=row["plan_id"],
                    user_id=row["user_id"],
                    title=row["title"],
                )

    async def get_session_messages(self, chat_id: str) -> list[ConversationTurn]:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM conversation_turns WHERE chat_id = ? ORDER BY created_at, rowid",
                (chat_id,),
            ) as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_turn(row) for row in rows]

    async def update_session_title(self, chat_id: str, title: str) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "UPDATE chat_sessions SET title = ? WHERE chat_id = ?", (title, chat_id)
            )
            await db.commit()

    @staticmethod
    def _row_to_turn(row: aiosqlite.Row) -> ConversationTurn:
        return ConversationTurn(
            id=row["id"],
            plan_id=row["plan_id"],
            user_id=row["user_id"],
            job_id=row["job_id"],
            chat_id=row["chat_id"],
            user_message=row["user_message"],
            assistant_message=row["assistant_message"],
            summary=row["summary"],
            created_at=datetime.fromisoformat(row["created_at"]),
            metadata=json.loads(row["metadata"]),
        )
