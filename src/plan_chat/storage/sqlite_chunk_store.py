"""SQLite-backed plan text chunk store with cosine-similarity search."""

from __future__ import annotations

import json

import aiosqlite
import numpy as np

from plan_chat.exceptions import EmbeddingError
from plan_chat.models.domain import SheetMetadata, TextChunk
from plan_chat.observability.logger import get_logger
from plan_chat.protocols.indexing import Embedder
from plan_chat.storage.migrations import initialize_chunk_db

logger = get_logger("chunk_store")


class SQLiteChunkStore:
    def __init__(self, db_path: str, embedder: Embedder | None = None) -> None:
        self._db_path = db_path
        self._embedder = embedder

    async def initialize(self) -> None:
        await initialize_chunk_db(self._db_path)

    async def replace_chunks(
        self,
        plan_id: str,
        chunks: list[TextChunk],
        embeddings: list[list[float]],
    ) -> int:
        """Drop the plan's existing chunks and store the new ones."""
        if len(chunks) != len(embeddings):
            raise ValueError(f"Got {len(chunks)} chunks but {len(embeddings)} embeddings")
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute("DELETE FROM plan_chunks WHERE plan_id = ?", (plan_id,))
            await db.executemany(
                "INSERT INTO plan_chunks "
                "(chunk_id, plan_id, chunk_index, page_number, text, sheet_id, sheet_title, embedding) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    (
                        c.chunk_id,
                        plan_id,
                        i,
                        c.page_number,
                        c.snippet_text,
                        c.sheet_metadata.sheet_id if c.sheet_metadata else None,
                        c.sheet_metadata.sheet_title if c.sheet_metadata else None,
                        json.dumps(vector),
                    )
                    for i, (c, vector) in enumerate(zip(chunks, embeddings))
                ],
            )
            await db.commit()
        return len(chunks)

    async def count_chunks(self, plan_id: str) -> int:
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute(
                "SELECT COUNT(*) FROM plan_chunks WHERE plan_id = ?", (plan_id,)
            ) as cursor:
                row = await cursor.fetchone()
                return row[0] if row else 0

    async def search(self, plan_id: str, query: str, limit: int = 12) -> list[TextChunk]:
        """Chunks of one plan ranked by cosine similarity to the query, best first."""
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM plan_chunks WHERE plan_id = ? ORDER BY chunk_index", (plan_id,)
            ) as cursor:
                rows = await cursor.fetchall()
        if not rows:
            return []
        if self._embedder is None:
            raise EmbeddingError("No embedder is configured for plan text search")

        query_vec = np.asarray(await self._embedder.embed_query(query), dtype=np.float32)
        matrix = np.asarray([json.loads(row["embedding"]) for row in rows], dtype=np.float32)

        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query_vec)
        norms[norms == 0] = 1.0
        scores = np.clip(matrix @ query_vec / norms, 0.0, 1.0)

        top = np.argsort(-scores, kind="stable")[:limit]
        results = [self._row_to_chunk(rows[i], float(scores[i])) for i in top]
        logger.debug("chunk_search", plan_id=plan_id, candidates=len(rows), returned=len(results))
        return results

    @staticmethod
    def _row_to_chunk(row: aiosqlite.Row, similarity: float) -> TextChunk:
        sheet = None
        if row["sheet_id"] or row["sheet_title"]:
            sheet = SheetMetadata(sheet_id=row["sheet_id"], sheet_title=row["sheet_title"])
        return TextChunk(
            chunk_id=row["chunk_id"],
            snippet_text=row["text"],
            page_number=row["page_number"],
            sheet_metadata=sheet,
            similarity=similarity,
        )
