"""Plan text indexing: page text -> chunk -> embed -> store."""

from __future__ import annotations

import asyncio
import re
from uuid import uuid4

from plan_chat.exceptions import PlanIndexingError
from plan_chat.models.domain import IndexResult, PageText, SheetMetadata, TextChunk
from plan_chat.observability.logger import get_logger
from plan_chat.protocols.indexing import Embedder
from plan_chat.protocols.stores import PlanStore
from plan_chat.storage.sqlite_chunk_store import SQLiteChunkStore

logger = get_logger("plan_indexer")

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_SENTENCE_END = re.compile(r"(?<=[.!?;:])\s+")


class PlanTextChunker:
    """Packs page text into chunks of at most ``max_chars``.

    Paragraphs are kept whole when they fit, otherwise split on sentence
    boundaries; a sentence longer than ``max_chars`` is cut hard. A hard-cut
    tail shorter than ``min_chars`` is folded into the previous piece.
    """

    def __init__(self, max_chars: int = 900, min_chars: int = 250) -> None:
        self._max_chars = max_chars
        self._min_chars = min_chars

    def chunk_page(self, text: str) -> list[str]:
        units: list[str] = []
        for paragraph in _PARAGRAPH_BREAK.split(text):
            paragraph = " ".join(paragraph.split())
            if not paragraph:
                continue
            if len(paragraph) <= self._max_chars:
                units.append(paragraph)
                continue
            for sentence in _SENTENCE_END.split(paragraph):
                units.extend(self._hard_split(sentence))

        chunks: list[str] = []
        buffer = ""
        for unit in units:
            candidate = f"{buffer}\n\n{unit}" if buffer else unit
            if len(candidate) <= self._max_chars:
                buffer = candidate
                continue
            if buffer:
                chunks.append(buffer)
            buffer = unit
        if buffer:
            chunks.append(buffer)
        return chunks

    def _hard_split(self, sentence: str) -> list[str]:
        if len(sentence) <= self._max_chars:
            return [sentence] if sentence else []
        pieces = [
            sentence[i : i + self._max_chars] for i in range(0, len(sentence), self._max_chars)
        ]
        if len(pieces) > 1 and len(pieces[-1]) < self._min_chars:
            tail = pieces.pop()
            pieces[-1] += tail
        return pieces


class PlanTextIndexer:
    def __init__(
        self,
        plan_store: PlanStore,
        chunk_store: SQLiteChunkStore,
        embedder: Embedder,
        chunker: PlanTextChunker,
    ) -> None:
        self._plan_store = plan_store
        self._chunk_store = chunk_store
        self._embedder = embedder
        self._chunker = chunker

    async def index_plan(self, plan_id: str) -> IndexResult:
        """Rebuild the plan's text chunks from stored page text.

        A plan without page text yields a zero-chunk result, not an error.
        Store and embedding failures raise PlanIndexingError.
        """
        try:
            pages, sheets = await asyncio.gather(
                self._plan_store.get_page_texts(plan_id),
                self._plan_store.get_sheet_index(plan_id),
            )
        except Exception as e:
            raise PlanIndexingError(f"Could not load page text for plan {plan_id}: {e}") from e

        warnings: list[str] = []
        if not pages:
            warnings.append("No extracted page text is stored for this plan")
            logger.warning("index_no_pages", plan_id=plan_id)
            return IndexResult(plan_id=plan_id, chunk_count=0, page_count=0, warnings=warnings)

        sheet_by_page = {s.page_number: s for s in sheets}
        chunks = await asyncio.to_thread(self._chunk_pages, pages, sheet_by_page, warnings)
        if not chunks:
            return IndexResult(
                plan_id=plan_id, chunk_count=0, page_count=len(pages), warnings=warnings
            )

        try:
            embeddings = await self._embedder.embed_texts([c.snippet_text for c in chunks])
            stored = await self._chunk_store.replace_chunks(plan_id, chunks, embeddings)
        except Exception as e:
            raise PlanIndexingError(f"Indexing plan {plan_id} failed: {e}") from e

        logger.info("plan_indexed", plan_id=plan_id, pages=len(pages), chunks=stored)
        return IndexResult(
            plan_id=plan_id, chunk_count=stored, page_count=len(pages), warnings=warnings
        )

    def _chunk_pages(self, pages: list[PageText], sheet_by_page: dict, warnings: list[str]) -> list[TextChunk]:
        chunks: list[TextChunk] = []
        for page in pages:
            pieces = self._chunker.chunk_page(page.text)
            if not pieces:
                warnings.append(f"Page {page.page_number} has no extractable text")
                continue
            sheet = sheet_by_page.get(page.page_number)
            metadata = SheetMetadata(sheet_id=sheet.sheet_id, sheet_title=sheet.title) if sheet else None
            chunks.extend(
                TextChunk(
                    chunk_id=str(uuid4()),
                    snippet_text=piece,
                    page_number=page.page_number,
                    sheet_metadata=metadata,
                )
                for piece in pieces
            )
        return chunks
