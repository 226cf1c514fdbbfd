"""OpenAI embeddings for plan text chunks and chat queries."""

from __future__ import annotations

from openai import AsyncOpenAI

from plan_chat.exceptions import EmbeddingError
from plan_chat.observability.logger import get_logger

logger = get_logger("embeddings")


class OpenAIEmbedder:
    """Batches chunk texts; query and chunks must share the model and dimensions."""

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        batch_size: int = 20,
        dimensions: int | None = None,
        base_url: str | None = None,
    ) -> None:
        self._client = AsyncOpenAI(api_key=api_key, base_url=base_url or None)
        self._model = model
        self._batch_size = max(1, batch_size)
        self._dimensions = dimensions

    async def _embed_batch(self, batch: list[str]) -> list[list[float]]:
        params = {"input": batch, "model": self._model}
        if self._dimensions:
            params["dimensions"] = self._dimensions
        response = await self._client.embeddings.create(**params)
        ordered = sorted(response.data, key=lambda d: d.index)
        return [d.embedding for d in ordered]

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        vectors: list[list[float]] = []
        for offset in range(0, len(texts), self._batch_size):
            try:
                vectors.extend(await self._embed_batch(texts[offset : offset + self._batch_size]))
            except Exception as e:
                raise EmbeddingError(
                    f"Embedding plan chunks {offset}-{offset + self._batch_size} of {len(texts)} failed: {e}"
                ) from e
        if texts:
            logger.info("plan_chunks_embedded", count=len(texts), model=self._model)
        return vectors

    async def embed_query(self, query: str) -> list[float]:
        try:
            (vector,) = await self._embed_batch([query])
        except Exception as e:
            raise EmbeddingError(f"Embedding chat query failed: {e}") from e
        return vector
