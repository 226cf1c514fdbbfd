"""Protocols for turning stored plan page text into searchable chunks."""

from __future__ import annotations

from typing import Protocol

from plan_chat.models.domain import IndexResult


class Embedder(Protocol):
    async def embed_texts(self, texts: list[str]) -> list[list[float]]: ...

    async def embed_query(self, query: str) -> list[float]: ...


class PlanIndexer(Protocol):
    """Rebuilds a plan's chunk index; invoked on demand and before first chat use."""

    async def index_plan(self, plan_id: str) -> IndexResult: ...
