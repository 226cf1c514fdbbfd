"""FastAPI dependency injection helpers."""

from __future__ import annotations

from fastapi import Request

from plan_chat.pipeline.answer_engine import AnswerEngine
from plan_chat.protocols.indexing import PlanIndexer


def get_answer_engine(request: Request) -> AnswerEngine:
    return request.app.state.answer_engine


def get_indexer(request: Request) -> PlanIndexer | None:
    return request.app.state.indexer


def is_llm_configured(request: Request) -> bool:
    return request.app.state.llm is not None
