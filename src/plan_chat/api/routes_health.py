"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from plan_chat.api.dependencies import get_indexer, is_llm_configured
from plan_chat.models.schemas import HealthResponse
from plan_chat.protocols.indexing import PlanIndexer

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(
    llm_configured: bool = Depends(is_llm_configured),
    indexer: PlanIndexer | None = Depends(get_indexer),
) -> HealthResponse:
    return HealthResponse(
        status="ok" if llm_configured else "degraded",
        llm_configured=llm_configured,
        indexer_configured=indexer is not None,
    )
