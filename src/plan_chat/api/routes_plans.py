"""Plan maintenance endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from plan_chat.api.dependencies import get_indexer
from plan_chat.exceptions import PlanIndexingError
from plan_chat.models.schemas import ReindexResponse
from plan_chat.protocols.indexing import PlanIndexer

router = APIRouter()


@router.post("/plans/{plan_id}/reindex", response_model=ReindexResponse)
async def reindex_plan(
    plan_id: str,
    indexer: PlanIndexer | None = Depends(get_indexer),
) -> ReindexResponse:
    if indexer is None:
        raise HTTPException(status_code=503, detail="Plan indexing is not configured")
    try:
        result = await indexer.index_plan(plan_id)
    except PlanIndexingError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return ReindexResponse(
        plan_id=result.plan_id,
        chunk_count=result.chunk_count,
        page_count=result.page_count,
        warnings=result.warnings,
    )
