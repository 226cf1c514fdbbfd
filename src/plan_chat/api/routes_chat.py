"""Plan chat endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from plan_chat.api.dependencies import get_answer_engine
from plan_chat.exceptions import ConfigurationError, PlanChatError, PlanIndexingError
from plan_chat.models.schemas import PlanChatRequest, PlanChatResponse
from plan_chat.pipeline.answer_engine import AnswerEngine

router = APIRouter()


@router.post("/plan-chat", response_model=PlanChatResponse)
async def plan_chat(
    request: PlanChatRequest,
    engine: AnswerEngine = Depends(get_answer_engine),
) -> PlanChatResponse:
    try:
        return await engine.generate_answer(
            plan_id=request.plan_id,
            user_id=request.user_id,
            job_id=request.job_id,
            question=request.question,
            model=request.model,
            chat_id=request.chat_id,
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except PlanIndexingError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except PlanChatError as e:
        raise HTTPException(status_code=500, detail=str(e))
