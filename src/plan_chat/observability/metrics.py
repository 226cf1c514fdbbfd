"""Stage-level metric logging for the answer pipeline."""

from __future__ import annotations

from plan_chat.observability.logger import get_logger

logger = get_logger("metrics")


def log_classification(
    trace_id: str,
    question_type: str,
    targets: list[str],
    pages: list[int] | None,
    strict_takeoff_only: bool,
    modification_intent: str,
) -> None:
    logger.info(
        "classification",
        trace_id=trace_id,
        question_type=question_type,
        targets=targets,
        pages=pages or [],
        strict_takeoff_only=strict_takeoff_only,
        modification_intent=modification_intent,
    )


def log_retrieval_stats(
    trace_id: str,
    semantic_chunks: int,
    takeoff_items: int,
    related_sheets: int,
    has_project_metadata: bool,
) -> None:
    logger.info(
        "retrieval_stats",
        trace_id=trace_id,
        semantic_chunks=semantic_chunks,
        takeoff_items=takeoff_items,
        related_sheets=related_sheets,
        has_project_metadata=has_project_metadata,
    )


def log_context_build(
    trace_id: str,
    conversation_turns: int,
    context_size_bytes: int,
) -> None:
    logger.info(
        "context_built",
        trace_id=trace_id,
        conversation_turns=conversation_turns,
        context_size_bytes=context_size_bytes,
    )


def log_mode_selection(trace_id: str, mode: str, reason: str) -> None:
    logger.info("mode_selected", trace_id=trace_id, mode=mode, reason=reason)


def log_answer_generation(
    trace_id: str,
    mode: str,
    answer_length: int,
    used_fallback: bool,
    modifications_applied: bool,
    latency_ms: float,
) -> None:
    logger.info(
        "answer_generated",
        trace_id=trace_id,
        mode=mode,
        answer_length=answer_length,
        used_fallback=used_fallback,
        modifications_applied=modifications_applied,
        latency_ms=round(latency_ms, 2),
    )
