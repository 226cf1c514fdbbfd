"""Answer orchestrator: classify, build context, prompt, generate, modify, remember."""

from __future__ import annotations

import json

from plan_chat.config.constants import MIN_ANSWER_LENGTH, SUMMARY_TURN_MARKER
from plan_chat.config.settings import Settings
from plan_chat.context.context_builder import ContextBuilder
from plan_chat.exceptions import ConfigurationError, GenerationError, PlanIndexingError
from plan_chat.generation.prompt_selector import (
    build_user_prompt,
    format_quantity,
    infer_unit,
    mode_reason,
    select_mode,
    select_system_prompt,
)
from plan_chat.memory.conversation_memory import ConversationMemory
from plan_chat.memory.title_generator import ChatTitleGenerator
from plan_chat.modification.instructions import format_missing_scope, format_modification_instructions
from plan_chat.modification.parser import (
    ModificationParser,
    deduplicate_modifications,
    detect_update_claims,
    should_parse,
)
from plan_chat.modification.takeoff_modifier import TakeoffModifier
from plan_chat.models.domain import ChatMessage, PlanContext
from plan_chat.models.schemas import (
    AnswerMetadata,
    ModificationIntent,
    PlanChatResponse,
    QuestionClassification,
    QuestionType,
    ResponseMode,
    RetrievalStats,
)
from plan_chat.observability.logger import get_logger
from plan_chat.observability.metrics import (
    log_answer_generation,
    log_classification,
    log_context_build,
    log_mode_selection,
    log_retrieval_stats,
)
from plan_chat.observability.tracing import TraceContext
from plan_chat.pipeline.background import BackgroundTasks
from plan_chat.protocols.indexing import PlanIndexer
from plan_chat.protocols.llm import LLMProvider
from plan_chat.protocols.stores import ChunkSearcher
from plan_chat.query.classifier import QuestionClassifier

logger = get_logger("answer_engine")

NO_DATA_ANSWER = (
    "I don't have any extracted plan text or takeoff data for this plan yet. "
    "The plan may need to be processed first. Try again once text extraction "
    "and the takeoff analysis have finished."
)


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def fallback_answer(context: PlanContext, mode: ResponseMode) -> str:
    """Deterministic answer used when the model returns (almost) nothing."""
    items = context.takeoff_context.items
    chunks = context.blueprint_context.chunks

    if mode == ResponseMode.TAKEOFF and items:
        lines = []
        for item in items:
            if item.quantity is None:
                continue
            unit, _ = infer_unit(item)
            lines.append(f"- {item.name}: {format_quantity(item.quantity, unit)}")
        if lines:
            return "From the takeoff data:\n" + "\n".join(lines)

    if chunks:
        pages = sorted({c.page_number for c in chunks if c.page_number})
        if pages:
            label = "page" if len(pages) == 1 else "pages"
            return (
                f"I found content on {label} {', '.join(str(p) for p in pages)}. "
                f"The text includes notes about {chunks[0].text[:100]}... "
                "Would you like me to summarize a specific aspect?"
            )
        return (
            f"I found {_plural(len(chunks), 'text snippet')} from the plans. "
            "What specific information are you looking for?"
        )

    if items:
        return f"I found {_plural(len(items), 'item')} in the takeoff. What would you like to know about them?"

    return NO_DATA_ANSWER


class AnswerEngine:
    def __init__(
        self,
        llm: LLMProvider | None,
        classifier: QuestionClassifier,
        context_builder: ContextBuilder,
        memory: ConversationMemory,
        modifier: TakeoffModifier,
        parser: ModificationParser,
        settings: Settings,
        background: BackgroundTasks,
        indexer: PlanIndexer | None = None,
        chunk_searcher: ChunkSearcher | None = None,
        title_generator: ChatTitleGenerator | None = None,
    ) -> None:
        self._llm = llm
        self._classifier = classifier
        self._context_builder = context_builder
        self._memory = memory
        self._modifier = modifier
        self._parser = parser
        self._settings = settings
        self._background = background
        self._indexer = indexer
        self._chunks = chunk_searcher
        self._titles = title_generator

    async def generate_answer(
        self,
        plan_id: str,
        user_id: str,
        job_id: str | None,
        question: str,
        model: str | None = None,
        chat_id: str | None = None,
    ) -> PlanChatResponse:
        if self._llm is None:
            raise ConfigurationError("No LLM provider is configured; set an API key for the selected provider")

        trace = TraceContext()

        # STEP 1: Classification
        with trace.span("classification"):
            classification = await self._classifier.classify(question)
        log_classification(
            trace.trace_id,
            classification.question_type.value,
            classification.targets,
            classification.pages,
            classification.strict_takeoff_only,
            classification.modification_intent.value,
        )

        mode = select_mode(classification)

        # STEP 2: Retrieval + context
        with trace.span("context"):
            context = await self._context_builder.build(plan_id, user_id, job_id, classification, question)

        # STEP 3: Auto-reindex when the plan has never been chunked
        if await self._needs_reindex(plan_id, context, mode):
            with trace.span("reindex"):
                await self._reindex(plan_id)
            with trace.span("context"):
                context = await self._context_builder.build(
                    plan_id, user_id, job_id, classification, question
                )

        log_retrieval_stats(
            trace.trace_id,
            len(context.blueprint_context.chunks),
            len(context.takeoff_context.items),
            len(context.related_sheets),
            context.project_metadata is not None,
        )
        context_size = len(json.dumps(context.to_dict(), default=str))
        log_context_build(trace.trace_id, len(context.recent_conversation), context_size)
        log_mode_selection(trace.trace_id, mode.value, mode_reason(classification))

        # STEP 4: Prompt
        with trace.span("prompt"):
            messages = await self._build_messages(plan_id, user_id, question, classification, context, mode)

        # STEP 5: Generation
        selected_model = model or self._settings.default_model
        max_tokens, temperature = self._generation_params(mode, selected_model)
        with trace.span("generation"):
            try:
                response = await self._llm.generate(
                    messages, model=selected_model, max_tokens=max_tokens, temperature=temperature
                )
            except GenerationError:
                raise
            except Exception as e:
                raise GenerationError(f"LLM failed to generate a response: {e}") from e

        answer = (response.content or "").strip()
        used_fallback = len(answer) < MIN_ANSWER_LENGTH
        if used_fallback:
            logger.warning(
                "empty_answer_fallback",
                plan_id=plan_id,
                mode=mode.value,
                finish_reason=response.finish_reason,
            )
            answer = fallback_answer(context, mode)

        # STEP 6: Takeoff modifications
        modifications_applied = False
        with trace.span("modification"):
            answer, modifications_applied = await self._maybe_modify(
                plan_id, user_id, question, answer, classification, mode
            )

        # STEP 7: Persist (never awaited)
        turn_metadata = {
            "classification": classification.model_dump(mode="json"),
            "mode": mode.value,
            "retrieval_stats": {
                "semantic_chunks": len(context.blueprint_context.chunks),
                "takeoff_items": len(context.takeoff_context.items),
                "related_sheets": len(context.related_sheets),
            },
        }
        if chat_id and self._titles is not None:
            self._background.spawn(
                self._persist(plan_id, user_id, job_id, question, answer, turn_metadata, chat_id),
                name=f"persist_turn:{plan_id}",
            )
        else:
            self._memory.record(plan_id, user_id, job_id, question, answer, turn_metadata, chat_id)

        latency_ms = trace.elapsed_ms
        log_answer_generation(
            trace.trace_id, mode.value, len(answer), used_fallback, modifications_applied, latency_ms
        )

        return PlanChatResponse(
            answer=answer,
            classification=classification,
            mode=mode,
            metadata=AnswerMetadata(
                retrieval_stats=RetrievalStats(
                    semantic_chunks=len(context.blueprint_context.chunks),
                    takeoff_items=len(context.takeoff_context.items),
                    related_sheets=len(context.related_sheets),
                ),
                context_size=context_size,
                modifications_applied=modifications_applied,
                latency_ms=round(latency_ms, 2),
                trace_id=trace.trace_id,
                stage_durations_ms=trace.span_durations(),
            ),
        )

    async def _needs_reindex(self, plan_id: str, context: PlanContext, mode: ResponseMode) -> bool:
        if mode == ResponseMode.TAKEOFF or context.blueprint_context.chunks:
            return False
        if self._indexer is None or self._chunks is None:
            return False
        try:
            return await self._chunks.count_chunks(plan_id) == 0
        except Exception as e:
            logger.warning("chunk_count_failed", plan_id=plan_id, error=str(e))
            return False

    async def _reindex(self, plan_id: str) -> None:
        logger.info("auto_reindex_started", plan_id=plan_id)
        try:
            result = await self._indexer.index_plan(plan_id)
        except PlanIndexingError:
            raise
        except Exception as e:
            raise PlanIndexingError(f"Failed to prepare plan {plan_id} for chat: {e}") from e
        logger.info("auto_reindex_finished", plan_id=plan_id, chunks=result.chunk_count)

    def _generation_params(self, mode: ResponseMode, model: str) -> tuple[int, float | None]:
        s = self._settings
        if mode == ResponseMode.TAKEOFF:
            max_tokens, temperature = s.takeoff_max_tokens, s.takeoff_temperature
        elif mode == ResponseMode.TAKEOFF_MODIFY:
            max_tokens, temperature = s.modify_max_tokens, s.modify_temperature
        else:
            max_tokens, temperature = s.copilot_max_tokens, s.copilot_temperature
        return max_tokens, s.temperature_for(model, temperature)

    async def _build_messages(
        self,
        plan_id: str,
        user_id: str,
        question: str,
        classification: QuestionClassification,
        context: PlanContext,
        mode: ResponseMode,
    ) -> list[ChatMessage]:
        user_prompt = build_user_prompt(question, context, mode)

        if mode == ResponseMode.TAKEOFF_MODIFY:
            try:
                items, _ = await self._modifier.load_items(plan_id, user_id)
            except Exception as e:
                logger.warning("takeoff_load_failed", plan_id=plan_id, error=str(e))
                items = []
            user_prompt += format_modification_instructions(classification, items)

        if classification.question_type == QuestionType.TAKEOFF_ANALYZE:
            try:
                analysis = await self._modifier.analyze_missing_scope(
                    plan_id, user_id, [c.text for c in context.blueprint_context.chunks]
                )
                user_prompt += format_missing_scope(analysis)
            except Exception as e:
                logger.warning("missing_scope_analysis_failed", plan_id=plan_id, error=str(e))

        messages = [ChatMessage(role="system", content=select_system_prompt(classification))]
        for turn in context.recent_conversation:
            if turn.user == SUMMARY_TURN_MARKER:
                continue
            messages.append(ChatMessage(role="user", content=turn.user))
            messages.append(ChatMessage(role="assistant", content=turn.assistant))
        messages.append(ChatMessage(role="user", content=user_prompt))
        return messages

    async def _maybe_modify(
        self,
        plan_id: str,
        user_id: str,
        question: str,
        answer: str,
        classification: QuestionClassification,
        mode: ResponseMode,
    ) -> tuple[str, bool]:
        requested = mode == ResponseMode.TAKEOFF_MODIFY and should_parse(classification)
        claimed = (
            self._settings.detect_update_claims
            and detect_update_claims(answer) >= self._settings.update_claim_min_matches
        )
        if not (requested or claimed):
            return answer, False

        effective = classification
        if not requested:
            effective = QuestionClassification.model_validate(
                {
                    **classification.model_dump(),
                    "question_type": QuestionType.TAKEOFF_MODIFY,
                    "modification_intent": ModificationIntent.ADD,
                }
            )

        try:
            items, _ = await self._modifier.load_items(plan_id, user_id)
            parsed = self._parser.parse(answer, effective, items)
            if not parsed.modifications:
                parsed = self._parser.parse(question, effective, items)
            modifications = deduplicate_modifications(parsed.modifications)
            if not modifications:
                logger.info("no_modifications_parsed", plan_id=plan_id, requested=requested)
                return answer, False

            result = await self._modifier.apply(plan_id, user_id, modifications)
        except Exception as e:
            logger.error("modification_failed", plan_id=plan_id, error=str(e))
            return answer, False

        if not result.success:
            return f"{answer}\n\nFailed to apply modifications: {result.message}", False

        answer = f"{answer}\n\nSuccessfully applied {len(modifications)} modification(s) to the takeoff."
        if result.warnings:
            answer += f"\nWarnings: {'; '.join(result.warnings)}"
        return answer, True

    async def _persist(
        self,
        plan_id: str,
        user_id: str,
        job_id: str | None,
        question: str,
        answer: str,
        metadata: dict,
        chat_id: str | None,
    ) -> None:
        await self._memory.record_turn(plan_id, user_id, job_id, question, answer, metadata, chat_id)
        if chat_id and self._titles is not None:
            await self._titles.update_title_if_needed(chat_id, user_id)
