"""FastAPI application factory with lifespan management."""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from plan_chat.api.middleware import RequestTimingMiddleware
from plan_chat.api.routes_chat import router as chat_router
from plan_chat.api.routes_health import router as health_router
from plan_chat.api.routes_plans import router as plans_router
from plan_chat.config.settings import Settings
from plan_chat.context.context_builder import ContextBuilder
from plan_chat.exceptions import ConfigurationError
from plan_chat.generation.factory import create_embedder, create_llm_provider
from plan_chat.ingestion.plan_indexer import PlanTextChunker, PlanTextIndexer
from plan_chat.memory.conversation_memory import ConversationMemory
from plan_chat.memory.title_generator import ChatTitleGenerator
from plan_chat.modification.parser import ModificationParser
from plan_chat.modification.takeoff_modifier import TakeoffModifier
from plan_chat.observability.logger import get_logger, setup_logging
from plan_chat.pipeline.answer_engine import AnswerEngine
from plan_chat.pipeline.background import BackgroundTasks
from plan_chat.query.classifier import QuestionClassifier
from plan_chat.retrieval.retrieval_engine import RetrievalEngine
from plan_chat.storage.sqlite_chat_store import SQLiteChatStore
from plan_chat.storage.sqlite_chunk_store import SQLiteChunkStore
from plan_chat.storage.sqlite_plan_store import SQLitePlanStore

logger = get_logger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    setup_logging(settings.log_level, json_output=settings.log_json)

    Path(settings.sqlite_db_path).parent.mkdir(parents=True, exist_ok=True)

    # Storage: one database file, three stores
    plan_store = SQLitePlanStore(settings.sqlite_db_path)
    await plan_store.initialize()
    chat_store = SQLiteChatStore(settings.sqlite_db_path)
    await chat_store.initialize()

    # LLM (optional: requests fail with 503 until a key is configured)
    try:
        llm = create_llm_provider(settings)
    except ConfigurationError as e:
        logger.warning("llm_not_configured", reason=str(e))
        llm = None

    # Embedding (optional: without it semantic search and indexing are off)
    try:
        embedder = create_embedder(settings)
    except ConfigurationError as e:
        logger.warning("embedder_not_configured", reason=str(e))
        embedder = None

    chunk_store = SQLiteChunkStore(settings.sqlite_db_path, embedder)
    await chunk_store.initialize()

    indexer = None
    if embedder is not None:
        indexer = PlanTextIndexer(
            plan_store=plan_store,
            chunk_store=chunk_store,
            embedder=embedder,
            chunker=PlanTextChunker(
                max_chars=settings.chunk_max_chars, min_chars=settings.chunk_min_chars
            ),
        )

    background = BackgroundTasks()
    memory = ConversationMemory(
        store=chat_store,
        background=background,
        llm=llm,
        summary_model=settings.summary_model or settings.default_model,
        summary_max_tokens=settings.summary_max_tokens,
        summary_timeout_s=settings.summary_timeout_s,
        no_temperature_models=settings.models_without_temperature,
    )
    retrieval = RetrievalEngine(chunk_store, plan_store, settings)

    answer_engine = AnswerEngine(
        llm=llm,
        classifier=QuestionClassifier(
            llm,
            model=settings.classifier_model or settings.default_model,
            max_tokens=settings.classifier_max_tokens,
        ),
        context_builder=ContextBuilder(retrieval, memory, settings),
        memory=memory,
        modifier=TakeoffModifier(plan_store),
        parser=ModificationParser(),
        settings=settings,
        background=background,
        indexer=indexer,
        chunk_searcher=chunk_store,
        title_generator=ChatTitleGenerator(
            chat_store,
            llm=llm,
            model=settings.default_model,
            no_temperature_models=settings.models_without_temperature,
        ),
    )

    # Attach to app state
    app.state.llm = llm
    app.state.indexer = indexer
    app.state.plan_store = plan_store
    app.state.chat_store = chat_store
    app.state.background = background
    app.state.answer_engine = answer_engine

    logger.info(
        "startup_complete",
        provider=settings.llm_provider,
        llm_configured=llm is not None,
        indexer_configured=indexer is not None,
    )

    yield

    # Shutdown: let pending memory writes finish
    await background.drain()
    logger.info("shutdown_complete")


def create_app(settings: Settings | None = None) -> FastAPI:
    app = FastAPI(
        title="Plan Chat",
        version="1.0.0",
        description="Question answering over construction plans and takeoffs",
        lifespan=lifespan,
    )
    app.state.settings = settings or Settings()
    app.add_middleware(RequestTimingMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(chat_router, tags=["chat"])
    app.include_router(plans_router, tags=["plans"])
    return app
