"""Four-way retrieval: semantic chunks, fuzzy takeoff items, related sheets, project metadata."""

from __future__ import annotations

import asyncio

from plan_chat.config.constants import MAX_COST_CATEGORIES, MAX_QUANTITY_CATEGORIES
from plan_chat.config.settings import Settings
from plan_chat.models.domain import (
    CostCategory,
    NormalizedTakeoffItem,
    ProjectMetadata,
    QuantityCategory,
    RelatedSheet,
    RetrievalResult,
    TextChunk,
)
from plan_chat.observability.logger import get_logger
from plan_chat.protocols.stores import ChunkSearcher, PlanStore
from plan_chat.retrieval.fuzzy import score_match
from plan_chat.retrieval.normalization import DEFAULT_CATEGORY, normalize_takeoff_items

logger = get_logger("retrieval")


class RetrievalEngine:
    """Runs the four sub-retrievals concurrently. Each one fails soft.

    A failing channel degrades to an empty list (or ``None`` for metadata)
    and never affects the other three.
    """

    def __init__(
        self,
        chunk_searcher: ChunkSearcher,
        plan_store: PlanStore,
        settings: Settings,
    ) -> None:
        self._chunks = chunk_searcher
        self._plans = plan_store
        self._settings = settings

    async def retrieve(
        self,
        plan_id: str,
        user_id: str,
        job_id: str | None,
        query: str,
        targets: list[str],
        pages: list[int] | None = None,
        include_all_items: bool = False,
        item_limit: int | None = None,
    ) -> RetrievalResult:
        semantic, items, sheets, metadata = await asyncio.gather(
            self.retrieve_semantic_chunks(plan_id, query),
            self.find_takeoff_items(plan_id, user_id, targets, include_all_items, item_limit),
            self.find_related_sheets(plan_id, pages or [], targets),
            self.get_project_metadata(plan_id, job_id),
        )
        return RetrievalResult(
            semantic_chunks=semantic,
            takeoff_items=items,
            related_sheets=sheets,
            project_metadata=metadata,
        )

    async def retrieve_semantic_chunks(self, plan_id: str, query: str) -> list[TextChunk]:
        try:
            return await self._chunks.search(plan_id, query, limit=self._settings.semantic_chunk_limit)
        except Exception as e:
            logger.warning("semantic_retrieval_failed", plan_id=plan_id, error=str(e))
            return []

    async def find_takeoff_items(
        self,
        plan_id: str,
        user_id: str,
        targets: list[str],
        include_all_items: bool = False,
        item_limit: int | None = None,
    ) -> list[NormalizedTakeoffItem]:
        if not targets and not include_all_items:
            return []
        try:
            record = await self._plans.get_latest_takeoff(plan_id, user_id)
        except Exception as e:
            logger.warning("takeoff_retrieval_failed", plan_id=plan_id, error=str(e))
            return []
        if record is None:
            return []

        items = normalize_takeoff_items(record.items)
        if not targets:
            return items[: item_limit or self._settings.overview_item_limit]

        threshold = self._settings.target_match_threshold
        scored = []
        for item in items:
            text = " ".join(
                part
                for part in (item.category, item.subcategory, item.name, item.description, item.location)
                if part
            )
            score = score_match(text, targets, threshold)
            if score > threshold:
                scored.append((score, item))

        # sorted() is stable, so equal scores keep takeoff order
        scored = sorted(scored, key=lambda pair: pair[0], reverse=True)
        limit = item_limit or self._settings.takeoff_item_limit
        return [item for _, item in scored[:limit]]

    async def find_related_sheets(
        self, plan_id: str, pages: list[int], targets: list[str]
    ) -> list[RelatedSheet]:
        sheets: list[RelatedSheet] = []
        try:
            if pages:
                sheets.extend(await self._plans.get_sheets_by_pages(plan_id, pages))
            if targets:
                lowered = [t.lower() for t in targets if t]
                for sheet in await self._plans.get_sheet_index(plan_id):
                    combined = " ".join(
                        (sheet.title or "", sheet.discipline or "", sheet.sheet_type or "")
                    ).lower()
                    if any(t in combined for t in lowered):
                        sheets.append(sheet)
        except Exception as e:
            logger.warning("sheet_retrieval_failed", plan_id=plan_id, error=str(e))
            return []

        seen: set[int] = set()
        unique: list[RelatedSheet] = []
        for sheet in sheets:
            if sheet.page_number in seen:
                continue
            seen.add(sheet.page_number)
            unique.append(sheet)
        return unique

    async def get_project_metadata(self, plan_id: str, job_id: str | None) -> ProjectMetadata | None:
        try:
            plan = await self._plans.get_plan(plan_id)
            if plan is None:
                return None
            job = await self._plans.get_job(job_id) if job_id else None
            record = await self._plans.get_latest_takeoff(plan_id)
            sheets = await self._plans.get_sheet_index(plan_id)
        except Exception as e:
            logger.warning("project_metadata_failed", plan_id=plan_id, error=str(e))
            return None

        items = normalize_takeoff_items(record.items) if record else []
        quantity_totals: dict[str, QuantityCategory] = {}
        cost_totals: dict[str, float] = {}
        for item in items:
            category = item.category or DEFAULT_CATEGORY
            if item.quantity is not None:
                entry = quantity_totals.setdefault(category, QuantityCategory(category, 0.0))
                entry.total += item.quantity
                entry.unit = entry.unit or item.unit
            if item.total_cost is not None:
                cost_totals[category] = cost_totals.get(category, 0.0) + item.total_cost

        major_quantities = sorted(quantity_totals.values(), key=lambda c: c.total, reverse=True)
        major_costs = sorted(
            (CostCategory(category, total) for category, total in cost_totals.items()),
            key=lambda c: c.total,
            reverse=True,
        )
        sheet_index = sorted(sheets, key=lambda s: s.page_number)

        return ProjectMetadata(
            job_name=job.name if job else None,
            plan_title=plan.title,
            plan_file_name=plan.file_name,
            address=job.location if job else None,
            disciplines=list(dict.fromkeys(s.discipline for s in sheet_index if s.discipline)),
            major_quantity_categories=major_quantities[:MAX_QUANTITY_CATEGORIES],
            major_cost_categories=major_costs[:MAX_COST_CATEGORIES],
            sheet_index_summary=sheet_index,
        )
