"""Question classification: LLM structured output with a keyword heuristic fallback."""

from __future__ import annotations

import re

from plan_chat.config.constants import SMALL_NUMBER_WORDS
from plan_chat.models.domain import ChatMessage
from plan_chat.models.schemas import ModificationIntent, QuestionClassification, QuestionType
from plan_chat.observability.logger import get_logger
from plan_chat.protocols.llm import LLMProvider

logger = get_logger("classifier")

CLASSIFIER_SYSTEM_PROMPT = """You are a classifier for an estimator assistant.

Your ONLY job is to classify the user's question about a construction plan.
Return a JSON object with:
- question_type: one of "TAKEOFF_QUANTITY", "TAKEOFF_COST", "TAKEOFF_MODIFY", "TAKEOFF_ANALYZE", "PAGE_CONTENT", "BLUEPRINT_CONTEXT", "COMBINED", "OTHER"
- targets: array of relevant item/material/trade words (e.g., ["door", "window", "concrete"])
- levels: array of levels/floors mentioned (optional, e.g., ["first floor", "basement"])
- pages: array of page numbers mentioned (optional, e.g., [1, 3, 5])
- strict_takeoff_only: boolean (true if the question must ONLY be answered from the takeoff, such as total cost questions)
- modification_intent: one of "add", "remove", "update", "analyze_missing", "none"

Question types:
- TAKEOFF_QUANTITY: Questions about quantities, amounts, "how much", "how many"
- TAKEOFF_COST: Questions about costs, prices, "how much does it cost", "what's the price"
- TAKEOFF_MODIFY: Requests to add, remove, or change takeoff items or their quantities/costs
- TAKEOFF_ANALYZE: Requests to find missing scope, items or measurements in the takeoff
- PAGE_CONTENT: Questions asking about specific pages ("what's on page 5", "show me page 3")
- BLUEPRINT_CONTEXT: Questions about blueprint notes, specifications, requirements
- COMBINED: Questions that need both takeoff data and blueprint context
- OTHER: General questions that don't fit the above categories

Do not answer the question. Do not explain. Return JSON only."""

_PAGE_LIST = re.compile(r"\b(?:pages?|sheets?|pg\.?)\s+((?:\d+\s*(?:,|and|&|-|to)?\s*)+)", re.I)
_LEVEL = re.compile(
    r"\b(basement|roof|(?:first|second|third|ground|main|upper|lower|\d+(?:st|nd|rd|th))\s+(?:floor|level))\b",
    re.I,
)
_TARGET_STOPWORDS = frozenset(
    {
        "what", "whats", "how", "many", "much", "does", "the", "are", "is", "there", "for",
        "total", "cost", "costs", "price", "quantity", "quantities", "of", "on", "in", "a",
        "an", "and", "to", "me", "show", "tell", "about", "page", "pages", "sheet", "sheets",
        "takeoff", "plan", "plans", "add", "remove", "delete", "update", "change", "set",
        "please", "can", "you", "we", "our", "my", "this", "that", "it", "with", "from",
        "do", "have", "need", "missing", "any", "all", "each", "per", "be", "should", "would",
    }
)


class QuestionClassifier:
    def __init__(
        self,
        llm: LLMProvider | None,
        model: str | None = None,
        max_tokens: int = 200,
    ) -> None:
        self._llm = llm
        self._model = model
        self._max_tokens = max_tokens

    async def classify(self, question: str) -> QuestionClassification:
        if self._llm is not None:
            try:
                result = await self._llm.generate_structured(
                    [
                        ChatMessage(role="system", content=CLASSIFIER_SYSTEM_PROMPT),
                        ChatMessage(role="user", content=question),
                    ],
                    QuestionClassification,
                    model=self._model,
                    max_tokens=self._max_tokens,
                )
                return QuestionClassification.model_validate(result.model_dump())
            except Exception as e:
                logger.warning("classification_failed", error=str(e))

        classification = self.classify_heuristic(question)
        logger.info("classification_heuristic", question_type=classification.question_type.value)
        return classification

    @classmethod
    def classify_heuristic(cls, question: str) -> QuestionClassification:
        q = question.lower()
        intent = cls._modification_intent(q)
        pages = cls._extract_pages(q)

        if intent == ModificationIntent.ANALYZE_MISSING:
            question_type = QuestionType.TAKEOFF_ANALYZE
        elif intent != ModificationIntent.NONE:
            question_type = QuestionType.TAKEOFF_MODIFY
        elif any(w in q for w in ["cost", "price", "how much does", "dollar", "$", "budget"]):
            question_type = QuestionType.TAKEOFF_COST
        elif any(w in q for w in ["how many", "how much", "quantity", "total", "count"]):
            question_type = QuestionType.TAKEOFF_QUANTITY
        elif pages:
            question_type = QuestionType.PAGE_CONTENT
        elif any(w in q for w in ["note", "spec", "requirement", "detail", "code", "callout"]):
            question_type = QuestionType.BLUEPRINT_CONTEXT
        else:
            question_type = QuestionType.OTHER

        return QuestionClassification(
            question_type=question_type,
            targets=cls._extract_targets(q),
            pages=pages,
            levels=[m.group(1) for m in _LEVEL.finditer(q)] or None,
            strict_takeoff_only=question_type == QuestionType.TAKEOFF_COST and "total" in q,
            modification_intent=intent,
        )

    @staticmethod
    def _modification_intent(q: str) -> ModificationIntent:
        if any(w in q for w in ["missing", "what did i miss", "forgot", "not in the takeoff", "left out"]):
            return ModificationIntent.ANALYZE_MISSING
        if re.search(r"\b(remove|delete|drop|take out)\b", q):
            return ModificationIntent.REMOVE
        if re.search(r"\b(update|change|set|adjust|modify|correct)\b", q):
            return ModificationIntent.UPDATE
        if re.search(r"\badd\b", q):
            return ModificationIntent.ADD
        return ModificationIntent.NONE

    @staticmethod
    def _extract_pages(q: str) -> list[int] | None:
        pages: list[int] = []
        for match in _PAGE_LIST.finditer(q):
            for number in re.findall(r"\d+", match.group(1)):
                if int(number) not in pages:
                    pages.append(int(number))
        return pages or None

    @staticmethod
    def _extract_targets(q: str) -> list[str]:
        targets: list[str] = []
        for word in re.findall(r"[a-z][a-z\-]+", q):
            if word in _TARGET_STOPWORDS or word in SMALL_NUMBER_WORDS or len(word) < 3:
                continue
            if word not in targets:
                targets.append(word)
        return targets
