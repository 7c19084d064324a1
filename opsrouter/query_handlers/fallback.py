# fallback.py
"""Heuristic routing for questions no deterministic rule claimed."""

import logging
import re

from opsrouter.core import Config, Task
from .types import RoutingDecision

logger = logging.getLogger(__name__)

MEANINGFUL_WORDS = re.compile(
    r"\b(?:show|what|how|when|where|why|list|get|find|calculate|production|tonnage|trips"
    r"|shift|equipment|excavator|tipper|today|yesterday|month|week|compare|total|average"
    r"|best|optimize|forecast|predict)\b",
    re.IGNORECASE,
)

ADVISORY_PATTERN = re.compile(
    r"\b(how to|how do|how can|how should|best practice|guideline|procedure|policy|safety"
    r"|recommendation|improve|optimize|reduce|increase)\b",
    re.IGNORECASE,
)

OPTIMIZATION_PATTERN = re.compile(
    r"\b(which excavator|which tipper|which combination|select equipment|choose equipment"
    r"|should i pick|forecast|predict|prediction)\b",
    re.IGNORECASE,
)

STRONG_SQL_PATTERNS = (
    # retrieval verbs
    re.compile(r"\b(show|display|list|get|fetch|retrieve|find|search|query)\b"),
    # tables and columns
    re.compile(r"\b(table|column|row|record|data|database|entries)\b"),
    # aggregation
    re.compile(r"\b(count|sum|total|average|mean|median|max|min|aggregate)\b"),
    # mining operations
    re.compile(r"\b(production|tonnage|trips|shift|equipment|excavator|tipper|dumper|vehicle)\b"),
    # temporal
    re.compile(
        r"\b(today|yesterday|this week|this month|january|february|march|april|may|june"
        r"|july|august|september|october|november|december|2024|2025)\b"
    ),
    # comparison
    re.compile(r"\b(compare|versus|vs|difference|higher|lower|more|less|between)\b"),
    # filters
    re.compile(r"\b(where|filter|by|for|in|on|during|when)\b"),
)

SQL_DATA_PATTERN = re.compile(
    r"\b(select|show|list|display|get|fetch|table|from|where|data|production|trips|tonnage"
    r"|shift|equipment|row)\b",
    re.IGNORECASE,
)

REJECTION_REASON = (
    "Query too short or lacks meaningful content. Please ask a complete question "
    "about mining operations, production data, or equipment."
)


class FallbackRouter:
    """Catch-all router; always produces a decision"""

    def route(self, question: str) -> RoutingDecision:
        question = question or ""
        lower = question.lower()
        trimmed = question.strip()
        word_count = len(trimmed.split())

        if len(trimmed) < 2 or (word_count == 1 and not MEANINGFUL_WORDS.search(trimmed)):
            logger.info(f"Rejected query as too short: '{trimmed}'")
            return self._rag(question, 0.3, REJECTION_REASON, "rejected_query_template")

        if ADVISORY_PATTERN.search(question):
            return self._rag(
                question,
                0.75,
                "Detected advisory/procedural pattern (catch-all)",
                "advisory_rule_template",
            )

        if OPTIMIZATION_PATTERN.search(question):
            return RoutingDecision(
                task=Task.OPTIMIZE.value,
                confidence=0.75,
                reason="Detected optimization/forecasting pattern (catch-all)",
                template_used="optimize_rule_template",
                original_question=question,
            )

        if any(pattern.search(lower) for pattern in STRONG_SQL_PATTERNS):
            return self._sql(
                question,
                0.8,
                "Detected strong SQL/data indicators (high confidence fallback)",
            )

        if SQL_DATA_PATTERN.search(question):
            return self._sql(question, 0.75, "Detected SQL/data query pattern (catch-all)")

        logger.debug(f"Unclear query, defaulting to rag: '{trimmed[:60]}'")
        decision = self._rag(
            question,
            0.5,
            "Query unclear - could not determine intent. "
            "Defaulting to RAG for general assistance.",
            "unclear_query_template",
        )
        decision.needs_resolver = True
        return decision

    @staticmethod
    def _rag(question: str, confidence: float, reason: str, template: str) -> RoutingDecision:
        return RoutingDecision(
            task=Task.RAG.value,
            confidence=confidence,
            reason=reason,
            template_used=template,
            original_question=question,
            namespaces=list(Config.DEFAULT_RAG_NAMESPACES),
        )

    @staticmethod
    def _sql(question: str, confidence: float, reason: str) -> RoutingDecision:
        return RoutingDecision(
            task=Task.SQL.value,
            confidence=confidence,
            reason=reason,
            template_used="data_retrieval_rule_template",
            original_question=question,
        )
