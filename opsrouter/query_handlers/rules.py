# rules.py
"""Deterministic task routing.

Rules are evaluated in order and the first whose predicate holds builds the
decision. Returning None means no rule applied and the caller should fall
back to a broader resolver.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from opsrouter.core import Config, Task
from .types import IntentResult, RoutingDecision

logger = logging.getLogger(__name__)

THRESHOLDS = Config.CONFIDENCE_THRESHOLDS

OPTIMIZE_KEYWORDS = re.compile(
    r"\b(which excavator|what equipment should|recommend equipment|optimal allocation"
    r"|best combination|optimize equipment|predict|forecast|estimate future|project"
    r"|next month production|how many excavators do i need|equipment requirement"
    r"|i have to pick|i need to pick|i have to select|i need to select|i have to choose"
    r"|i need to choose|i want to pick|i want to select|help me pick|help me select"
    r"|help me choose|optimisation|optimisatio|optimization|optimize|optimise)\b",
    re.IGNORECASE,
)

TARGET_OPTIMIZATION_KEYWORDS = re.compile(
    r"\b(mine \d+|target \d+|need to mine|production target|optimize for \d+"
    r"|how to mine \d+)\b",
    re.IGNORECASE,
)

VISUALIZATION_KEYWORDS = re.compile(
    r"\b(graph|chart|plot|visualize|visualization|visualisation|draw|overlay|bar chart"
    r"|line graph|pie chart|histogram|show on graph|plot over time|chart by|graph by"
    r"|average line|mean line|trend line|overlay average|add mean|with different colors"
    r"|separate by|color coded|by shift|by equipment)\b",
    re.IGNORECASE,
)

CALCULATION_KEYWORDS = re.compile(
    r"\b(average|mean|median|sum|total|count|max|min|highest|lowest|top|bottom|most"
    r"|least|calculate|compute|what is the average|find the mean|compare|versus|vs"
    r"|difference between)\b",
    re.IGNORECASE,
)

ADVISORY_KEYWORDS = re.compile(
    r"\b(how to|how do i|how can i|how should i|best practice|best practices|best way"
    r"|improve|reduce|increase|what is the process|what are the steps|what are the best"
    r"|what is the best|guideline|guidelines|procedure|procedures|safety|policy|policies"
    r"|standard operating procedure|sop|recommendation|recommendations)\b",
    re.IGNORECASE,
)

STATISTICAL_KEYWORDS = re.compile(
    r"\b(mean|median|mode|standard deviation|stddev|std dev|deviation)\b", re.IGNORECASE
)

ROUTE_FACE_KEYWORDS = re.compile(r"\b(route|face|bench|haul|path)\b", re.IGNORECASE)

_MONTH_RANKING = re.compile(r"\bwhich\s+month\b", re.IGNORECASE)
_CHART_BY_MONTH = re.compile(r"\b(chart|graph|plot|visualize).*by\s+month\b", re.IGNORECASE)
_EXTREMES = re.compile(
    r"\b(highest|lowest|maximum|minimum|biggest|smallest|greatest|least|most|top|bottom)\b",
    re.IGNORECASE,
)

MONTH_GROUPING = "EXTRACT(MONTH FROM date)"

_STATISTICAL_OPERATIONS = (
    ("mean", re.compile(r"\b(mean|average)\b")),
    ("median", re.compile(r"\bmedian\b")),
    ("mode", re.compile(r"\bmode\b")),
    ("stddev", re.compile(r"\b(standard deviation|stddev|std dev|deviation)\b")),
)


@dataclass(frozen=True)
class RoutingRule:
    """One (predicate, builder) pair in the routing cascade"""

    name: str
    predicate: Callable[[str, IntentResult], bool]
    build: Callable[[str, IntentResult], RoutingDecision]


def build_statistical_template(question: str, params: Dict[str, Any]) -> Dict[str, Any]:
    """Describe the statistics a mean/median/mode/stddev question asks for"""
    lower = question.lower()

    is_month_ranking = bool(_MONTH_RANKING.search(lower))
    is_chart_by_month = bool(_CHART_BY_MONTH.search(lower)) or bool(
        params.get("group_by_month")
    )
    is_multi_month = bool(params.get("is_multi_month") or params.get("months"))

    group_by = None
    select_month_name = False
    query_type = "simple"
    if is_month_ranking:
        group_by, select_month_name, query_type = MONTH_GROUPING, True, "ranking"
    elif is_chart_by_month or params.get("all_months"):
        group_by, select_month_name, query_type = MONTH_GROUPING, True, "chart"
    elif is_multi_month:
        group_by, select_month_name, query_type = MONTH_GROUPING, True, "multi_month"

    operations = [name for name, pattern in _STATISTICAL_OPERATIONS if pattern.search(lower)]

    filters = None
    if params.get("months"):
        filters = {"months": params["months"]}
    elif params.get("month"):
        filters = {"month": params["month"]}

    return {
        "operations": operations,
        "target_column": params.get("target_column", "qty_ton"),
        "group_by": group_by,
        "select_month_name": select_month_name,
        "query_type": query_type,
        "order_by": "detect_from_question"
        if is_month_ranking and _EXTREMES.search(lower)
        else None,
        "filters": filters,
    }


def _decision(
    question: str,
    result: IntentResult,
    task: Task,
    confidence: float,
    reason: str,
    template: str,
    default_intent: Optional[str] = None,
    **extra,
) -> RoutingDecision:
    return RoutingDecision(
        task=task.value,
        confidence=confidence,
        reason=reason,
        template_used=template,
        original_question=question,
        intent=result.intent or default_intent,
        parameters=dict(result.parameters),
        **extra,
    )


def _statistical(question: str, result: IntentResult) -> RoutingDecision:
    template = build_statistical_template(question, result.parameters)
    decision = _decision(
        question,
        result,
        Task.SQL,
        THRESHOLDS["HIGH"],
        "Statistical query (mean, median, mode, stddev) detected",
        "statistical_rule_template",
        "STATISTICAL_QUERY",
        statistical_template=template,
    )
    decision.parameters["statistical_template"] = template
    return decision


def _time_description(params: Dict[str, Any]) -> str:
    if params.get("month"):
        return f"month {params['month']}"
    if params.get("year"):
        return f"year {params['year']}"
    if params.get("date_range"):
        return params["date_range"]
    if params.get("shift"):
        return f"shift {', '.join(params['shift'])}"
    return "time period"


def _has_time_scope(params: Dict[str, Any]) -> bool:
    return bool(
        params.get("month")
        or params.get("year")
        or params.get("date_range")
        or params.get("date_start")
        or params.get("shift")
    )


DEFAULT_RULES: Tuple[RoutingRule, ...] = (
    RoutingRule(
        "statistical_query",
        lambda q, r: r.intent == "STATISTICAL_QUERY" or bool(STATISTICAL_KEYWORDS.search(q)),
        _statistical,
    ),
    RoutingRule(
        "target_optimization_intent",
        lambda q, r: r.intent == "TARGET_OPTIMIZATION",
        lambda q, r: _decision(
            q,
            r,
            Task.OPTIMIZE,
            THRESHOLDS["HIGH"],
            "Target optimization query - planning equipment allocation for production goal",
            "target_optimize_rule_template",
        ),
    ),
    RoutingRule(
        "equipment_optimization_intent",
        lambda q, r: r.intent == "EQUIPMENT_OPTIMIZATION",
        lambda q, r: _decision(
            q,
            r,
            Task.OPTIMIZE,
            THRESHOLDS["HIGH"],
            "Equipment optimization query - requires ML/AI model",
            "optimize_rule_template",
        ),
    ),
    RoutingRule(
        "equipment_combination_intent",
        lambda q, r: r.intent == "EQUIPMENT_COMBINATION",
        lambda q, r: _decision(
            q,
            r,
            Task.SQL,
            THRESHOLDS["HIGH"],
            "Equipment combination query - analyzing equipment pairings",
            "equipment_combination_override",
        ),
    ),
    # Equipment comparisons are left to the LLM resolver
    RoutingRule(
        "comparison_query_shift_month",
        lambda q, r: r.intent == "COMPARISON_QUERY"
        and not r.parameters.get("equipment_ids"),
        lambda q, r: _decision(
            q,
            r,
            Task.SQL,
            THRESHOLDS["HIGH"],
            "Comparison query - comparing shifts or months",
            "comparison_query_override",
        ),
    ),
    RoutingRule(
        "advisory_procedural",
        lambda q, r: r.intent == "ADVISORY_QUERY" or bool(ADVISORY_KEYWORDS.search(q)),
        lambda q, r: _decision(
            q,
            r,
            Task.RAG,
            THRESHOLDS["GOOD"],
            "Advisory/procedural query - retrieving guidelines from documents",
            "advisory_rule_template",
            "ADVISORY_QUERY",
            namespaces=list(Config.DEFAULT_RAG_NAMESPACES),
        ),
    ),
    RoutingRule(
        "optimize",
        lambda q, r: r.intent in ("EQUIPMENT_OPTIMIZATION", "FORECASTING")
        or bool(OPTIMIZE_KEYWORDS.search(q))
        or bool(TARGET_OPTIMIZATION_KEYWORDS.search(q)),
        lambda q, r: _decision(
            q,
            r,
            Task.OPTIMIZE,
            THRESHOLDS["HIGH"],
            "Equipment optimization/forecasting query - requires ML/AI model",
            "optimize_rule_template",
        ),
    ),
    RoutingRule(
        "chart_visualization",
        lambda q, r: r.intent == "CHART_VISUALIZATION"
        or bool(VISUALIZATION_KEYWORDS.search(q)),
        lambda q, r: _decision(
            q,
            r,
            Task.SQL,
            THRESHOLDS["HIGH"],
            "Visualization/chart query - needs SQL for data aggregation",
            "visualization_rule_template",
            "CHART_VISUALIZATION",
        ),
    ),
    RoutingRule(
        "routes_faces_analysis",
        lambda q, r: bool(ROUTE_FACE_KEYWORDS.search(q)),
        lambda q, r: RoutingDecision(
            task=Task.SQL.value,
            confidence=THRESHOLDS["GOOD"],
            reason="Route/face analysis - requires trip_summary_by_date table",
            template_used="routes_faces_rule_template",
            original_question=q,
            intent="ROUTES_FACES_ANALYSIS",
            parameters=dict(r.parameters),
        ),
    ),
    RoutingRule(
        "calculation_aggregation",
        lambda q, r: r.intent == "AGGREGATION_QUERY" or bool(CALCULATION_KEYWORDS.search(q)),
        lambda q, r: _decision(
            q,
            r,
            Task.SQL,
            THRESHOLDS["GOOD"],
            "Calculation/aggregation query - needs SQL for database operations",
            "aggregation_rule_template",
            "AGGREGATION_QUERY",
        ),
    ),
    RoutingRule(
        "ordinal_row",
        lambda q, r: bool(r.parameters.get("row_number")),
        lambda q, r: _decision(
            q,
            r,
            Task.SQL,
            THRESHOLDS["VERY_HIGH"],
            f"Ordinal row request ({r.parameters['row_number']}) - direct database access",
            "ordinal_row_override",
            "ORDINAL_ROW_QUERY",
        ),
    ),
    RoutingRule(
        "equipment_specific_production",
        lambda q, r: bool(r.parameters.get("equipment_ids")),
        lambda q, r: _decision(
            q,
            r,
            Task.SQL,
            THRESHOLDS["HIGH"],
            f"Equipment-specific query for: {', '.join(r.parameters['equipment_ids'])}",
            "equipment_specific_production_override",
            "EQUIPMENT_SPECIFIC_PRODUCTION",
        ),
    ),
    RoutingRule(
        "time_based_query",
        lambda q, r: _has_time_scope(r.parameters),
        lambda q, r: _decision(
            q,
            r,
            Task.SQL,
            THRESHOLDS["GOOD"],
            f"Time-based data retrieval for {_time_description(r.parameters)}",
            "data_retrieval_rule_template",
            "DATA_RETRIEVAL",
        ),
    ),
    RoutingRule(
        "generic_data_retrieval",
        lambda q, r: r.intent in ("DATA_RETRIEVAL", "MONTHLY_SUMMARY", "ROUTES_FACES_ANALYSIS")
        or r.confidence >= 0.3,
        lambda q, r: _decision(
            q,
            r,
            Task.SQL,
            THRESHOLDS["MEDIUM"],
            "Generic data retrieval from database",
            "data_retrieval_rule_template",
            "DATA_RETRIEVAL",
        ),
    ),
)


class DeterministicTaskRouter:
    """Routes a classified question to sql, rag or optimize using ordered rules"""

    def __init__(self, rules: Optional[Tuple[RoutingRule, ...]] = None):
        self.rules = tuple(rules) if rules is not None else DEFAULT_RULES

    def route(self, question: str, intent_result: IntentResult) -> Optional[RoutingDecision]:
        lower_question = (question or "").lower()

        for rule in self.rules:
            if rule.predicate(lower_question, intent_result):
                decision = rule.build(question, intent_result)
                logger.debug(f"Rule '{rule.name}' matched -> {decision.task}")
                return decision

        logger.debug("No deterministic rule matched")
        return None
