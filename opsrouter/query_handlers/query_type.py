# query_type.py
"""Query shape detection and source table selection."""

import re

from .types import TableSelection

QUERY_TYPE_PATTERNS = (
    ("time_series", re.compile(r"\b(over time|trend|timeline|daily|weekly|monthly)\b")),
    ("distribution", re.compile(r"\b(distribution|spread|breakdown|histogram)\b")),
    ("comparison", re.compile(r"\b(compare|comparison|versus|vs\.?|difference between)\b")),
    (
        "equipment_combo",
        re.compile(r"\b(tipper.*excavator|excavator.*tipper|combination|pairing)\b"),
    ),
    ("shift_grouping", re.compile(r"\b(by shift|per shift|shift [abc123]|each shift)\b")),
    ("summary", re.compile(r"\b(summary|total|sum|aggregate|overall)\b")),
)

_EQUIPMENT = re.compile(
    r"\b(tipper|truck|dumper|vehicle|excavator|shovel|loader|equipment.*id|bb-\d+|ex-\d+)\b"
)
_PRODUCTION_TOTALS = re.compile(r"\b(production|tonnage|qty.*ton)\b")
_LOCATION = re.compile(r"\b(route|face|bench|haul|path|from.*to)\b")
_PRODUCTION_METRICS = re.compile(r"\b(production|tonnage|qty|volume|target|actual|m3|ton)\b")
_AGGREGATES = re.compile(r"\b(shift|daily|monthly|summary|total|average|trend)\b")
_FILES = re.compile(r"\b(file|upload|document|pdf|csv)\b")
_INVENTORY = re.compile(r"\b(equipment.*list|machine.*list|available.*equipment)\b")


def detect_query_type(text: str) -> str:
    """Classify the shape of the answer a question expects"""
    text = (text or "").lower()
    for query_type, pattern in QUERY_TYPE_PATTERNS:
        if pattern.search(text):
            return query_type
    return "generic"


def determine_table(question: str) -> TableSelection:
    """Pick the table(s) a structured query over this question should read"""
    q = (question or "").lower()

    if _EQUIPMENT.search(q):
        if _PRODUCTION_TOTALS.search(q):
            return TableSelection(
                primary="production_summary",
                secondary="trip_summary_by_date",
                requires_join=True,
                reason="Query requires production totals with equipment breakdown",
            )
        return TableSelection(
            primary="trip_summary_by_date",
            requires_join=False,
            reason="Query mentions specific equipment/vehicles",
        )

    if _LOCATION.search(q):
        return TableSelection(
            primary="trip_summary_by_date",
            requires_join=False,
            reason="Query mentions routes or locations",
        )

    if _PRODUCTION_METRICS.search(q):
        return TableSelection(
            primary="production_summary",
            requires_join=False,
            reason="Query focuses on production metrics",
        )

    if _AGGREGATES.search(q):
        return TableSelection(
            primary="production_summary",
            requires_join=False,
            reason="Query requires aggregated production data",
        )

    if _FILES.search(q):
        return TableSelection(
            primary="uploaded_files", requires_join=False, reason="Query about file management"
        )

    if _INVENTORY.search(q):
        return TableSelection(
            primary="equipment", requires_join=False, reason="Query about equipment inventory"
        )

    return TableSelection(
        primary="production_summary",
        requires_join=False,
        reason="Default to production_summary for general queries",
    )
