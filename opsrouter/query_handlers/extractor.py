# extractor.py
"""Parameter extraction for query routing."""

import logging
import re
from typing import Any, Dict, List, Optional

from opsrouter.core import Config
from .dates import MONTH_NUMBERS, MONTH_PATTERN, DateParser

logger = logging.getLogger(__name__)

# Anything beyond a plain date question
_COMPLEX_SIGNAL = re.compile(
    r"\b(shift|top|bottom|\d+(st|nd|rd|th)\s+row|tipper|truck|excavator|dozer|vehicle"
    r"|bb-|ex-|tip-|doz-|between|to|from|greater|less|above|below|more than|less than)\b"
)

_SHIFT_MENTION = re.compile(r"shifts?\s*([abc123])\b")
_SHIFT_LIST = re.compile(
    r"shifts?\s+([abc123])\b(?:\s*,\s*([abc123])\b)?(?:\s*,?\s*(?:and\s+)?([abc123])\b)?"
)
_SHIFT_NUMERALS = {"1": "A", "2": "B", "3": "C"}

_RANK = re.compile(r"\b(top|bottom)\s*(\d+)\b")
_ORDINAL_ROW = re.compile(r"\b(\d+)(st|nd|rd|th)\s+row\b")

EQUIPMENT_ID_PATTERN = re.compile(r"\b([A-Z]{2,4})-(\d{1,4})\b", re.IGNORECASE)
GENERIC_EQUIPMENT_WORDS = frozenset(
    {
        "tipper",
        "tippers",
        "excavator",
        "excavators",
        "dumper",
        "dumpers",
        "dozer",
        "dozers",
        "truck",
        "trucks",
    }
)
_REPLACEMENT = re.compile(
    r"\b(replace|replacement|alternative|substitute|went down|broke down|broken"
    r"|unavailable|not available|backup|instead of)\b"
)

_ROUTE_FACE_MENTION = re.compile(r"\b(route|face|haul|pit|bench)\b")
_ROUTE_FACE_ID = re.compile(r"\b(?:route|face|pit|bench)\s+([a-z0-9]+(?:-[a-z0-9]+)?)\b")
_NOT_AN_IDENTIFIER = frozenset(
    {
        "made",
        "did",
        "was",
        "is",
        "has",
        "have",
        "performed",
        "produced",
        "yielded",
        "generated",
        "analysis",
        "performance",
        "utilization",
        "efficiency",
        "summary",
        "report",
        "check",
        "list",
        "show",
        "had",
        "with",
        "the",
        "for",
        "in",
        "of",
        "and",
        "or",
        "by",
    }
)

_MACHINES = re.compile(r"\b(tippers?|trucks?|excavators?|dozers?|vehicles?)\b")

_NUMBER = r"(\d+(?:,\d+)?(?:\.\d+)?)"
_NUMERIC_FILTERS = (
    (re.compile(rf"(?:greater than|more than|above|over|exceeds?)\s+{_NUMBER}"), ">"),
    (re.compile(rf"(?:less than|fewer than|below|under)\s+{_NUMBER}"), "<"),
    (re.compile(rf"(?:at least|minimum of?)\s+{_NUMBER}"), ">="),
    (re.compile(rf"(?:at most|maximum of?)\s+{_NUMBER}"), "<="),
    (re.compile(rf"(?:equals?|exactly)\s+{_NUMBER}"), "="),
    (re.compile(rf"(?:between)\s+{_NUMBER}\s+and\s+{_NUMBER}"), "between"),
)

_MEASUREMENT = re.compile(
    rf"\b{_NUMBER}\s+(tons?|tonnes?|trips?|meters?|kilometres?|km|hours?|hrs?)"
)

_ENTITY_COMPARISONS = (
    re.compile(
        r"did\s+([a-z]{2,3}-\d+)\s+\w+\s+(?:higher|lower|more|less|better|worse)\s+\w+\s+or\s+([a-z]{2,3}-\d+)"
    ),
    re.compile(r"([a-z]{2,3}-\d+)\s+(?:vs\.?|versus)\s+([a-z]{2,3}-\d+)"),
    re.compile(
        r"(?:did\s+)?(\w+)\s+(?:have\s+)?(?:higher|lower|more|less|better|worse|greater)\s+\w+\s+(?:than|or)\s+(\w+)"
    ),
    re.compile(
        r"(?:shift\s+)?([a-z])\s+(?:or|more productive.*?or|better.*?or)\s+(?:shift\s+)?([a-z])"
    ),
    re.compile(r"compare\s+(\w+(?:\s+\w+)?)\s+(?:and|to|with)\s+(\w+(?:\s+\w+)?)"),
    re.compile(r"(\w+(?:-\d+)?)\s+or\s+(\w+(?:-\d+)?)"),
)
_EQUIPMENT_ENTITY = re.compile(r"^[a-z]{2,3}-\d+$", re.IGNORECASE)
_MONTH_ENTITY = re.compile(
    r"^(january|february|march|april|may|june|july|august|september|october"
    r"|november|december|jan|feb|mar|apr|jun|jul|aug|sep|oct|nov|dec)$"
)
_SHIFT_ENTITY = re.compile(r"^[a-c]$")
_DATE_ENTITY = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Optimizer inputs
_TARGET = re.compile(
    r"(?:target|mine|production)\s+(?:of\s+)?(\d+)\s*(tons?|tonnes?|m3|meter cubed|cubic meters)",
    re.IGNORECASE,
)
_REMAINING = re.compile(r"(?:left|remaining|to go)\s+(?:to mine|to produce)?", re.IGNORECASE)
_DURATION = re.compile(r"in\s+(\d+)\s*(days?|months?|weeks?|hours?)", re.IGNORECASE)
_EXCLUDE_IDS = re.compile(
    r"(?:broken|down|repair|exclude|without|no)\s+(?:is\s+)?([A-Z]{2,}-?\d+)", re.IGNORECASE
)
_INCLUDE_IDS = re.compile(
    r"(?:only|use|have|with|include)\s+(?:is\s+)?([A-Z]{2,}-?\d+)", re.IGNORECASE
)
_EXCAVATOR_COUNT = re.compile(r"(\d+)\s+excavator", re.IGNORECASE)
_TIPPER_COUNT = re.compile(r"(\d+)\s+tipper", re.IGNORECASE)
_FORECAST = re.compile(r"forecast|predict", re.IGNORECASE)
_DAYS = re.compile(r"(\d+)\s+days?", re.IGNORECASE)


def normalize_shift(token: str) -> str:
    """Map a shift token to its letter form: "1" -> "A", "b" -> "B"."""
    token = str(token).strip().upper()
    return _SHIFT_NUMERALS.get(token, token)


def _unique(values) -> List[Any]:
    return list(dict.fromkeys(values))


def _to_number(raw: str) -> float:
    return float(raw.replace(",", ""))


class ParameterExtractor:
    """Pulls structured fields (dates, shifts, equipment, filters) out of a question.

    Extraction is pure: the same text always yields the same dict, missing
    patterns simply leave their keys out.
    """

    def __init__(self, date_parser: Optional[DateParser] = None):
        self.date_parser = date_parser or DateParser()

    def extract_parameters(self, text: str) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if not text or not text.strip():
            return params

        text_lower = text.lower()

        self._extract_date_parameters(text, params)
        self._extract_month_parameters(text_lower, params)

        # Plain date questions need nothing more
        if params and not _COMPLEX_SIGNAL.search(text_lower):
            return params

        self._extract_shifts(text_lower, params)
        self._extract_rank(text_lower, params)
        self._extract_equipment(text, text_lower, params)
        self._extract_route_or_face(text_lower, params)
        self._extract_machine_types(text_lower, params)
        self._extract_numeric_filter(text_lower, params)
        self._extract_measurement(text_lower, params)
        self._extract_comparison(text_lower, params)

        return params

    def _extract_date_parameters(self, text: str, params: Dict[str, Any]) -> None:
        parsed = self.date_parser.parse_date(text)
        if not parsed:
            return

        params["parsed_date"] = parsed.to_dict()
        if parsed.year:
            params["year"] = parsed.year
        if parsed.quarter:
            params["quarter"] = parsed.quarter
        if parsed.month:
            params["month"] = parsed.month
            params["month_name"] = parsed.month_name
        if parsed.start_date:
            params["date_start"] = parsed.start_date.isoformat()
            if parsed.type == "single":
                params["date"] = parsed.start_date.isoformat()
        if parsed.end_date:
            params["date_end"] = parsed.end_date.isoformat()
        if parsed.relative_period:
            params["date_range"] = parsed.relative_period
        if parsed.type == "range" and parsed.start_date and parsed.end_date:
            params["date_range_start"] = parsed.start_date.isoformat()
            params["date_range_end"] = parsed.end_date.isoformat()
            params["date_range_type"] = "custom"

    @staticmethod
    def _extract_month_parameters(text_lower: str, params: Dict[str, Any]) -> None:
        mentions = MONTH_PATTERN.findall(text_lower)
        if len(mentions) > 1:
            params["months"] = _unique(MONTH_NUMBERS[m.lower()] for m in mentions)
            params["is_multi_month"] = True

        if re.search(r"\bby\s+month\b", text_lower):
            params["group_by_month"] = True

        if re.search(r"\bwhich\s+month\b", text_lower):
            params["month_ranking"] = True

        if re.search(r"\ball\s+months?\b", text_lower):
            params["all_months"] = True
            params["group_by_month"] = True

    @staticmethod
    def _extract_shifts(text_lower: str, params: Dict[str, Any]) -> None:
        if "shift" not in text_lower:
            return

        if re.search(r"\bby\s+shift\b", text_lower):
            params["group_by_shift"] = True
            return

        shifts = [normalize_shift(m.group(1)) for m in _SHIFT_MENTION.finditer(text_lower)]
        if not shifts:
            return

        # "shifts A, B and C" lists letters without repeating the noun
        list_match = _SHIFT_LIST.search(text_lower)
        if list_match:
            shifts.extend(normalize_shift(s) for s in list_match.groups() if s)

        shifts = _unique(shifts)
        params["shift"] = shifts
        params["shift_count"] = len(shifts)

    @staticmethod
    def _extract_rank(text_lower: str, params: Dict[str, Any]) -> None:
        if "top" in text_lower or "bottom" in text_lower:
            match = _RANK.search(text_lower)
            if match:
                params["n"] = int(match.group(2))
                params["rank_type"] = match.group(1)

        if "row" in text_lower:
            match = _ORDINAL_ROW.search(text_lower)
            if match:
                params["row_number"] = int(match.group(1))

    @staticmethod
    def _extract_equipment(text: str, text_lower: str, params: Dict[str, Any]) -> None:
        ids = _unique(
            m.group(0).upper()
            for m in EQUIPMENT_ID_PATTERN.finditer(text)
            if m.group(0).lower() not in GENERIC_EQUIPMENT_WORDS
        )
        if not ids:
            return

        params["equipment_ids"] = ids

        if _REPLACEMENT.search(text_lower):
            first_id = ids[0]
            params["equipment_replacement"] = True
            params["exclude_equipment"] = [first_id]
            if re.match(r"^(BB|DT)-", first_id):
                params["replacement_type"] = "tipper"
            elif first_id.startswith("EX-"):
                params["replacement_type"] = "excavator"

    @staticmethod
    def _extract_route_or_face(text_lower: str, params: Dict[str, Any]) -> None:
        if not _ROUTE_FACE_MENTION.search(text_lower):
            return

        match = _ROUTE_FACE_ID.search(text_lower)
        if match and match.group(1) not in _NOT_AN_IDENTIFIER:
            params["route_or_face"] = match.group(1).upper()
        else:
            params["query_type"] = "route_face_analysis"

    @staticmethod
    def _extract_machine_types(text_lower: str, params: Dict[str, Any]) -> None:
        machines = _unique(re.sub(r"s$", "", m) for m in _MACHINES.findall(text_lower))
        if machines:
            params["machine_types"] = machines

    @staticmethod
    def _extract_numeric_filter(text_lower: str, params: Dict[str, Any]) -> None:
        for pattern, operator in _NUMERIC_FILTERS:
            match = pattern.search(text_lower)
            if not match:
                continue

            if operator == "between":
                low, high = _to_number(match.group(1)), _to_number(match.group(2))
                if low <= high:
                    params["numeric_filter"] = {
                        "operator": "between",
                        "min": low,
                        "max": high,
                    }
                else:
                    logger.debug(f"Ignoring inverted range: {match.group(0)}")
            else:
                params["numeric_filter"] = {
                    "operator": operator,
                    "value": _to_number(match.group(1)),
                }
            break

    @staticmethod
    def _extract_measurement(text_lower: str, params: Dict[str, Any]) -> None:
        match = _MEASUREMENT.search(text_lower)
        if match:
            params["measurement"] = {
                "value": _to_number(match.group(1)),
                "unit": match.group(2),
            }

    @staticmethod
    def _extract_comparison(text_lower: str, params: Dict[str, Any]) -> None:
        for pattern in _ENTITY_COMPARISONS:
            match = pattern.search(text_lower)
            if not match:
                continue

            first, second = match.group(1).strip(), match.group(2).strip()
            params["comparison"] = {"entity1": first, "entity2": second}

            pair = (first, second)
            if any(_EQUIPMENT_ENTITY.match(e) for e in pair):
                params["comparison_type"] = "equipment"
            elif any(_MONTH_ENTITY.match(e) for e in pair):
                params["comparison_type"] = "month"
            elif any(_SHIFT_ENTITY.match(e) for e in pair):
                params["comparison_type"] = "shift"
            elif any(_DATE_ENTITY.match(e) for e in pair):
                params["comparison_type"] = "date"
            break

    def extract_optimization_parameters(self, text: str) -> Dict[str, Any]:
        """Inputs for the equipment optimizer and forecaster"""
        params: Dict[str, Any] = {}
        if not text:
            return params

        target = _TARGET.search(text)
        if target:
            unit = target.group(2).lower()
            params["target"] = int(target.group(1))
            params["unit"] = (
                "m3"
                if unit.startswith("m") or "cubic" in unit or "cubed" in unit
                else "ton"
            )

        if _REMAINING.search(text):
            params["is_remaining_target"] = True

        duration = _DURATION.search(text)
        if duration:
            unit = duration.group(2).lower()
            for plural in ("days", "months", "weeks", "hours"):
                if unit.startswith(plural[:-1]):
                    unit = plural
                    break
            params["duration"] = {"value": int(duration.group(1)), "unit": unit}

        excluded = _unique(m.upper() for m in _EXCLUDE_IDS.findall(text))
        if excluded:
            params["exclude_equipment"] = excluded

        included = _unique(m.upper() for m in _INCLUDE_IDS.findall(text))
        if included:
            params["include_equipment"] = included

        excavators = _EXCAVATOR_COUNT.search(text)
        if excavators:
            params["excavator_count"] = int(excavators.group(1))

        tippers = _TIPPER_COUNT.search(text)
        if tippers:
            params["tipper_count"] = int(tippers.group(1))

        if _FORECAST.search(text):
            days = _DAYS.search(text)
            params["forecast_days"] = (
                int(days.group(1)) if days else Config.DEFAULT_FORECAST_DAYS
            )

        return params
