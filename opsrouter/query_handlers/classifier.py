# classifier.py
"""Intent classification for the routing system.

Each configured intent scores the keywords it finds in the question. Domain
filters then remove candidates known to collide, tier filtering lets
specific intents dominate generic ones, and a deterministic sort picks the
winner. Confidence is the winner's score scaled by its tier maximum, reduced
when a runner-up scores close behind.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from opsrouter.core import Config, FeedbackEntry
from .extractor import ParameterExtractor
from .intent_config import IntentConfigLoader, get_intent_config
from .matcher import GENERIC_KEYWORDS, PatternMatcher
from .types import IntentCandidate, IntentResult

logger = logging.getLogger(__name__)

SPECIFIC_TIER = 1
MODERATE_TIER = 2
GENERIC_TIER = 3

# Phrases that separate otherwise similar intents
DISCRIMINATING_PHRASES = frozenset(
    {
        "total tonnage",
        "total trips",
        "average production",
        "monthly report",
        "shift rank",
        "equipment breakdown",
        "production summary",
    }
)

_MONTHS = (
    "january|february|march|april|may|june|july|august|september|october"
    "|november|december|jan|feb|mar|apr|jun|jul|aug|sep|oct|nov|dec"
)

_STATISTICAL_WORDS = re.compile(
    r"\b(mean|median|mode|stddev|standard deviation|deviation)\b", re.IGNORECASE
)
_SPECIFIC_DATE = re.compile(rf"\b({_MONTHS})\s+\d{{1,2}}(st|nd|rd|th)?\b", re.IGNORECASE)
_SUMMARY_WORDS = re.compile(
    r"\b(monthly|month summary|month report|monthly report|summary of|report for"
    r"|overview of|breakdown by month)\b",
    re.IGNORECASE,
)
_EQUIPMENT_FOCUS = (
    re.compile(
        r"\b(which|what)\s+\w*\s*(tippers?|trucks?|excavators?|equipment|vehicles?|machines?)\b",
        re.IGNORECASE,
    ),
    re.compile(
        r"\b(top|best|worst)\s+\d*\s*(tippers?|trucks?|excavators?|equipment|vehicles?)\b",
        re.IGNORECASE,
    ),
    re.compile(
        r"\b(tippers?|trucks?|excavators?|equipment|vehicles?)\s+(made|performed|worked|did)\b",
        re.IGNORECASE,
    ),
)
_EXPLICIT_SUMMARY = re.compile(
    r"\b(complete summary|total|sum|aggregate|aggregation|overall|entire|summary of"
    r"|summary including)\b",
    re.IGNORECASE,
)
_FORECAST_HORIZON = re.compile(
    r"\b(forecast|predict|future|next month|next quarter|next year)\b", re.IGNORECASE
)
_RETRIEVAL_VERB_START = re.compile(
    r"^(show|list|display|get|fetch|give|provide|view|see)\b", re.IGNORECASE
)
_DATE_FILTER = re.compile(
    rf"\b({_MONTHS}|q[1-4]|last week|yesterday|today)\b", re.IGNORECASE
)
_FORECAST_WORDS = re.compile(
    r"\b(forecast|predict|future|next|expected|anticipated)\b", re.IGNORECASE
)
_FACE_WORDS = re.compile(
    r"\b(face|faces|mining face|pit face|bench face|by face|for face|production by face)\b",
    re.IGNORECASE,
)
_FORECAST_SHORT = re.compile(r"\b(forecast|predict|future|next)\b", re.IGNORECASE)
_HIGHEST_LOWEST = re.compile(
    r"\b(highest|lowest|maximum|minimum|top\s+\d*\s*(tipper|excavator|equipment|day)"
    r"|had\s+the\s+(highest|lowest|most|least))\b",
    re.IGNORECASE,
)
_EQUIPMENT_ID_LOOSE = re.compile(r"\b([A-Z]{2,4})-?(\d{1,4})\b", re.IGNORECASE)

_OPTIMIZATION_SIGNALS = re.compile(
    r"\b(best|optimal|should i|recommend|choose|pick|select|which.*should"
    r"|help me choose|help me pick|help me select)\b",
    re.IGNORECASE,
)
_MISSPELLED_OPTIMIZATION_SIGNALS = re.compile(
    r"\b(bst|bset|bet|optmal|optiml|shoud i|recomend|choos|pik|slect)\b", re.IGNORECASE
)
_HISTORICAL_ACTION = re.compile(r"\b(worked|paired|contributed|used|working)\b", re.IGNORECASE)
_VISUALIZATION_SIGNALS = re.compile(
    r"\b(chart|graph|plot|visuali[sz]|histogram|line|bar|pie|draw)\b", re.IGNORECASE
)
_FORECAST_SIGNALS = re.compile(
    r"\b(forecast|predict|future|next|expected|projection|anticipated)\b", re.IGNORECASE
)


def keyword_weight(keyword: str, text: str, matcher: PatternMatcher) -> float:
    """Longer phrases weigh more, exact multi-word hits most of all"""
    word_count = len(keyword.split())
    weight = word_count * 3

    if word_count > 1 and matcher.exact_match(text, keyword):
        weight += 5

    if word_count == 1 and keyword in GENERIC_KEYWORDS:
        weight = 1

    if keyword in DISCRIMINATING_PHRASES:
        weight += 4

    return weight


def _without(candidates: List[IntentCandidate], *intents: str) -> List[IntentCandidate]:
    return [c for c in candidates if c.intent not in intents]


def _find(candidates: List[IntentCandidate], intent: str) -> Optional[IntentCandidate]:
    for candidate in candidates:
        if candidate.intent == intent:
            return candidate
    return None


def _sort_key(candidate: IntentCandidate):
    return (
        -candidate.score,
        candidate.tier,
        -len(candidate.matched_keywords),
        -len("".join(candidate.matched_keywords)),
        candidate.intent,
    )


class IntentClassifier:
    """Scores configured intents against a question and picks the best one"""

    def __init__(
        self,
        extractor: Optional[ParameterExtractor] = None,
        intent_config: Optional[IntentConfigLoader] = None,
        feedback_sink=None,
    ):
        self.extractor = extractor or ParameterExtractor()
        self.intent_config = intent_config or get_intent_config()
        self.feedback_sink = feedback_sink
        self.matcher = PatternMatcher(self.intent_config.all_keywords())

    def classify(self, text: str) -> IntentResult:
        """Classify a question into one of the configured intents"""
        text = (text or "")[: Config.MAX_QUESTION_LENGTH]
        text_lower = text.lower()

        candidates = self._score_candidates(text_lower)
        candidates = self._apply_statistical_override(text, candidates)
        candidates = self._apply_context_filters(text, candidates)

        params = self.extractor.extract_parameters(text)

        if not candidates:
            result = self._infer_from_parameters(params)
        else:
            result = self._select(text, text_lower, candidates, params)

        logger.debug(
            f"Classified '{text[:60]}' as {result.intent} ({result.confidence})"
        )
        self._report(text, result)
        return result

    def _score_candidates(self, text_lower: str) -> List[IntentCandidate]:
        candidates = []
        for definition in self.intent_config:
            score = 0.0
            matches: List[str] = []
            fuzzy_matches: List[str] = []

            for keyword in definition.keywords:
                exact = self.matcher.exact_match(text_lower, keyword)
                fuzzy = (
                    not exact
                    and self.matcher.is_fuzzy_eligible(keyword)
                    and self.matcher.fuzzy_match(text_lower, keyword)
                )
                if not (exact or fuzzy):
                    continue

                weight = keyword_weight(keyword, text_lower, self.matcher)
                score += weight * Config.FUZZY_DISCOUNT if fuzzy else weight
                matches.append(keyword)
                if fuzzy:
                    fuzzy_matches.append(keyword)

            if score > 0:
                candidates.append(
                    IntentCandidate(
                        intent=definition.name,
                        score=score,
                        tier=definition.tier,
                        matched_keywords=matches,
                        fuzzy_matches=fuzzy_matches,
                    )
                )
        return candidates

    @staticmethod
    def _apply_statistical_override(
        text: str, candidates: List[IntentCandidate]
    ) -> List[IntentCandidate]:
        """Statistical wording always beats aggregation and plain retrieval"""
        if not _STATISTICAL_WORDS.search(text):
            return candidates

        statistical = _find(candidates, "STATISTICAL_QUERY")
        if statistical:
            statistical.score *= Config.STATISTICAL_BOOST
        else:
            candidates.append(
                IntentCandidate(
                    intent="STATISTICAL_QUERY",
                    score=100,
                    tier=SPECIFIC_TIER,
                    matched_keywords=["<statistical words detected>"],
                )
            )
        return _without(candidates, "AGGREGATION_QUERY", "DATA_RETRIEVAL")

    @staticmethod
    def _apply_context_filters(
        text: str, candidates: List[IntentCandidate]
    ) -> List[IntentCandidate]:
        if _SPECIFIC_DATE.search(text):
            candidates = _without(candidates, "MONTHLY_SUMMARY")

        if _find(candidates, "MONTHLY_SUMMARY"):
            equipment_focus = any(p.search(text) for p in _EQUIPMENT_FOCUS)
            if equipment_focus and not _SUMMARY_WORDS.search(text):
                candidates = _without(candidates, "MONTHLY_SUMMARY")

        if _find(candidates, "FORECASTING"):
            if _EXPLICIT_SUMMARY.search(text) and not _FORECAST_HORIZON.search(text):
                candidates = _without(candidates, "FORECASTING")

        if _find(candidates, "FORECASTING"):
            if (
                _RETRIEVAL_VERB_START.search(text.strip())
                and _DATE_FILTER.search(text)
                and not _FORECAST_WORDS.search(text)
            ):
                candidates = _without(candidates, "FORECASTING")

        if _find(candidates, "FORECASTING"):
            if _FACE_WORDS.search(text) and not _FORECAST_SHORT.search(text):
                candidates = _without(candidates, "FORECASTING")
                if not _find(candidates, "ROUTES_FACES_ANALYSIS"):
                    candidates.append(
                        IntentCandidate(
                            intent="ROUTES_FACES_ANALYSIS",
                            score=10,
                            tier=SPECIFIC_TIER,
                            matched_keywords=["<inferred from face keyword>"],
                        )
                    )

        return candidates

    @staticmethod
    def _infer_from_parameters(params: Dict[str, Any]) -> IntentResult:
        """No keyword matched; fall back on what the extractor found"""
        has_date = any(
            params.get(key) for key in ("parsed_date", "month", "year", "quarter")
        )
        if has_date or params.get("shift"):
            return IntentResult(
                intent="DATA_RETRIEVAL",
                confidence=0.5,
                matched_keywords=["<inferred from parameters>"],
                parameters=params,
            )

        if params.get("equipment_ids"):
            return IntentResult(
                intent="EQUIPMENT_SPECIFIC_PRODUCTION",
                confidence=0.6,
                matched_keywords=["<inferred from equipment ID>"],
                parameters=params,
            )

        return IntentResult(
            intent="UNKNOWN", confidence=0.0, matched_keywords=[], parameters=params
        )

    def _select(
        self,
        text: str,
        text_lower: str,
        candidates: List[IntentCandidate],
        params: Dict[str, Any],
    ) -> IntentResult:
        for candidate in candidates:
            total = self.intent_config.keyword_count(candidate.intent)
            matched = len(candidate.matched_keywords)
            if matched >= 2 and matched / total >= Config.MATCH_RATIO_THRESHOLD:
                candidate.score *= Config.MATCH_RATIO_BOOST

        candidates = self._filter_by_tier(candidates)
        candidates = self._resolve_overlaps(text, candidates, params)
        candidates.sort(key=_sort_key)

        best = self._disambiguate(text_lower, candidates[0], candidates)
        runner_up = candidates[1] if len(candidates) > 1 else None
        confidence = self._confidence(best, runner_up)

        return IntentResult(
            intent=best.intent,
            confidence=round(confidence, 2),
            matched_keywords=list(best.matched_keywords),
            parameters=params,
            fuzzy_matches=list(best.fuzzy_matches) if best.fuzzy_matches else None,
            tier=best.tier,
        )

    @staticmethod
    def _filter_by_tier(candidates: List[IntentCandidate]) -> List[IntentCandidate]:
        if _find(candidates, "STATISTICAL_QUERY"):
            candidates = _without(candidates, "AGGREGATION_QUERY")

        if any(c.tier in (SPECIFIC_TIER, MODERATE_TIER) for c in candidates):
            candidates = [c for c in candidates if c.tier != GENERIC_TIER]
        return candidates

    @staticmethod
    def _resolve_overlaps(
        text: str, candidates: List[IntentCandidate], params: Dict[str, Any]
    ) -> List[IntentCandidate]:
        if _find(candidates, "MONTHLY_SUMMARY"):
            candidates = _without(candidates, "AGGREGATION_QUERY")

        if _find(candidates, "ROUTES_FACES_ANALYSIS"):
            candidates = _without(candidates, "MONTHLY_SUMMARY")

        if _find(candidates, "ORDINAL_ROW_QUERY") and _HIGHEST_LOWEST.search(text):
            candidates = _without(candidates, "EQUIPMENT_COMBINATION")

        has_equipment_ids = bool(params.get("equipment_ids")) or bool(
            _EQUIPMENT_ID_LOOSE.search(text)
        )
        has_specific = _find(candidates, "EQUIPMENT_SPECIFIC_PRODUCTION") is not None

        if has_specific and has_equipment_ids:
            candidates = _without(candidates, "EQUIPMENT_COMBINATION")

        if (
            has_equipment_ids
            and not has_specific
            and _find(candidates, "EQUIPMENT_COMBINATION")
        ):
            candidates = _without(candidates, "EQUIPMENT_COMBINATION")
            candidates.append(
                IntentCandidate(
                    intent="EQUIPMENT_SPECIFIC_PRODUCTION",
                    score=15,
                    tier=SPECIFIC_TIER,
                    matched_keywords=["<equipment ID detected>"],
                )
            )
        return candidates

    @staticmethod
    def _disambiguate(
        text_lower: str, best: IntentCandidate, candidates: List[IntentCandidate]
    ) -> IntentCandidate:
        """Resolve known collisions between the top pick and a sibling intent"""
        if best.intent == "EQUIPMENT_COMBINATION":
            optimization_signal = _OPTIMIZATION_SIGNALS.search(
                text_lower
            ) or _MISSPELLED_OPTIMIZATION_SIGNALS.search(text_lower)
            if optimization_signal and not _HISTORICAL_ACTION.search(text_lower):
                optimization = _find(candidates, "EQUIPMENT_OPTIMIZATION")
                return optimization or IntentCandidate(
                    intent="EQUIPMENT_OPTIMIZATION",
                    score=0.15,
                    tier=SPECIFIC_TIER,
                    matched_keywords=["<inferred from optimization signals>"],
                )

        if best.intent == "FORECASTING":
            if _VISUALIZATION_SIGNALS.search(text_lower) and not _FORECAST_SIGNALS.search(
                text_lower
            ):
                visualization = _find(candidates, "CHART_VISUALIZATION")
                if visualization and visualization.score >= best.score * 0.3:
                    return visualization

        return best

    @staticmethod
    def _confidence(best: IntentCandidate, runner_up: Optional[IntentCandidate]) -> float:
        max_score = Config.TIER_MAX_SCORES.get(best.tier, Config.TIER_MAX_SCORES[2])
        confidence = min(1.0, best.score / max_score)

        if runner_up and best.score > 0:
            ratio = min(1.0, runner_up.score / best.score)
            if ratio > Config.AMBIGUITY_RATIO:
                penalty = (
                    Config.AMBIGUITY_PENALTY_BASE
                    + (1 - ratio) * Config.AMBIGUITY_PENALTY_SCALE
                )
                confidence = min(Config.AMBIGUOUS_MAX, confidence * penalty)

        return max(0.0, confidence)

    def _report(self, text: str, result: IntentResult) -> None:
        if self.feedback_sink is None:
            return

        notes = None
        if result.fuzzy_matches:
            notes = f"Fuzzy matched: {', '.join(result.fuzzy_matches)}"

        try:
            self.feedback_sink.log(
                FeedbackEntry(
                    query=text,
                    detected_intent=result.intent,
                    confidence=result.confidence,
                    notes=notes,
                )
            )
        except Exception as e:
            logger.warning(f"Feedback sink failed, continuing: {e}")
