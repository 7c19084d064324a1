# followup.py
"""Detection of follow-up questions and the constraints they add.

A follow-up only makes sense against the previous turn: "and with only 8
pairs?", "what about February?", "2500 tons already mined". Standalone
phrasing (a retrieval verb up front, an explicit month, year or shift) is
never treated as a follow-up, however short.
"""

import logging
import re
from typing import Any, Dict, Optional, Sequence

from opsrouter.core import Config, ConversationTurn
from .extractor import normalize_shift
from .types import FollowUpContext

logger = logging.getLogger(__name__)

FOLLOW_UP_PATTERNS = (
    re.compile(r"^(and|but|also|plus)\s+", re.IGNORECASE),
    re.compile(r"^(what if|and if|but if|suppose|assuming)\s+", re.IGNORECASE),
    re.compile(r"^(what about|how about|and about)\s+", re.IGNORECASE),
    re.compile(
        r"^(with only|with just|using only|using just|limited to|without|exclude"
        r"|excluding|no|not using)\s+",
        re.IGNORECASE,
    ),
    re.compile(r"^(then|next|now|after that|do it|run it|try it)\s+", re.IGNORECASE),
    re.compile(r"^(instead|rather|alternatively|or)\s+", re.IGNORECASE),
    re.compile(r"^(that|this|those|these)\s+(one|option|combination|pair)", re.IGNORECASE),
    re.compile(r"^(why|how|when|where|which one)\??\s*$", re.IGNORECASE),
    # "2500 tons already mined", "100 trips left"
    re.compile(r"^\s*\d+\s*(?:tons?|tonnes?|m3|trips?)\b", re.IGNORECASE),
    # bare shift answers
    re.compile(r"^\s*[ABC]\s*$", re.IGNORECASE),
    re.compile(r"^\s*shift\s*[ABC]\s*$", re.IGNORECASE),
    # equipment breakdown replies
    re.compile(
        r"^\s*[A-Z]{2,}-?\d+\s+(?:broke\s*down|is\s+broken|broken|down|failed)\b",
        re.IGNORECASE,
    ),
)

STANDALONE_PATTERNS = (
    re.compile(
        r"^(show|get|find|list|display|give|tell me|what is|what are|who|where is|when did)",
        re.IGNORECASE,
    ),
    re.compile(
        r"\b(january|february|march|april|may|june|july|august|september|october"
        r"|november|december)\b",
        re.IGNORECASE,
    ),
    re.compile(r"\b(2024|2025|2026)\b", re.IGNORECASE),
    re.compile(r"\b(shift\s+[abc])\b", re.IGNORECASE),
)

CONTEXT_CONTINUATION = re.compile(
    r"^(and|but|what if|what about|with only|instead)\b", re.IGNORECASE
)

_CLARIFICATION = re.compile(r"^(why|how|explain)")
_CONSTRAINT = re.compile(r"\b(only|just|limited|constrain|maximum|minimum|at most|at least)\b")
_ALTERNATIVE = re.compile(r"^(what about|how about|instead|rather|alternatively)")

_SHIFT_ONLY = re.compile(r"^\s*([ABC123])\s*$", re.IGNORECASE)
_SHIFT_PHRASE = re.compile(r"\bshift\s*([ABC123])\b", re.IGNORECASE)
_REMAINING_TRIPS = re.compile(r"(\d+)\s+trips?\s+(?:left|remaining)", re.IGNORECASE)
_MINED = re.compile(
    r"(\d+)\s*(tons?|tonnes?|m3)\s+(?:already\s+)?(?:mined|done|completed|produced)",
    re.IGNORECASE,
)
_HALF_TARGET = re.compile(r"half\s+(?:the\s+)?target", re.IGNORECASE)
_BROKEN = re.compile(
    r"\b([A-Z]{2,3}-\d+)\b\s+(?:broke\s*down|is\s+broken|broken|down|failed)", re.IGNORECASE
)
_LIMIT = re.compile(r"\b(only|just|limited to|at most|maximum of?)\s+(\d+)\s+(\w+)", re.IGNORECASE)
_MINIMUM = re.compile(r"\b(at least|minimum of?|no less than)\s+(\d+)\s+(\w+)", re.IGNORECASE)
_WITHOUT = re.compile(r"\b(without|exclude|excluding|no)\s+([a-z0-9\-\s,]+)", re.IGNORECASE)
_EQUIPMENT_ID = re.compile(r"\b([A-Z]{2,3}-\d+)\b", re.IGNORECASE)


def merge_parameters(
    current: Dict[str, Any], previous: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Previous turn's parameters as base, current ones win on collision"""
    merged = dict(previous or {})
    merged.update(current)
    merged["_is_follow_up"] = True
    return merged


class FollowUpDetector:
    """Decides whether a question continues the previous conversation turn"""

    def detect(
        self, question: str, history: Optional[Sequence[ConversationTurn]]
    ) -> FollowUpContext:
        if not history:
            return FollowUpContext(is_follow_up=False, confidence=0.0)

        previous = history[-1]
        question = question or ""
        question_lower = question.lower().strip()

        for pattern in STANDALONE_PATTERNS:
            if pattern.search(question):
                return FollowUpContext(
                    is_follow_up=False,
                    confidence=0.0,
                    previous_intent=previous.detected_intent,
                    previous_question=previous.question,
                )

        matched = any(pattern.search(question) for pattern in FOLLOW_UP_PATTERNS)

        confidence = 0.0
        if matched:
            confidence += 0.6
        if len(question.split()) <= 8:
            confidence += 0.2
        if "?" not in question_lower and not question_lower.startswith("show"):
            confidence += 0.1
        if question_lower.startswith("and ") or question_lower.startswith("but "):
            confidence += 0.1
        confidence = round(confidence, 2)

        if confidence < Config.FOLLOW_UP_THRESHOLD:
            return FollowUpContext(
                is_follow_up=False,
                confidence=confidence,
                previous_question=previous.question,
            )

        logger.debug(f"Follow-up detected ({confidence}) for '{question[:60]}'")
        return FollowUpContext(
            is_follow_up=True,
            confidence=confidence,
            previous_intent=previous.detected_intent,
            previous_question=previous.question,
            previous_parameters=dict(previous.parameters or {}),
            follow_up_type=self.follow_up_type(question_lower),
        )

    @staticmethod
    def follow_up_type(question_lower: str) -> str:
        if _CLARIFICATION.search(question_lower):
            return "clarification"
        if _CONSTRAINT.search(question_lower):
            return "constraint"
        if _ALTERNATIVE.search(question_lower):
            return "alternative"
        return "modification"

    @staticmethod
    def extract_constraints(question: str) -> Dict[str, Any]:
        """Shift, progress, exclusion and limit changes carried by a follow-up"""
        constraints: Dict[str, Any] = {}
        question = question or ""

        shift_only = _SHIFT_ONLY.search(question)
        if shift_only:
            constraints["shift"] = [normalize_shift(shift_only.group(1))]
        shift_phrase = _SHIFT_PHRASE.search(question)
        if shift_phrase:
            constraints["shift"] = [normalize_shift(shift_phrase.group(1))]

        remaining = _REMAINING_TRIPS.search(question)
        if remaining:
            constraints["remaining_trips"] = int(remaining.group(1))

        mined = _MINED.search(question)
        if mined:
            constraints["mined_amount"] = int(mined.group(1))
            constraints["unit"] = "m3" if mined.group(2).lower().startswith("m") else "ton"

        if _HALF_TARGET.search(question):
            constraints["mined_fraction"] = 0.5

        broken = [m.upper() for m in _BROKEN.findall(question)]
        if broken:
            constraints["exclude_equipment"] = list(dict.fromkeys(broken))

        limit = _LIMIT.search(question)
        if limit:
            constraints["limit"] = int(limit.group(2))
            constraints["unit"] = limit.group(3).lower()

        minimum = _MINIMUM.search(question)
        if minimum:
            constraints["minimum"] = int(minimum.group(2))
            constraints["unit"] = minimum.group(3).lower()

        without = _WITHOUT.search(question)
        if without:
            excluded = [m.upper() for m in _EQUIPMENT_ID.findall(without.group(2))]
            if excluded:
                constraints["exclude_equipment"] = excluded

        return constraints
