# types.py
"""Data types and models for the query routing system."""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class ParsedDate:
    """A resolved date expression"""

    type: str  # 'single', 'range', 'quarter', 'month', 'year', 'relative'
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    year: Optional[int] = None
    quarter: Optional[int] = None
    month: Optional[int] = None
    month_name: Optional[str] = None
    relative_period: Optional[str] = None
    raw_text: Optional[str] = None

    def __post_init__(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError(
                f"end_date {self.end_date} precedes start_date {self.start_date}"
            )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "type": self.type,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "year": self.year,
            "quarter": self.quarter,
            "month": self.month,
            "month_name": self.month_name,
            "relative_period": self.relative_period,
            "raw_text": self.raw_text,
        }
        return {key: value for key, value in data.items() if value is not None}

    def format(self) -> str:
        """Human-readable form of the period"""
        if self.type == "quarter":
            return f"Q{self.quarter} {self.year}"
        if self.type == "month":
            return f"{self.month_name} {self.year}"
        if self.type == "year":
            return str(self.year)
        if self.type == "single":
            return self.start_date.isoformat() if self.start_date else ""
        if self.type == "range":
            return f"{self.start_date.isoformat()} to {self.end_date.isoformat()}"
        if self.relative_period:
            return self.relative_period.replace("_", " ")
        return ""


@dataclass
class IntentCandidate:
    """Working record for an intent while a query is being scored"""

    intent: str
    score: float
    tier: int
    matched_keywords: List[str] = field(default_factory=list)
    fuzzy_matches: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class IntentResult:
    """Classification result for a query"""

    intent: str
    confidence: float
    matched_keywords: List[str]
    parameters: Dict[str, Any]
    fuzzy_matches: Optional[List[str]] = None
    tier: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "intent": self.intent,
            "confidence": self.confidence,
            "matched_keywords": list(self.matched_keywords),
            "parameters": self.parameters,
        }
        if self.fuzzy_matches:
            data["fuzzy_matches"] = list(self.fuzzy_matches)
        if self.tier is not None:
            data["tier"] = self.tier
        return data


@dataclass
class TableSelection:
    """Which table(s) a structured query should read"""

    primary: str
    requires_join: bool
    reason: str
    secondary: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "primary": self.primary,
            "secondary": self.secondary,
            "requires_join": self.requires_join,
            "reason": self.reason,
        }


@dataclass
class RoutingDecision:
    """Routing decision handed to the downstream engine

    needs_resolver is set when no rule or heuristic recognised the question;
    callers hand such decisions to a smarter resolver instead of answering.
    """

    task: str  # 'sql', 'rag', 'optimize'
    confidence: float
    reason: str
    template_used: str
    original_question: str
    route_source: str = "deterministic"
    intent: Optional[str] = None
    parameters: Dict[str, Any] = field(default_factory=dict)
    namespaces: Optional[List[str]] = None
    statistical_template: Optional[Dict[str, Any]] = None
    intent_confidence: Optional[float] = None
    intent_keywords: Optional[List[str]] = None
    query_type: Optional[str] = None
    tables: Optional[TableSelection] = None
    correlation_id: Optional[str] = None
    is_follow_up: bool = False
    needs_resolver: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "task": self.task,
            "confidence": self.confidence,
            "reason": self.reason,
            "route_source": self.route_source,
            "template_used": self.template_used,
            "original_question": self.original_question,
            "intent": self.intent,
            "intent_confidence": self.intent_confidence,
            "intent_keywords": self.intent_keywords,
            "parameters": self.parameters,
            "query_type": self.query_type,
            "tables": self.tables.to_dict() if self.tables else None,
            "correlation_id": self.correlation_id,
            "is_follow_up": self.is_follow_up,
            "needs_resolver": self.needs_resolver,
        }
        if self.namespaces is not None:
            data["namespaces"] = list(self.namespaces)
        if self.statistical_template is not None:
            data["statistical_template"] = self.statistical_template
        return data


@dataclass
class FollowUpContext:
    """Whether a question continues the previous turn, and what it inherits"""

    is_follow_up: bool
    confidence: float
    previous_intent: Optional[str] = None
    previous_question: Optional[str] = None
    previous_parameters: Optional[Dict[str, Any]] = None
    follow_up_type: Optional[str] = None  # 'modification', 'clarification', 'constraint', 'alternative'


@dataclass
class ConversationContext:
    """Most recent turn remembered for a user"""

    user_id: str
    last_intent: Optional[str]
    last_question: str
    inserted_at: float
    last_answer: Optional[str] = None
    last_parameters: Dict[str, Any] = field(default_factory=dict)
    route_taken: Optional[str] = None
