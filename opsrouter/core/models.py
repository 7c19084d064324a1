# models.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class ConversationTurn:
    """Represents a single completed question/answer exchange"""

    question: str
    detected_intent: Optional[str] = None
    parameters: Dict[str, Any] = field(default_factory=dict)
    answer: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question": self.question,
            "detected_intent": self.detected_intent,
            "parameters": self.parameters,
            "answer": self.answer,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConversationTurn":
        return cls(
            question=data["question"],
            detected_intent=data.get("detected_intent"),
            parameters=data.get("parameters") or {},
            answer=data.get("answer"),
        )


@dataclass
class FeedbackEntry:
    """Represents one logged classification, kept for offline review"""

    query: str
    detected_intent: str
    confidence: float
    corrected_intent: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)

    def needs_review(self) -> bool:
        return self.confidence < 0.6 or self.detected_intent == "UNKNOWN"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "detected_intent": self.detected_intent,
            "confidence": self.confidence,
            "corrected_intent": self.corrected_intent,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
