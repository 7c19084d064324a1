# feedback_repository.py
"""Feedback sinks: SQLAlchemy-backed for the service, in-memory for library use."""

import logging
import threading
from collections import deque
from typing import List, Optional

from sqlalchemy import desc, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from opsrouter.core import FeedbackEntry, settings
from opsrouter.core.exceptions import DatabaseError
from .base_repository import BaseFeedbackSink
from .models import FeedbackModel, db_manager

logger = logging.getLogger(__name__)

REVIEW_CONFIDENCE = 0.6
LOW_CONFIDENCE_WARNING = 0.5


def _to_entry(model: FeedbackModel) -> FeedbackEntry:
    return FeedbackEntry(
        query=model.query,
        detected_intent=model.detected_intent,
        confidence=model.confidence,
        corrected_intent=model.corrected_intent,
        notes=model.notes,
        created_at=model.created_at,
    )


class SQLAlchemyFeedbackRepository(BaseFeedbackSink):
    """Persists classification feedback through SQLAlchemy"""

    def __init__(self, session: Optional[Session] = None):
        """Initialize with optional session, or create one"""
        self.session = session
        self._should_close_session = session is None

        if not self.session:
            self.session = db_manager.get_session()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._should_close_session and self.session:
            self.session.close()

    def log(self, entry: FeedbackEntry) -> None:
        try:
            self.session.add(
                FeedbackModel(
                    query=entry.query,
                    detected_intent=entry.detected_intent,
                    confidence=entry.confidence,
                    corrected_intent=entry.corrected_intent,
                    notes=entry.notes,
                    created_at=entry.created_at,
                )
            )
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to log feedback: {str(e)}") from e

    def get_needs_review(self, limit: int = 100) -> List[FeedbackEntry]:
        try:
            rows = (
                self.session.query(FeedbackModel)
                .filter(
                    or_(
                        FeedbackModel.confidence < REVIEW_CONFIDENCE,
                        FeedbackModel.detected_intent == "UNKNOWN",
                    )
                )
                .order_by(desc(FeedbackModel.created_at), desc(FeedbackModel.id))
                .limit(limit)
                .all()
            )
            return [_to_entry(row) for row in rows]
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to get feedback for review: {str(e)}") from e

    def count(self) -> int:
        try:
            return self.session.query(FeedbackModel).count()
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to count feedback: {str(e)}") from e

    def all_entries(self) -> List[FeedbackEntry]:
        try:
            rows = self.session.query(FeedbackModel).order_by(FeedbackModel.id).all()
            return [_to_entry(row) for row in rows]
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to read feedback: {str(e)}") from e

    def clear(self) -> None:
        """Clear all feedback - USE WITH CAUTION"""
        try:
            self.session.query(FeedbackModel).delete()
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to clear feedback: {str(e)}") from e


class InMemoryFeedbackSink(BaseFeedbackSink):
    """Bounded in-process feedback log; the oldest entries drop off first"""

    def __init__(self, max_entries: Optional[int] = None):
        self.max_entries = max_entries or settings.FEEDBACK_MAX_ENTRIES
        self._entries = deque(maxlen=self.max_entries)
        self._lock = threading.Lock()

    def log(self, entry: FeedbackEntry) -> None:
        with self._lock:
            self._entries.append(entry)

        if entry.confidence < LOW_CONFIDENCE_WARNING:
            logger.warning(
                f"Low confidence classification: '{entry.query[:80]}' -> "
                f"{entry.detected_intent} ({entry.confidence})"
            )

    def get_needs_review(self, limit: int = 100) -> List[FeedbackEntry]:
        with self._lock:
            flagged = [e for e in reversed(self._entries) if e.needs_review()]
        return flagged[:limit]

    def count(self) -> int:
        with self._lock:
            return len(self._entries)

    def all_entries(self) -> List[FeedbackEntry]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
