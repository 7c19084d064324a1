# context_cache.py
"""Per-user conversation context with time-based expiry."""

import logging
import threading
import time
from typing import Any, Callable, Dict, Optional

from opsrouter.core import settings
from .types import ConversationContext

logger = logging.getLogger(__name__)


class ConversationContextStore:
    """Thread-safe map of user id to their most recent turn.

    Expiry is checked on every read, so a stale entry is never returned even
    if sweep() has not run. sweep() only frees memory.
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = (
            ttl_seconds if ttl_seconds is not None else settings.CONTEXT_TTL_SECONDS
        )
        self._clock = clock
        self._entries: Dict[str, ConversationContext] = {}
        self._lock = threading.Lock()

    def _is_expired(self, context: ConversationContext, now: float) -> bool:
        return now - context.inserted_at > self.ttl_seconds

    def set(
        self,
        user_id: str,
        last_question: str,
        last_intent: Optional[str] = None,
        last_answer: Optional[str] = None,
        last_parameters: Optional[Dict[str, Any]] = None,
        route_taken: Optional[str] = None,
    ) -> ConversationContext:
        context = ConversationContext(
            user_id=user_id,
            last_intent=last_intent,
            last_question=last_question,
            inserted_at=self._clock(),
            last_answer=last_answer,
            last_parameters=dict(last_parameters or {}),
            route_taken=route_taken,
        )
        with self._lock:
            self._entries[user_id] = context
        return context

    def get(self, user_id: str) -> Optional[ConversationContext]:
        with self._lock:
            context = self._entries.get(user_id)
            if context is None:
                return None
            if self._is_expired(context, self._clock()):
                del self._entries[user_id]
                return None
            return context

    def has(self, user_id: str) -> bool:
        return self.get(user_id) is not None

    def clear(self, user_id: str) -> None:
        with self._lock:
            self._entries.pop(user_id, None)

    def clear_all(self) -> None:
        with self._lock:
            self._entries.clear()

    def size(self) -> int:
        """Number of stored entries, expired ones included until swept"""
        with self._lock:
            return len(self._entries)

    def sweep(self) -> int:
        """Drop expired entries and return how many were removed"""
        with self._lock:
            now = self._clock()
            expired = [
                user_id
                for user_id, context in self._entries.items()
                if self._is_expired(context, now)
            ]
            for user_id in expired:
                del self._entries[user_id]

        if expired:
            logger.debug(f"Swept {len(expired)} expired conversation contexts")
        return len(expired)
