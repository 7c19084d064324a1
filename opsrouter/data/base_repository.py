# base_repository.py
"""Abstract interface for classification feedback sinks."""

from abc import ABC, abstractmethod
from collections import Counter
from difflib import get_close_matches
from typing import Any, Dict, Iterable, List, Tuple

from opsrouter.core import FeedbackEntry


class BaseFeedbackSink(ABC):
    """Abstract base class for feedback sinks"""

    @abstractmethod
    def log(self, entry: FeedbackEntry) -> None:
        """Record one classification"""
        pass

    @abstractmethod
    def get_needs_review(self, limit: int = 100) -> List[FeedbackEntry]:
        """Low-confidence or unknown classifications, most recent first"""
        pass

    @abstractmethod
    def count(self) -> int:
        """Number of stored entries"""
        pass

    @abstractmethod
    def all_entries(self) -> List[FeedbackEntry]:
        """Every stored entry, oldest first"""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove all entries"""
        pass

    def export(self) -> Dict[str, Any]:
        """JSON-ready summary for offline analysis"""
        entries = self.all_entries()
        low_confidence = [e for e in entries if e.confidence < 0.7]
        unknown = [e for e in entries if e.detected_intent == "UNKNOWN"]
        corrected = [e for e in entries if e.corrected_intent]

        return {
            "total_queries": len(entries),
            "low_confidence_queries": len(low_confidence),
            "unknown_queries": len(unknown),
            "corrected_queries": len(corrected),
            "entries": [e.to_dict() for e in entries],
        }

    def suggest_misspellings(
        self,
        known_words: Iterable[str],
        known_misspellings: Iterable[str] = (),
    ) -> List[Tuple[str, str, int]]:
        """Recurring words in corrected low-confidence queries that look like
        a known word: (word, likely correct word, occurrences)."""

        vocabulary = list(known_words)
        already_known = set(known_misspellings) | set(vocabulary)
        counts: Counter = Counter()

        for entry in self.all_entries():
            if entry.confidence >= 0.7 or not entry.corrected_intent:
                continue
            for word in entry.query.lower().split():
                if len(word) >= 4 and word not in already_known:
                    counts[word] += 1

        suggestions = []
        for word, occurrences in counts.most_common():
            if occurrences < 2:
                break
            match = get_close_matches(word, vocabulary, n=1, cutoff=0.75)
            if match:
                suggestions.append((word, match[0], occurrences))
        return suggestions
