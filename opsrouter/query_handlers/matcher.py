# matcher.py
"""Keyword matching with typo tolerance."""

import re
from functools import lru_cache
from types import MappingProxyType
from typing import Iterable, List, Optional, Tuple

from opsrouter.core import Config

# Short domain terms that still get fuzzy matching despite their length
FUZZY_SHORT_TERMS = frozenset(
    {
        "tipper",
        "chart",
        "route",
        "best",
        "which",
        "trip",
        "face",
        "haul",
        "pit",
        "mine",
        "shift",
        "plan",
    }
)

# Retrieval verbs match exactly or not at all
GENERIC_KEYWORDS = frozenset(
    {"show", "list", "display", "find", "get", "fetch", "view", "see", "data"}
)

COMMON_MISSPELLINGS = MappingProxyType(
    {
        "excavator": ("excevator", "exavator", "excavater", "excevater", "excaveter"),
        "tipper": ("tiper", "typer", "tipr", "tippr"),
        "which": ("wich", "whic", "whch"),
        "chart": ("chrt", "cahrt"),
        "route": ("rout", "roote", "rute", "roue"),
        "display": ("displya", "disply", "diplay"),
        "performance": ("performace", "preformance", "perfomance", "performnce"),
        "forecast": ("forcast", "forcaste", "forecat", "forecst"),
        "maintenance": ("maintenence", "maintanance", "maintenace", "maintennance"),
        "production": ("producton", "produktion", "productoin", "prodction"),
        "tonnage": ("tonnege", "tonage", "tonnaje", "tonnnage"),
        "recommend": ("recomend", "reccomend", "rekommend", "recomned"),
        "equipment": (
            "equipement",
            "equiptment",
            "equipmant",
            "equipent",
            "equipmnt",
            "equpment",
        ),
        "efficiency": ("eficiency", "efficency", "efficiancy", "effeciency"),
        "optimal": ("optmal", "optimel", "optiaml", "optiml"),
        "predict": ("predit", "prdict", "predickt"),
        "visualization": (
            "visualisation",
            "visualizaton",
            "visulaization",
            "visulization",
            "vizualization",
        ),
        "procedure": ("proceedure", "proceduer", "proceedur", "procedre", "procedue"),
        "analyze": ("analyse", "analize", "analyz"),
        "combination": ("combinaton", "conbination", "combintion", "combnation"),
        "utilization": ("utilizaton", "utilzation", "utlization"),
    }
)

MISSPELLING_CORRECTIONS = MappingProxyType(
    {
        misspelling: correct
        for correct, misspellings in COMMON_MISSPELLINGS.items()
        for misspelling in misspellings
    }
)

_WORD = re.compile(r"\w+")


def levenshtein_distance(first: str, second: str) -> int:
    """Edit distance (insert, delete, substitute) between two strings"""
    if len(first) < len(second):
        first, second = second, first

    previous = list(range(len(second) + 1))
    for i, first_char in enumerate(first, start=1):
        current = [i]
        for j, second_char in enumerate(second, start=1):
            if first_char == second_char:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j], current[j - 1], previous[j - 1]))
        previous = current
    return previous[-1]


@lru_cache(maxsize=8192)
def _cached_ratio(first: str, second: str) -> float:
    max_len = max(len(first), len(second))
    if max_len == 0:
        return 1.0
    return 1 - levenshtein_distance(first, second) / max_len


def similarity_ratio(first: str, second: str) -> float:
    """1.0 for identical strings, falling with edit distance"""
    return _cached_ratio(first.lower(), second.lower())


def _unique_words(words: Iterable[str]) -> List[str]:
    """Words in first-seen order without repeats"""
    return list(dict.fromkeys(words))


def dynamic_threshold(term: str) -> float:
    """Longer words tolerate more edits"""
    for min_length, threshold in Config.FUZZY_THRESHOLDS:
        if len(term) >= min_length:
            return threshold
    return Config.FUZZY_DEFAULT_THRESHOLD


def correct_misspellings(text: str) -> str:
    """Lowercase the text and replace known misspellings with the correct word"""
    return _WORD.sub(
        lambda match: MISSPELLING_CORRECTIONS.get(match.group(0), match.group(0)),
        text.lower(),
    )


def keyword_pattern(keyword: str) -> "re.Pattern":
    return re.compile(rf"\b{re.escape(keyword)}\b", re.IGNORECASE)


class PatternMatcher:
    """Matches configured keywords against free text.

    One word-boundary regex per keyword is compiled at construction; the
    table is read-only afterwards.
    """

    def __init__(self, keywords: Iterable[str]):
        self._patterns = MappingProxyType(
            {keyword: keyword_pattern(keyword) for keyword in keywords}
        )

    def _pattern(self, keyword: str) -> "re.Pattern":
        pattern = self._patterns.get(keyword)
        return pattern if pattern is not None else keyword_pattern(keyword)

    def exact_match(self, text: str, keyword: str) -> bool:
        return bool(self._pattern(keyword).search(text))

    @staticmethod
    def is_fuzzy_eligible(keyword: str) -> bool:
        keyword_lower = keyword.lower()
        if keyword_lower in GENERIC_KEYWORDS:
            return False
        return (
            len(keyword_lower.split()) > 1
            or len(keyword_lower) > 5
            or keyword_lower in FUZZY_SHORT_TERMS
        )

    def matches(self, text: str, keyword: str) -> bool:
        """Exact boundary match, falling back to fuzzy for eligible keywords"""
        if self.exact_match(text, keyword):
            return True
        if self.is_fuzzy_eligible(keyword):
            return self.fuzzy_match(text, keyword)
        return False

    def fuzzy_match(
        self, text: str, keyword: str, threshold: Optional[float] = None
    ) -> bool:
        pattern = self._pattern(keyword)
        if pattern.search(text):
            return True

        if pattern.search(correct_misspellings(text)):
            return True

        text_lower = text.lower()
        keyword_words = keyword.lower().split()

        if len(keyword_words) > 1:
            # Every keyword word has to appear, possibly misspelled
            limit = threshold if threshold is not None else Config.FUZZY_DEFAULT_THRESHOLD
            text_words = _unique_words(text_lower.split())
            return all(
                any(similarity_ratio(text_word, word) >= limit for text_word in text_words)
                for word in keyword_words
            )

        keyword_lower = keyword_words[0] if keyword_words else keyword.lower()
        limit = threshold if threshold is not None else dynamic_threshold(keyword_lower)
        for text_word in _unique_words(_WORD.findall(text_lower)):
            if len(text_word) < 3:
                continue
            if similarity_ratio(text_word, keyword_lower) >= limit:
                return True
        return False

    def find_best_fuzzy_match(
        self, text: str, keywords: Iterable[str]
    ) -> Optional[Tuple[str, float]]:
        """Best-scoring keyword for the text, or None below 0.75"""
        text_words = [
            word for word in _unique_words(_WORD.findall(text.lower())) if len(word) >= 3
        ]
        best: Optional[Tuple[str, float]] = None

        for keyword in keywords:
            if self.exact_match(text, keyword):
                return keyword, 1.0

            keyword_words = keyword.lower().split()
            if not keyword_words:
                continue

            best_word_scores: List[float] = [
                max((similarity_ratio(text_word, word) for text_word in text_words), default=0.0)
                for word in keyword_words
            ]
            average = sum(best_word_scores) / len(keyword_words)
            coverage = sum(1 for score in best_word_scores if score >= 0.85) / len(keyword_words)
            score = average * 0.7 + coverage * 0.3

            if best is None or score > best[1]:
                best = (keyword, score)

        if best and best[1] >= 0.75:
            return best
        return None
