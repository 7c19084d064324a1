# test_matcher.py
"""Tests for keyword matching and typo tolerance."""

import pytest

from opsrouter.query_handlers.matcher import (
    MISSPELLING_CORRECTIONS,
    PatternMatcher,
    _cached_ratio,
    correct_misspellings,
    dynamic_threshold,
    levenshtein_distance,
    similarity_ratio,
)


@pytest.fixture
def matcher():
    return PatternMatcher(["excavator", "tipper", "show", "best combination", "mean"])


class TestEditDistance:
    """Levenshtein distance and similarity."""

    def test_distance(self):
        assert levenshtein_distance("kitten", "sitting") == 3
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("same", "same") == 0

    def test_similarity_is_case_insensitive(self):
        assert similarity_ratio("Tipper", "tipper") == 1.0
        assert similarity_ratio("", "") == 1.0
        assert similarity_ratio("tiper", "tipper") == pytest.approx(1 - 1 / 6)

    def test_threshold_grows_more_lenient_with_length(self):
        assert dynamic_threshold("visualization") == 0.70
        assert dynamic_threshold("forecast") == 0.78
        assert dynamic_threshold("route") == 0.82
        assert dynamic_threshold("pit") == 0.85

    def test_similarity_is_memoised(self):
        similarity_ratio("Haulage", "haulge")
        hits = _cached_ratio.cache_info().hits
        assert similarity_ratio("haulage", "HAULGE") == pytest.approx(1 - 1 / 7)
        assert _cached_ratio.cache_info().hits == hits + 1


class TestMisspellingCorrection:
    """Known misspelling table."""

    def test_corrections_are_reverse_mapped(self):
        assert MISSPELLING_CORRECTIONS["excevator"] == "excavator"
        assert MISSPELLING_CORRECTIONS["forcast"] == "forecast"

    def test_correct_misspellings_replaces_whole_words(self):
        assert correct_misspellings("Show the Forcast for each tiper") == (
            "show the forecast for each tipper"
        )


class TestPatternMatcher:
    """Exact and fuzzy keyword matching."""

    def test_exact_match_respects_word_boundaries(self, matcher):
        assert matcher.exact_match("which excavator worked", "excavator")
        assert not matcher.exact_match("showcase of parts", "show")

    def test_generic_keywords_never_fuzzy(self, matcher):
        assert not PatternMatcher.is_fuzzy_eligible("show")
        assert not matcher.matches("shwo me the trips", "show")

    def test_short_words_are_not_fuzzy_eligible(self):
        assert not PatternMatcher.is_fuzzy_eligible("mean")
        assert PatternMatcher.is_fuzzy_eligible("tipper")
        assert PatternMatcher.is_fuzzy_eligible("pit")
        assert PatternMatcher.is_fuzzy_eligible("best combination")

    def test_known_misspelling_matches(self, matcher):
        assert matcher.matches("which excevator had most trips", "excavator")

    def test_typo_within_threshold_matches(self, matcher):
        assert matcher.fuzzy_match("the excavatr on shift a", "excavator")

    def test_repeated_words_still_match(self, matcher):
        text = " ".join(["excavatr"] * 500)
        assert matcher.fuzzy_match(text, "excavator")
        assert not matcher.fuzzy_match(text, "tipper")

    def test_unrelated_word_does_not_match(self, matcher):
        assert not matcher.fuzzy_match("the loader on shift a", "excavator")

    def test_multi_word_keyword_needs_every_word(self, matcher):
        assert matcher.fuzzy_match("what is the best combinaton", "best combination")
        assert not matcher.fuzzy_match("what is the best option", "best combination")

    def test_find_best_fuzzy_match(self, matcher):
        assert matcher.find_best_fuzzy_match("which tipper", ["excavator", "tipper"]) == ("tipper", 1.0)
        keyword, score = matcher.find_best_fuzzy_match("the excavatr", ["excavator", "tipper"])
        assert keyword == "excavator"
        assert score >= 0.75
        assert matcher.find_best_fuzzy_match("hello there", ["excavator"]) is None
