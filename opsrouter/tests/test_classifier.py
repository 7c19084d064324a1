# test_classifier.py
"""Tests for intent classification."""

import pytest

from opsrouter.core import Config
from opsrouter.data.feedback_repository import InMemoryFeedbackSink
from opsrouter.query_handlers.classifier import IntentClassifier, keyword_weight
from opsrouter.query_handlers.intent_config import IntentConfigLoader
from opsrouter.query_handlers.matcher import PatternMatcher
from opsrouter.query_handlers.types import IntentCandidate


def candidate(intent, score, tier=1, keywords=None):
    return IntentCandidate(
        intent=intent, score=score, tier=tier, matched_keywords=keywords or [intent.lower()]
    )


TIERED_CONFIG = """
intents:
  - name: HAUL_CYCLE
    tier: 1
    keywords: ["haul cycle"]
  - name: SHIFT_REPORT
    tier: 2
    keywords: ["shift report"]
  - name: ROAD_CONDITION
    tier: 1
    keywords: ["haul road", "road grade", "grade resistance"]
  - name: CYCLE_TIMING
    tier: 1
    keywords: ["loading time", "cycle time", "queue time"]
  - name: DATA_RETRIEVAL
    tier: 3
    keywords: ["tonnage", "production", "trips", "loads", "records", "figures"]
"""


@pytest.fixture
def tiered_classifier(tmp_path, extractor):
    path = tmp_path / "intents.yaml"
    path.write_text(TIERED_CONFIG, encoding="utf-8")
    return IntentClassifier(extractor, IntentConfigLoader(str(path)))


class TestClassify:
    """End-to-end classification of questions."""

    def test_empty_question_is_unknown(self, classifier):
        result = classifier.classify("")
        assert result.intent == "UNKNOWN"
        assert result.confidence == 0.0
        assert result.matched_keywords == []

    def test_statistical_words_win(self, classifier):
        result = classifier.classify("What is the median tonnage?")
        assert result.intent == "STATISTICAL_QUERY"
        assert "median" in result.matched_keywords

    def test_ordinal_row(self, classifier):
        result = classifier.classify("select 19th row from production_summary")
        assert result.intent == "ORDINAL_ROW_QUERY"
        assert result.parameters["row_number"] == 19

    def test_equipment_id_question(self, classifier):
        result = classifier.classify("How many trips did EX-139 make")
        assert result.intent == "EQUIPMENT_SPECIFIC_PRODUCTION"
        assert result.parameters["equipment_ids"] == ["EX-139"]
        assert result.tier == 1
        assert 0.0 < result.confidence <= 1.0

    def test_pick_question_is_optimization(self, classifier):
        result = classifier.classify("Which excavator should I pick for shift A?")
        assert result.intent == "EQUIPMENT_OPTIMIZATION"

    def test_parameters_only_question(self, classifier):
        result = classifier.classify("2023")
        assert result.intent == "DATA_RETRIEVAL"
        assert result.confidence == 0.5
        assert result.matched_keywords == ["<inferred from parameters>"]

    def test_confidence_is_bounded_and_rounded(self, classifier):
        for question in (
            "show total tonnage for shift A",
            "forecast production for next month",
            "which route had the most trips",
        ):
            result = classifier.classify(question)
            assert 0.0 <= result.confidence <= 1.0
            assert result.confidence == round(result.confidence, 2)

    def test_resolved_combination_keeps_a_real_confidence(self, classifier):
        result = classifier.classify("best combination of tipper and excavator to choose")
        assert result.intent == "EQUIPMENT_OPTIMIZATION"
        assert result.confidence == 0.37

    @pytest.mark.parametrize(
        "question",
        [
            "",
            "What is the median tonnage?",
            "Which excavator should I pick for shift A?",
            "compare shift A and shift B and shift C",
            "tonage by shfit in januray",
        ],
    )
    def test_classification_is_deterministic(self, classifier, question):
        results = [classifier.classify(question) for _ in range(3)]
        assert results[0] == results[1] == results[2]

    def test_long_question_is_truncated(self, classifier, feedback_sink):
        question = " ".join(["productionx tonnagee excavatr"] * 2000)
        result = classifier.classify(question)
        assert 0.0 <= result.confidence <= 1.0
        assert len(feedback_sink.all_entries()[-1].query) == Config.MAX_QUESTION_LENGTH

    def test_classifications_are_reported(self, classifier, feedback_sink):
        classifier.classify("")
        classifier.classify("How many trips did EX-139 make")
        entries = feedback_sink.all_entries()
        assert [e.detected_intent for e in entries] == [
            "UNKNOWN",
            "EQUIPMENT_SPECIFIC_PRODUCTION",
        ]

    def test_failing_sink_does_not_break_classification(self, extractor, intent_config):
        class BrokenSink(InMemoryFeedbackSink):
            def log(self, entry):
                raise RuntimeError("disk full")

        classifier = IntentClassifier(extractor, intent_config, BrokenSink())
        assert classifier.classify("").intent == "UNKNOWN"


class TestKeywordWeight:
    """Keyword weighting."""

    def test_weights(self, intent_config):
        matcher = PatternMatcher(intent_config.all_keywords())
        assert keyword_weight("show", "show trips", matcher) == 1
        assert keyword_weight("forecast", "forecast trips", matcher) == 3
        assert keyword_weight("best combination", "the best combination", matcher) == 11
        assert keyword_weight("total tonnage", "total tonnage for march", matcher) == 15


class TestScoringFilters:
    """Candidate filters applied before selection."""

    def test_forecasting_dropped_for_dated_retrieval(self):
        candidates = IntentClassifier._apply_context_filters(
            "Show production for January", [candidate("FORECASTING", 3)]
        )
        assert candidates == []

    def test_forecasting_kept_with_forecast_words(self):
        candidates = IntentClassifier._apply_context_filters(
            "show the forecast for january", [candidate("FORECASTING", 3)]
        )
        assert [c.intent for c in candidates] == ["FORECASTING"]

    def test_face_question_becomes_routes_faces(self):
        candidates = IntentClassifier._apply_context_filters(
            "production by face", [candidate("FORECASTING", 3)]
        )
        assert [c.intent for c in candidates] == ["ROUTES_FACES_ANALYSIS"]
        assert candidates[0].score == 10

    def test_specific_date_drops_monthly_summary(self):
        candidates = IntentClassifier._apply_context_filters(
            "summary for january 15", [candidate("MONTHLY_SUMMARY", 3, tier=2)]
        )
        assert candidates == []

    def test_statistical_override_adds_candidate(self):
        candidates = IntentClassifier._apply_statistical_override(
            "standard deviation of trips",
            [candidate("AGGREGATION_QUERY", 6, tier=3), candidate("DATA_RETRIEVAL", 1, tier=3)],
        )
        assert [c.intent for c in candidates] == ["STATISTICAL_QUERY"]
        assert candidates[0].score == 100

    def test_statistical_override_boosts_existing(self):
        candidates = IntentClassifier._apply_statistical_override(
            "mean tonnage", [candidate("STATISTICAL_QUERY", 3)]
        )
        assert candidates[0].score == pytest.approx(7.5)

    def test_specific_tiers_remove_generic(self):
        candidates = IntentClassifier._filter_by_tier(
            [candidate("DATA_RETRIEVAL", 9, tier=3), candidate("FORECASTING", 3)]
        )
        assert [c.intent for c in candidates] == ["FORECASTING"]

    def test_generic_only_is_kept(self):
        candidates = IntentClassifier._filter_by_tier(
            [candidate("DATA_RETRIEVAL", 1, tier=3), candidate("AGGREGATION_QUERY", 3, tier=3)]
        )
        assert len(candidates) == 2

    def test_equipment_id_turns_combination_into_specific(self):
        candidates = IntentClassifier._resolve_overlaps(
            "which tipper worked with BB-12",
            [candidate("EQUIPMENT_COMBINATION", 11)],
            {"equipment_ids": ["BB-12"]},
        )
        assert [c.intent for c in candidates] == ["EQUIPMENT_SPECIFIC_PRODUCTION"]
        assert candidates[0].score == 15

    def test_combination_with_optimization_signal(self):
        best = candidate("EQUIPMENT_COMBINATION", 11)
        chosen = IntentClassifier._disambiguate(
            "which tipper should i pick", best, [best]
        )
        assert chosen.intent == "EQUIPMENT_OPTIMIZATION"

    def test_combination_with_historical_action_stays(self):
        best = candidate("EQUIPMENT_COMBINATION", 11)
        chosen = IntentClassifier._disambiguate(
            "which tipper worked best with ex-1", best, [best]
        )
        assert chosen is best


class TestTiersAndAmbiguity:
    """Tier dominance and the ambiguity cap through classify()."""

    @pytest.mark.parametrize(
        "question, expected",
        [
            ("tonnage production trips loads records figures for the haul cycle", "HAUL_CYCLE"),
            ("tonnage production trips loads records figures in the shift report", "SHIFT_REPORT"),
        ],
    )
    def test_generic_tier_never_beats_a_specific_hit(self, tiered_classifier, question, expected):
        result = tiered_classifier.classify(question)
        assert result.intent == expected
        assert result.tier != 3

    def test_generic_tier_wins_alone(self, tiered_classifier):
        result = tiered_classifier.classify("tonnage production trips")
        assert result.intent == "DATA_RETRIEVAL"
        assert result.tier == 3

    def test_close_contest_is_capped(self, tiered_classifier):
        clear = tiered_classifier.classify("haul road road grade grade resistance")
        assert clear.intent == "ROAD_CONDITION"
        assert clear.confidence == 1.0

        contested = tiered_classifier.classify(
            "haul road road grade grade resistance with cycle time loading time queue time"
        )
        assert contested.intent == "ROAD_CONDITION"
        assert contested.confidence == 0.6
        assert contested.confidence <= Config.AMBIGUOUS_MAX


class TestConfidence:
    """Confidence calibration."""

    def test_clear_winner_is_capped_at_one(self):
        assert IntentClassifier._confidence(candidate("FORECASTING", 36), None) == 1.0

    def test_scaled_by_tier_maximum(self):
        assert IntentClassifier._confidence(candidate("MONTHLY_SUMMARY", 10, tier=2), None) == 0.5

    def test_close_runner_up_is_penalized(self):
        confidence = IntentClassifier._confidence(
            candidate("FORECASTING", 18), candidate("CHART_VISUALIZATION", 16)
        )
        ratio = 16 / 18
        assert confidence == pytest.approx(min(0.75, 0.6 + (1 - ratio) * 0.4))

    def test_distant_runner_up_is_ignored(self):
        confidence = IntentClassifier._confidence(
            candidate("FORECASTING", 9), candidate("CHART_VISUALIZATION", 3)
        )
        assert confidence == pytest.approx(0.5)
