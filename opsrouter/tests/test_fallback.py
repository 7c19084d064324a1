# test_fallback.py
"""Tests for the catch-all router."""

import pytest

from opsrouter.query_handlers.fallback import REJECTION_REASON, FallbackRouter


@pytest.fixture
def fallback():
    return FallbackRouter()


class TestFallbackRouter:
    """Heuristic routing when no rule applied."""

    @pytest.mark.parametrize("question", ["", " ", "x", "asdfgh"])
    def test_rejects_meaningless_input(self, fallback, question):
        decision = fallback.route(question)
        assert decision.task == "rag"
        assert decision.confidence == 0.3
        assert decision.template_used == "rejected_query_template"
        assert decision.reason == REJECTION_REASON

    def test_single_meaningful_word_is_not_rejected(self, fallback):
        decision = fallback.route("production")
        assert decision.template_used != "rejected_query_template"
        assert decision.task == "sql"

    def test_advisory(self, fallback):
        decision = fallback.route("ways to increase uptime")
        assert decision.task == "rag"
        assert decision.confidence == 0.75
        assert decision.template_used == "advisory_rule_template"
        assert decision.namespaces == ["combined"]

    def test_optimization(self, fallback):
        decision = fallback.route("a prediction please")
        assert decision.task == "optimize"
        assert decision.confidence == 0.75
        assert decision.namespaces is None

    def test_strong_sql(self, fallback):
        decision = fallback.route("tonnage figures")
        assert decision.task == "sql"
        assert decision.confidence == 0.8
        assert decision.template_used == "data_retrieval_rule_template"

    def test_sql_data_pattern(self, fallback):
        decision = fallback.route("SELECT everything FROM somewhere")
        assert decision.task == "sql"

    def test_unclear_defaults_to_rag(self, fallback):
        decision = fallback.route("hello there friend")
        assert decision.task == "rag"
        assert decision.confidence == 0.5
        assert decision.template_used == "unclear_query_template"

    def test_always_returns_a_decision(self, fallback):
        for question in ("?", "weather", "good morning", "explain"):
            decision = fallback.route(question)
            assert decision.task in ("sql", "rag", "optimize")
            assert decision.original_question == question

    def test_unclear_default_asks_for_a_resolver(self, fallback):
        assert fallback.route("hello there friend").needs_resolver is True
        assert fallback.route("tonnage figures").needs_resolver is False
        assert fallback.route("").needs_resolver is False
