# test_intent_config.py
"""Tests for the YAML intent configuration loader."""

import pytest

from opsrouter.core import ConfigurationError
from opsrouter.query_handlers.intent_config import IntentConfigLoader

VALID_CONFIG = """
intents:
  - name: FORECASTING
    tier: 1
    keywords: ["Forecast", "predict", "forecast"]
  - name: DATA_RETRIEVAL
    tier: 3
    description: Plain lookups
    keywords: ["show", "list"]
"""


def write_config(tmp_path, content):
    path = tmp_path / "intents.yaml"
    path.write_text(content, encoding="utf-8")
    return str(path)


class TestIntentConfigLoader:
    """Loading and validation of intent definitions."""

    def test_shipped_config_loads(self, intent_config):
        names = [intent.name for intent in intent_config]
        assert "STATISTICAL_QUERY" in names
        assert "DATA_RETRIEVAL" in names
        assert intent_config.get("DATA_RETRIEVAL").tier == 3
        assert intent_config.get("ROUTES_FACES_ANALYSIS").tier == 1

    def test_keywords_are_normalized(self, tmp_path):
        loader = IntentConfigLoader(write_config(tmp_path, VALID_CONFIG))
        forecasting = loader.get("FORECASTING")
        assert forecasting.keywords == ("forecast", "predict", "forecast")
        assert loader.get("DATA_RETRIEVAL").description == "Plain lookups"

    def test_all_keywords_are_distinct_and_ordered(self, tmp_path):
        loader = IntentConfigLoader(write_config(tmp_path, VALID_CONFIG))
        assert loader.all_keywords() == ("forecast", "predict", "show", "list")

    def test_keyword_count(self, tmp_path):
        loader = IntentConfigLoader(write_config(tmp_path, VALID_CONFIG))
        assert loader.keyword_count("DATA_RETRIEVAL") == 2
        assert loader.keyword_count("NOT_AN_INTENT") == 1
        assert loader.get("NOT_AN_INTENT") is None

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            IntentConfigLoader(str(tmp_path / "missing.yaml"))

    def test_malformed_yaml(self, tmp_path):
        with pytest.raises(ConfigurationError):
            IntentConfigLoader(write_config(tmp_path, "intents: [unclosed"))

    def test_missing_intents_list(self, tmp_path):
        with pytest.raises(ConfigurationError):
            IntentConfigLoader(write_config(tmp_path, "other: 1\n"))

    def test_invalid_tier(self, tmp_path):
        content = "intents:\n  - name: X\n    tier: 4\n    keywords: [a]\n"
        with pytest.raises(ConfigurationError, match="tier"):
            IntentConfigLoader(write_config(tmp_path, content))

    def test_intent_without_keywords(self, tmp_path):
        content = "intents:\n  - name: X\n    tier: 1\n    keywords: []\n"
        with pytest.raises(ConfigurationError, match="no keywords"):
            IntentConfigLoader(write_config(tmp_path, content))

    def test_duplicate_names(self, tmp_path):
        content = (
            "intents:\n"
            "  - name: X\n    tier: 1\n    keywords: [a]\n"
            "  - name: X\n    tier: 2\n    keywords: [b]\n"
        )
        with pytest.raises(ConfigurationError, match="Duplicate"):
            IntentConfigLoader(write_config(tmp_path, content))
