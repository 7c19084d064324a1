# conftest.py
"""Pytest configuration and shared fixtures."""

import os
import tempfile
from datetime import date
from pathlib import Path

# Keep the service database out of the package directory during tests
os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite:///{Path(tempfile.gettempdir()) / 'opsrouter_test_feedback.db'}",
)
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("RATE_LIMIT", "1000/minute")

import pytest  # noqa: E402

from opsrouter.core import ConversationTurn  # noqa: E402
from opsrouter.data.feedback_repository import InMemoryFeedbackSink  # noqa: E402
from opsrouter.data.models import DatabaseManager  # noqa: E402
from opsrouter.query_handlers.classifier import IntentClassifier  # noqa: E402
from opsrouter.query_handlers.context_cache import ConversationContextStore  # noqa: E402
from opsrouter.query_handlers.dates import DateParser  # noqa: E402
from opsrouter.query_handlers.extractor import ParameterExtractor  # noqa: E402
from opsrouter.query_handlers.intent_config import get_intent_config  # noqa: E402
from opsrouter.query_handlers.router import SmartQueryRouter  # noqa: E402

REFERENCE_DATE = date(2025, 11, 14)


class FakeClock:
    """Manually advanced monotonic clock"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def date_parser():
    """Date parser anchored to the fixed reference date."""
    return DateParser(reference_date=REFERENCE_DATE)


@pytest.fixture
def extractor(date_parser):
    """Parameter extractor with a fixed reference date."""
    return ParameterExtractor(date_parser=date_parser)


@pytest.fixture
def intent_config():
    """Intent definitions shipped with the package."""
    return get_intent_config()


@pytest.fixture
def feedback_sink():
    """In-memory feedback sink."""
    return InMemoryFeedbackSink(max_entries=50)


@pytest.fixture
def classifier(extractor, intent_config, feedback_sink):
    """Intent classifier wired to an in-memory sink."""
    return IntentClassifier(extractor, intent_config, feedback_sink)


@pytest.fixture
def fake_clock():
    """Controllable clock for TTL tests."""
    return FakeClock()


@pytest.fixture
def context_store(fake_clock):
    """Context store on the fake clock."""
    return ConversationContextStore(ttl_seconds=300, clock=fake_clock)


@pytest.fixture
def router(extractor, intent_config, feedback_sink, context_store):
    """Fully wired router with isolated state."""
    return SmartQueryRouter(
        extractor=extractor,
        intent_config=intent_config,
        feedback_sink=feedback_sink,
        context_store=context_store,
    )


@pytest.fixture
def target_turn():
    """A completed target-optimization turn."""
    return ConversationTurn(
        question="I need to mine 5000 tons in 3 days on shift A",
        detected_intent="TARGET_OPTIMIZATION",
        parameters={
            "target": 5000,
            "unit": "ton",
            "shift": ["A"],
            "duration": {"value": 3, "unit": "days"},
        },
        answer="Use 4 excavators and 12 tippers.",
    )


@pytest.fixture
def test_db_session():
    """Create a test database session that's isolated from production."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as tmp_file:
        temp_db_path = tmp_file.name

    db_manager = DatabaseManager(f"sqlite:///{temp_db_path}")
    db_manager.create_tables()
    session = db_manager.get_session()

    try:
        yield session
    finally:
        session.close()
        db_manager.engine.dispose()
        Path(temp_db_path).unlink(missing_ok=True)


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "slow: mark test as slow running")
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "unit: mark test as unit test")


# Custom collection hook for organizing tests
def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "test_web_api" in item.nodeid:
            item.add_marker(pytest.mark.integration)
        elif "test_router" in item.nodeid:
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)
