# test_followup.py
"""Tests for follow-up detection and constraint extraction."""

import pytest

from opsrouter.core import ConversationTurn
from opsrouter.query_handlers.followup import FollowUpDetector, merge_parameters


@pytest.fixture
def detector():
    return FollowUpDetector()


class TestFollowUpDetection:
    """Deciding whether a question continues the previous turn."""

    def test_no_history(self, detector):
        context = detector.detect("and with only 8 pairs?", [])
        assert context.is_follow_up is False
        assert context.confidence == 0.0

    def test_continuation_phrase(self, detector, target_turn):
        context = detector.detect("and with only 8 pairs?", [target_turn])
        assert context.is_follow_up is True
        assert context.confidence == 0.9
        assert context.previous_intent == "TARGET_OPTIMIZATION"
        assert context.previous_parameters["target"] == 5000
        assert context.follow_up_type == "constraint"

    def test_progress_report(self, detector, target_turn):
        context = detector.detect("2500 tons already mined but EX-139 broke down", [target_turn])
        assert context.is_follow_up is True
        assert context.confidence == 0.9
        assert context.follow_up_type == "modification"

    def test_standalone_question(self, detector, target_turn):
        context = detector.detect("show production for March", [target_turn])
        assert context.is_follow_up is False
        assert context.previous_intent == "TARGET_OPTIMIZATION"

    def test_long_question_without_cue(self, detector, target_turn):
        context = detector.detect(
            "Could you tell me how the excavators performed during the night?", [target_turn]
        )
        assert context.is_follow_up is False
        assert context.confidence < 0.5

    def test_previous_parameters_are_copied(self, detector, target_turn):
        context = detector.detect("what about 3 tippers", [target_turn])
        context.previous_parameters["target"] = 1
        assert target_turn.parameters["target"] == 5000

    def test_follow_up_types(self):
        assert FollowUpDetector.follow_up_type("why") == "clarification"
        assert FollowUpDetector.follow_up_type("what about at least 4 tippers") == "constraint"
        assert FollowUpDetector.follow_up_type("what about shift b") == "alternative"
        assert FollowUpDetector.follow_up_type("and bb-12") == "modification"


class TestConstraintExtraction:
    """Constraints carried by follow-up questions."""

    def test_bare_shift(self):
        assert FollowUpDetector.extract_constraints("B") == {"shift": ["B"]}
        assert FollowUpDetector.extract_constraints("shift 3") == {"shift": ["C"]}

    def test_progress(self):
        constraints = FollowUpDetector.extract_constraints(
            "2500 tons already mined but EX-139 broke down"
        )
        assert constraints["mined_amount"] == 2500
        assert constraints["unit"] == "ton"
        assert constraints["exclude_equipment"] == ["EX-139"]

    def test_remaining_trips_and_half_target(self):
        constraints = FollowUpDetector.extract_constraints("120 trips left, half the target done")
        assert constraints["remaining_trips"] == 120
        assert constraints["mined_fraction"] == 0.5

    def test_limit_and_minimum(self):
        assert FollowUpDetector.extract_constraints("with only 8 pairs") == {
            "limit": 8,
            "unit": "pairs",
        }
        assert FollowUpDetector.extract_constraints("at least 3 excavators") == {
            "minimum": 3,
            "unit": "excavators",
        }

    def test_without_equipment(self):
        constraints = FollowUpDetector.extract_constraints("without BB-12 and DT-4")
        assert constraints["exclude_equipment"] == ["BB-12", "DT-4"]


class TestMergeParameters:
    """Combining parameters across turns."""

    def test_current_wins_and_flag_is_set(self):
        merged = merge_parameters({"shift": ["B"]}, {"shift": ["A"], "target": 5000})
        assert merged == {"shift": ["B"], "target": 5000, "_is_follow_up": True}

    def test_without_previous(self):
        assert merge_parameters({"limit": 8}) == {"limit": 8, "_is_follow_up": True}


def test_turn_built_from_dict(detector):
    turn = ConversationTurn.from_dict(
        {"question": "plan 4000 tons", "detected_intent": "TARGET_OPTIMIZATION"}
    )
    context = detector.detect("and in 2 days", [turn])
    assert context.is_follow_up is True
    assert context.previous_parameters == {}
