import pytest

from legianos.models import GoalType, Intent, Priority
from legianos.services.extraction import (
    ExtractedInfo,
    classify_intent,
    extract,
    extract_goal_type,
    extract_motivation,
    extract_priority,
    extract_specific_target,
    extract_timeframe,
)


def test_weekly_exercise_routine_is_ready_to_create():
    result = extract("I want to build a weekly exercise routine")

    assert result.intent == Intent.GOAL_CREATION
    assert result.extracted_info.timeframe == "weekly"
    # "weekly" is checked before "exercise"
    assert result.extracted_info.goal_type == GoalType.WEEKLY
    assert result.extracted_info.motivation == "build a weekly exercise routine"
    assert result.confidence == 0.8
    assert result.missing_elements == ["priority"]
    assert result.needs_more_info is False


def test_update_without_goal_keyword_is_refinement():
    assert classify_intent("Please update my progress, I finished chapter two") == Intent.GOAL_REFINEMENT


@pytest.mark.parametrize("message, intent", [
    ("I finished the first chapter", Intent.PROGRESS_UPDATE),
    ("Hello there", Intent.GENERAL_INQUIRY),
    ("I want to ADJUST things", Intent.GOAL_CREATION),
    ("Can we modify the plan?", Intent.GOAL_REFINEMENT),
])
def test_intent_precedence(message, intent):
    assert classify_intent(message) == intent


def test_timeframe_and_because_reach_confidence_floor():
    result = extract("This month, because I feel stuck")
    assert result.extracted_info.timeframe == "monthly"
    assert result.extracted_info.motivation == "I feel stuck"
    assert result.confidence >= 0.6


def test_every_bonus_sums_to_one():
    message = "This is an urgent weekly goal because I need to get fit before the summer season"
    result = extract(message)
    assert len(message) > 50
    assert result.extracted_info.priority == Priority.CRITICAL
    assert result.confidence == 1.0
    assert result.missing_elements == []


def test_bare_message_needs_more_info():
    result = extract("hi")
    assert result.confidence == 0.2
    assert result.needs_more_info is True
    assert result.missing_elements == ["goal_type", "timeframe", "motivation", "priority"]


def test_goal_type_check_order():
    assert extract_goal_type("save money every year") == GoalType.YEARLY
    assert extract_goal_type("daily exercise") == GoalType.HABIT
    assert extract_goal_type("study for a new job") == GoalType.LEARNING
    assert extract_goal_type("land a career move") == GoalType.CAREER
    assert extract_goal_type("paint something") is None


def test_timeframe_substrings():
    assert extract_timeframe("every weekend") == "weekly"
    assert extract_timeframe("next QUARTER") == "quarterly"
    assert extract_timeframe("this year") == "yearly"
    assert extract_timeframe("someday") is None


def test_priority_keywords():
    assert extract_priority("this is ASAP") == Priority.CRITICAL
    assert extract_priority("really important to me") == Priority.HIGH
    assert extract_priority("low priority, eventually") == Priority.LOW
    assert extract_priority("whenever") is None


def test_motivation_uses_indicator_order_not_position():
    # "because" is checked first even though "want to" appears earlier
    assert extract_motivation("I want to run because it clears my head") == "it clears my head"


def test_motivation_empty_tail_is_absent():
    assert extract_motivation("I do this because") is None


def test_specific_target_skips_calendar_units():
    assert extract_specific_target("Read 10 books in 3 months") == "10 books"
    assert extract_specific_target("Run for 30 days") is None
    assert extract_specific_target("Lose 2.5 Kg") == "2.5 kg"


def test_context_fills_missing_attributes():
    context = ["I want to get fit this month", "It is important to me"]
    result = extract("because I want more energy", context)

    info = result.extracted_info
    assert info.motivation == "I want more energy"
    assert info.timeframe == "monthly"
    assert info.priority == Priority.HIGH
    assert info.goal_type is None


def test_context_prefers_most_recent_turn():
    result = extract("it is important", ["plan for this year", "actually this week"])
    assert result.extracted_info.timeframe == "weekly"


def test_context_ignored_when_message_states_nothing():
    result = extract("thanks!", ["I want to build a weekly exercise routine because I love it"])

    assert result.extracted_info == ExtractedInfo()
    assert result.confidence == 0.2
    assert result.needs_more_info is True


def test_context_does_not_change_intent():
    result = extract("sounds fine", ["I want to set a goal"])
    assert result.intent == Intent.GENERAL_INQUIRY
