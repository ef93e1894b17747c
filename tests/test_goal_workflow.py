from datetime import datetime, timezone

from legianos.errors import GoalCreationError, GoalExportError
from legianos.graphs import goal_workflow
from legianos.graphs.goal_workflow import (
    CREATION_FAILED_REPLY,
    WorkflowPreferences,
    WorkflowState,
    run_goal_workflow,
)
from legianos.models import ExportFormat, GoalType

READY_MESSAGE = "I want to build a weekly exercise routine"


def test_ready_message_creates_and_exports(now):
    result = run_goal_workflow(READY_MESSAGE, now=now)

    assert result.trail == [
        WorkflowState.ANALYZING,
        WorkflowState.READY_TO_CREATE,
        WorkflowState.CREATED,
        WorkflowState.EXPORTED,
        WorkflowState.DONE,
    ]
    assert result.goal.type == GoalType.WEEKLY
    assert result.goal.title == READY_MESSAGE
    assert result.reply == (
        f'Perfect! I\'ve created a goal profile for you. Your weekly goal "{READY_MESSAGE}" '
        "is structured and ready to guide your journey over the next week. "
        "You can review it, make adjustments, and download it when you're ready! "
        "Your goal profile is ready for download!"
    )
    assert result.export.filename == "legianos-goals-2025-03-01.md"
    assert result.export.content.startswith("# Goal Profile")
    assert result.next_steps[0] == "Download your goal profile"
    assert result.needs_more_info is False
    assert result.suggested_questions == []
    assert result.confidence == 0.8
    assert result.insights == ["Your goal appears to be weekly focused", "Confidence level: 80%"]


def test_vague_message_asks_questions(now):
    result = run_goal_workflow("hi", now=now)

    assert result.trail == [WorkflowState.ANALYZING, WorkflowState.NEEDS_INFO, WorkflowState.DONE]
    assert result.goal is None
    assert result.export is None
    assert result.needs_more_info is True
    assert len(result.suggested_questions) == 2
    assert result.next_steps == ["Answer the questions above", "Provide more details about your goal"]
    assert result.insights == ["Your goal appears to be general focused", "Confidence level: 20%"]


def test_context_turns_feed_extraction(now):
    result = run_goal_workflow(
        "because I want to feel strong",
        ["I want to set a weekly fitness goal"],
        now=now,
    )
    assert result.goal is not None
    assert result.goal.type == GoalType.WEEKLY


def test_follow_up_without_goal_details_creates_nothing(now):
    result = run_goal_workflow("thanks!", [READY_MESSAGE], now=now)

    assert result.trail == [WorkflowState.ANALYZING, WorkflowState.NEEDS_INFO, WorkflowState.DONE]
    assert result.goal is None
    assert result.export is None
    assert result.confidence == 0.2


def test_date_overflow_reports_creation_failure():
    far_future = datetime(9999, 12, 30, tzinfo=timezone.utc)
    result = run_goal_workflow(READY_MESSAGE, now=far_future)

    assert result.trail[2] == WorkflowState.CREATION_FAILED
    assert result.goal is None
    assert result.reply == CREATION_FAILED_REPLY


def test_auto_generate_off_skips_export(now):
    prefs = WorkflowPreferences(auto_generate=False)
    result = run_goal_workflow(READY_MESSAGE, preferences=prefs, now=now)

    assert result.trail[-2] == WorkflowState.NOT_EXPORTED
    assert result.goal is not None
    assert result.export is None
    assert "Download your goal profile" not in result.next_steps
    assert not result.reply.endswith("ready for download!")


def test_preferred_format_is_used(now):
    prefs = WorkflowPreferences(default_export_format=ExportFormat.CSV)
    result = run_goal_workflow(READY_MESSAGE, preferences=prefs, now=now)
    assert result.export.mime_type == "text/csv"


def test_creation_failure_returns_no_goal(monkeypatch, now):
    def boom(*args, **kwargs):
        raise GoalCreationError("bad dates")

    monkeypatch.setattr(goal_workflow, "create_goal_from_extraction", boom)
    result = run_goal_workflow(READY_MESSAGE, now=now)

    assert result.trail == [
        WorkflowState.ANALYZING,
        WorkflowState.READY_TO_CREATE,
        WorkflowState.CREATION_FAILED,
        WorkflowState.DONE,
    ]
    assert result.goal is None
    assert result.reply == CREATION_FAILED_REPLY
    assert result.needs_more_info is True


def test_export_failure_keeps_goal(monkeypatch, now):
    def boom(*args, **kwargs):
        raise GoalExportError("renderer broke")

    monkeypatch.setattr(goal_workflow, "export_goals", boom)
    result = run_goal_workflow(READY_MESSAGE, now=now)

    assert WorkflowState.NOT_EXPORTED in result.trail
    assert result.goal is not None
    assert result.export is None
