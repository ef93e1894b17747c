import json
import pytest

from legianos.errors import CollaboratorError, GoalValidationError
from legianos.models import MilestoneStatus, MilestoneUpdate, ProgressUpdate
from legianos.schemas.chat import Attachment
from legianos.graphs.goal_workflow import CREATED_REPLY_OPENING
from legianos.services import goal_agent
from legianos.services.goal_agent import GoalAgent, open_goal_context
from legianos.services.memory import ConversationTurn

pytestmark = pytest.mark.asyncio

READY_MESSAGE = "I want to build a weekly exercise routine"


async def test_ready_message_returns_profile_and_export(store, llm, now):
    agent = GoalAgent(store, llm)
    reply = await agent.process_goal_message(READY_MESSAGE, "t1", "u1", now=now)

    assert reply.goal_profile.goals[0].title == READY_MESSAGE
    assert reply.export_content.startswith("# Goal Profile")
    assert reply.next_steps[0] == "Download your goal profile"
    assert reply.needs_more_info is False
    assert llm.calls == []
    assert [m[2] for m in store.messages] == ["user", "assistant"]
    assert store.messages[1][3] == reply.text


async def test_empty_message_is_rejected(store, llm):
    with pytest.raises(GoalValidationError):
        await GoalAgent(store, llm).process_goal_message("   ", "t1", "u1")


async def test_attachment_names_are_noted(store, llm, now):
    attachments = [Attachment(name="plan.png"), Attachment(mime_type="image/jpeg")]
    await GoalAgent(store, llm).process_goal_message(READY_MESSAGE, "t1", "u1", attachments, now=now)
    assert store.messages[0][3].endswith("\n\n[Attached images: plan.png, image/jpeg]")


async def test_history_supplies_missing_details(store, llm, now):
    await store.append_message("t1", "u1", "user", "I want to set a weekly fitness goal")
    await store.append_message("t1", "u1", "assistant", "What's driving this goal for you?")

    reply = await GoalAgent(store, llm).process_goal_message("because I want to feel strong", "t1", "u1", now=now)
    assert reply.goal_profile is not None


async def test_follow_up_after_creation_creates_nothing(store, llm, now):
    agent = GoalAgent(store, llm)
    await agent.process_goal_message(READY_MESSAGE, "t1", "u1", now=now)

    reply = await agent.process_goal_message("how is my progress?", "t1", "u1", now=now)
    assert reply.goal_profile is None
    assert reply.needs_more_info is True


async def test_created_goal_closes_the_context(store, llm, now):
    agent = GoalAgent(store, llm)
    await agent.process_goal_message(READY_MESSAGE, "t1", "u1", now=now)

    reply = await agent.process_goal_message("I want to feel strong", "t1", "u1", now=now)
    assert reply.goal_profile is None
    assert reply.confidence == 0.4


async def test_open_goal_context_starts_after_last_creation():
    history = [
        ConversationTurn("user", "I want a weekly goal"),
        ConversationTurn("assistant", f"{CREATED_REPLY_OPENING} Your weekly goal ..."),
        ConversationTurn("user", "next I want to save money"),
        ConversationTurn("assistant", "What's driving this goal for you?"),
    ]
    assert open_goal_context(history) == ["next I want to save money"]


async def test_broken_store_degrades_to_no_context(store, llm, now):
    store.broken = True
    reply = await GoalAgent(store, llm).process_goal_message(READY_MESSAGE, "t1", "u1", now=now)
    assert reply.goal_profile is not None


async def test_general_question_goes_to_llm(store, llm):
    reply = await GoalAgent(store, llm).process_goal_message("Hello there", "t1", "u1")

    assert reply.text == "LLM says hi"
    assert reply.needs_more_info is True
    assert len(reply.suggested_questions) == 2
    assert llm.calls[0]["prompt"] == "Hello there"


async def test_general_question_keeps_questions_when_llm_down(store, broken_llm):
    reply = await GoalAgent(store, broken_llm).process_goal_message("Hello there", "t1", "u1")
    assert reply.text.startswith("I'd love to help you create a meaningful goal!")


async def test_workflow_crash_falls_back_to_llm(monkeypatch, store, llm):
    def boom(*args, **kwargs):
        raise RuntimeError("workflow exploded")

    monkeypatch.setattr(goal_agent, "run_goal_workflow", boom)
    reply = await GoalAgent(store, llm).process_goal_message(READY_MESSAGE, "t1", "u1")

    assert reply.text == "LLM says hi"
    assert reply.confidence == 0.5
    assert reply.needs_more_info is True


async def test_workflow_crash_with_llm_down_raises(monkeypatch, store, broken_llm):
    def boom(*args, **kwargs):
        raise RuntimeError("workflow exploded")

    monkeypatch.setattr(goal_agent, "run_goal_workflow", boom)

    with pytest.raises(CollaboratorError) as exc:
        await GoalAgent(store, broken_llm).process_goal_message(READY_MESSAGE, "t1", "u1")
    assert exc.value.hint is not None


async def test_update_progress_uses_llm_encouragement(store, llm, goal, now):
    update = ProgressUpdate(milestone_updates=[MilestoneUpdate(id="milestone_2", status=MilestoneStatus.COMPLETED)])
    response = await GoalAgent(store, llm).update_progress(goal, update, "u1", now)

    assert response.progress == 50.0
    assert response.message == "LLM says hi"
    assert llm.calls[0]["thread_id"] == f"goal_{goal.id}"
    assert "Overall progress is now 50.0%." in llm.calls[0]["prompt"]


async def test_update_progress_without_llm(store, broken_llm, goal, now):
    response = await GoalAgent(store, broken_llm).update_progress(goal, ProgressUpdate(reflection="ok"), "u1", now)
    assert response.message == "Progress recorded: 25.0% complete. Keep going!"


async def test_update_progress_unknown_milestone(store, llm, goal, now):
    update = ProgressUpdate(milestone_updates=[MilestoneUpdate(id="missing")])
    with pytest.raises(GoalValidationError):
        await GoalAgent(store, llm).update_progress(goal, update, "u1", now)


async def test_review_parses_llm_json(store, llm, goal, now):
    payload = {"insights": ["Focused"], "recommendations": ["Rest more"], "riskAssessment": ["Burnout"]}
    llm.reply = ("```json\n" + json.dumps(payload) + "\n```")
    review = await GoalAgent(store, llm).review_goals([goal], "u1", now)

    assert review.insights == ["Focused"]
    assert review.risk_assessment == ["Burnout"]


async def test_review_falls_back_on_prose(store, llm, goal, now):
    llm.reply = "You are doing great!"
    review = await GoalAgent(store, llm).review_goals([goal], "u1", now)

    assert review.insights[0] == "You have a strong focus on learning goals (1 out of 1 goals)"
    assert "Add accountability partners to 1 goal to increase success rates" in review.recommendations
    assert review.risk_assessment == ["Monitor progress regularly to stay on track"]
