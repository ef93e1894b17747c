"""
Goal agent: the conversational entry point around the goal workflow.

Loads the user turns since the last created goal as extraction context, runs the workflow, falls back to
the language model when the workflow fails or the message is a general
question, and records both sides of the exchange.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from pydantic import ValidationError

from legianos.errors import CollaboratorError, GoalValidationError
from legianos.graphs.goal_workflow import (
    CREATED_REPLY_OPENING,
    WorkflowPreferences,
    WorkflowResult,
    run_goal_workflow,
)
from legianos.models import (
    Goal,
    GoalProfile,
    Intent,
    ProgressUpdate,
    apply_progress_update,
    calculate_goal_progress,
    utcnow,
)
from legianos.schemas.chat import Attachment
from legianos.schemas.goals import ExportResult, GoalReview, ProgressResponse
from legianos.services.goal_export import generate_insights, generate_recommendations
from legianos.services.llm_client import LLMClient, get_llm_client
from legianos.services.memory import ConversationStore, ConversationTurn

logger = logging.getLogger("legianos")

FALLBACK_CONFIDENCE = 0.5
DEFAULT_RISK = "Monitor progress regularly to stay on track"

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")


@dataclass
class AgentReply:
    text: str
    goal_profile: Optional[GoalProfile] = None
    export: Optional[ExportResult] = None
    next_steps: List[str] = field(default_factory=list)
    confidence: Optional[float] = None
    needs_more_info: bool = False
    suggested_questions: List[str] = field(default_factory=list)
    insights: List[str] = field(default_factory=list)

    @property
    def export_content(self) -> Optional[str]:
        return self.export.content if self.export else None


def attachment_note(attachments: Sequence[Attachment]) -> str:
    if not attachments:
        return ""
    names = [a.name or a.mime_type or "image" for a in attachments]
    return f"\n\n[Attached images: {', '.join(names)}]"


def open_goal_context(history: Sequence[ConversationTurn]) -> List[str]:
    """User turns since the assistant last created a goal in this thread."""
    context: List[str] = []
    for turn in history:
        if turn.role == "assistant" and turn.content.startswith(CREATED_REPLY_OPENING):
            context = []
        elif turn.role == "user":
            context.append(turn.content)
    return context


class GoalAgent:

    def __init__(self, store: ConversationStore, llm: Optional[LLMClient] = None):
        self.store = store
        self.llm = llm or get_llm_client()

    async def _history(self, thread_id: str, user_id: str) -> List[ConversationTurn]:
        try:
            return await self.store.fetch_history(thread_id, user_id)
        except CollaboratorError as e:
            logger.warning("history_unavailable", extra={"thread_id": thread_id, "error": str(e)})
            return []

    async def _remember(self, thread_id: str, user_id: str, role: str, content: str) -> None:
        try:
            await self.store.append_message(thread_id, user_id, role, content)
        except CollaboratorError as e:
            logger.warning("history_write_failed", extra={"thread_id": thread_id, "role": role, "error": str(e)})

    @staticmethod
    def _reply_from_workflow(result: WorkflowResult) -> AgentReply:
        profile = None
        if result.goal is not None:
            profile = GoalProfile(
                goals=[result.goal],
                insights=result.insights,
                recommendations=result.creation.recommendations if result.creation else None,
                generated_at=result.goal.created_at,
            )
        return AgentReply(
            text=result.reply,
            goal_profile=profile,
            export=result.export,
            next_steps=result.next_steps,
            confidence=result.confidence,
            needs_more_info=result.needs_more_info,
            suggested_questions=result.suggested_questions,
            insights=result.insights,
        )

    async def process_goal_message(
        self,
        message: str,
        thread_id: str,
        user_id: str,
        attachments: Optional[Sequence[Attachment]] = None,
        preferences: Optional[WorkflowPreferences] = None,
        now: Optional[datetime] = None,
    ) -> AgentReply:
        """
        Handle one chat turn.

        Raises GoalValidationError for an empty message and CollaboratorError
        when the workflow fails and the language model cannot answer either.
        """
        if not message or not message.strip():
            raise GoalValidationError("Message is required")

        prompt = f"{message}{attachment_note(attachments or [])}"
        history = await self._history(thread_id, user_id)
        context = open_goal_context(history)

        try:
            result = run_goal_workflow(
                prompt,
                context,
                preferences or WorkflowPreferences.from_settings(),
                now=now,
            )
        except Exception as e:
            logger.exception("goal_workflow_failed", extra={"thread_id": thread_id})
            text = await self.llm.complete(prompt, thread_id, user_id, history)
            reply = AgentReply(text=text, confidence=FALLBACK_CONFIDENCE, needs_more_info=True)
            logger.info("llm_fallback_used", extra={"reason": type(e).__name__})
        else:
            reply = self._reply_from_workflow(result)
            if result.extraction.intent == Intent.GENERAL_INQUIRY and result.needs_more_info:
                try:
                    reply.text = await self.llm.complete(prompt, thread_id, user_id, history)
                except CollaboratorError as e:
                    logger.warning("llm_fallback_unavailable", extra={"error": str(e)})

        await self._remember(thread_id, user_id, "user", prompt)
        await self._remember(thread_id, user_id, "assistant", reply.text)
        return reply

    # ==========================================
    # PROGRESS & REVIEW
    # ==========================================

    async def update_progress(
        self,
        goal: Goal,
        update: ProgressUpdate,
        user_id: str,
        now: Optional[datetime] = None,
    ) -> ProgressResponse:
        try:
            updated = apply_progress_update(goal, update, now or utcnow())
        except KeyError as e:
            raise GoalValidationError(str(e.args[0])) from e

        progress = calculate_goal_progress(updated)
        lines = [f"Update progress for goal {goal.id} ({goal.title}):"]
        if update.current_value is not None:
            lines.append(f"Current value: {update.current_value:g}")
        if update.milestone_updates:
            changes = [m.model_dump(mode="json", by_alias=True, exclude_none=True) for m in update.milestone_updates]
            lines.append(f"Milestone updates: {json.dumps(changes)}")
        if update.reflection:
            lines.append(f"Reflection: {update.reflection}")
        lines.append(f"Overall progress is now {progress:.1f}%.")
        lines.append("Please acknowledge this progress update and provide encouragement.")

        try:
            message = await self.llm.complete("\n".join(lines), f"goal_{goal.id}", user_id)
        except CollaboratorError as e:
            logger.warning("progress_encouragement_unavailable", extra={"goal_id": goal.id, "error": str(e)})
            message = f"Progress recorded: {progress:.1f}% complete. Keep going!"

        logger.info("goal_progress_updated", extra={"goal_id": goal.id, "progress": progress})
        return ProgressResponse(goal=updated, progress=progress, message=message)

    def _fallback_review(self, goals: List[Goal], now: datetime) -> GoalReview:
        return GoalReview(
            insights=generate_insights(goals) or [f"You have {len(goals)} goals in progress"],
            recommendations=generate_recommendations(goals, now)
            or ["Continue working consistently toward your goals"],
            risk_assessment=[DEFAULT_RISK],
        )

    async def review_goals(self, goals: List[Goal], user_id: str, now: Optional[datetime] = None) -> GoalReview:
        """Insights, recommendations and risks for a goal set; deterministic if the model is unusable."""
        now = now or utcnow()
        payload = json.dumps(
            [g.model_dump(mode="json", by_alias=True, exclude_none=True) for g in goals],
            indent=2,
        )
        prompt = (
            "Analyze the following goals and provide insights, recommendations, and risk assessment:\n\n"
            f"Goals: {payload}\n\n"
            "Please provide:\n"
            "1. Key insights about goal patterns and progress\n"
            "2. Specific recommendations for improvement\n"
            "3. Risk assessment for goal achievement\n\n"
            "Format as JSON with insights, recommendations, and riskAssessment arrays."
        )

        try:
            text = await self.llm.complete(prompt, f"review_{user_id}", user_id)
        except CollaboratorError as e:
            logger.warning("goal_review_unavailable", extra={"user_id": user_id, "error": str(e)})
            return self._fallback_review(goals, now)

        try:
            return GoalReview.model_validate(json.loads(_FENCE_RE.sub("", text.strip())))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("goal_review_unparseable", extra={"user_id": user_id, "error": str(e)})
            return self._fallback_review(goals, now)
