"""
Goal workflow state machine with LangSmith traces.

ANALYZING -> NEEDS_INFO | READY_TO_CREATE -> CREATED | CREATION_FAILED
          -> EXPORTED | NOT_EXPORTED -> DONE

Each stage returns a typed result the next stage consumes. No retries here;
the calling layer decides what to do with a failed turn.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Sequence

from langsmith import traceable

from legianos.config import settings
from legianos.errors import GoalCreationError, GoalExportError
from legianos.models import ExportFormat, Goal, utcnow
from legianos.schemas.goals import ExportResult, GoalCreationResult
from legianos.services.extraction import ExtractionResult, extract
from legianos.services.goal_creation import create_goal_from_extraction
from legianos.services.goal_export import export_goals
from legianos.services.questions import QuestionSet, generate_questions

logger = logging.getLogger("legianos")

MAX_SUGGESTED_QUESTIONS = 2
NEEDS_INFO_STEPS = ["Answer the questions above", "Provide more details about your goal"]
DEFAULT_CREATED_STEPS = ["Review your goal", "Take your first action step"]
DOWNLOAD_STEP = "Download your goal profile"

CREATED_REPLY_OPENING = "Perfect! I've created a goal profile for you."

CREATION_FAILED_REPLY = (
    "I'm sorry, I ran into a problem creating your goal profile. "
    "Let's try again with more specific details about what you want to achieve."
)

TIMEFRAME_NOUNS = {
    "weekly": "week",
    "monthly": "month",
    "quarterly": "quarter",
    "yearly": "year",
}


class WorkflowState(str, Enum):
    ANALYZING = "analyzing"
    NEEDS_INFO = "needs_info"
    READY_TO_CREATE = "ready_to_create"
    CREATED = "created"
    CREATION_FAILED = "creation_failed"
    EXPORTED = "exported"
    NOT_EXPORTED = "not_exported"
    DONE = "done"


@dataclass
class WorkflowPreferences:
    default_export_format: ExportFormat = ExportFormat.MARKDOWN
    auto_generate: bool = True

    @classmethod
    def from_settings(cls) -> "WorkflowPreferences":
        return cls(
            default_export_format=ExportFormat(settings.default_export_format),
            auto_generate=settings.auto_generate,
        )


# ==========================================
# STAGE RESULTS
# ==========================================

@dataclass
class Analysis:
    extraction: ExtractionResult
    next_state: WorkflowState


@dataclass
class Questions:
    question_set: QuestionSet


@dataclass
class Creation:
    next_state: WorkflowState
    reply: str
    result: Optional[GoalCreationResult] = None


@dataclass
class Export:
    next_state: WorkflowState
    result: Optional[ExportResult] = None


@dataclass
class WorkflowResult:
    reply: str
    extraction: ExtractionResult
    goal: Optional[Goal] = None
    creation: Optional[GoalCreationResult] = None
    export: Optional[ExportResult] = None
    next_steps: List[str] = field(default_factory=list)
    needs_more_info: bool = False
    suggested_questions: List[str] = field(default_factory=list)
    insights: List[str] = field(default_factory=list)
    trail: List[WorkflowState] = field(default_factory=list)

    @property
    def confidence(self) -> float:
        return self.extraction.confidence


# ==========================================
# STAGES
# ==========================================

@traceable(run_type="chain", name="analyze_user_input")
def analyze(user_message: str, conversation_context: Sequence[str]) -> Analysis:
    extraction = extract(user_message, conversation_context)
    next_state = WorkflowState.NEEDS_INFO if extraction.needs_more_info else WorkflowState.READY_TO_CREATE
    logger.info(
        "goal_input_analyzed",
        extra={
            "intent": extraction.intent.value,
            "confidence": extraction.confidence,
            "missing": extraction.missing_elements,
        },
    )
    return Analysis(extraction=extraction, next_state=next_state)


@traceable(run_type="chain", name="generate_questions")
def ask(user_message: str, analysis: Analysis) -> Questions:
    return Questions(question_set=generate_questions(user_message, analysis.extraction))


def _created_reply(analysis: Analysis, goal: Goal) -> str:
    info = analysis.extraction.extracted_info
    kind = info.goal_type.value if info.goal_type else "personal"
    span = ""
    if goal.end_date and info.timeframe:
        span = f" over the next {TIMEFRAME_NOUNS[info.timeframe]}"
    return (
        f"{CREATED_REPLY_OPENING} Your {kind} goal \"{goal.title}\" "
        f"is structured and ready to guide your journey{span}. "
        "You can review it, make adjustments, and download it when you're ready!"
    )


@traceable(run_type="chain", name="create_goal")
def create(user_message: str, analysis: Analysis, now: datetime) -> Creation:
    try:
        result = create_goal_from_extraction(analysis.extraction.extracted_info, user_message, now)
    except GoalCreationError as e:
        logger.warning("goal_creation_failed", extra={"error": str(e)})
        return Creation(next_state=WorkflowState.CREATION_FAILED, reply=CREATION_FAILED_REPLY)

    return Creation(
        next_state=WorkflowState.CREATED,
        reply=_created_reply(analysis, result.goal),
        result=result,
    )


@traceable(run_type="chain", name="export_goal_profile")
def export(creation: Creation, preferences: WorkflowPreferences, now: datetime) -> Export:
    if not preferences.auto_generate or creation.result is None:
        return Export(next_state=WorkflowState.NOT_EXPORTED)

    try:
        result = export_goals([creation.result.goal], preferences.default_export_format, now=now)
    except GoalExportError as e:
        logger.warning("goal_export_skipped", extra={"error": str(e)})
        return Export(next_state=WorkflowState.NOT_EXPORTED)

    return Export(next_state=WorkflowState.EXPORTED, result=result)


def _insights(analysis: Analysis) -> List[str]:
    info = analysis.extraction.extracted_info
    kind = info.goal_type.value if info.goal_type else "general"
    return [
        f"Your goal appears to be {kind} focused",
        f"Confidence level: {round(analysis.extraction.confidence * 100)}%",
    ]


# ==========================================
# ORCHESTRATOR
# ==========================================

@traceable(run_type="chain", name="goal_workflow")
def run_goal_workflow(
    user_message: str,
    conversation_context: Optional[Sequence[str]] = None,
    preferences: Optional[WorkflowPreferences] = None,
    now: Optional[datetime] = None,
) -> WorkflowResult:
    """
    Run one turn of the goal pipeline.
    `conversation_context` is the prior user turns of the goal being
    gathered, oldest first.
    """
    preferences = preferences or WorkflowPreferences()
    now = now or utcnow()
    trail = [WorkflowState.ANALYZING]

    analysis = analyze(user_message, list(conversation_context or []))
    trail.append(analysis.next_state)

    if analysis.next_state == WorkflowState.NEEDS_INFO:
        questions = ask(user_message, analysis).question_set
        trail.append(WorkflowState.DONE)
        return WorkflowResult(
            reply=questions.reply,
            extraction=analysis.extraction,
            next_steps=list(NEEDS_INFO_STEPS),
            needs_more_info=True,
            suggested_questions=questions.top(MAX_SUGGESTED_QUESTIONS),
            insights=_insights(analysis),
            trail=trail,
        )

    creation = create(user_message, analysis, now)
    trail.append(creation.next_state)

    if creation.result is None:
        trail.append(WorkflowState.DONE)
        return WorkflowResult(
            reply=creation.reply,
            extraction=analysis.extraction,
            next_steps=list(NEEDS_INFO_STEPS),
            needs_more_info=True,
            insights=_insights(analysis),
            trail=trail,
        )

    exported = export(creation, preferences, now)
    trail.append(exported.next_state)

    reply = creation.reply
    next_steps = list(creation.result.next_steps or DEFAULT_CREATED_STEPS)
    if exported.result is not None:
        reply += " Your goal profile is ready for download!"
        next_steps.insert(0, DOWNLOAD_STEP)

    trail.append(WorkflowState.DONE)
    logger.info(
        "goal_workflow_completed",
        extra={"goal_id": creation.result.goal.id, "exported": exported.result is not None},
    )
    return WorkflowResult(
        reply=reply,
        extraction=analysis.extraction,
        goal=creation.result.goal,
        creation=creation.result,
        export=exported.result,
        next_steps=next_steps,
        needs_more_info=False,
        insights=_insights(analysis),
        trail=trail,
    )
