"""
Goal Creation Engine.
Turns a GoalDraft into a Goal record and scores how well-formed it is:
completeness confidence, improvement recommendations, next steps,
difficulty and success probability.
"""

import logging
import math
import re
from datetime import datetime, timedelta
from typing import List, Optional

from legianos.errors import GoalCreationError
from legianos.models import (
    Goal,
    GoalStatus,
    GoalType,
    Milestone,
    MilestoneStatus,
    Priority,
    as_utc,
    create_goal_id,
    create_milestone_id,
    utcnow,
)
from legianos.schemas.goals import (
    GoalCreationResult,
    GoalDraft,
    Metrics,
    MotivationInput,
    Timeframe,
)
from legianos.services.extraction import ExtractedInfo

logger = logging.getLogger("legianos")

TITLE_LIMIT = 50
DEFAULT_MOTIVATION = "Personal growth and achievement"

TIMEFRAME_DAYS = {
    "weekly": 7,
    "monthly": 30,
    "quarterly": 90,
    "yearly": 365,
}

MEASURABLE_TYPES = {GoalType.FITNESS, GoalType.LEARNING, GoalType.FINANCIAL}

_TARGET_RE = re.compile(r"^(\d+(?:\.\d+)?)\s+(.+)$")
_WS_RE = re.compile(r"\s+")


def _span_days(start: datetime, end: datetime) -> int:
    return math.ceil((as_utc(end) - as_utc(start)).total_seconds() / 86400)


def _parse_target(target: Optional[str]) -> Optional[Metrics]:
    if not target:
        return None
    match = _TARGET_RE.match(target.strip())
    if not match:
        return None
    return Metrics(target_value=float(match.group(1)), unit=match.group(2))


def build_goal_draft(info: ExtractedInfo, user_message: str, now: Optional[datetime] = None) -> GoalDraft:
    """Map extracted attributes plus the raw message onto a creation draft."""
    now = now or utcnow()
    title = user_message if len(user_message) <= TITLE_LIMIT else user_message[:TITLE_LIMIT] + "..."

    end_date = None
    if info.timeframe in TIMEFRAME_DAYS:
        end_date = now + timedelta(days=TIMEFRAME_DAYS[info.timeframe])

    return GoalDraft(
        title=title,
        description=user_message,
        type=info.goal_type or GoalType.PERSONAL,
        priority=info.priority or Priority.MEDIUM,
        timeframe=Timeframe(start_date=now, end_date=end_date, duration=info.timeframe),
        metrics=_parse_target(info.specific_target),
        motivation=MotivationInput(why=info.motivation or DEFAULT_MOTIVATION),
    )


def _build_tags(draft: GoalDraft) -> List[str]:
    habits = draft.strategy.habits if draft.strategy else []
    return [
        draft.type.value.lower(),
        *draft.motivation.values,
        *(f"habit:{_WS_RE.sub('-', h.lower())}" for h in habits),
        draft.priority.value.lower(),
    ]


def _assemble_goal(draft: GoalDraft, now: datetime) -> Goal:
    if draft.timeframe.end_date and as_utc(draft.timeframe.end_date) < as_utc(draft.timeframe.start_date):
        raise GoalCreationError("Target completion date precedes the start date")

    milestones = [
        Milestone(
            id=create_milestone_id(),
            title=m.title,
            description=m.description or "",
            due_date=m.due_date,
            status=MilestoneStatus.NOT_STARTED,
            progress=0,
            notes=f"Estimated effort: {m.estimated_effort}" if m.estimated_effort else None,
            created_at=now,
            updated_at=now,
        )
        for m in draft.milestones
    ]

    metrics = draft.metrics or Metrics()
    support = draft.support
    return Goal(
        id=create_goal_id(),
        title=draft.title,
        description=draft.description or "",
        type=draft.type,
        status=GoalStatus.DRAFT,
        priority=draft.priority,
        start_date=draft.timeframe.start_date,
        end_date=draft.timeframe.end_date,
        target_value=metrics.target_value,
        current_value=metrics.current_value or 0,
        unit=metrics.unit,
        milestones=milestones,
        tags=_build_tags(draft),
        motivation=draft.motivation.why,
        obstacles=draft.obstacles.anticipated if draft.obstacles else [],
        resources=support.resources if support else [],
        accountability=support.accountability if support else None,
        reward=draft.rewards.completion_reward if draft.rewards else None,
        created_at=now,
        updated_at=now,
    )


def score_completeness(draft: GoalDraft, goal: Goal) -> float:
    confidence = 0.3  # title and motivation are always present
    if goal.description:
        confidence += 0.1
    if draft.timeframe.end_date:
        confidence += 0.1
    if draft.metrics and draft.metrics.target_value:
        confidence += 0.15
    if goal.milestones:
        confidence += 0.15
    if draft.support and draft.support.accountability:
        confidence += 0.1
    if draft.obstacles and draft.obstacles.anticipated:
        confidence += 0.1
    return round(min(1.0, confidence), 2)


def recommend(draft: GoalDraft, goal: Goal) -> List[str]:
    recommendations = []

    if not goal.description:
        recommendations.append("Consider adding more detail about what success looks like")

    if not draft.timeframe.end_date and draft.type != GoalType.HABIT:
        recommendations.append("Setting a target completion date would help with planning")

    if not (draft.metrics and draft.metrics.target_value) and draft.type in MEASURABLE_TYPES:
        recommendations.append("Adding a specific measurable target would make progress easier to track")

    if not goal.milestones and draft.timeframe.end_date:
        if _span_days(draft.timeframe.start_date, draft.timeframe.end_date) > 30:
            recommendations.append("Consider breaking this into smaller milestones to maintain motivation")

    if not (draft.support and draft.support.accountability):
        recommendations.append("Finding someone to help keep you accountable could increase your success rate")

    if not (draft.obstacles and draft.obstacles.anticipated):
        recommendations.append("Think about potential challenges you might face and how to overcome them")

    return recommendations


def plan_next_steps(draft: GoalDraft, goal: Goal) -> List[str]:
    steps = []
    if goal.milestones:
        steps.append(f"Start with: {goal.milestones[0].title}")
    else:
        steps.append("Define your first concrete action step")

    if goal.resources:
        steps.append(f"Gather resources: {', '.join(goal.resources[:2])}")

    if draft.strategy and draft.strategy.environment:
        steps.append(f"Set up your environment: {draft.strategy.environment}")

    steps.append("Set a regular check-in schedule for progress review")
    return steps


def estimate_difficulty(draft: GoalDraft, goal: Goal) -> str:
    score = 0

    if draft.timeframe.end_date:
        days = _span_days(draft.timeframe.start_date, draft.timeframe.end_date)
        if days > 365:
            score += 2
        elif days > 90:
            score += 1

    if len(goal.milestones) > 5:
        score += 1
    if len(goal.obstacles) > 3:
        score += 1
    if draft.priority == Priority.CRITICAL:
        score += 1
    if not goal.accountability:
        score += 1

    if score <= 1:
        return "easy"
    if score <= 3:
        return "moderate"
    if score <= 5:
        return "challenging"
    return "very_challenging"


def estimate_success_probability(draft: GoalDraft, goal: Goal, difficulty: str) -> float:
    probability = 0.5

    if goal.accountability:
        probability += 0.2
    if goal.milestones:
        probability += 0.15
    if len(draft.motivation.why) > 20:
        probability += 0.1
    if draft.obstacles and draft.obstacles.mitigation:
        probability += 0.1
    if draft.strategy and draft.strategy.frequency:
        probability += 0.05

    # Ambitious goals are less likely to land
    if difficulty == "very_challenging":
        probability -= 0.2
    elif difficulty == "challenging":
        probability -= 0.1

    return round(max(0.1, min(0.95, probability)), 2)


def create_goal(draft: GoalDraft, now: Optional[datetime] = None) -> GoalCreationResult:
    """
    Materialise a draft into a Goal and score it.
    Any failure while assembling or scoring the record surfaces as GoalCreationError.
    """
    now = now or utcnow()
    try:
        goal = _assemble_goal(draft, now)
        difficulty = estimate_difficulty(draft, goal)
        result = GoalCreationResult(
            goal=goal,
            confidence=score_completeness(draft, goal),
            recommendations=recommend(draft, goal),
            next_steps=plan_next_steps(draft, goal),
            estimated_difficulty=difficulty,
            success_probability=estimate_success_probability(draft, goal, difficulty),
        )
    except GoalCreationError:
        raise
    except Exception as e:
        logger.error("goal_assembly_failed", extra={"error": str(e)})
        raise GoalCreationError(f"Could not assemble goal: {e}") from e

    logger.info(
        "goal_created",
        extra={"goal_id": goal.id, "goal_type": goal.type.value, "difficulty": difficulty},
    )
    return result


def create_goal_from_extraction(info: ExtractedInfo, user_message: str, now: Optional[datetime] = None) -> GoalCreationResult:
    now = now or utcnow()
    try:
        draft = build_goal_draft(info, user_message, now)
    except Exception as e:
        raise GoalCreationError(f"Could not build goal draft: {e}") from e
    return create_goal(draft, now)
