"""
Goal data model: record types, enums, and pure derivations.
Goals serialize with camelCase keys so exported profiles match the chat UI contract.
"""

import math
import random
import string
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from sqlmodel import Field as SQLField, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class GoalType(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    HABIT = "habit"
    PROJECT = "project"
    LEARNING = "learning"
    FITNESS = "fitness"
    FINANCIAL = "financial"
    CAREER = "career"
    PERSONAL = "personal"
    CREATIVE = "creative"


class GoalStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class MilestoneStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    OVERDUE = "overdue"


class ExportFormat(str, Enum):
    JSON = "json"
    PDF = "pdf"  # PDF-ready HTML
    MARKDOWN = "markdown"
    CSV = "csv"


class Intent(str, Enum):
    GOAL_CREATION = "goal_creation"
    GOAL_REFINEMENT = "goal_refinement"
    PROGRESS_UPDATE = "progress_update"
    GENERAL_INQUIRY = "general_inquiry"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ==========================================
# GOAL RECORDS
# ==========================================

class Milestone(CamelModel):
    id: str
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    status: MilestoneStatus = MilestoneStatus.NOT_STARTED
    progress: float = Field(0, ge=0, le=100)
    notes: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Goal(CamelModel):
    id: str
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    type: GoalType
    status: GoalStatus = GoalStatus.DRAFT
    priority: Priority = Priority.MEDIUM
    start_date: datetime
    end_date: Optional[datetime] = None
    target_value: Optional[float] = None
    current_value: float = 0
    unit: Optional[str] = None  # e.g. "kg", "hours", "books"
    milestones: List[Milestone] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    reflection: Optional[str] = None
    motivation: Optional[str] = None
    obstacles: List[str] = Field(default_factory=list)
    resources: List[str] = Field(default_factory=list)
    accountability: Optional[str] = None  # who holds the user accountable
    reward: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, tags: List[str]) -> List[str]:
        return list(dict.fromkeys(t for t in tags if t))


class UserContext(CamelModel):
    name: Optional[str] = None
    timezone: Optional[str] = None
    preferences: Optional[Dict[str, Any]] = None


class GoalProfile(CamelModel):
    """Export envelope. Built per export request, never stored."""
    user_context: Optional[UserContext] = None
    goals: List[Goal]
    insights: Optional[List[str]] = None
    recommendations: Optional[List[str]] = None
    generated_at: datetime
    version: str = "1.0"


# ==========================================
# PROGRESS UPDATES
# ==========================================

class MilestoneUpdate(CamelModel):
    id: str
    status: Optional[MilestoneStatus] = None
    progress: Optional[float] = Field(None, ge=0, le=100)
    notes: Optional[str] = None


class ProgressUpdate(CamelModel):
    current_value: Optional[float] = None
    milestone_updates: List[MilestoneUpdate] = Field(default_factory=list)
    reflection: Optional[str] = None
    timestamp: Optional[datetime] = None


# ==========================================
# TEMPLATES
# ==========================================

class GoalTemplate(CamelModel):
    id: str
    name: str
    description: str
    type: GoalType
    category: str
    template: Dict[str, Any]
    popularity: int
    tags: List[str]


COMMON_GOAL_TEMPLATES: List[GoalTemplate] = [
    GoalTemplate(
        id="weekly_exercise",
        name="Weekly Exercise Routine",
        description="Establish a consistent weekly exercise routine",
        type=GoalType.WEEKLY,
        category="fitness",
        template={
            "title": "Exercise 3 times per week",
            "type": GoalType.WEEKLY.value,
            "priority": Priority.MEDIUM.value,
            "targetValue": 3,
            "unit": "sessions",
        },
        popularity=85,
        tags=["fitness", "health", "routine"],
    ),
    GoalTemplate(
        id="monthly_reading",
        name="Monthly Reading Goal",
        description="Read a specific number of books each month",
        type=GoalType.MONTHLY,
        category="learning",
        template={
            "title": "Read books monthly",
            "type": GoalType.MONTHLY.value,
            "priority": Priority.MEDIUM.value,
            "unit": "books",
        },
        popularity=72,
        tags=["reading", "learning", "personal development"],
    ),
    GoalTemplate(
        id="habit_tracker",
        name="Daily Habit Formation",
        description="Build a new daily habit",
        type=GoalType.HABIT,
        category="personal",
        template={
            "title": "Daily habit",
            "type": GoalType.HABIT.value,
            "priority": Priority.HIGH.value,
            "targetValue": 21,
            "unit": "days",
        },
        popularity=91,
        tags=["habits", "daily", "routine", "self-improvement"],
    ),
]


# ==========================================
# CONVERSATION MEMORY (persisted)
# ==========================================

class ConversationMessage(SQLModel, table=True):
    __tablename__ = "conversation_messages"

    id: Optional[int] = SQLField(default=None, primary_key=True)
    thread_id: str = SQLField(index=True)
    user_id: str = SQLField(index=True)
    role: str  # user | assistant
    content: str
    created_at: datetime = SQLField(default_factory=utcnow)


# ==========================================
# DERIVATIONS
# ==========================================

_ID_ALPHABET = string.ascii_lowercase + string.digits


def _make_id(prefix: str) -> str:
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


def create_goal_id() -> str:
    return _make_id("goal")


def create_milestone_id() -> str:
    return _make_id("milestone")


def calculate_goal_progress(goal: Goal) -> float:
    """
    Percent complete, 0-100.
    A numeric target wins; otherwise the milestone completion ratio is used.
    """
    if goal.target_value:
        return min(100.0, (goal.current_value / goal.target_value) * 100)

    if goal.milestones:
        completed = sum(1 for m in goal.milestones if m.status == MilestoneStatus.COMPLETED)
        return (completed / len(goal.milestones)) * 100

    return 0.0


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'}"


def format_goal_duration(
    start_date: datetime,
    end_date: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> str:
    """Human-readable span between start and end (or now)."""
    end = as_utc(end_date or now or utcnow())
    diff_days = math.ceil(abs((end - as_utc(start_date)).total_seconds()) / 86400)

    if diff_days <= 7:
        return _plural(diff_days, "day")
    if diff_days <= 30:
        return _plural(diff_days // 7, "week")
    if diff_days <= 365:
        return _plural(diff_days // 30, "month")
    return _plural(diff_days // 365, "year")


def apply_progress_update(goal: Goal, update: ProgressUpdate, now: Optional[datetime] = None) -> Goal:
    """
    Return a copy of `goal` with the update applied.
    Completed milestones are normalised to progress 100 with completed_at set.
    updated_at never moves backwards.
    """
    now = as_utc(now or update.timestamp or utcnow())
    stamp = max(now, as_utc(goal.updated_at))

    updates_by_id = {u.id: u for u in update.milestone_updates}
    unknown = set(updates_by_id) - {m.id for m in goal.milestones}
    if unknown:
        raise KeyError(f"Unknown milestone ids: {', '.join(sorted(unknown))}")

    milestones = []
    for milestone in goal.milestones:
        change = updates_by_id.get(milestone.id)
        if change is None:
            milestones.append(milestone)
            continue

        fields: Dict[str, Any] = {"updated_at": max(stamp, as_utc(milestone.updated_at))}
        if change.status is not None:
            fields["status"] = change.status
        if change.progress is not None:
            fields["progress"] = change.progress
        if change.notes is not None:
            fields["notes"] = change.notes

        if fields.get("status", milestone.status) == MilestoneStatus.COMPLETED:
            fields["progress"] = 100
            fields["completed_at"] = milestone.completed_at or stamp

        milestones.append(milestone.model_copy(update=fields))

    changes: Dict[str, Any] = {"milestones": milestones, "updated_at": stamp}
    if update.current_value is not None:
        changes["current_value"] = update.current_value
    if update.reflection is not None:
        changes["reflection"] = update.reflection

    return goal.model_copy(update=changes)
