from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from legianos.models import CamelModel, ExportFormat, Goal, GoalType, Priority, ProgressUpdate, UserContext

Difficulty = Literal["easy", "moderate", "challenging", "very_challenging"]
Theme = Literal["default", "minimal", "detailed"]


# ==========================================
# GOAL CREATION
# ==========================================

class Timeframe(CamelModel):
    start_date: datetime
    end_date: Optional[datetime] = None
    duration: Optional[str] = Field(None, description='Human-readable, e.g. "3 months"')


class Metrics(CamelModel):
    target_value: Optional[float] = None
    current_value: float = 0
    unit: Optional[str] = None


class MotivationInput(CamelModel):
    why: str = Field(..., min_length=1)
    inspiration: Optional[str] = None
    values: List[str] = Field(default_factory=list)


class Strategy(CamelModel):
    approach: Optional[str] = None
    frequency: Optional[str] = None
    environment: Optional[str] = None
    habits: List[str] = Field(default_factory=list)


class MilestoneDraft(CamelModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    estimated_effort: Optional[str] = None


class Support(CamelModel):
    accountability: Optional[str] = None
    resources: List[str] = Field(default_factory=list)
    mentorship: Optional[str] = None
    community: Optional[str] = None


class ObstaclePlan(CamelModel):
    anticipated: List[str] = Field(default_factory=list)
    mitigation: List[str] = Field(default_factory=list)
    backup_plans: List[str] = Field(default_factory=list)


class Rewards(CamelModel):
    milestone_rewards: List[str] = Field(default_factory=list)
    completion_reward: Optional[str] = None
    intrinsic_motivation: Optional[str] = None


class GoalDraft(CamelModel):
    """Everything known about a goal before it is materialised."""
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    type: GoalType
    priority: Priority = Priority.MEDIUM
    timeframe: Timeframe
    metrics: Optional[Metrics] = None
    motivation: MotivationInput
    strategy: Optional[Strategy] = None
    milestones: List[MilestoneDraft] = Field(default_factory=list)
    support: Optional[Support] = None
    obstacles: Optional[ObstaclePlan] = None
    rewards: Optional[Rewards] = None


class GoalCreationResult(CamelModel):
    goal: Goal
    confidence: float = Field(..., ge=0, le=1)
    recommendations: List[str]
    next_steps: List[str]
    estimated_difficulty: Difficulty
    success_probability: float = Field(..., ge=0, le=1)


# ==========================================
# EXPORT
# ==========================================

class Customization(CamelModel):
    title: Optional[str] = None
    subtitle: Optional[str] = None
    include_insights: bool = True
    include_recommendations: bool = True
    theme: Theme = "default"


class ExportOptions(CamelModel):
    include_progress: bool = True
    include_milestones: bool = True
    include_reflections: bool = False
    user_context: Optional[UserContext] = None
    customization: Customization = Field(default_factory=Customization)


class ExportMetadata(CamelModel):
    goal_count: int
    export_date: datetime
    format: ExportFormat
    version: str = "1.0"


class ExportResult(CamelModel):
    content: str
    filename: str
    mime_type: str
    size_bytes: int
    metadata: ExportMetadata


class ExportRequest(ExportOptions):
    goals: List[Goal]
    format: ExportFormat = ExportFormat.MARKDOWN


# ==========================================
# PROGRESS & REVIEW
# ==========================================

class ProgressRequest(CamelModel):
    goal: Goal
    update: ProgressUpdate
    user_id: str = "legianos-user"


class ProgressResponse(CamelModel):
    goal: Goal
    progress: float
    message: str


class ReviewRequest(CamelModel):
    goals: List[Goal]
    user_id: str = "legianos-user"


class GoalReview(CamelModel):
    insights: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    risk_assessment: List[str] = Field(default_factory=list)
