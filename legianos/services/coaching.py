"""
Small deterministic coaching tools: identity anchor, weekly focus list,
and daily consistency log.
"""

from typing import List, Literal, Optional

from pydantic import Field

from legianos.models import CamelModel

DayStatus = Literal["done", "skipped", "rest"]


class IdentityRequest(CamelModel):
    current_goal: str = ""
    history: Optional[str] = None
    frustrations: List[str] = Field(default_factory=list)
    aspirations: List[str] = Field(default_factory=list)


class IdentityAnchor(CamelModel):
    anchor: str
    next_question: str
    summary: str


class WeeklyPlanRequest(CamelModel):
    goal: str
    why: str
    tasks: List[str] = Field(default_factory=list)
    capacity: int = Field(5, ge=1, le=20)


class WeeklyPlan(CamelModel):
    must_dos: List[str]
    nice_to_haves: List[str]
    reminder: str


class DailyEntry(CamelModel):
    day: str  # ISO date
    status: DayStatus
    blockers: Optional[str] = None
    rest: Optional[str] = None
    streak: int = Field(0, ge=0)


class DailyFeedback(CamelModel):
    streak: int
    note: str
    adjustment: str


def clarify_identity(request: IdentityRequest) -> IdentityAnchor:
    base = request.current_goal or "your next goal"
    parts = []
    if request.history:
        parts.append(f"History: {request.history}")
    if request.frustrations:
        parts.append(f"Frustrations: {'; '.join(request.frustrations)}")
    if request.aspirations:
        parts.append(f"Aspirations: {'; '.join(request.aspirations)}")

    return IdentityAnchor(
        anchor=f"I am becoming the person who {base}, because it aligns with what matters most to me.",
        next_question=f"When you imagine succeeding at {base}, who else benefits and how?",
        summary=" | ".join(parts) or "Clarifying identity and purpose.",
    )


def plan_week(request: WeeklyPlanRequest) -> WeeklyPlan:
    """Keep the first `capacity` tasks; everything after is deferred."""
    tasks = [t for t in request.tasks if t]
    return WeeklyPlan(
        must_dos=tasks[:request.capacity],
        nice_to_haves=tasks[request.capacity:],
        reminder=f'Only ship tasks that advance "{request.goal}". No renegotiation midweek.',
    )


def track_day(entry: DailyEntry) -> DailyFeedback:
    if entry.status == "done":
        streak = entry.streak + 1
        return DailyFeedback(
            streak=streak,
            note=f"Logged a win. Streak: {streak}.",
            adjustment=f"Solve blocker: {entry.blockers}" if entry.blockers else "Repeat the same action tomorrow.",
        )

    if entry.status == "rest":
        return DailyFeedback(
            streak=entry.streak,
            note="Rest logged. Recovery is fuel.",
            adjustment=f"Protect this rest pattern: {entry.rest}" if entry.rest else "Keep rest intentional tomorrow.",
        )

    return DailyFeedback(
        streak=0,
        note="Skipped today. Reset streak and restart tomorrow.",
        adjustment=f"Remove blocker: {entry.blockers}" if entry.blockers else "Schedule the single must-do first thing.",
    )
