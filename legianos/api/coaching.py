from fastapi import APIRouter

from legianos.services.coaching import (
    DailyEntry,
    DailyFeedback,
    IdentityAnchor,
    IdentityRequest,
    WeeklyPlan,
    WeeklyPlanRequest,
    clarify_identity,
    plan_week,
    track_day,
)

router = APIRouter(prefix="/api/coaching", tags=["coaching"])


@router.post("/kickoff", response_model=IdentityAnchor)
async def kickoff(request: IdentityRequest):
    """WHY/identity anchor for a new goal."""
    return clarify_identity(request)


@router.post("/weekly-plan", response_model=WeeklyPlan)
async def weekly_plan(request: WeeklyPlanRequest):
    return plan_week(request)


@router.post("/daily-track", response_model=DailyFeedback)
async def daily_track(entry: DailyEntry):
    return track_day(entry)
