"""
Goals API: direct creation, export, progress updates, review and templates.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response

from legianos.api.chat import get_goal_agent
from legianos.errors import GoalCreationError, GoalExportError, GoalValidationError
from legianos.models import COMMON_GOAL_TEMPLATES, GoalTemplate
from legianos.schemas.goals import (
    ExportOptions,
    ExportRequest,
    GoalCreationResult,
    GoalDraft,
    GoalReview,
    ProgressRequest,
    ProgressResponse,
    ReviewRequest,
)
from legianos.services.goal_agent import GoalAgent
from legianos.services.goal_creation import create_goal
from legianos.services.goal_export import export_goals

logger = logging.getLogger("legianos")

router = APIRouter(prefix="/api/goals", tags=["goals"])


@router.post("", response_model=GoalCreationResult)
async def create_goal_from_draft(draft: GoalDraft):
    """Materialise a fully specified draft and score it."""
    try:
        return create_goal(draft)
    except GoalCreationError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/export")
async def export_goal_profile(request: ExportRequest):
    """Render goals as a downloadable file."""
    options = ExportOptions.model_validate(request.model_dump(include=set(ExportOptions.model_fields)))
    try:
        result = export_goals(request.goals, request.format, options)
    except GoalExportError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info("goal_profile_exported", extra={"format": request.format.value, "goal_count": len(request.goals)})
    return Response(
        content=result.content,
        media_type=result.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )


@router.post("/progress", response_model=ProgressResponse)
async def update_goal_progress(request: ProgressRequest, agent: GoalAgent = Depends(get_goal_agent)):
    try:
        return await agent.update_progress(request.goal, request.update, request.user_id)
    except GoalValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/review", response_model=GoalReview)
async def review_goals(request: ReviewRequest, agent: GoalAgent = Depends(get_goal_agent)):
    return await agent.review_goals(request.goals, request.user_id)


@router.get("/templates", response_model=List[GoalTemplate])
async def list_templates():
    return sorted(COMMON_GOAL_TEMPLATES, key=lambda t: t.popularity, reverse=True)
