"""
Reading Goal Routes

A goal belongs to the email it was created for. Another user's goal is
reported as not found.
"""

from fastapi import APIRouter, Depends, status
from loguru import logger

from foliora.api.dependencies import get_goal_repository, require_matching_email
from foliora.api.schemas import (
    DeleteResponse,
    ErrorResponse,
    GoalCreate,
    GoalProgressUpdate,
    GoalResponse,
)
from foliora.exceptions import NotFoundError
from foliora.storage import parse_id


router = APIRouter(prefix="/reading-goals", tags=["reading-goals"])

_GUARD_RESPONSES = {
    401: {"model": ErrorResponse, "description": "Missing credential"},
    403: {"model": ErrorResponse, "description": "Rejected credential or email mismatch"},
}


@router.post(
    "",
    response_model=GoalResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_GUARD_RESPONSES,
)
def create_goal(
    body: GoalCreate,
    email: str = Depends(require_matching_email),
    repo=Depends(get_goal_repository),
):
    """Create a goal for the caller. Progress starts at 0."""
    return repo.create(email, body.target)


@router.get(
    "",
    response_model=list[GoalResponse],
    responses=_GUARD_RESPONSES,
)
def list_goals(
    email: str = Depends(require_matching_email),
    repo=Depends(get_goal_repository),
):
    return repo.list_for(email)


@router.patch(
    "/{goal_id}",
    response_model=GoalResponse,
    responses={
        **_GUARD_RESPONSES,
        404: {"model": ErrorResponse, "description": "Goal not found"},
    },
)
def update_goal_progress(
    goal_id: str,
    body: GoalProgressUpdate,
    email: str = Depends(require_matching_email),
    repo=Depends(get_goal_repository),
):
    """Set goal progress. No upper bound is enforced."""
    goal_id = parse_id(goal_id, "Reading goal")
    logger.info(f"Goal {goal_id} progress -> {body.progress}")

    goal = repo.update_progress(goal_id, email, body.progress)
    if goal is None:
        raise NotFoundError("Reading goal", goal_id)
    return goal


@router.delete(
    "/{goal_id}",
    response_model=DeleteResponse,
    responses={
        **_GUARD_RESPONSES,
        404: {"model": ErrorResponse, "description": "Goal not found"},
    },
)
def delete_goal(
    goal_id: str,
    email: str = Depends(require_matching_email),
    repo=Depends(get_goal_repository),
):
    goal_id = parse_id(goal_id, "Reading goal")
    if not repo.delete(goal_id, email):
        raise NotFoundError("Reading goal", goal_id)
    return DeleteResponse(message=f"Reading goal {goal_id} deleted")
