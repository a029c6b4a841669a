"""
User Routes

Per-user views, guarded so a caller only sees their own data.
"""

from fastapi import APIRouter, Depends
from loguru import logger

from foliora.api.dependencies import get_book_repository, require_matching_email
from foliora.api.schemas import BookResponse, ErrorResponse, UserStatsResponse


router = APIRouter(tags=["users"])

_GUARD_RESPONSES = {
    401: {"model": ErrorResponse, "description": "Missing credential"},
    403: {"model": ErrorResponse, "description": "Rejected credential or email mismatch"},
}


@router.get(
    "/my-books",
    response_model=list[BookResponse],
    responses=_GUARD_RESPONSES,
)
def my_books(
    email: str = Depends(require_matching_email),
    repo=Depends(get_book_repository),
):
    """Books the caller uploaded."""
    return repo.list_by_uploader(email)


@router.get(
    "/user/stats",
    response_model=UserStatsResponse,
    responses=_GUARD_RESPONSES,
)
def user_stats(
    email: str = Depends(require_matching_email),
    repo=Depends(get_book_repository),
):
    """
    Activity counts for the caller.

    ``uploadedBooks``, ``reviewsGiven``, ``currentlyReading`` and
    ``completedBooks``.
    """
    stats = repo.user_stats(email)
    logger.debug(f"Stats for {email}: {stats}")
    return UserStatsResponse(**stats)
