"""
Catalogue Routes

Read-only views across all books: genres and the latest reviews.
"""

from fastapi import APIRouter, Depends

from foliora.api.dependencies import Settings, get_app_settings, get_book_repository
from foliora.api.schemas import RecentReviewResponse


router = APIRouter(tags=["catalog"])


@router.get("/genres", response_model=list[str])
def list_genres(repo=Depends(get_book_repository)):
    """Distinct non-empty genres, sorted."""
    return repo.genres()


@router.get("/recent-reviews", response_model=list[RecentReviewResponse])
def recent_reviews(
    repo=Depends(get_book_repository),
    settings: Settings = Depends(get_app_settings),
):
    """Newest reviews across the catalogue with their book's title and cover."""
    return repo.recent_reviews(limit=settings.recent_reviews_limit)
