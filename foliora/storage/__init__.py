"""
Storage Module for Foliora

Persistent storage for the book catalogue:
- Shared SQLAlchemy database handle
- Book CRUD, listings and catalogue views
- Listing query construction and derived aggregates
- Atomic upvote/review/reading-status mutations
- Reading goals and bookmarks
"""

from foliora.storage.database import Database, new_id, parse_id
from foliora.storage.models import Base, ReadingStatus
from foliora.storage.query_builder import BookQuery, SortOption
from foliora.storage.aggregates import BookAggregates, compute_aggregates, rank_books
from foliora.storage.book_repository import (
    BookRepository,
    StoredBook,
    RecentReview,
    LISTING_PIPELINE,
    LISTING_TWO_PASS,
)
from foliora.storage.interactions import InteractionRepository
from foliora.storage.goal_repository import GoalRepository, StoredGoal
from foliora.storage.bookmark_repository import BookmarkRepository, StoredBookmark

__all__ = [
    # Database
    "Database",
    "Base",
    "new_id",
    "parse_id",
    "ReadingStatus",
    # Listing
    "BookQuery",
    "SortOption",
    "BookAggregates",
    "compute_aggregates",
    "rank_books",
    # Repositories
    "BookRepository",
    "StoredBook",
    "RecentReview",
    "LISTING_PIPELINE",
    "LISTING_TWO_PASS",
    "InteractionRepository",
    "GoalRepository",
    "StoredGoal",
    "BookmarkRepository",
    "StoredBookmark",
]
