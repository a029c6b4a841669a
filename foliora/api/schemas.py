"""
API Schemas for Foliora

Pydantic models for request validation and response serialization:
- Book models
- Upvote, review and reading status bodies
- Reading goal and bookmark models
- Catalogue views (recent reviews, user stats)

Design Decisions:
1. camelCase on the wire: the web client speaks camelCase, Python code
   stays snake_case; request bodies accept either
2. Separate Request/Response: client-supplied reviews/upvotes on a new
   book are simply not part of ``BookCreate``
3. Responses validate straight from storage dataclasses (from_attributes)
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from foliora.storage.models import ReadingStatus


class CamelModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =============================================================================
# Book Schemas
# =============================================================================

class UploaderSchema(CamelModel):
    """Uploader of a book."""

    name: Optional[str] = None
    email: str = Field(..., min_length=3, max_length=255)


class BookBase(CamelModel):
    """Base book fields."""

    title: str = Field(..., min_length=1, max_length=500)
    author: str = Field(..., min_length=1, max_length=500)
    genre: Optional[str] = Field(None, max_length=100)
    cover: Optional[str] = None
    description: Optional[str] = None


class BookCreate(BookBase):
    """Book creation request. Reviews, upvotes and reading status start empty."""

    uploader: list[UploaderSchema] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Dune",
                "author": "Frank Herbert",
                "genre": "Science Fiction",
                "cover": "https://example.com/dune.jpg",
                "uploader": [{"name": "Paul", "email": "paul@example.com"}],
            }
        }
    )


class BookUpdate(CamelModel):
    """Book update request (partial)."""

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    author: Optional[str] = Field(None, min_length=1, max_length=500)
    genre: Optional[str] = Field(None, max_length=100)
    cover: Optional[str] = None
    description: Optional[str] = None
    uploader: Optional[list[UploaderSchema]] = None

    @field_validator("title", "author")
    @classmethod
    def not_null(cls, value: Optional[str]) -> str:
        # Omit the field to leave it unchanged
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class ReviewSchema(CamelModel):
    email: str
    name: Optional[str] = None
    photo: Optional[str] = None
    rating: float
    comment: Optional[str] = None
    date: datetime


class UpvoteSchema(CamelModel):
    email: str
    name: Optional[str] = None
    photo: Optional[str] = None


class ReadingStatusSchema(CamelModel):
    email: str
    status: ReadingStatus


class BookResponse(BookBase):
    """Book response model with derived aggregates."""

    id: str
    uploader: list[UploaderSchema] = Field(default_factory=list)
    reviews: list[ReviewSchema] = Field(default_factory=list)
    upvotes: list[UpvoteSchema] = Field(default_factory=list)
    reading_status: list[ReadingStatusSchema] = Field(default_factory=list)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # None when the book has no reviews
    average_rating: Optional[float] = None
    review_count: int = 0
    upvote_count: int = 0


class Pagination(CamelModel):
    total: int
    page: int
    limit: int
    total_pages: int


class BookListResponse(CamelModel):
    """Paginated book list response."""

    books: list[BookResponse]
    pagination: Pagination


class DeleteResponse(CamelModel):
    success: bool = True
    message: str


# =============================================================================
# Interaction Schemas
# =============================================================================

class ReadingStatusUpdate(CamelModel):
    """Body of ``PATCH /books/{id}/reading-status``."""

    email: str = Field(..., min_length=3, max_length=255)
    reading_status: Optional[ReadingStatus] = None


class UpvoteRequest(CamelModel):
    """Body of ``PATCH /books/{id}/upvote``."""

    email: str = Field(..., min_length=3, max_length=255)
    name: Optional[str] = None
    photo: Optional[str] = None


class ReviewCreate(CamelModel):
    """Body of ``POST /books/{id}/review``."""

    email: str = Field(..., min_length=3, max_length=255)
    name: Optional[str] = None
    photo: Optional[str] = None
    rating: float = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=5000)
    date: Optional[datetime] = None


class ReviewDelete(CamelModel):
    """Body of ``DELETE /books/{id}/review``."""

    email: str = Field(..., min_length=3, max_length=255)


# =============================================================================
# Catalogue Schemas
# =============================================================================

class RecentReviewResponse(CamelModel):
    """A review flattened together with its book."""

    book_id: str
    book_title: str
    book_cover: Optional[str] = None
    reviewer_name: Optional[str] = None
    reviewer_photo: Optional[str] = None
    rating: float
    comment: Optional[str] = None
    date: datetime


class UserStatsResponse(CamelModel):
    uploaded_books: int
    reviews_given: int
    currently_reading: int
    completed_books: int


# =============================================================================
# Reading Goal Schemas
# =============================================================================

class GoalCreate(CamelModel):
    target: str = Field(..., min_length=1, max_length=1000)


class GoalProgressUpdate(CamelModel):
    # Unbounded: stored exactly as sent
    progress: float


class GoalResponse(CamelModel):
    id: str
    email: str
    target: str
    progress: float
    created_at: datetime
    updated_at: Optional[datetime] = None


# =============================================================================
# Bookmark Schemas
# =============================================================================

class BookmarkCreate(CamelModel):
    book_id: str = Field(..., min_length=1, max_length=36)
    content: Optional[str] = Field(None, max_length=5000)


class BookmarkUpdate(CamelModel):
    content: Optional[str] = Field(None, max_length=5000)


class BookmarkResponse(CamelModel):
    id: str
    email: str
    book_id: str
    content: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


# =============================================================================
# System Schemas
# =============================================================================

class ErrorResponse(CamelModel):
    """Standard error response."""

    error: str
    message: Optional[str] = None
    code: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class HealthResponse(CamelModel):
    """Health check response."""

    status: str
    version: str
    components: dict[str, str] = Field(default_factory=dict)
