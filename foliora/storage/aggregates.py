"""
Derived book statistics.

``averageRating``, ``reviewCount`` and ``upvoteCount`` are never stored:
reviews and upvotes change independently, so every read recomputes them.

Two equivalent strategies are provided:

1. Pipeline: ``review_stats``/``upvote_stats`` GROUP BY subqueries outer
   joined onto ``books`` so filtering, sorting and pagination on the
   aggregates happen in one SQL statement.
2. Two-pass: aggregates computed in Python from loaded rows
   (``compute_aggregates``), then ``rank_books`` applies ``minRating``,
   ordering and pagination with the same keys and tie-breaks.

For the same document set both produce the same page and total.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy import and_, func, select
from sqlalchemy.sql import ColumnElement, Subquery

from .models import BookModel, ReviewModel, UpvoteModel
from .query_builder import (
    BookQuery,
    SortOption,
    aggregate_filters,
    document_filters,
    ordering,
)


# =============================================================================
# In-database aggregation
# =============================================================================

def review_stats() -> Subquery:
    """Per-book average rating and review count."""
    return (
        select(
            ReviewModel.book_id.label("book_id"),
            func.avg(ReviewModel.rating).label("average_rating"),
            func.count(ReviewModel.id).label("review_count"),
        )
        .group_by(ReviewModel.book_id)
        .subquery("review_stats")
    )


def upvote_stats() -> Subquery:
    """Per-book upvote count."""
    return (
        select(
            UpvoteModel.book_id.label("book_id"),
            func.count(UpvoteModel.id).label("upvote_count"),
        )
        .group_by(UpvoteModel.book_id)
        .subquery("upvote_stats")
    )


@dataclass
class AggregateColumns:
    """Column expressions for the computed aggregates of a book row."""

    average_rating: ColumnElement
    review_count: ColumnElement
    upvote_count: ColumnElement


def aggregated_books():
    """
    Select books together with their aggregates.

    Returns:
        (select statement over BookModel + aggregates, AggregateColumns)
    """
    reviews = review_stats()
    upvotes = upvote_stats()

    columns = AggregateColumns(
        # NULL when the book has no reviews
        average_rating=reviews.c.average_rating,
        review_count=func.coalesce(reviews.c.review_count, 0),
        upvote_count=func.coalesce(upvotes.c.upvote_count, 0),
    )

    stmt = (
        select(
            BookModel,
            columns.average_rating.label("average_rating"),
            columns.review_count.label("review_count"),
            columns.upvote_count.label("upvote_count"),
        )
        .outerjoin(reviews, reviews.c.book_id == BookModel.id)
        .outerjoin(upvotes, upvotes.c.book_id == BookModel.id)
    )
    return stmt, columns


def _filtered_books(query: BookQuery):
    stmt, columns = aggregated_books()
    filters = document_filters(query) + aggregate_filters(query, columns)
    if filters:
        stmt = stmt.where(and_(*filters))
    return stmt, columns


def listing_statement(query: BookQuery):
    """One page of the filtered, aggregated and ordered book set."""
    stmt, columns = _filtered_books(query)
    return (
        stmt.order_by(*ordering(query, columns))
        .offset(query.offset)
        .limit(query.limit)
    )


def count_statement(query: BookQuery):
    """Size of the filtered set, ignoring pagination."""
    stmt, _ = _filtered_books(query)
    return select(func.count()).select_from(stmt.subquery())


def top_rated_statement(limit: int):
    """Books with at least one review, best average first, more reviews first on ties."""
    reviews = review_stats()
    upvotes = upvote_stats()
    upvote_count = func.coalesce(upvotes.c.upvote_count, 0)

    return (
        select(
            BookModel,
            reviews.c.average_rating.label("average_rating"),
            reviews.c.review_count.label("review_count"),
            upvote_count.label("upvote_count"),
        )
        .join(reviews, reviews.c.book_id == BookModel.id)
        .outerjoin(upvotes, upvotes.c.book_id == BookModel.id)
        .where(reviews.c.review_count >= 1)
        .order_by(
            reviews.c.average_rating.desc(),
            reviews.c.review_count.desc(),
            BookModel.id.asc(),
        )
        .limit(limit)
    )


def top_upvoted_statement(limit: int):
    """All books, most upvoted first."""
    stmt, columns = aggregated_books()
    return stmt.order_by(columns.upvote_count.desc(), BookModel.id.asc()).limit(limit)


# =============================================================================
# In-process aggregation
# =============================================================================

@dataclass(frozen=True)
class BookAggregates:
    """Computed statistics for one book."""

    average_rating: Optional[float]
    review_count: int
    upvote_count: int


def average_rating(ratings: Iterable[float]) -> Optional[float]:
    """Mean of ``ratings``, or None when there are none."""
    values = [float(r) for r in ratings if r is not None]
    if not values:
        return None
    return sum(values) / len(values)


def compute_aggregates(
    reviews: Optional[Sequence[Any]],
    upvotes: Optional[Sequence[Any]],
) -> BookAggregates:
    """
    Compute aggregates from embedded lists.

    Args:
        reviews: Objects with a ``rating`` attribute (or None)
        upvotes: Upvote entries (or None)
    """
    reviews = reviews or []
    return BookAggregates(
        average_rating=average_rating(r.rating for r in reviews),
        review_count=len(reviews),
        upvote_count=len(upvotes or []),
    )


def _sorted(books: list, query: BookQuery) -> list:
    ordered = sorted(books, key=lambda b: b.id)
    sort = query.sort

    if sort == SortOption.OLDEST:
        ordered.sort(key=lambda b: b.created_at)
    elif sort == SortOption.TITLE_ASC:
        ordered.sort(key=lambda b: b.title)
    elif sort == SortOption.TITLE_DESC:
        ordered.sort(key=lambda b: b.title, reverse=True)
    elif sort == SortOption.UPVOTES:
        ordered.sort(key=lambda b: b.upvote_count, reverse=True)
    elif sort == SortOption.RATING:
        # Unrated books go last
        ordered.sort(
            key=lambda b: (b.average_rating is not None, b.average_rating or 0.0),
            reverse=True,
        )
    else:
        ordered.sort(key=lambda b: b.created_at, reverse=True)

    return ordered


def rank_books(books: list, query: BookQuery) -> tuple[list, int]:
    """
    Second pass of the two-pass listing.

    Args:
        books: Books already narrowed by document filters, each exposing
            ``id``, ``title``, ``created_at``, ``average_rating`` and
            ``upvote_count``
        query: Listing options

    Returns:
        (books on the requested page, total after aggregate filters)
    """
    if query.min_rating is not None:
        books = [
            b for b in books
            if b.average_rating is not None and b.average_rating >= query.min_rating
        ]

    ordered = _sorted(books, query)
    return ordered[query.offset:query.offset + query.limit], len(ordered)
