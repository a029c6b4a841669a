"""
Book listing query construction.

Translates raw listing parameters (``sort``, ``genre``, ``search``,
``author``, ``page``, ``limit``, ``minRating``) into SQL predicates and
ORDER BY clauses.

Filters come in two groups:
- document filters run against stored book columns;
- aggregate filters (``minRating``) run against computed aggregates and
  therefore only after the aggregates exist in the same statement.

Malformed numeric parameters never fail a request: they fall back to
their defaults. Oversized ones are clamped so the offset stays bindable.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from sqlalchemy import or_

from .models import BookModel


DEFAULT_PAGE = 1
DEFAULT_LIMIT = 12
MAX_LIMIT = 100
MAX_PAGE = 1_000_000


class SortOption(str, Enum):
    """Supported orderings for book listings."""
    NEWEST = "newest"
    OLDEST = "oldest"
    TITLE_ASC = "title-asc"
    TITLE_DESC = "title-desc"
    UPVOTES = "upvotes"
    RATING = "rating"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "SortOption":
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            return cls.NEWEST


def _positive_int(raw: Any, default: int, maximum: int) -> int:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default
    if value < 1:
        return default
    return min(value, maximum)


def _optional_float(raw: Any) -> Optional[float]:
    if raw is None or str(raw).strip() == "":
        return None
    try:
        value = float(str(raw).strip())
    except ValueError:
        return None
    # NaN never compares true, treat it as "no bound"
    return value if value == value else None


def _clean(raw: Optional[str]) -> Optional[str]:
    if raw is None:
        return None
    raw = raw.strip()
    return raw or None


def like_pattern(term: str) -> str:
    """Build a substring LIKE pattern with wildcards in ``term`` escaped."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


@dataclass
class BookQuery:
    """Normalized book listing options."""

    sort: SortOption = SortOption.NEWEST
    genre: Optional[str] = None
    search: Optional[str] = None
    author: Optional[str] = None
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    min_rating: Optional[float] = None

    @classmethod
    def from_params(
        cls,
        sort: Optional[str] = None,
        genre: Optional[str] = None,
        search: Optional[str] = None,
        author: Optional[str] = None,
        page: Any = None,
        limit: Any = None,
        min_rating: Any = None,
        default_limit: int = DEFAULT_LIMIT,
    ) -> "BookQuery":
        """
        Build a query from raw request parameters.

        Args:
            sort: Sort option name, unknown values fall back to ``newest``
            genre: Exact genre, ``"all"`` disables the filter
            search: Substring matched against title, author and genre
            author: Substring matched against author
            page: 1-based page number, capped at ``MAX_PAGE``
            limit: Page size, capped at ``MAX_LIMIT``
            min_rating: Inclusive lower bound on the average rating
            default_limit: Page size used when ``limit`` is unusable

        Returns:
            BookQuery
        """
        genre = _clean(genre)
        if genre is not None and genre.lower() == "all":
            genre = None

        return cls(
            sort=SortOption.parse(sort),
            genre=genre,
            search=_clean(search),
            author=_clean(author),
            page=_positive_int(page, DEFAULT_PAGE, MAX_PAGE),
            limit=_positive_int(limit, default_limit, MAX_LIMIT),
            min_rating=_optional_float(min_rating),
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def total_pages(self, total: int) -> int:
        return -(-total // self.limit)


def document_filters(query: BookQuery) -> list:
    """Predicates over stored book columns."""
    filters = []

    if query.search:
        pattern = like_pattern(query.search)
        filters.append(
            or_(
                BookModel.title.ilike(pattern, escape="\\"),
                BookModel.author.ilike(pattern, escape="\\"),
                BookModel.genre.ilike(pattern, escape="\\"),
            )
        )

    if query.genre:
        filters.append(BookModel.genre == query.genre)

    if query.author:
        filters.append(BookModel.author.ilike(like_pattern(query.author), escape="\\"))

    return filters


def aggregate_filters(query: BookQuery, aggregates) -> list:
    """
    Predicates over computed aggregates.

    ``aggregates`` exposes ``average_rating`` and ``upvote_count`` column
    expressions. Unrated books have a NULL average and never satisfy a
    ``minRating`` bound.
    """
    filters = []
    if query.min_rating is not None:
        filters.append(aggregates.average_rating >= query.min_rating)
    return filters


def ordering(query: BookQuery, aggregates) -> list:
    """ORDER BY clauses for the requested sort, ending in ``id ASC``."""
    sort = query.sort

    if sort == SortOption.OLDEST:
        clauses = [BookModel.created_at.asc()]
    elif sort == SortOption.TITLE_ASC:
        clauses = [BookModel.title.asc()]
    elif sort == SortOption.TITLE_DESC:
        clauses = [BookModel.title.desc()]
    elif sort == SortOption.UPVOTES:
        clauses = [aggregates.upvote_count.desc()]
    elif sort == SortOption.RATING:
        clauses = [aggregates.average_rating.desc().nulls_last()]
    else:
        clauses = [BookModel.created_at.desc()]

    clauses.append(BookModel.id.asc())
    return clauses
