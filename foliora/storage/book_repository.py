"""
Book Repository for Foliora

Structured storage for the book catalogue using SQLAlchemy:
- PostgreSQL for production
- SQLite for development/testing
- Filtered, sorted and paginated listings with computed aggregates
- Catalogue-wide views (genres, recent reviews, top books, user stats)

Design Decisions:
1. Embedded lists as child tables: uniqueness enforced by the database
2. Aggregates derived on read, never stored
3. Listings run either as one aggregation statement or as two passes
   (SQL filter, Python aggregate/sort); both agree
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session, selectinload

from .aggregates import (
    BookAggregates,
    compute_aggregates,
    count_statement,
    listing_statement,
    rank_books,
    top_rated_statement,
    top_upvoted_statement,
)
from .database import Database, new_id
from .models import (
    BookModel,
    BookUploaderModel,
    ReadingStatus,
    ReadingStatusModel,
    ReviewModel,
)
from .query_builder import BookQuery, document_filters


LISTING_PIPELINE = "pipeline"
LISTING_TWO_PASS = "two_pass"

# Fields a book update may change
UPDATABLE_FIELDS = {"title", "author", "genre", "cover", "description"}


@dataclass
class Uploader:
    name: Optional[str]
    email: str


@dataclass
class Review:
    email: str
    name: Optional[str]
    photo: Optional[str]
    rating: float
    comment: Optional[str]
    date: datetime


@dataclass
class Upvote:
    email: str
    name: Optional[str]
    photo: Optional[str]


@dataclass
class ReadingStatusEntry:
    email: str
    status: str


@dataclass
class StoredBook:
    """Data class for book data transfer, aggregates included."""

    id: str
    title: str
    author: str
    genre: Optional[str] = None
    cover: Optional[str] = None
    description: Optional[str] = None

    uploader: list[Uploader] = field(default_factory=list)
    reviews: list[Review] = field(default_factory=list)
    upvotes: list[Upvote] = field(default_factory=list)
    reading_status: list[ReadingStatusEntry] = field(default_factory=list)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Derived
    average_rating: Optional[float] = None
    review_count: int = 0
    upvote_count: int = 0

    @classmethod
    def from_model(
        cls,
        model: BookModel,
        aggregates: Optional[BookAggregates] = None,
    ) -> "StoredBook":
        """Create from SQLAlchemy model, computing aggregates when not supplied."""
        if aggregates is None:
            aggregates = compute_aggregates(model.reviews, model.upvotes)

        return cls(
            id=model.id,
            title=model.title,
            author=model.author,
            genre=model.genre,
            cover=model.cover,
            description=model.description,
            uploader=[Uploader(name=u.name, email=u.email) for u in model.uploaders],
            reviews=[
                Review(
                    email=r.email,
                    name=r.name,
                    photo=r.photo,
                    rating=r.rating,
                    comment=r.comment,
                    date=r.date,
                )
                for r in model.reviews
            ],
            upvotes=[Upvote(email=u.email, name=u.name, photo=u.photo) for u in model.upvotes],
            reading_status=[
                ReadingStatusEntry(email=s.email, status=s.status)
                for s in model.reading_statuses
            ],
            created_at=model.created_at,
            updated_at=model.updated_at,
            average_rating=aggregates.average_rating,
            review_count=aggregates.review_count,
            upvote_count=aggregates.upvote_count,
        )

    @classmethod
    def from_row(cls, row) -> "StoredBook":
        """Create from a ``(BookModel, average_rating, review_count, upvote_count)`` row."""
        model, average, review_count, upvote_count = row
        return cls.from_model(
            model,
            BookAggregates(
                average_rating=float(average) if average is not None else None,
                review_count=int(review_count or 0),
                upvote_count=int(upvote_count or 0),
            ),
        )


@dataclass
class RecentReview:
    """A review flattened together with its book."""

    book_id: str
    book_title: str
    book_cover: Optional[str]
    reviewer_name: Optional[str]
    reviewer_photo: Optional[str]
    rating: float
    comment: Optional[str]
    date: datetime


def _with_lists(stmt):
    return stmt.options(
        selectinload(BookModel.uploaders),
        selectinload(BookModel.reviews),
        selectinload(BookModel.upvotes),
        selectinload(BookModel.reading_statuses),
    )


def _unique_uploaders(uploaders: Optional[list[dict]]) -> list[BookUploaderModel]:
    seen = set()
    models = []
    for entry in uploaders or []:
        email = entry.get("email")
        if not email or email in seen:
            continue
        seen.add(email)
        models.append(BookUploaderModel(name=entry.get("name"), email=email))
    return models


class BookRepository:
    """
    Repository for book CRUD and catalogue queries.

    Usage:
        repo = BookRepository(Database("sqlite:///./foliora.db"))

        book = repo.create(title="Dune", author="Frank Herbert", genre="Sci-Fi")
        page, total = repo.list_books(BookQuery(sort=SortOption.RATING))
    """

    def __init__(self, database: Database, listing_strategy: str = LISTING_PIPELINE):
        """
        Initialize repository.

        Args:
            database: Shared database handle
            listing_strategy: ``pipeline`` or ``two_pass``
        """
        if listing_strategy not in (LISTING_PIPELINE, LISTING_TWO_PASS):
            raise ValueError(f"Unknown listing strategy: {listing_strategy}")
        self.database = database
        self.listing_strategy = listing_strategy

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    @staticmethod
    def load(session: Session, book_id: str) -> Optional[StoredBook]:
        """Load a book view inside an open session."""
        model = session.scalars(
            _with_lists(select(BookModel).where(BookModel.id == book_id))
            .execution_options(populate_existing=True)
        ).first()
        if model is None:
            return None
        return StoredBook.from_model(model)

    @staticmethod
    def exists(session: Session, book_id: str) -> bool:
        return session.scalar(
            select(func.count(BookModel.id)).where(BookModel.id == book_id)
        ) > 0

    def create(
        self,
        title: str,
        author: str,
        genre: Optional[str] = None,
        cover: Optional[str] = None,
        description: Optional[str] = None,
        uploader: Optional[list[dict]] = None,
    ) -> StoredBook:
        """
        Create a new book. Reviews, upvotes and reading status start empty.

        Args:
            title: Book title
            author: Author
            genre: Genre label
            cover: Cover image URL
            description: Free text
            uploader: List of ``{"name", "email"}`` dicts

        Returns:
            Created StoredBook
        """
        book_id = new_id()
        with self.database.session() as session:
            book = BookModel(
                id=book_id,
                title=title,
                author=author,
                genre=genre,
                cover=cover,
                description=description,
            )
            book.uploaders = _unique_uploaders(uploader)
            session.add(book)
            session.commit()

            created = self.load(session, book_id)

        logger.info(f"Created book {book_id}: {title} by {author}")
        return created

    def get(self, book_id: str) -> Optional[StoredBook]:
        """
        Get book by ID.

        Returns:
            StoredBook or None
        """
        with self.database.session() as session:
            return self.load(session, book_id)

    def update(self, book_id: str, **updates) -> Optional[StoredBook]:
        """
        Update book fields. ``uploader`` replaces the uploader list.

        Returns:
            Updated StoredBook or None
        """
        with self.database.session() as session:
            book = session.get(BookModel, book_id)
            if book is None:
                return None

            for key, value in updates.items():
                if key in UPDATABLE_FIELDS:
                    setattr(book, key, value)

            if updates.get("uploader") is not None:
                book.uploaders = _unique_uploaders(updates["uploader"])

            book.updated_at = datetime.utcnow()
            session.commit()

            return self.load(session, book_id)

    def delete(self, book_id: str) -> bool:
        """
        Delete a book with its reviews, upvotes and reading status.

        Returns:
            True if deleted
        """
        with self.database.session() as session:
            book = session.get(BookModel, book_id)
            if book is None:
                return False
            session.delete(book)
            session.commit()

        logger.info(f"Deleted book {book_id}")
        return True

    # -------------------------------------------------------------------------
    # Listing
    # -------------------------------------------------------------------------

    def list_books(self, query: BookQuery) -> tuple[list[StoredBook], int]:
        """
        List books with filtering, sorting and pagination.

        Returns:
            (StoredBooks on the requested page, total matching count)
        """
        if self.listing_strategy == LISTING_TWO_PASS:
            return self.list_books_two_pass(query)
        return self.list_books_pipeline(query)

    def list_books_pipeline(self, query: BookQuery) -> tuple[list[StoredBook], int]:
        """Single statement: aggregates, filters, ordering and paging in SQL."""
        with self.database.session() as session:
            total = session.scalar(count_statement(query))
            rows = session.execute(_with_lists(listing_statement(query))).all()
            books = [StoredBook.from_row(row) for row in rows]

        return books, total or 0

    def list_books_two_pass(self, query: BookQuery) -> tuple[list[StoredBook], int]:
        """SQL narrows on stored columns, then Python aggregates, filters and sorts."""
        stmt = select(BookModel)
        filters = document_filters(query)
        if filters:
            stmt = stmt.where(and_(*filters))

        with self.database.session() as session:
            models = session.scalars(_with_lists(stmt)).all()
            books = [StoredBook.from_model(m) for m in models]

        return rank_books(books, query)

    # -------------------------------------------------------------------------
    # Catalogue views
    # -------------------------------------------------------------------------

    def genres(self) -> list[str]:
        """Distinct non-empty genres."""
        with self.database.session() as session:
            rows = session.scalars(
                select(BookModel.genre)
                .where(BookModel.genre.isnot(None), BookModel.genre != "")
                .distinct()
                .order_by(BookModel.genre)
            ).all()
            return list(rows)

    def recent_reviews(self, limit: int = 10) -> list[RecentReview]:
        """Most recent reviews across all books."""
        with self.database.session() as session:
            rows = session.execute(
                select(ReviewModel, BookModel.title, BookModel.cover)
                .join(BookModel, ReviewModel.book_id == BookModel.id)
                .order_by(ReviewModel.date.desc(), ReviewModel.id.desc())
                .limit(limit)
            ).all()

            return [
                RecentReview(
                    book_id=review.book_id,
                    book_title=title,
                    book_cover=cover,
                    reviewer_name=review.name,
                    reviewer_photo=review.photo,
                    rating=review.rating,
                    comment=review.comment,
                    date=review.date,
                )
                for review, title, cover in rows
            ]

    def top_rated(self, limit: int = 6) -> list[StoredBook]:
        """Reviewed books ordered by average rating, then review count."""
        with self.database.session() as session:
            rows = session.execute(_with_lists(top_rated_statement(limit))).all()
            return [StoredBook.from_row(row) for row in rows]

    def top_upvoted(self, limit: int = 6) -> list[StoredBook]:
        """Books ordered by upvote count."""
        with self.database.session() as session:
            rows = session.execute(_with_lists(top_upvoted_statement(limit))).all()
            return [StoredBook.from_row(row) for row in rows]

    def list_by_uploader(self, email: str) -> list[StoredBook]:
        """Books whose uploader list contains ``email``."""
        with self.database.session() as session:
            models = session.scalars(
                _with_lists(
                    select(BookModel)
                    .join(BookUploaderModel, BookUploaderModel.book_id == BookModel.id)
                    .where(BookUploaderModel.email == email)
                    .order_by(BookModel.created_at.desc(), BookModel.id.asc())
                )
            ).all()
            return [StoredBook.from_model(m) for m in models]

    def user_stats(self, email: str) -> dict:
        """
        Per-user activity counts.

        Returns:
            Statistics dictionary
        """
        with self.database.session() as session:
            uploaded = session.scalar(
                select(func.count(func.distinct(BookUploaderModel.book_id)))
                .where(BookUploaderModel.email == email)
            )
            reviews_given = session.scalar(
                select(func.count(ReviewModel.id)).where(ReviewModel.email == email)
            )

            def count_status(status: ReadingStatus) -> int:
                return session.scalar(
                    select(func.count(ReadingStatusModel.id)).where(
                        ReadingStatusModel.email == email,
                        ReadingStatusModel.status == status.value,
                    )
                )

            return {
                "uploaded_books": uploaded or 0,
                "reviews_given": reviews_given or 0,
                "currently_reading": count_status(ReadingStatus.READING) or 0,
                "completed_books": count_status(ReadingStatus.COMPLETED) or 0,
            }
