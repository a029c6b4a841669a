"""
Database models for Foliora.

A book row owns its embedded lists (uploaders, reviews, upvotes and
per-user reading status). The lists live in child tables that cascade on
book deletion and carry the per-email uniqueness constraints, so appends
are atomic with respect to the duplicate check.

Reading goals and bookmarks are independent top-level records keyed by the
owner's email. ``BookmarkModel.book_id`` is a plain column, not a foreign
key: deleting a book leaves its bookmarks in place.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

# Code-point order on every backend, matching Python string comparison
TitleType = String(500).with_variant(String(500, collation="C"), "postgresql")


class ReadingStatus(str, Enum):
    """Per-user reading status of a book."""
    NOT_STARTED = "Not Started"
    READING = "Reading"
    COMPLETED = "Completed"


class BookModel(Base):
    """SQLAlchemy model for books."""

    __tablename__ = "books"

    id = Column(String(36), primary_key=True)

    title = Column(TitleType, nullable=False, index=True)
    author = Column(String(500), nullable=False, index=True)
    genre = Column(String(100), index=True)
    cover = Column(String(1000))
    description = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    uploaders = relationship(
        "BookUploaderModel",
        cascade="all, delete-orphan",
        order_by="BookUploaderModel.id",
    )
    reviews = relationship(
        "ReviewModel",
        back_populates="book",
        cascade="all, delete-orphan",
        order_by="ReviewModel.id",
    )
    upvotes = relationship(
        "UpvoteModel",
        cascade="all, delete-orphan",
        order_by="UpvoteModel.id",
    )
    reading_statuses = relationship(
        "ReadingStatusModel",
        cascade="all, delete-orphan",
        order_by="ReadingStatusModel.id",
    )

    __table_args__ = (
        Index("idx_books_created", "created_at"),
    )


class BookUploaderModel(Base):
    """Uploader entry embedded in a book."""

    __tablename__ = "book_uploaders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    book_id = Column(String(36), ForeignKey("books.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(200))
    email = Column(String(255), nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("book_id", "email", name="uq_book_uploader_email"),
    )


class ReviewModel(Base):
    """Review entry embedded in a book. One per (book, email)."""

    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, autoincrement=True)
    book_id = Column(String(36), ForeignKey("books.id", ondelete="CASCADE"), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    name = Column(String(200))
    photo = Column(String(1000))
    rating = Column(Float, nullable=False)
    comment = Column(Text)
    date = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    book = relationship("BookModel", back_populates="reviews")

    __table_args__ = (
        UniqueConstraint("book_id", "email", name="uq_review_book_email"),
    )


class UpvoteModel(Base):
    """Upvote entry embedded in a book. One per (book, email)."""

    __tablename__ = "upvotes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    book_id = Column(String(36), ForeignKey("books.id", ondelete="CASCADE"), nullable=False)
    email = Column(String(255), nullable=False)
    name = Column(String(200))
    photo = Column(String(1000))
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("book_id", "email", name="uq_upvote_book_email"),
    )


class ReadingStatusModel(Base):
    """Reading status entry embedded in a book. One per (book, email)."""

    __tablename__ = "reading_statuses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    book_id = Column(String(36), ForeignKey("books.id", ondelete="CASCADE"), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=ReadingStatus.NOT_STARTED.value)
    updated_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("book_id", "email", name="uq_reading_status_book_email"),
    )


class ReadingGoalModel(Base):
    """A user's reading goal."""

    __tablename__ = "reading_goals"

    id = Column(String(36), primary_key=True)
    email = Column(String(255), nullable=False, index=True)
    target = Column(Text, nullable=False)
    # No bound is enforced on progress.
    progress = Column(Float, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow)


class BookmarkModel(Base):
    """A user's note attached to a book."""

    __tablename__ = "bookmarks"

    id = Column(String(36), primary_key=True)
    email = Column(String(255), nullable=False, index=True)
    book_id = Column(String(36), nullable=False, index=True)
    content = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow)
