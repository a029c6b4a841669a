"""
Per-user interactions embedded in a book: upvotes, reviews, reading status.

Every write is a single conditional statement against the database:
- upvote and review inserts rely on the ``(book_id, email)`` unique
  constraints, so the duplicate check and the append cannot interleave
  with a concurrent request;
- review deletion is one ``DELETE ... WHERE book_id AND email``;
- reading status is an ``INSERT ... ON CONFLICT DO UPDATE`` upsert.

"Book not found" is always reported separately from a constraint
violation, and the returned view is re-read after the commit.
"""

from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy import delete, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError

from foliora.exceptions import ConflictError, ForbiddenError, NotFoundError
from .book_repository import BookRepository, StoredBook
from .database import Database
from .models import (
    BookUploaderModel,
    ReadingStatus,
    ReadingStatusModel,
    ReviewModel,
    UpvoteModel,
)


_UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class InteractionRepository:
    """
    Mutations of a book's nested collections.

    Usage:
        interactions = InteractionRepository(database)
        book = interactions.upvote(book_id, "reader@example.com", "Reader", None)
    """

    def __init__(self, database: Database):
        self.database = database

        dialect = database.dialect_name
        if dialect not in _UPSERT_DIALECTS:
            raise ValueError(f"Reading status upsert not supported for dialect: {dialect}")
        self._insert = _UPSERT_DIALECTS[dialect]

    def _view(self, book_id: str) -> StoredBook:
        with self.database.session() as session:
            book = BookRepository.load(session, book_id)
        if book is None:
            raise NotFoundError("Book", book_id)
        return book

    def _require_book(self, session, book_id: str) -> None:
        if not BookRepository.exists(session, book_id):
            raise NotFoundError("Book", book_id)

    def _insert_unique(self, session, book_id: str, entry, conflict_message: str) -> None:
        session.add(entry)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            # The book may have been deleted since the existence check
            self._require_book(session, book_id)
            raise ConflictError(conflict_message)

    # -------------------------------------------------------------------------
    # Upvotes
    # -------------------------------------------------------------------------

    def upvote(
        self,
        book_id: str,
        email: str,
        name: Optional[str] = None,
        photo: Optional[str] = None,
    ) -> StoredBook:
        """
        Upvote a book. One-way: there is no un-upvote.

        Raises:
            NotFoundError: Book does not exist
            ForbiddenError: Requester uploaded the book
            ConflictError: Requester already upvoted the book
        """
        with self.database.session() as session:
            self._require_book(session, book_id)

            is_uploader = session.scalar(
                select(func.count(BookUploaderModel.id)).where(
                    BookUploaderModel.book_id == book_id,
                    BookUploaderModel.email == email,
                )
            )
            if is_uploader:
                raise ForbiddenError("You can't upvote your own book")

            self._insert_unique(
                session,
                book_id,
                UpvoteModel(book_id=book_id, email=email, name=name, photo=photo),
                "You already upvoted this book",
            )

        logger.info(f"Upvote on book {book_id} by {email}")
        return self._view(book_id)

    # -------------------------------------------------------------------------
    # Reviews
    # -------------------------------------------------------------------------

    def add_review(
        self,
        book_id: str,
        email: str,
        rating: float,
        name: Optional[str] = None,
        photo: Optional[str] = None,
        comment: Optional[str] = None,
        date: Optional[datetime] = None,
    ) -> StoredBook:
        """
        Add the requester's review.

        Raises:
            NotFoundError: Book does not exist
            ConflictError: Requester already reviewed the book
        """
        with self.database.session() as session:
            self._require_book(session, book_id)
            self._insert_unique(
                session,
                book_id,
                ReviewModel(
                    book_id=book_id,
                    email=email,
                    name=name,
                    photo=photo,
                    rating=rating,
                    comment=comment,
                    date=date or datetime.utcnow(),
                ),
                "You already reviewed this book",
            )

        logger.info(f"Review on book {book_id} by {email}: {rating}")
        return self._view(book_id)

    def delete_review(self, book_id: str, email: str) -> StoredBook:
        """
        Remove the requester's review.

        Raises:
            NotFoundError: Book or review does not exist
        """
        with self.database.session() as session:
            result = session.execute(
                delete(ReviewModel).where(
                    ReviewModel.book_id == book_id,
                    ReviewModel.email == email,
                )
            )
            session.commit()

            if result.rowcount == 0:
                self._require_book(session, book_id)
                raise NotFoundError("Review", email)

        logger.info(f"Deleted review on book {book_id} by {email}")
        return self._view(book_id)

    # -------------------------------------------------------------------------
    # Reading status
    # -------------------------------------------------------------------------

    def set_reading_status(
        self,
        book_id: str,
        email: str,
        status: Optional[str] = None,
    ) -> StoredBook:
        """
        Insert or overwrite the requester's reading status.

        Repeating the call with the same status leaves exactly one entry.

        Raises:
            NotFoundError: Book does not exist
        """
        status = ReadingStatus(status or ReadingStatus.NOT_STARTED).value
        now = datetime.utcnow()

        with self.database.session() as session:
            self._require_book(session, book_id)

            stmt = self._insert(ReadingStatusModel).values(
                book_id=book_id,
                email=email,
                status=status,
                updated_at=now,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[ReadingStatusModel.book_id, ReadingStatusModel.email],
                set_={"status": status, "updated_at": now},
            )
            try:
                session.execute(stmt)
                session.commit()
            except IntegrityError:
                # Only the book foreign key can fail here
                session.rollback()
                raise NotFoundError("Book", book_id)

        logger.info(f"Reading status on book {book_id} by {email}: {status}")
        return self._view(book_id)
