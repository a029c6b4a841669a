"""
Bookmark storage.

A bookmark points at a book by id only. The book is not checked and
bookmarks survive the deletion of the book they reference.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy import select

from .database import Database, new_id
from .models import BookmarkModel


@dataclass
class StoredBookmark:
    id: str
    email: str
    book_id: str
    content: Optional[str]
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: BookmarkModel) -> "StoredBookmark":
        return cls(
            id=model.id,
            email=model.email,
            book_id=model.book_id,
            content=model.content,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


class BookmarkRepository:
    """CRUD for bookmarks, scoped by owner email."""

    def __init__(self, database: Database):
        self.database = database

    def create(self, email: str, book_id: str, content: Optional[str] = None) -> StoredBookmark:
        with self.database.session() as session:
            bookmark = BookmarkModel(id=new_id(), email=email, book_id=book_id, content=content)
            session.add(bookmark)
            session.commit()
            session.refresh(bookmark)

            logger.info(f"Created bookmark {bookmark.id} on book {book_id} for {email}")
            return StoredBookmark.from_model(bookmark)

    def list_for(self, email: str, book_id: Optional[str] = None) -> list[StoredBookmark]:
        """Bookmarks of ``email``, newest first, optionally for one book."""
        with self.database.session() as session:
            stmt = select(BookmarkModel).where(BookmarkModel.email == email)
            if book_id:
                stmt = stmt.where(BookmarkModel.book_id == book_id)

            bookmarks = session.scalars(
                stmt.order_by(BookmarkModel.created_at.desc(), BookmarkModel.id.asc())
            ).all()
            return [StoredBookmark.from_model(b) for b in bookmarks]

    def _owned(self, session, bookmark_id: str, email: str) -> Optional[BookmarkModel]:
        return session.scalars(
            select(BookmarkModel).where(
                BookmarkModel.id == bookmark_id,
                BookmarkModel.email == email,
            )
        ).first()

    def update(self, bookmark_id: str, email: str, content: Optional[str]) -> Optional[StoredBookmark]:
        with self.database.session() as session:
            bookmark = self._owned(session, bookmark_id, email)
            if bookmark is None:
                return None

            bookmark.content = content
            bookmark.updated_at = datetime.utcnow()
            session.commit()
            session.refresh(bookmark)
            return StoredBookmark.from_model(bookmark)

    def delete(self, bookmark_id: str, email: str) -> bool:
        with self.database.session() as session:
            bookmark = self._owned(session, bookmark_id, email)
            if bookmark is None:
                return False
            session.delete(bookmark)
            session.commit()

        logger.info(f"Deleted bookmark {bookmark_id}")
        return True
