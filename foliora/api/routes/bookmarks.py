"""
Bookmark Routes

Notes pinned to a book by id. The book is not looked up, so bookmarks
outlive deleted books.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from foliora.api.dependencies import get_bookmark_repository, require_matching_email
from foliora.api.schemas import (
    BookmarkCreate,
    BookmarkResponse,
    BookmarkUpdate,
    DeleteResponse,
    ErrorResponse,
)
from foliora.exceptions import NotFoundError
from foliora.storage import parse_id


router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])

_GUARD_RESPONSES = {
    401: {"model": ErrorResponse, "description": "Missing credential"},
    403: {"model": ErrorResponse, "description": "Rejected credential or email mismatch"},
}


@router.post(
    "",
    response_model=BookmarkResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_GUARD_RESPONSES,
)
def create_bookmark(
    body: BookmarkCreate,
    email: str = Depends(require_matching_email),
    repo=Depends(get_bookmark_repository),
):
    return repo.create(email, parse_id(body.book_id), body.content)


@router.get(
    "",
    response_model=list[BookmarkResponse],
    responses=_GUARD_RESPONSES,
)
def list_bookmarks(
    book_id: Optional[str] = Query(None, alias="bookId", description="Only bookmarks on this book"),
    email: str = Depends(require_matching_email),
    repo=Depends(get_bookmark_repository),
):
    """Caller's bookmarks, newest first."""
    if book_id:
        book_id = parse_id(book_id)
    return repo.list_for(email, book_id=book_id)


@router.patch(
    "/{bookmark_id}",
    response_model=BookmarkResponse,
    responses={
        **_GUARD_RESPONSES,
        404: {"model": ErrorResponse, "description": "Bookmark not found"},
    },
)
def update_bookmark(
    bookmark_id: str,
    body: BookmarkUpdate,
    email: str = Depends(require_matching_email),
    repo=Depends(get_bookmark_repository),
):
    bookmark_id = parse_id(bookmark_id, "Bookmark")
    bookmark = repo.update(bookmark_id, email, body.content)
    if bookmark is None:
        raise NotFoundError("Bookmark", bookmark_id)
    return bookmark


@router.delete(
    "/{bookmark_id}",
    response_model=DeleteResponse,
    responses={
        **_GUARD_RESPONSES,
        404: {"model": ErrorResponse, "description": "Bookmark not found"},
    },
)
def delete_bookmark(
    bookmark_id: str,
    email: str = Depends(require_matching_email),
    repo=Depends(get_bookmark_repository),
):
    bookmark_id = parse_id(bookmark_id, "Bookmark")
    if not repo.delete(bookmark_id, email):
        raise NotFoundError("Bookmark", bookmark_id)
    return DeleteResponse(message=f"Bookmark {bookmark_id} deleted")
