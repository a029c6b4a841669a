"""
Book Interaction Routes

Upvotes, reviews and per-user reading status on a single book. Each
mutation answers with the book as it is after the write.
"""

from fastapi import APIRouter, Depends
from loguru import logger

from foliora.api.dependencies import (
    ensure_same_email,
    get_interaction_repository,
    get_principal,
)
from foliora.api.schemas import (
    BookResponse,
    ErrorResponse,
    ReadingStatusUpdate,
    ReviewCreate,
    ReviewDelete,
    UpvoteRequest,
)
from foliora.storage import parse_id


router = APIRouter(prefix="/books", tags=["interactions"])

_AUTH_RESPONSES = {
    401: {"model": ErrorResponse, "description": "Missing credential"},
    403: {"model": ErrorResponse, "description": "Rejected credential or email mismatch"},
    404: {"model": ErrorResponse, "description": "Book not found"},
}


@router.patch(
    "/{book_id}/reading-status",
    response_model=BookResponse,
    responses=_AUTH_RESPONSES,
)
def set_reading_status(
    book_id: str,
    body: ReadingStatusUpdate,
    principal: str = Depends(get_principal),
    interactions=Depends(get_interaction_repository),
):
    """Set the caller's reading status, replacing any earlier one."""
    book_id = parse_id(book_id)
    ensure_same_email(body.email, principal)

    status_value = body.reading_status.value if body.reading_status else None
    return interactions.set_reading_status(book_id, body.email, status_value)


@router.patch(
    "/{book_id}/upvote",
    response_model=BookResponse,
    responses={
        **_AUTH_RESPONSES,
        400: {"model": ErrorResponse, "description": "Already upvoted"},
    },
)
def upvote_book(
    book_id: str,
    body: UpvoteRequest,
    principal: str = Depends(get_principal),
    interactions=Depends(get_interaction_repository),
):
    """Upvote a book. Uploaders cannot upvote their own books."""
    book_id = parse_id(book_id)
    ensure_same_email(body.email, principal)

    return interactions.upvote(book_id, body.email, name=body.name, photo=body.photo)


@router.post(
    "/{book_id}/review",
    response_model=BookResponse,
    responses={
        **_AUTH_RESPONSES,
        400: {"model": ErrorResponse, "description": "Already reviewed or invalid rating"},
    },
)
def add_review(
    book_id: str,
    body: ReviewCreate,
    principal: str = Depends(get_principal),
    interactions=Depends(get_interaction_repository),
):
    """Add the caller's review. One review per user and book."""
    book_id = parse_id(book_id)
    ensure_same_email(body.email, principal)
    logger.info(f"Review for {book_id} from {body.email}")

    return interactions.add_review(
        book_id,
        body.email,
        rating=body.rating,
        name=body.name,
        photo=body.photo,
        comment=body.comment,
        date=body.date,
    )


@router.delete(
    "/{book_id}/review",
    response_model=BookResponse,
    responses=_AUTH_RESPONSES,
)
def delete_review(
    book_id: str,
    body: ReviewDelete,
    principal: str = Depends(get_principal),
    interactions=Depends(get_interaction_repository),
):
    """Remove the caller's review."""
    book_id = parse_id(book_id)
    ensure_same_email(body.email, principal)

    return interactions.delete_review(book_id, body.email)
