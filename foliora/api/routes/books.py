"""
Book API Routes

Book CRUD, the filtered/sorted/paginated listing and the top-book views.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from loguru import logger

from foliora.api.dependencies import (
    Settings,
    get_app_settings,
    get_book_repository,
    get_principal,
)
from foliora.api.schemas import (
    BookCreate,
    BookListResponse,
    BookResponse,
    BookUpdate,
    DeleteResponse,
    ErrorResponse,
    Pagination,
)
from foliora.exceptions import NotFoundError
from foliora.storage import BookQuery, parse_id


router = APIRouter(prefix="/books", tags=["books"])


# =============================================================================
# Listing
# =============================================================================

@router.get(
    "",
    response_model=BookListResponse,
)
def list_books(
    sort: Optional[str] = Query(None, description="newest, oldest, title-asc, title-desc, upvotes or rating"),
    genre: Optional[str] = Query(None, description="Exact genre, 'all' for any"),
    search: Optional[str] = Query(None, description="Substring of title, author or genre"),
    author: Optional[str] = Query(None, description="Substring of author"),
    page: Optional[str] = Query(None, description="1-based page number"),
    limit: Optional[str] = Query(None, description="Items per page"),
    min_rating: Optional[str] = Query(None, alias="minRating", description="Minimum average rating"),
    repo=Depends(get_book_repository),
    settings: Settings = Depends(get_app_settings),
):
    """
    List books with filtering, sorting and pagination.

    Unusable ``sort``, ``page``, ``limit`` and ``minRating`` values fall
    back to their defaults instead of failing the request.
    """
    query = BookQuery.from_params(
        sort=sort,
        genre=genre,
        search=search,
        author=author,
        page=page,
        limit=limit,
        min_rating=min_rating,
        default_limit=settings.default_page_size,
    )
    logger.info(
        f"Listing books: sort={query.sort.value}, page={query.page}, "
        f"limit={query.limit}, strategy={repo.listing_strategy}"
    )

    books, total = repo.list_books(query)

    return BookListResponse(
        books=[BookResponse.model_validate(b) for b in books],
        pagination=Pagination(
            total=total,
            page=query.page,
            limit=query.limit,
            total_pages=query.total_pages(total),
        ),
    )


@router.get(
    "/top/rated",
    response_model=list[BookResponse],
)
def top_rated_books(
    repo=Depends(get_book_repository),
    settings: Settings = Depends(get_app_settings),
):
    """Best average rating first; books without reviews are excluded."""
    return repo.top_rated(limit=settings.top_books_limit)


@router.get(
    "/top/upvoted",
    response_model=list[BookResponse],
)
def top_upvoted_books(
    repo=Depends(get_book_repository),
    settings: Settings = Depends(get_app_settings),
):
    """Most upvoted books first."""
    return repo.top_upvoted(limit=settings.top_books_limit)


# =============================================================================
# CRUD Endpoints
# =============================================================================

@router.post(
    "",
    response_model=BookResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid book data"},
    },
)
def create_book(
    book: BookCreate,
    repo=Depends(get_book_repository),
):
    """
    Create a new book.

    Reviews, upvotes and reading status always start empty, whatever the
    client sends.
    """
    logger.info(f"Creating book: {book.title} by {book.author}")

    return repo.create(
        title=book.title,
        author=book.author,
        genre=book.genre,
        cover=book.cover,
        description=book.description,
        uploader=[u.model_dump() for u in book.uploader],
    )


@router.get(
    "/{book_id}",
    response_model=BookResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Malformed book id"},
        404: {"model": ErrorResponse, "description": "Book not found"},
    },
)
def get_book(
    book_id: str,
    repo=Depends(get_book_repository),
):
    """Get a book by ID with its computed aggregates."""
    book = repo.get(parse_id(book_id))
    if book is None:
        raise NotFoundError("Book", book_id)
    return book


@router.put(
    "/{book_id}",
    response_model=BookResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Missing credential"},
        403: {"model": ErrorResponse, "description": "Rejected credential"},
        404: {"model": ErrorResponse, "description": "Book not found"},
    },
)
def update_book(
    book_id: str,
    book: BookUpdate,
    principal: str = Depends(get_principal),
    repo=Depends(get_book_repository),
):
    """
    Update a book.

    Supports partial updates: only provided fields are modified.
    """
    book_id = parse_id(book_id)
    logger.info(f"Updating book {book_id} by {principal}")

    updates = book.model_dump(exclude_unset=True, exclude={"uploader"})
    if book.uploader is not None:
        updates["uploader"] = [u.model_dump() for u in book.uploader]

    updated = repo.update(book_id, **updates)
    if updated is None:
        raise NotFoundError("Book", book_id)
    return updated


@router.delete(
    "/{book_id}",
    response_model=DeleteResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Missing credential"},
        403: {"model": ErrorResponse, "description": "Rejected credential"},
        404: {"model": ErrorResponse, "description": "Book not found"},
    },
)
def delete_book(
    book_id: str,
    principal: str = Depends(get_principal),
    repo=Depends(get_book_repository),
):
    """Delete a book together with its reviews, upvotes and reading status."""
    book_id = parse_id(book_id)
    logger.info(f"Deleting book {book_id} by {principal}")

    if not repo.delete(book_id):
        raise NotFoundError("Book", book_id)
    return DeleteResponse(message=f"Book {book_id} deleted")
