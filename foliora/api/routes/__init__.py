"""
API Routes for Foliora

Route modules:
- books: Book CRUD, listing and top books
- interactions: Upvotes, reviews and reading status
- catalog: Genres and recent reviews
- users: Caller's books and statistics
- reading_goals: Reading goal CRUD
- bookmarks: Bookmark CRUD
"""

from foliora.api.routes.books import router as books_router
from foliora.api.routes.interactions import router as interactions_router
from foliora.api.routes.catalog import router as catalog_router
from foliora.api.routes.users import router as users_router
from foliora.api.routes.reading_goals import router as reading_goals_router
from foliora.api.routes.bookmarks import router as bookmarks_router

__all__ = [
    "books_router",
    "interactions_router",
    "catalog_router",
    "users_router",
    "reading_goals_router",
    "bookmarks_router",
]
