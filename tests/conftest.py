"""
Pytest configuration and fixtures for Foliora tests.
"""

from datetime import datetime, timedelta
from typing import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from foliora.api.main import create_app
from foliora.api.dependencies import Settings
from foliora.security import TokenVerifier
from foliora.storage import (
    BookRepository,
    BookmarkRepository,
    Database,
    GoalRepository,
    InteractionRepository,
)
from foliora.storage.models import BookModel


TEST_SECRET = "foliora-test-secret"


# =============================================================================
# Test Settings
# =============================================================================

@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a throwaway SQLite file."""
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'foliora-test.db'}",
        database_echo=False,
        auth_secret_key=TEST_SECRET,
        environment="test",
        debug=True,
    )


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
def database(settings) -> Database:
    db = Database(settings.database_url)
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def book_repo(database) -> BookRepository:
    return BookRepository(database)


@pytest.fixture
def two_pass_repo(database) -> BookRepository:
    return BookRepository(database, listing_strategy="two_pass")


@pytest.fixture
def interactions(database) -> InteractionRepository:
    return InteractionRepository(database)


@pytest.fixture
def goal_repo(database) -> GoalRepository:
    return GoalRepository(database)


@pytest.fixture
def bookmark_repo(database) -> BookmarkRepository:
    return BookmarkRepository(database)


def set_created_at(database: Database, book_id: str, created_at: datetime) -> None:
    """Pin a book's creation time so date orderings are deterministic."""
    with database.session() as session:
        book = session.get(BookModel, book_id)
        book.created_at = created_at
        session.commit()


@pytest.fixture
def seed_book(database, book_repo) -> Callable:
    """
    Factory creating a book, optionally with upvotes and reviews.

    Books are spaced one minute apart in creation order.
    """
    base = datetime(2024, 1, 1, 12, 0, 0)
    counter = {"n": 0}
    interactions = InteractionRepository(database)

    def _seed(
        title: str,
        author: str = "Anonymous",
        genre: str = "Fiction",
        upvotes: int = 0,
        ratings: tuple = (),
        uploader: str = "uploader@example.com",
    ):
        book = book_repo.create(
            title=title,
            author=author,
            genre=genre,
            uploader=[{"name": "Uploader", "email": uploader}],
        )
        set_created_at(database, book.id, base + timedelta(minutes=counter["n"]))
        counter["n"] += 1

        for i in range(upvotes):
            interactions.upvote(book.id, f"fan{i}@example.com", name=f"Fan {i}")
        for i, rating in enumerate(ratings):
            interactions.add_review(book.id, f"critic{i}@example.com", rating=rating)

        return book_repo.get(book.id)

    return _seed


# =============================================================================
# Authentication Fixtures
# =============================================================================

@pytest.fixture
def token_verifier(settings) -> TokenVerifier:
    return TokenVerifier(secret_key=settings.auth_secret_key)


@pytest.fixture
def auth_headers(token_verifier) -> Callable[[str], dict]:
    """Build an Authorization header for ``email``."""

    def _headers(email: str) -> dict:
        return {"Authorization": f"Bearer {token_verifier.issue(email)}"}

    return _headers


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def app(settings):
    """Create FastAPI application for testing."""
    application = create_app(settings)
    yield application
    application.state.services.close()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Provide async HTTP client for API tests."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def services(app):
    """Service container of the app under test, for seeding data."""
    return app.state.services


# =============================================================================
# Data Fixtures
# =============================================================================

@pytest.fixture
def sample_book_data() -> dict:
    """Sample book payload as the web client sends it."""
    return {
        "title": "The Left Hand of Darkness",
        "author": "Ursula K. Le Guin",
        "genre": "Science Fiction",
        "cover": "https://example.com/covers/left-hand.jpg",
        "description": "An envoy on the winter planet Gethen.",
        "uploader": [{"name": "Genly", "email": "genly@example.com"}],
    }
