"""
Dependency injection for FastAPI routes.

Provides injectable dependencies for:
- Configuration
- The shared database handle and repositories
- Authentication (bearer principal, email-match guard)
"""

import os
import threading
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, Query, Request
from loguru import logger

from foliora.exceptions import ForbiddenError, UnauthorizedError
from foliora.security import InvalidCredentialError, TokenVerifier


# =============================================================================
# Configuration
# =============================================================================

@dataclass
class Settings:
    """Application settings loaded from environment."""

    # Database
    database_url: str = "sqlite:///./foliora.db"
    database_echo: bool = False

    # Authentication
    auth_secret_key: str = "dev-secret-key-change-in-production"
    auth_algorithm: str = "HS256"
    auth_audience: Optional[str] = None
    auth_email_claim: str = "email"

    # Catalogue
    book_listing_strategy: str = "pipeline"  # or "two_pass"
    default_page_size: int = 12
    top_books_limit: int = 6
    recent_reviews_limit: int = 10

    # Environment
    environment: str = "development"
    debug: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            database_echo=os.getenv("DATABASE_ECHO", "false").lower() == "true",
            auth_secret_key=os.getenv("AUTH_SECRET_KEY", cls.auth_secret_key),
            auth_algorithm=os.getenv("AUTH_ALGORITHM", cls.auth_algorithm),
            auth_audience=os.getenv("AUTH_AUDIENCE") or None,
            auth_email_claim=os.getenv("AUTH_EMAIL_CLAIM", cls.auth_email_claim),
            book_listing_strategy=os.getenv("BOOK_LISTING_STRATEGY", cls.book_listing_strategy),
            default_page_size=int(os.getenv("DEFAULT_PAGE_SIZE", cls.default_page_size)),
            top_books_limit=int(os.getenv("TOP_BOOKS_LIMIT", cls.top_books_limit)),
            recent_reviews_limit=int(os.getenv("RECENT_REVIEWS_LIMIT", cls.recent_reviews_limit)),
            environment=os.getenv("FOLIORA_ENV", cls.environment),
            debug=os.getenv("DEBUG", "true").lower() == "true",
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings.from_env()


# =============================================================================
# Service Container (Lazy Loading)
# =============================================================================

class ServiceContainer:
    """
    Container for lazily built service instances.

    One container per application; every repository shares its
    ``Database`` handle.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        # Reentrant: repositories build the database inside the lock
        self._lock = threading.RLock()
        self._database = None
        self._book_repository = None
        self._interaction_repository = None
        self._goal_repository = None
        self._bookmark_repository = None
        self._token_verifier = None

    @property
    def database(self):
        """Get database handle, creating the schema on first use."""
        with self._lock:
            if self._database is None:
                from ..storage.database import Database
                self._database = Database(
                    self.settings.database_url,
                    echo=self.settings.database_echo,
                )
                self._database.create_all()
            return self._database

    @property
    def book_repository(self):
        """Get book repository instance."""
        with self._lock:
            if self._book_repository is None:
                from ..storage.book_repository import BookRepository
                self._book_repository = BookRepository(
                    self.database,
                    listing_strategy=self.settings.book_listing_strategy,
                )
            return self._book_repository

    @property
    def interaction_repository(self):
        """Get upvote/review/reading-status repository instance."""
        with self._lock:
            if self._interaction_repository is None:
                from ..storage.interactions import InteractionRepository
                self._interaction_repository = InteractionRepository(self.database)
            return self._interaction_repository

    @property
    def goal_repository(self):
        """Get reading goal repository instance."""
        with self._lock:
            if self._goal_repository is None:
                from ..storage.goal_repository import GoalRepository
                self._goal_repository = GoalRepository(self.database)
            return self._goal_repository

    @property
    def bookmark_repository(self):
        """Get bookmark repository instance."""
        with self._lock:
            if self._bookmark_repository is None:
                from ..storage.bookmark_repository import BookmarkRepository
                self._bookmark_repository = BookmarkRepository(self.database)
            return self._bookmark_repository

    @property
    def token_verifier(self) -> TokenVerifier:
        """Get bearer token verifier."""
        with self._lock:
            if self._token_verifier is None:
                self._token_verifier = TokenVerifier(
                    secret_key=self.settings.auth_secret_key,
                    algorithm=self.settings.auth_algorithm,
                    audience=self.settings.auth_audience,
                    email_claim=self.settings.auth_email_claim,
                )
            return self._token_verifier

    def close(self) -> None:
        if self._database is not None:
            self._database.dispose()


def get_service_container(request: Request) -> ServiceContainer:
    """Get the application's service container."""
    return request.app.state.services


# =============================================================================
# Individual Service Dependencies
# =============================================================================

def get_book_repository(
    container: ServiceContainer = Depends(get_service_container),
):
    """Dependency for book repository."""
    return container.book_repository


def get_interaction_repository(
    container: ServiceContainer = Depends(get_service_container),
):
    """Dependency for interaction repository."""
    return container.interaction_repository


def get_goal_repository(
    container: ServiceContainer = Depends(get_service_container),
):
    """Dependency for reading goal repository."""
    return container.goal_repository


def get_bookmark_repository(
    container: ServiceContainer = Depends(get_service_container),
):
    """Dependency for bookmark repository."""
    return container.bookmark_repository


def get_app_settings(
    container: ServiceContainer = Depends(get_service_container),
) -> Settings:
    """Settings the running application was built with."""
    return container.settings


# =============================================================================
# Authentication Dependencies
# =============================================================================

async def get_bearer_token(
    authorization: Optional[str] = Header(None),
) -> str:
    """
    Extract bearer token from the Authorization header.

    Raises:
        UnauthorizedError: Header missing or not a bearer credential.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthorizedError()

    token = authorization[len("Bearer "):].strip()
    if not token:
        raise UnauthorizedError()
    return token


def get_principal(
    token: str = Depends(get_bearer_token),
    container: ServiceContainer = Depends(get_service_container),
) -> str:
    """
    Verified email of the caller.

    Raises:
        ForbiddenError: Token rejected by the verifier.
    """
    try:
        return container.token_verifier.verify(token)
    except InvalidCredentialError:
        raise ForbiddenError()


def require_matching_email(
    email: Optional[str] = Query(None, description="Owner email, must match the caller"),
    principal: str = Depends(get_principal),
) -> str:
    """
    Guard for per-user resources scoped by the ``email`` query parameter.

    Raises:
        ForbiddenError: ``email`` differs from the verified principal.
    """
    if email != principal:
        logger.warning(f"Email mismatch: query={email!r} principal={principal!r}")
        raise ForbiddenError()
    return principal


def ensure_same_email(body_email: str, principal: str) -> None:
    """Reject request bodies acting on behalf of someone else."""
    if body_email != principal:
        raise ForbiddenError(detail="Body email does not match the authenticated user")
