"""
Database handle shared by the Foliora repositories.

One ``Database`` owns the SQLAlchemy engine and session factory. It is
built once by the service container and injected into every repository,
so tests can point the whole stack at a throwaway SQLite file.
"""

import uuid
from typing import Optional

from loguru import logger
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from foliora.exceptions import ValidationError
from .models import Base


def new_id() -> str:
    """Generate a new record identifier."""
    return str(uuid.uuid4())


def parse_id(raw: str, resource: str = "Book") -> str:
    """
    Validate a record identifier taken from a request.

    Raises:
        ValidationError: If ``raw`` is not a well-formed UUID.
    """
    try:
        return str(uuid.UUID(str(raw)))
    except (TypeError, ValueError):
        raise ValidationError(
            f"Invalid {resource.lower()} id",
            detail=f"'{raw}' is not a valid identifier",
        )


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Engine and session factory.

    Usage:
        db = Database("sqlite:///./foliora.db")
        db.create_all()

        with db.session() as session:
            ...
    """

    def __init__(self, database_url: Optional[str] = None, echo: bool = False):
        """
        Initialize database handle.

        Args:
            database_url: SQLAlchemy database URL (defaults to in-memory SQLite)
            echo: Log emitted SQL
        """
        self.database_url = database_url or "sqlite:///:memory:"

        engine_kwargs = {"echo": echo, "pool_pre_ping": True}
        if self.dialect_name == "sqlite":
            # Sync handlers run in a threadpool
            engine_kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}
            if ":memory:" in self.database_url:
                engine_kwargs["poolclass"] = StaticPool

        self.engine = create_engine(self.database_url, **engine_kwargs)

        if self.dialect_name == "sqlite":
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

        logger.info(f"Database initialized: {self.database_url[:50]}...")

    @property
    def dialect_name(self) -> str:
        return self.database_url.split(":", 1)[0].split("+", 1)[0]

    def create_all(self) -> None:
        """Create tables that do not exist yet."""
        Base.metadata.create_all(self.engine)

    def drop_all(self) -> None:
        Base.metadata.drop_all(self.engine)

    def session(self) -> Session:
        """Get database session."""
        return self.SessionLocal()

    def dispose(self) -> None:
        self.engine.dispose()
