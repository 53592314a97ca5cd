"""Database abstraction layer using SQLAlchemy 2.0.

This module provides the declarative base, engine configuration and session
management. The EAV engine works on synchronous sessions: every insert,
update and delete runs blocking statements inside one transaction.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from eavrecord.core.config import Settings, get_settings
from eavrecord.core.logging import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models.

    Catalog tables, value tables and host entities all inherit from this
    class so they share one metadata collection.
    """

    pass


class DatabaseManager:
    """Database connection and session manager.

    This class manages the engine and session factory and provides a
    context manager for database sessions.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize the database manager."""
        self.settings = settings or get_settings()
        self._engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine:
        """Get or create the database engine."""
        if self._engine is None:
            options: dict = {"echo": self.settings.db_echo}
            if self.settings.is_sqlite:
                options["connect_args"] = {"check_same_thread": False}
            else:
                options["pool_size"] = self.settings.db_pool_size
                options["max_overflow"] = self.settings.db_max_overflow
            self._engine = create_engine(self.settings.database_url, **options)
            logger.info(
                "Database engine created",
                database_url=self._engine.url.render_as_string(hide_password=True),
            )
        return self._engine

    @property
    def session_factory(self) -> sessionmaker[Session]:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                expire_on_commit=False,
                autoflush=False,
            )
            logger.debug("Database session factory created")
        return self._session_factory

    def create_tables(self) -> None:
        """Create the catalog and value tables plus any registered host tables.

        In production, use migrations instead.
        """
        # Register catalog and value models with Base.metadata
        from eavrecord.infrastructure.persistence import models  # noqa: F401

        Base.metadata.create_all(self.engine)
        logger.info("Database tables created")

    def disconnect(self) -> None:
        """Close the database engine and all connections."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database engine disposed")

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Provide a session scope for database operations.

        Example:
            with db.session() as session:
                product = repository.find_by_pk(1)
        """
        with self.session_factory() as session:
            try:
                yield session
            except Exception:
                session.rollback()
                raise

    def check_connection(self) -> bool:
        """Check if database connection is working."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.debug("Database connection check successful")
            return True
        except SQLAlchemyError as e:
            logger.error("Database connection check failed", error=str(e))
            return False


# Global database manager instance
_db_manager: DatabaseManager | None = None


def get_db_manager() -> DatabaseManager:
    """Get the global database manager instance."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


def init_database(db: DatabaseManager | None = None) -> DatabaseManager:
    """Initialize the database.

    Creates the SQLite directory when needed, checks the connection and
    creates tables.
    """
    db = db or get_db_manager()
    settings = db.settings

    if settings.is_sqlite and ":memory:" not in settings.database_url:
        # Extract path from sqlite:///path/to/file.db
        db_path = settings.database_url.split(":///")[-1]
        db_dir = Path(db_path).parent
        db_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Database directory created", path=str(db_dir))

    if not db.check_connection():
        logger.error("Database connection failed")
        raise RuntimeError("Failed to connect to database")

    db.create_tables()
    return db
