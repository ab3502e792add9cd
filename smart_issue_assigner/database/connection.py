"""Database connection and session management utilities."""

import functools
import logging
from contextlib import contextmanager
from typing import Generator, Optional
from sqlalchemy import create_engine, Engine, event, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.exc import SQLAlchemyError, DisconnectionError

from ..models.database import Base
from smart_issue_assigner.config.settings import DatabaseConfig

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Manages database connections and sessions."""

    def __init__(self, config: Optional[DatabaseConfig] = None):
        """Initialize database manager from a ``DatabaseConfig``."""
        self.config = config or DatabaseConfig()
        self.database_url = self.config.url
        self.engine: Optional[Engine] = None
        self.SessionLocal: Optional[sessionmaker] = None
        self._initialized = False

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def _engine_options(self) -> dict:
        if self.is_sqlite:
            options = {"connect_args": {"check_same_thread": False}}
            if self.database_url in ("sqlite://", "sqlite:///:memory:"):
                # One shared connection, otherwise each thread sees an empty database
                options["poolclass"] = StaticPool
            return options

        return {
            "poolclass": QueuePool,
            "pool_size": self.config.pool_size,
            "max_overflow": self.config.max_overflow,
            "pool_pre_ping": True,
            "pool_recycle": 3600,
        }

    def initialize(self) -> None:
        """Initialize database engine and session factory."""
        if self._initialized:
            return

        try:
            self.engine = create_engine(
                self.database_url,
                echo=self.config.echo,
                **self._engine_options()
            )

            if self.is_sqlite:
                @event.listens_for(self.engine, "connect")
                def set_sqlite_pragma(dbapi_connection, connection_record):
                    """Enforce foreign keys on SQLite."""
                    cursor = dbapi_connection.cursor()
                    cursor.execute("PRAGMA foreign_keys=ON")
                    cursor.close()

            self.SessionLocal = sessionmaker(
                autocommit=False,
                autoflush=False,
                expire_on_commit=False,
                bind=self.engine
            )

            self._initialized = True
            logger.info("Database manager initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize database: {e}")
            raise

    def create_tables(self) -> None:
        """Create all database tables."""
        if not self._initialized:
            self.initialize()

        try:
            Base.metadata.create_all(bind=self.engine)
            logger.info("Database tables created successfully")
        except Exception as e:
            logger.error(f"Failed to create database tables: {e}")
            raise

    def drop_tables(self) -> None:
        """Drop all database tables (use with caution)."""
        if not self._initialized:
            self.initialize()

        Base.metadata.drop_all(bind=self.engine)
        logger.info("Database tables dropped successfully")

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get a database session with automatic commit, rollback and cleanup."""
        if not self._initialized:
            self.initialize()

        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.debug(f"Database session rolled back: {e}")
            raise
        finally:
            session.close()

    def health_check(self) -> bool:
        """Check if database connection is healthy."""
        try:
            with self.get_session() as session:
                session.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

    def close(self) -> None:
        """Close database connections and cleanup."""
        if self.engine:
            self.engine.dispose()
            logger.info("Database connections closed")


class DatabaseError(Exception):
    """Custom exception for database-related errors."""
    pass


class ConnectionError(DatabaseError):
    """Exception for database connection errors."""
    pass


def handle_db_exceptions(func):
    """Decorator translating SQLAlchemy failures into ``DatabaseError``."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except DisconnectionError as e:
            logger.error(f"Database disconnection error in {func.__name__}: {e}")
            raise ConnectionError(f"Database connection lost: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"SQLAlchemy error in {func.__name__}: {e}")
            raise DatabaseError(f"Database operation failed: {e}") from e
    return wrapper
