"""
Database connection and session management for Tickets Service.
"""

from contextlib import contextmanager
from typing import Generator, Optional
import logging

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool

from tickets_service.core.config import config
from tickets_service.models import Base

logger = logging.getLogger(__name__)


class DatabaseManager:
    """
    Database manager for ticketing operations.
    Handles connection pooling and transaction scoping.
    """

    def __init__(self):
        self.engine = None
        self.session_factory = None
        self._initialized = False

    async def initialize(self, database_url: Optional[str] = None):
        """Initialize database connections."""
        if self._initialized:
            return

        try:
            db_url = database_url or await config.get_database_url()

            if db_url.startswith("sqlite"):
                # Single shared connection so in-memory databases survive across sessions
                self.engine = create_engine(
                    db_url,
                    connect_args={"check_same_thread": False},
                    poolclass=StaticPool,
                    echo=False
                )
                self._setup_sqlite_listeners()
            else:
                db_config = await config.get_database_config()
                self.engine = create_engine(
                    db_url,
                    poolclass=QueuePool,
                    pool_size=db_config["pool_size"],
                    max_overflow=db_config["max_overflow"],
                    pool_timeout=db_config["pool_timeout"],
                    pool_recycle=db_config["pool_recycle"],
                    pool_pre_ping=True,
                    echo=False
                )

            self.session_factory = sessionmaker(
                bind=self.engine,
                class_=Session,
                autoflush=False,
                expire_on_commit=False
            )

            self._initialized = True
            logger.info("Database manager initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize database manager: {e}")
            raise

    def _setup_sqlite_listeners(self):
        """Enable foreign keys on every SQLite connection."""

        @event.listens_for(self.engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Get a database session scoped to one transaction.
        Commits on success and rolls back on any exception.
        """
        if not self._initialized:
            raise RuntimeError("Database manager not initialized")

        session = self.session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_tables(self):
        """Create all database tables."""
        if not self._initialized:
            raise RuntimeError("Database manager not initialized")

        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables created successfully")

    def health_check(self) -> bool:
        """Check database connectivity."""
        if not self._initialized:
            return False

        try:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database health check failed: {e}")
            return False

    async def close(self):
        """Close all database connections."""
        if self.engine:
            self.engine.dispose()
        self._initialized = False
        logger.info("Database connections closed")


# Global database manager instance
db_manager = DatabaseManager()
