"""Database connection and session management."""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.pool import StaticPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_random

from microbial.logging_config import get_logger
from microbial.settings import settings
from microbial.storage.models import Base

logger = get_logger(__name__)


def _log_conflict(retry_state) -> None:
    logger.info(
        "write_conflict_retry",
        operation=retry_state.fn.__name__,
        attempt=retry_state.attempt_number,
    )


# Re-run a unit of work whose versioned UPDATE lost to a concurrent writer.
# The wrapped function must open its own session so each attempt rereads.
retry_on_conflict = retry(
    retry=retry_if_exception_type(StaleDataError),
    stop=stop_after_attempt(settings.write_conflict_attempts),
    wait=wait_random(min=0, max=0.05),
    before_sleep=_log_conflict,
    reraise=True,
)


def _engine_options(database_url: str) -> dict:
    if not database_url.startswith("sqlite"):
        return {"pool_pre_ping": True}

    options: dict = {"connect_args": {"check_same_thread": False}}
    # In-memory SQLite only lives as long as its connection; share a single one
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        options["poolclass"] = StaticPool
    return options


class Database:
    """Database connection manager."""

    def __init__(self, database_url: str | None = None):
        """Initialize database connection.

        Args:
            database_url: Database URL (defaults to settings)
        """
        self.database_url = database_url or settings.database_url
        self.engine = create_engine(
            self.database_url,
            echo=False,
            **_engine_options(self.database_url),
        )
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine,
        )
        logger.info("database_initialized", url=self.engine.url.render_as_string(hide_password=True))

    def create_tables(self) -> None:
        """Create all tables in the database."""
        Base.metadata.create_all(bind=self.engine)
        logger.info("tables_created")

    def drop_tables(self) -> None:
        """Drop all tables from the database."""
        Base.metadata.drop_all(bind=self.engine)
        logger.warning("tables_dropped")

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Provide a transactional scope for database operations.

        Yields:
            Database session
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


# Global database instance
db = Database()
