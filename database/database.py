import contextlib
import logging
from typing import Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from core.config_loader import DatabaseConfig
from database.models import Base

logger = logging.getLogger(__name__)


def build_engine(config: DatabaseConfig) -> Engine:
    """Create an engine for the configured URL.

    Pool sizing only applies to server databases; SQLite (used by the test
    suite) gets a thread-shareable connection instead.
    """
    if config.url.startswith("sqlite"):
        return create_engine(
            config.url,
            connect_args={"check_same_thread": False},
        )
    return create_engine(
        config.url,
        pool_pre_ping=True,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
    )


class Database:
    """Owns the engine and session factory for one process."""

    def __init__(self, config: DatabaseConfig, engine: Optional[Engine] = None):
        self.config = config
        self.engine = engine or build_engine(config)
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self.engine
        )

    def create_all(self) -> None:
        Base.metadata.create_all(self.engine)
        logger.info("Database schema ensured")

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning(f"Database ping failed: {e}")
            return False

    def get_session(self) -> Generator[Session, None, None]:
        session = self.SessionLocal()
        try:
            yield session
        finally:
            session.close()

    @contextlib.contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Provide a transactional scope around a series of operations."""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()
