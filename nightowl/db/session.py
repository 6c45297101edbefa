"""
Database engine and session management.

A Database is built once at process start and handed to the repository;
nothing in this module holds a module-level engine.
"""

import logging
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from nightowl.core.config import settings
from nightowl.db.base import Base

logger = logging.getLogger(__name__)


class Database:
    """Owns the SQLAlchemy engine and the session factory."""

    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None):
        self.url = url or settings.DATABASE_URL
        self.engine: Engine = self._create_engine(
            self.url, settings.SQL_ECHO if echo is None else echo
        )
        self.session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine,
        )

    @staticmethod
    def _create_engine(url: str, echo: bool) -> Engine:
        if url.startswith("sqlite"):
            kwargs = {"connect_args": {"check_same_thread": False}}
            # In-memory databases live and die with a single connection
            if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
                kwargs["poolclass"] = StaticPool
            return create_engine(url, echo=echo, **kwargs)
        return create_engine(url, echo=echo, pool_pre_ping=True)

    def create_schema(self) -> None:
        """Create every table known to the metadata (tests and local dev)."""
        # Import models so they register on Base.metadata
        import nightowl.models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        logger.info("Database schema created")

    def drop_schema(self) -> None:
        import nightowl.models  # noqa: F401

        Base.metadata.drop_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()
