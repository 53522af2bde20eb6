"""
Database handle for the installations API.

A Database owns one lazily created async engine (asyncpg in production) and
the session factory bound to it. The application shares one Database built
from DATABASE_URL; the lifespan disposes it on shutdown, and the next request
after a dispose builds a fresh engine.

Requests get one session each through get_async_session. Sessions do not
expire objects on commit so services can return ORM rows after committing.

CHANGELOG:
- 2026-10-20: Replace engine singletons with a Database handle
- 2026-10-11: Initial creation
"""

import logging
import os
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

logger = logging.getLogger(__name__)


class Database:
    """Async engine plus session factory for one database URL.

    Attributes:
        url: SQLAlchemy async connection URL.
    """

    def __init__(self, url: str) -> None:
        self.url = url
        self._engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            # Connections dropped by PostgreSQL restarts are replaced on checkout.
            self._engine = create_async_engine(self.url, pool_pre_ping=True)
            logger.info("Database engine created")
        return self._engine

    @property
    def sessions(self) -> async_sessionmaker[AsyncSession]:
        if self._sessions is None:
            self._sessions = async_sessionmaker(
                self.engine, class_=AsyncSession, expire_on_commit=False
            )
        return self._sessions

    async def dispose(self) -> None:
        """Close pooled connections; a later session rebuilds the engine."""
        if self._engine is not None:
            await self._engine.dispose()
            logger.info("Database engine disposed")
        self._engine = None
        self._sessions = None


_database: Database | None = None


def get_database() -> Database:
    """Return the shared Database, building it from DATABASE_URL on first use.

    Raises:
        RuntimeError: If DATABASE_URL is not set.
    """
    global _database  # noqa: PLW0603
    if _database is None:
        url = os.environ.get("DATABASE_URL")
        if not url:
            raise RuntimeError("DATABASE_URL environment variable is required")
        _database = Database(url)
    return _database


async def dispose_engine() -> None:
    """Dispose the shared Database, if one was built."""
    global _database  # noqa: PLW0603
    if _database is not None:
        await _database.dispose()
    _database = None


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield one session of the shared Database, closed after the request."""
    async with get_database().sessions() as session:
        yield session
