"""
FastAPI dependency injection providers.

Provides database sessions, the sample store and the authenticated API
client for use with FastAPI's Depends() mechanism.

CHANGELOG:
- 2026-10-20: ApiClient resolves through auth.require_api_client
- 2026-10-12: Add get_sample_store provider
- 2026-10-11: Initial creation
"""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pvinstallations.auth.bearer import require_api_client
from pvinstallations.db.session import get_async_session
from pvinstallations.services.store import SampleStore, SqlSampleStore


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session.

    Yields:
        AsyncSession: An async SQLAlchemy session.
    """
    async for session in get_async_session():
        yield session


# Type alias for injecting an async DB session via FastAPI Depends().
DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_sample_store(db: DbSession) -> SampleStore:
    """Build the request-scoped sample store over the DB session."""
    return SqlSampleStore(db)


ApiClient = Annotated[str, Depends(require_api_client)]
