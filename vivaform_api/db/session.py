from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import get_database_settings

# One engine per process; created on first use so tests can set DATABASE_URL first.
_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


# PUBLIC_INTERFACE
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Return the process-wide session factory, creating the engine if needed."""
    global _engine, _session_factory
    if _session_factory is None:
        settings = get_database_settings()
        _engine = create_async_engine(settings.async_database_url, **settings.engine_options())
        # Services read attributes after commit when building responses
        _session_factory = async_sessionmaker(bind=_engine, expire_on_commit=False, autoflush=False)
    return _session_factory


# PUBLIC_INTERFACE
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    async with get_session_maker()() as session:
        yield session


# PUBLIC_INTERFACE
@asynccontextmanager
async def session_scope() -> AsyncGenerator[AsyncSession, None]:
    """
    Session for work outside a request: the recommendation scheduler, seeding
    and the management CLI. Uncommitted changes are rolled back on error.
    """
    async with get_session_maker()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


# PUBLIC_INTERFACE
async def dispose_engine() -> None:
    """Close pooled connections; the next get_session_maker() call reconnects."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
