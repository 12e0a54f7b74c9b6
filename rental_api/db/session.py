from __future__ import annotations

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import get_settings

# Process-wide engine and factory, created on first use
_ENGINE: AsyncEngine | None = None
_SESSION_MAKER: async_sessionmaker[AsyncSession] | None = None


# PUBLIC_INTERFACE
def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Build the session factory used by the API and tests.

    Sessions autoflush so reads inside an atomic phase observe pending writes, and
    keep loaded state after commit so services can return the entities they saved.
    """
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=True)


# PUBLIC_INTERFACE
def get_engine() -> AsyncEngine:
    """The shared AsyncEngine; PostgreSQL connections are pre-pinged."""
    global _ENGINE
    if _ENGINE is None:
        settings = get_settings()
        url = settings.async_database_url
        _ENGINE = create_async_engine(url, echo=settings.SQL_ECHO, pool_pre_ping=url.startswith("postgresql"))
    return _ENGINE


# PUBLIC_INTERFACE
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """The shared session factory bound to get_engine()."""
    global _SESSION_MAKER
    if _SESSION_MAKER is None:
        _SESSION_MAKER = create_session_maker(get_engine())
    return _SESSION_MAKER


# PUBLIC_INTERFACE
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    async with get_session_maker()() as session:
        yield session
