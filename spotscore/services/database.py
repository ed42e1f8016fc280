"""Async database session management.

The engine is created on first use, so importing the jobs or the CLI
never opens a connection pool. One session serves one job run.
"""

from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from spotscore.core.config import settings


@lru_cache
def get_engine() -> AsyncEngine:
    """Async engine with a small pool; batch jobs hold one connection at a time."""
    return create_async_engine(
        settings.SQLALCHEMY_DATABASE_URI,
        echo=settings.DEBUG,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Provide an async database session for one job run.

    Each per-spot write commits on its own, so the scope only
    rolls back what is still pending when an error escapes.

    Yields:
        AsyncSession: SQLAlchemy async session for database operations.

    Example:
        ```python
        async with session_scope() as session:
            repo = SqlAlchemySpotRepository(session)
            await refresh_static_scores(repo, gateway)
        ```
    """
    async with get_session_factory()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
