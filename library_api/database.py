"""
Database Configuration Module

SQLAlchemy 2.0 async setup for the Library API.

The relational store holds users, saved books, reviews and playlists. Book
metadata itself is not stored: books are Open Library work ids.

Async Engine
============
The recommendation core never blocks the event loop, so the database is
accessed through SQLAlchemy's asyncio extension (asyncpg in production,
aiosqlite in tests).

Session Management Pattern
==========================
- Route handlers get a session per request via get_db().
- Long-lived services (LibraryStore) open short sessions from the shared
  session factory for each query.

The engine and the session factory are created by create_engine_and_factory()
during application startup and disposed on shutdown.
"""

from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from library_api.config import Settings


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    All models inherit from this class so Base.metadata knows every table.
    """
    pass


# =============================================================================
# Engine / Session Factory
# =============================================================================
def create_engine_and_factory(
    settings: Settings,
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """
    Create the async engine and its session factory.

    Pool sizing only applies to real server databases; SQLite URLs get
    SQLAlchemy's defaults.

    Args:
        settings: Application settings

    Returns:
        (engine, session factory)
    """
    engine_kwargs: dict = {
        "pool_pre_ping": True,
        "echo": settings.debug,
    }
    if not settings.database_url.startswith("sqlite"):
        engine_kwargs["pool_size"] = settings.db_pool_size
        engine_kwargs["max_overflow"] = settings.db_max_overflow

    engine = create_async_engine(settings.database_url, **engine_kwargs)
    session_factory = async_sessionmaker(
        engine,
        expire_on_commit=False,
        autoflush=False,
    )
    return engine, session_factory


# =============================================================================
# Dependency Injection
# =============================================================================
async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Database session dependency for FastAPI.

    Yields a session from the factory built in the application lifespan and
    closes it when the request ends.

    Usage in Routes:
        @router.get("/library")
        async def list_saved(db: DbSession):
            ...
    """
    session_factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    async with session_factory() as db:
        yield db


# =============================================================================
# Utility Functions
# =============================================================================
async def create_tables(engine: AsyncEngine) -> None:
    """
    Create all database tables.

    Development and tests only; production schemas are managed outside this
    service.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_tables(engine: AsyncEngine) -> None:
    """Drop all database tables. Never use in production."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
