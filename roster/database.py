"""
Database engine, session management, and base model class.

This module sets up SQLAlchemy 2.0 with async support. Key components:

  - Base: Declarative base class that all ORM models inherit from
  - create_engine_and_sessionmaker(): builds the engine and session factory
  - init_models(): creates tables, failing loudly if the store is unreachable
  - get_db(): FastAPI dependency that provides a session per request

Lifecycle:
  There is no module-level engine. The application lifespan (main.py) calls
  create_engine_and_sessionmaker() once at startup, keeps both objects on
  app.state, and disposes the engine once at shutdown.

Session lifecycle:
  Each API request gets its own session via get_db(). The session commits
  on success and rolls back on any exception.
"""

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


def create_engine_and_sessionmaker(
    database_url: str,
    echo: bool = False,
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """
    Build the async engine and its session factory.

    expire_on_commit=False prevents lazy-load errors after commit: without it,
    touching attributes of a committed object would trigger a synchronous
    reload, which fails in async context.
    """
    engine = create_async_engine(database_url, echo=echo)
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    return engine, session_factory


async def init_models(engine: AsyncEngine) -> None:
    """Create all tables (and their unique indexes) if they don't exist."""
    # Import for side effects: registers every table on Base.metadata
    import roster.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db(request: Request):
    """
    FastAPI dependency that provides a database session.

    Usage in a route:
        @router.get("/items")
        async def list_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
