"""Async SQLAlchemy engine and session factory.

Learn: The engine is built from a Settings object by whoever owns the
process: create_app() parks one on app.state, the CLI builds its own for
the length of a command. get_db reads the session factory off the app, so
an app created with a different database_url really talks to that database.
"""

from collections.abc import AsyncIterator

from fastapi import Request
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine; echo=True logs every SQL statement."""
    kwargs = {}
    # SQLite pools don't take queue sizing
    if make_url(database_url).get_backend_name() != "sqlite":
        kwargs.update(pool_size=5, max_overflow=15)
    return create_async_engine(database_url, echo=echo, **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: one session per request from the app's factory."""
    async with request.app.state.session_factory() as session:
        yield session
