"""
Async SQLAlchemy engine & session factory.

asyncpg in production, aiosqlite for local runs and the test suite.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import (AsyncEngine, AsyncSession,
                                    async_sessionmaker, create_async_engine)
from sqlalchemy.pool import StaticPool

from taskdesk.core.config import settings


def build_engine(url: str) -> AsyncEngine:
    """Create an engine with pool settings suited to the backend in *url*."""
    engine_args: dict = {"echo": False}

    if url.startswith("sqlite"):
        engine_args["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url:
            # one shared connection, otherwise every session sees an empty db
            engine_args["poolclass"] = StaticPool
    else:
        engine_args.update(
            {
                "pool_pre_ping": True,
                "pool_size": 20,
                "max_overflow": 10,
                "pool_recycle": 300,
            }
        )

    return create_async_engine(url, **engine_args)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings.DATABASE_URL)
async_session_factory = build_session_factory(engine)
