"""Async SQLAlchemy session factory helpers."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine


def create_session_factory(
    database_url: str,
    *,
    pre_ping: bool = True,
) -> async_sessionmaker[AsyncSession]:
    """Create a reusable async session factory for the provided database URL.

    Each call of the returned factory opens an independent session; pooled
    connections are pinged on checkout so stale ones are replaced instead of
    failing the lookup.
    """

    engine = create_async_engine(database_url, pool_pre_ping=pre_ping)
    return async_sessionmaker(engine, expire_on_commit=False)


async def dispose_session_factory(session_factory: async_sessionmaker[AsyncSession]) -> None:
    """Close pooled connections of the engine bound to the factory."""

    engine = session_factory.kw["bind"]
    await engine.dispose()
