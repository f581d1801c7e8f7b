"""Async engine, session factory and the per-request transaction."""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, StaticPool

from schoolpay.config import settings


def _engine_options() -> dict[str, Any]:
    """Pool options for the configured database."""
    options: dict[str, Any] = {"echo": settings.app_debug}

    if settings.uses_sqlite:
        # One shared connection, or each session would see its own in-memory database
        options.update(poolclass=StaticPool, connect_args={"check_same_thread": False})
    elif settings.is_development:
        options.update(poolclass=NullPool)
    else:
        options.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_pre_ping=True,
        )
    return options


engine = create_async_engine(settings.async_database_url, **_engine_options())

# Objects stay readable after commit so responses can be built from them
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a session whose transaction spans the whole request.

    Committed when the endpoint returns, rolled back when anything raises,
    so a versioning operation that wrote only some of its rows leaves
    nothing behind.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def close_db() -> None:
    """Dispose of the engine's pooled connections."""
    await engine.dispose()
