"""Read-only access to the commerce platform database.

The platform owns the schema and writes the data. Connections made through
asyncpg open every transaction read-only and carry a statement timeout, so a
runaway analytics query cannot hold locks or exhaust the pool.
"""

from collections.abc import AsyncGenerator
from functools import lru_cache
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from commerce_insights.core.config import Settings, get_settings


class Base(DeclarativeBase):
    """Declarative base for the mapped platform tables."""


def connect_args(settings: Settings) -> dict[str, Any]:
    """Driver arguments for the configured database URL.

    Only asyncpg understands ``server_settings``; other drivers get none.
    """
    if make_url(settings.database_url).get_driver_name() != "asyncpg":
        return {}
    return {
        "server_settings": {
            "application_name": settings.app_name,
            "default_transaction_read_only": "on",
            "statement_timeout": str(settings.database_statement_timeout_ms),
        }
    }


@lru_cache
def get_engine() -> AsyncEngine:
    settings = get_settings()
    return create_async_engine(
        settings.database_url,
        echo=settings.debug,
        pool_pre_ping=True,
        pool_size=settings.database_pool_size,
        connect_args=connect_args(settings),
    )


@lru_cache
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(get_engine(), expire_on_commit=False, autoflush=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session; rolled back on exit, never committed."""
    async with get_session_maker()() as session:
        try:
            yield session
        finally:
            await session.rollback()


async def dispose_engine() -> None:
    """Close pooled connections if an engine was ever created."""
    if get_engine.cache_info().currsize:
        await get_engine().dispose()
        get_engine.cache_clear()
        get_session_maker.cache_clear()
