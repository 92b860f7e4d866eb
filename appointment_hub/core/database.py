"""Database engine and async session factory."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from appointment_hub.config import get_settings
from appointment_hub.core.models import Base

logger = logging.getLogger(__name__)


def get_database_url() -> str:
    return get_settings().database_url


def create_engine_for_url(url: str) -> AsyncEngine:
    """Create an async engine; SQLite file paths get their directory created."""
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        if parsed.database and parsed.database != ":memory:":
            Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)
        return create_async_engine(url, echo=False)
    return create_async_engine(
        url,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        echo=False,
    )


@lru_cache
def _get_engine() -> AsyncEngine:
    return create_engine_for_url(get_database_url())


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(_get_engine(), class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create all tables (dev only)."""
    engine = engine or _get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready at %s", engine.url.render_as_string(hide_password=True))


async def dispose_engine() -> None:
    if _get_engine.cache_info().currsize:
        await _get_engine().dispose()
