from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from placesync.db.models import Base
from placesync.settings import AppSettings, get_settings

logger = logging.getLogger(__name__)


def _ensure_sqlite_directory(url: str) -> None:
    database = make_url(url).database
    if database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)


def create_engine(settings: AppSettings | None = None) -> AsyncEngine:
    """Create the async engine for the configured document store.

    PostgreSQL gets a warm connection pool; SQLite (the local default) uses
    SQLAlchemy's defaults because pooling options do not apply to it.
    """

    settings = settings or get_settings()
    url = settings.resolved_database_url

    if settings.database_type == "sqlite":
        _ensure_sqlite_directory(url)
        engine = create_async_engine(url, future=True, echo=False)
    else:
        engine = create_async_engine(
            url,
            future=True,
            echo=False,
            pool_size=10,
            max_overflow=20,
            pool_pre_ping=True,
            pool_recycle=1800,
            pool_timeout=30,
        )

    logger.info("Created %s engine for the document store", settings.database_type)
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def create_tables(engine: AsyncEngine) -> None:
    """Create any missing tables; existing tables are left untouched."""

    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)


__all__ = [
    "create_engine",
    "create_session_factory",
    "create_tables",
]
