"""Logging setup and wiring of the sync engine's collaborators.

``create_runtime`` is the single entry point host applications use::

    runtime = await create_runtime()
    await runtime.sync.switch_account("uid-123")
    aggregator = runtime.new_aggregator()
    ...
    await runtime.aclose()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine

from placesync.cache import CacheClient, close_redis, get_cache_client
from placesync.db.connection import create_engine, create_session_factory, create_tables
from placesync.feeds.sql import SqlRemoteStore
from placesync.services.saved_lists import SavedListsStore, WriteSerializer
from placesync.services.saved_lists_service import SavedListsSyncService
from placesync.services.social_proof import (
    CachedUserDirectory,
    FriendAttributionResolver,
    PlaceSocialProofAggregator,
)
from placesync.settings import AppSettings, get_settings

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(settings: AppSettings | None = None) -> None:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level_numeric, format=LOG_FORMAT)


def _sanitize_database_url(url: str) -> str:
    """Hide the password of a database URL before logging it."""

    if "://" not in url:
        return url
    scheme, rest = url.split("://", 1)
    if "@" not in rest:
        return url
    credentials, host = rest.rsplit("@", 1)
    if ":" in credentials:
        user = credentials.split(":", 1)[0]
        return f"{scheme}://{user}:***@{host}"
    return url


def log_configuration(settings: AppSettings) -> None:
    """Emit configuration warnings and a summary of the resolved backends."""

    warnings = settings.optional_config_warnings()
    if warnings:
        logger.warning("=" * 60)
        logger.warning("Environment Configuration Warnings:")
        for warning in warnings:
            logger.warning("  • %s", warning)
        logger.warning("=" * 60)

    logger.info("Document store: %s", settings.database_type.upper())
    logger.info("Database URL: %s", _sanitize_database_url(settings.resolved_database_url))
    logger.info(
        "Followee sample size: %d, write retries: %d",
        settings.followee_sample_size,
        settings.write_retry_attempts,
    )


@dataclass(slots=True)
class PlaceSyncRuntime:
    """Everything a host application needs, wired from one settings object."""

    settings: AppSettings
    remote: Any
    store: SavedListsStore
    serializer: WriteSerializer
    sync: SavedListsSyncService
    attribution: FriendAttributionResolver
    directory: CachedUserDirectory
    cache: CacheClient
    engine: AsyncEngine | None = None
    _aggregators: list[PlaceSocialProofAggregator] = field(default_factory=list)

    def new_aggregator(self) -> PlaceSocialProofAggregator:
        aggregator = PlaceSocialProofAggregator(
            aggregate_feed=self.remote,
            attribution=self.attribution,
        )
        self._aggregators.append(aggregator)
        return aggregator

    async def aclose(self) -> None:
        """Close aggregators, stop syncing, drain writes and release connections."""

        for aggregator in self._aggregators:
            await aggregator.close()
        self._aggregators.clear()
        await self.sync.close()

        if isinstance(self.remote, SqlRemoteStore):
            await self.remote.aclose()
        if self.engine is not None:
            await self.engine.dispose()
        await close_redis()
        logger.info("placesync runtime closed")


async def create_runtime(
    settings: AppSettings | None = None,
    remote: Any | None = None,
    *,
    cache: CacheClient | None = None,
) -> PlaceSyncRuntime:
    """Build the runtime.

    ``remote`` may be any object implementing the feed protocols in
    :mod:`placesync.feeds.base`; when omitted a :class:`SqlRemoteStore` is
    created on the configured database and its tables are created if missing.
    """

    settings = settings or get_settings()
    log_configuration(settings)

    engine: AsyncEngine | None = None
    if remote is None:
        engine = create_engine(settings)
        await create_tables(engine)
        remote = SqlRemoteStore(create_session_factory(engine))

    if cache is None:
        cache = await get_cache_client()

    serializer = WriteSerializer(
        remote,
        retry_attempts=settings.write_retry_attempts,
        retry_backoff_seconds=settings.write_retry_backoff_seconds,
    )
    store = SavedListsStore(serializer)
    sync = SavedListsSyncService(store=store, profile_feed=remote, serializer=serializer)
    directory = CachedUserDirectory(
        remote, cache, ttl_seconds=settings.label_cache_ttl_seconds
    )
    attribution = FriendAttributionResolver(
        follow_graph=remote,
        save_lookup=remote,
        directory=directory,
        sample_size=settings.followee_sample_size,
    )

    return PlaceSyncRuntime(
        settings=settings,
        remote=remote,
        store=store,
        serializer=serializer,
        sync=sync,
        attribution=attribution,
        directory=directory,
        cache=cache,
        engine=engine,
    )


__all__ = [
    "LOG_FORMAT",
    "PlaceSyncRuntime",
    "configure_logging",
    "create_runtime",
    "log_configuration",
]
