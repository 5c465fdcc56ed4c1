"""Caching wrapper around a :class:`UserDirectory`."""

from __future__ import annotations

import logging

from placesync.cache import CacheClient, display_label_key
from placesync.feeds.base import UserDirectory
from placesync.schemas.places import UserLabelSource
from placesync.settings import DEFAULT_LABEL_CACHE_TTL_SECONDS

logger = logging.getLogger(__name__)


class CachedUserDirectory:
    """Serve display labels from Redis before asking the wrapped directory.

    Only found profiles are cached; unknown accounts are looked up again on the
    next request.  When the cache client has no connection this is a plain
    pass-through.
    """

    def __init__(
        self,
        directory: UserDirectory,
        cache: CacheClient,
        *,
        ttl_seconds: int = DEFAULT_LABEL_CACHE_TTL_SECONDS,
    ) -> None:
        self._directory = directory
        self._cache = cache
        self._ttl_seconds = ttl_seconds

    async def get_display_label(self, account_id: str) -> UserLabelSource | None:
        cache_key = display_label_key(account_id)
        cached = await self._cache.get_json(cache_key)
        if isinstance(cached, dict):
            return UserLabelSource.model_validate(cached)

        source = await self._directory.get_display_label(account_id)
        if source is not None:
            await self._cache.set_json(
                cache_key, source.model_dump(by_alias=True), ttl=self._ttl_seconds
            )
        return source

    async def invalidate(self, account_id: str) -> None:
        """Forget the cached label after the account edits its profile."""

        await self._cache.delete(display_label_key(account_id))
        logger.debug("Invalidated cached display label for %s", account_id)


__all__ = ["CachedUserDirectory"]
