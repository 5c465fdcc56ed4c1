from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError

from placesync.settings import get_settings

logger = logging.getLogger(__name__)

_DEFAULT_TTL_SECONDS = 600
_LABEL_PREFIX = "placesync:label"

_redis_client: Redis | None = None
_client_lock = asyncio.Lock()
_redis_disabled_until: float = 0.0


def _redis_url() -> str:
    return get_settings().redis_url


def _retry_backoff_seconds() -> float:
    return get_settings().redis_retry_backoff_seconds


def display_label_key(account_id: str) -> str:
    return f"{_LABEL_PREFIX}:{account_id}"


def _is_redis_connection_error(exc: BaseException) -> bool:
    """Return ``True`` when ``exc`` represents a Redis connection failure."""

    if isinstance(exc, (RedisConnectionError, ConnectionError, OSError)):
        return True

    error_type = type(exc)
    return error_type.__name__ == "ConnectionError" and error_type.__module__.startswith("redis")


async def get_redis() -> Redis | None:
    """Get the shared Redis client, returning None while connections are failing."""
    global _redis_client, _redis_disabled_until

    if _redis_disabled_until > time.monotonic():
        logger.debug("Redis connection in cool-down after previous failure; skipping attempt.")
        return None

    # Acquire the lock before inspecting the singleton to avoid double initialisation.
    async with _client_lock:
        if _redis_client is not None:
            return _redis_client

        if _redis_disabled_until > time.monotonic():
            return None

        try:
            client = Redis.from_url(_redis_url(), decode_responses=True, encoding="utf-8")
            await client.ping()
        except Exception as exc:  # type: ignore[broad-except]
            if _is_redis_connection_error(exc):
                backoff = _retry_backoff_seconds()
                logger.warning(
                    "Redis connection failed: %s. Caching disabled for %.0fs.", exc, backoff
                )
                _redis_client = None
                _redis_disabled_until = time.monotonic() + backoff
                return None
            raise

        _redis_client = client
        _redis_disabled_until = 0.0
        logger.info("Redis connection established successfully")
        return _redis_client


class CacheClient:
    """JSON helpers over an optional Redis connection.

    Connection failures are logged and treated as cache misses; any other
    error propagates to the caller.
    """

    def __init__(self, redis: Redis | None) -> None:
        self._redis = redis

    @property
    def enabled(self) -> bool:
        return self._redis is not None

    async def get_json(self, key: str) -> Any:
        if self._redis is None:
            return None
        try:
            payload = await self._redis.get(key)
        except Exception as exc:  # type: ignore[broad-except]
            if _is_redis_connection_error(exc):
                logger.debug("Redis get failed for key %s: %s", key, exc)
                return None
            raise
        if payload is None:
            return None
        try:
            return json.loads(payload)
        except json.JSONDecodeError:
            return None

    async def set_json(self, key: str, value: Any, ttl: int | None = None) -> None:
        if self._redis is None:
            return
        encoded = json.dumps(value, default=str)
        if ttl is None:
            ttl = _DEFAULT_TTL_SECONDS
        try:
            await self._redis.set(key, encoded, ex=ttl)
        except Exception as exc:  # type: ignore[broad-except]
            if _is_redis_connection_error(exc):
                logger.debug("Redis set failed for key %s: %s", key, exc)
                return
            raise

    async def delete(self, *keys: str) -> None:
        if self._redis is None or not keys:
            return
        try:
            await self._redis.delete(*keys)
        except Exception as exc:  # type: ignore[broad-except]
            if _is_redis_connection_error(exc):
                logger.debug("Redis delete failed: %s", exc)
                return
            raise


async def get_cache_client() -> CacheClient:
    redis = await get_redis()
    return CacheClient(redis)


async def close_redis() -> None:
    """Close the global Redis connection gracefully."""
    global _redis_client, _redis_disabled_until
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
    _redis_disabled_until = 0.0


__all__ = [
    "CacheClient",
    "close_redis",
    "display_label_key",
    "get_cache_client",
    "get_redis",
]
