"""Unit tests validating the cache module's error handling and backoff."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import ClassVar
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

import placesync.cache as cache


@pytest.mark.asyncio
async def test_cache_only_catches_redis_errors() -> None:
    """Non-Redis exceptions are not suppressed."""

    mock_redis = MagicMock()
    mock_redis.get = AsyncMock(side_effect=ValueError("Not a Redis error"))
    cache_client = cache.CacheClient(mock_redis)

    with pytest.raises(ValueError):
        await cache_client.get_json("test_key")


@pytest.mark.asyncio
async def test_cache_handles_redis_connection_error() -> None:
    mock_redis = MagicMock()
    mock_redis.get = AsyncMock(side_effect=RedisConnectionError("Connection failed"))
    mock_redis.set = AsyncMock(side_effect=RedisConnectionError("Connection failed"))
    mock_redis.delete = AsyncMock(side_effect=RedisConnectionError("Connection failed"))
    cache_client = cache.CacheClient(mock_redis)

    assert await cache_client.get_json("test_key") is None
    await cache_client.set_json("test_key", {"a": 1})
    await cache_client.delete("test_key")


@pytest.mark.asyncio
async def test_invalid_json_is_a_miss() -> None:
    mock_redis = MagicMock()
    mock_redis.get = AsyncMock(return_value="{not json")

    assert await cache.CacheClient(mock_redis).get_json("key") is None


@dataclass
class _StubRedis:
    """Tiny Redis stand-in that can emulate connection failures for testing."""

    should_fail: bool
    closed: bool = False

    async def ping(self) -> None:
        if self.should_fail:
            raise RedisConnectionError("Redis unavailable for test")

    async def aclose(self) -> None:
        self.closed = True


class _StubRedisFactory:
    """Mimics :meth:`redis.asyncio.Redis.from_url` with queued outcomes."""

    failures: ClassVar[list[bool]] = []
    created_clients: ClassVar[list[_StubRedis]] = []
    on_instantiate: ClassVar[Callable[[], None] | None] = None

    @classmethod
    def from_url(cls, *_: object, **__: object) -> _StubRedis:
        if cls.on_instantiate is not None:
            cls.on_instantiate()
        client = _StubRedis(should_fail=cls.failures.pop(0))
        cls.created_clients.append(client)
        return client


@pytest.mark.asyncio
async def test_get_redis_retries_after_cooldown(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    """Connection attempts resume after the configured cool-down expires."""

    await cache.close_redis()
    monkeypatch.setenv("REDIS_RETRY_BACKOFF_SECONDS", "30")
    _StubRedisFactory.failures = [True, False]
    _StubRedisFactory.created_clients = []
    attempts = {"count": 0}

    def _increment_attempts() -> None:
        attempts["count"] += 1

    _StubRedisFactory.on_instantiate = _increment_attempts
    monkeypatch.setattr(cache, "Redis", _StubRedisFactory)

    current_time = {"value": 0.0}
    monkeypatch.setattr(cache.time, "monotonic", lambda: current_time["value"])
    caplog.set_level(logging.DEBUG)

    assert await cache.get_redis() is None
    assert attempts["count"] == 1
    assert "Caching disabled for 30s" in " ".join(caplog.messages)

    current_time["value"] = 5.0
    assert await cache.get_redis() is None
    assert attempts["count"] == 1

    current_time["value"] = 45.0
    client = await cache.get_redis()
    assert client is _StubRedisFactory.created_clients[-1]
    assert attempts["count"] == 2

    await cache.close_redis()
    assert client.closed is True
    _StubRedisFactory.on_instantiate = None


@pytest.mark.asyncio
async def test_close_redis_clears_backoff(monkeypatch: pytest.MonkeyPatch) -> None:
    await cache.close_redis()
    _StubRedisFactory.failures = [True, False]
    _StubRedisFactory.on_instantiate = None
    monkeypatch.setattr(cache, "Redis", _StubRedisFactory)
    monkeypatch.setattr(cache.time, "monotonic", lambda: 0.0)

    assert await cache.get_redis() is None
    await cache.close_redis()

    assert await cache.get_redis() is not None
    await cache.close_redis()
