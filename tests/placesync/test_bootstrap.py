"""End-to-end tests for runtime wiring."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from placesync.bootstrap import LOG_FORMAT, _sanitize_database_url, configure_logging, create_runtime
from placesync.cache import CacheClient
from placesync.feeds.sql import SqlRemoteStore
from placesync.schemas.lists import SavedEntry
from placesync.schemas.places import PlacePin, PlaceSaveRecord, UserLabelSource
from placesync.schemas.social_proof import Transition
from placesync.settings import AppSettings
from tests.placesync.support.in_memory_feeds import InMemoryRemote, flush


def test_sanitize_database_url_hides_password() -> None:
    assert (
        _sanitize_database_url("postgresql+psycopg://app:secret@db:5432/places")
        == "postgresql+psycopg://app:***@db:5432/places"
    )
    assert _sanitize_database_url("sqlite+aiosqlite:///./data/x.db") == "sqlite+aiosqlite:///./data/x.db"


def test_configure_logging_uses_the_configured_level(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[dict[str, object]] = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

    configure_logging(AppSettings(log_level="warning"))

    assert calls == [{"level": logging.WARNING, "format": LOG_FORMAT}]


@pytest.mark.asyncio
async def test_runtime_with_in_memory_remote_syncs_and_renders() -> None:
    remote = InMemoryRemote()
    settings = AppSettings(followee_sample_size=5)
    runtime = await create_runtime(settings, remote, cache=CacheClient(None))
    pin = PlacePin(lat=1.0, lng=2.0, label="Spot", place_id="spot")
    remote.set_aggregate(pin.key, wishlist=1, favourite=0)
    remote.follows["alice"] = ["june"]
    remote.saves[(pin.key, "june")] = PlaceSaveRecord(bucket="wishlist", saved_at=1)
    remote.labels["june"] = UserLabelSource(username="june")

    await runtime.sync.switch_account("alice")
    assert await runtime.sync.wait_until_ready(timeout=1)
    favourites = runtime.store.add_list("Favourites")
    runtime.store.add_entry(
        SavedEntry(list_id=favourites.id, list_name="Favourites", bucket="wishlist", pin=pin, saved_at=1)
    )
    await runtime.serializer.drain()

    aggregator = runtime.new_aggregator()
    await aggregator.open(pin, "alice")
    await flush(30)
    aggregator.begin_transition(Transition(from_bucket="none", to_bucket="wishlist"))

    result = aggregator.render()
    assert result is not None
    assert [line.text for line in result.lines] == ["you and @june"]
    assert runtime.attribution.sample_size == 5
    assert remote.documents["alice"]["lists"][0]["name"] == "Favourites"

    await runtime.aclose()
    assert aggregator.render() is None


@pytest.mark.asyncio
async def test_default_runtime_uses_the_sql_store(tmp_path: Path) -> None:
    pytest.importorskip("aiosqlite")
    settings = AppSettings(database_url=f"sqlite+aiosqlite:///{tmp_path}/nested/places.db")

    runtime = await create_runtime(settings, cache=CacheClient(None))
    assert isinstance(runtime.remote, SqlRemoteStore)

    await runtime.sync.switch_account("alice")
    assert await runtime.sync.wait_until_ready(timeout=1)
    runtime.store.add_list("Coffee")
    await runtime.serializer.drain()

    stored = await runtime.remote.load_profile("alice")
    assert stored is not None and [item.name for item in stored.lists] == ["Coffee"]
    assert (tmp_path / "nested" / "places.db").exists()
    await runtime.aclose()
