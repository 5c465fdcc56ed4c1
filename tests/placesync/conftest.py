"""Shared fixtures wiring the saved-lists components to in-memory feeds."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from placesync.services.saved_lists import SavedListsStore, SessionToken, WriteSerializer
from tests.placesync.support.in_memory_feeds import FIXED_NOW, InMemoryRemote


@pytest.fixture
def remote() -> InMemoryRemote:
    return InMemoryRemote()


@pytest.fixture
def serializer(remote: InMemoryRemote) -> WriteSerializer:
    return WriteSerializer(remote)


@pytest.fixture
def id_factory() -> Callable[[int], str]:
    counter = iter(range(1, 10_000))
    return lambda now: f"list-{next(counter)}"


@pytest.fixture
def store(serializer: WriteSerializer, id_factory: Callable[[int], str]) -> SavedListsStore:
    return SavedListsStore(serializer, clock=lambda: FIXED_NOW, id_factory=id_factory)


@pytest.fixture
def signed_in(store: SavedListsStore) -> SessionToken:
    """Start a session for ``alice`` and hydrate it with an empty document."""

    session = SessionToken.issue("alice")
    store.begin_session(session)
    store.hydrate(session, None)
    return session
