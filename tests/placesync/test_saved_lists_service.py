"""Tests for profile hydration and account switching."""

from __future__ import annotations

import asyncio

import pytest

from placesync.errors import NotSignedIn
from placesync.services.saved_lists import SavedListsStore, WriteSerializer
from placesync.services.saved_lists_service import SavedListsSyncService
from tests.placesync.support.in_memory_feeds import InMemoryRemote, flush

ALICE_DOCUMENT = {
    "lists": [{"id": "L1", "name": "Coffee"}],
    "entries": [
        {
            "listId": "L1",
            "listName": "Coffee",
            "bucket": "wishlist",
            "pin": {"lat": 1.0, "lng": 2.0},
            "savedAt": 5,
        }
    ],
}


@pytest.fixture
def service(
    store: SavedListsStore, remote: InMemoryRemote, serializer: WriteSerializer
) -> SavedListsSyncService:
    return SavedListsSyncService(store=store, profile_feed=remote, serializer=serializer)


@pytest.mark.asyncio
async def test_switch_account_hydrates_from_the_stored_document(
    service: SavedListsSyncService, remote: InMemoryRemote
) -> None:
    remote.documents["alice"] = ALICE_DOCUMENT

    session = await service.switch_account("alice")
    assert await service.wait_until_ready(timeout=1)

    snapshot = service.store.snapshot()
    assert session is not None and snapshot.account_id == "alice"
    assert [item.name for item in snapshot.lists] == ["Coffee"]
    assert len(snapshot.entries) == 1
    await service.close()


@pytest.mark.asyncio
async def test_missing_document_hydrates_empty_state(
    service: SavedListsSyncService,
) -> None:
    await service.switch_account("newcomer")

    assert await service.wait_until_ready(timeout=1)
    assert service.store.snapshot().lists == ()
    await service.close()


@pytest.mark.asyncio
async def test_remote_changes_replace_local_state(
    service: SavedListsSyncService, remote: InMemoryRemote
) -> None:
    await service.switch_account("alice")
    await service.wait_until_ready(timeout=1)

    remote.push_profile("alice", ALICE_DOCUMENT)
    await flush()

    assert [item.id for item in service.store.snapshot().lists] == ["L1"]
    await service.close()


@pytest.mark.asyncio
async def test_switching_accounts_ignores_the_old_profile(
    service: SavedListsSyncService, remote: InMemoryRemote
) -> None:
    remote.documents["alice"] = ALICE_DOCUMENT
    await service.switch_account("alice")
    await service.wait_until_ready(timeout=1)

    await service.switch_account("bob")
    await service.wait_until_ready(timeout=1)
    remote.push_profile("alice", {"lists": [{"id": "L2", "name": "Late"}]})
    await flush()

    snapshot = service.store.snapshot()
    assert snapshot.account_id == "bob"
    assert snapshot.lists == ()
    assert remote.profile_subscribers("alice") == 0
    await service.close()


@pytest.mark.asyncio
async def test_pending_alice_write_never_lands_after_switch(
    service: SavedListsSyncService, remote: InMemoryRemote, serializer: WriteSerializer
) -> None:
    await service.switch_account("alice")
    await service.wait_until_ready(timeout=1)
    remote.write_gate = asyncio.Event()

    service.store.add_list("First")
    service.store.add_list("Second")
    await flush()
    await service.switch_account("bob")
    remote.write_gate.set()
    await serializer.drain()

    alice_writes = [document for account, document in remote.writes if account == "alice"]
    assert [[item.name for item in doc.lists] for doc in alice_writes] == [["First"]]
    await service.close()


@pytest.mark.asyncio
async def test_sign_out_clears_state(service: SavedListsSyncService, remote: InMemoryRemote) -> None:
    remote.documents["alice"] = ALICE_DOCUMENT
    await service.switch_account("alice")
    await service.wait_until_ready(timeout=1)

    assert await service.switch_account(None) is None

    snapshot = service.store.snapshot()
    assert snapshot.account_id is None
    assert snapshot.lists == ()
    assert remote.profile_subscribers("alice") == 0


@pytest.mark.asyncio
async def test_own_write_echo_does_not_roll_back_newer_edits(
    service: SavedListsSyncService, remote: InMemoryRemote, serializer: WriteSerializer
) -> None:
    await service.switch_account("alice")
    await service.wait_until_ready(timeout=1)

    service.store.add_list("One")
    service.store.add_list("Two")
    await serializer.drain()
    await flush()

    assert [item.name for item in service.store.snapshot().lists] == ["One", "Two"]
    assert [item.name for item in remote.writes[-1][1].lists] == ["One", "Two"]
    await service.close()


@pytest.mark.asyncio
async def test_close_flushes_writes_then_signs_out(
    service: SavedListsSyncService, remote: InMemoryRemote
) -> None:
    await service.switch_account("alice")
    await service.wait_until_ready(timeout=1)
    service.store.add_list("Kept")

    await service.close()

    assert [item.name for item in remote.writes[-1][1].lists] == ["Kept"]
    assert service.session is None
    assert service.store.snapshot().lists == ()
    assert remote.profile_subscribers("alice") == 0
    with pytest.raises(NotSignedIn):
        service.store.add_list("Late")
