"""Keeps :class:`SavedListsStore` hydrated from the signed-in account's profile.

Responsibilities are split the same way as the rest of the saved-lists code:

* :class:`SavedListsStore` owns state and mutations.
* :class:`WriteSerializer` owns outbound writes.
* :class:`SavedListsSyncService` owns the inbound profile subscription and the
  account switch that ties the three together.

Switching accounts closes the previous subscription before a new session is
issued, so a snapshot still in flight for the old account can never hydrate the
new one.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from placesync.feeds.base import ProfileFeed
from placesync.feeds.channels import Subscription
from placesync.schemas.lists import ProfileDocument
from placesync.services.saved_lists import SavedListsStore, SessionToken, WriteSerializer

logger = logging.getLogger(__name__)


class SavedListsSyncService:
    """Orchestrates the profile feed, the store, and the write serializer."""

    def __init__(
        self,
        *,
        store: SavedListsStore,
        profile_feed: ProfileFeed,
        serializer: WriteSerializer,
    ) -> None:
        self._store = store
        self._profile_feed = profile_feed
        self._serializer = serializer
        self._subscription: Subscription[ProfileDocument | None] | None = None
        self._consumer: asyncio.Task[None] | None = None
        self._lock = asyncio.Lock()

    @property
    def store(self) -> SavedListsStore:
        return self._store

    @property
    def session(self) -> SessionToken | None:
        return self._store.session

    async def switch_account(self, account_id: str | None) -> SessionToken | None:
        """Reset the store for ``account_id`` and start following its profile.

        ``None`` signs out: the store is emptied and nothing is subscribed.
        """

        async with self._lock:
            await self._teardown()

            session = SessionToken.issue(account_id) if account_id else None
            self._store.begin_session(session)
            if session is None:
                return None

            subscription = await self._profile_feed.subscribe_profile(session.account_id)
            self._subscription = subscription
            self._consumer = asyncio.create_task(
                self._consume(session, subscription),
                name=f"profile-feed:{session.account_id}",
            )
            logger.info("Following profile of %s", session.account_id)
            return session

    async def wait_until_ready(self, timeout: float | None = None) -> bool:
        """Wait for the first snapshot of the current session."""

        if self._store.ready:
            return True
        ready = asyncio.Event()
        unsubscribe = self._store.subscribe(
            lambda snapshot: ready.set() if snapshot.ready else None
        )
        try:
            if self._store.ready:
                return True
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(ready.wait(), timeout)
            return self._store.ready
        finally:
            unsubscribe()

    async def close(self) -> None:
        """Stop following the current profile, drain outstanding writes and sign out."""

        async with self._lock:
            await self._teardown()
            await self._serializer.drain()
            self._store.begin_session(None)

    async def _teardown(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        if self._consumer is not None:
            self._consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._consumer
            self._consumer = None

    async def _consume(
        self,
        session: SessionToken,
        subscription: Subscription[ProfileDocument | None],
    ) -> None:
        async for document in subscription:
            if self._store.ready and self._serializer.pending(session.account_id):
                # Local state already reflects writes that have not landed yet.
                logger.debug(
                    "Skipping profile snapshot for %s while writes are pending",
                    session.account_id,
                )
                continue
            self._store.hydrate(session, document)
        logger.debug("Profile feed for %s closed", session.account_id)


__all__ = ["SavedListsSyncService"]
