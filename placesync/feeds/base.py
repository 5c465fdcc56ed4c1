"""Contracts for the remote collaborators consumed by the sync engine.

The engine never talks to a concrete backend directly.  Each concern is a
small :class:`typing.Protocol` so tests can supply in-memory doubles and
deployments can plug in any document store.  :mod:`placesync.feeds.sql`
provides a SQLAlchemy-backed implementation of all of them.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from placesync.feeds.channels import Subscription
from placesync.schemas.lists import ProfileDocument
from placesync.schemas.places import PlaceAggregate, PlaceSaveRecord, UserLabelSource


@runtime_checkable
class ProfileFeed(Protocol):
    """Realtime subscription to an account's profile document."""

    async def subscribe_profile(
        self, account_id: str
    ) -> Subscription[ProfileDocument | None]:
        """Return a channel yielding the current document, then every change.

        ``None`` is delivered when the account has no stored document.
        """
        ...


@runtime_checkable
class ProfileWriter(Protocol):
    """Write primitive with merge semantics for a whole profile document."""

    async def persist_profile(self, account_id: str, document: ProfileDocument) -> None:
        """Persist ``document``; raise :class:`placesync.errors.WriteError` on failure."""
        ...


@runtime_checkable
class PlaceAggregateFeed(Protocol):
    """Realtime subscription to a place's backend-maintained counters."""

    async def subscribe_place_aggregate(
        self, place_key: str
    ) -> Subscription[PlaceAggregate | None]:
        ...


@runtime_checkable
class FollowGraph(Protocol):
    async def list_followee_ids(self, account_id: str) -> list[str]:
        """Return ids of the accounts ``account_id`` follows."""
        ...


@runtime_checkable
class PlaceSaveLookup(Protocol):
    async def get_place_save_record(
        self, place_key: str, account_id: str
    ) -> PlaceSaveRecord | None:
        """Return ``account_id``'s save record for the place, if any."""
        ...


@runtime_checkable
class UserDirectory(Protocol):
    async def get_display_label(self, account_id: str) -> UserLabelSource | None:
        ...


__all__ = [
    "FollowGraph",
    "PlaceAggregateFeed",
    "PlaceSaveLookup",
    "ProfileFeed",
    "ProfileWriter",
    "UserDirectory",
]
