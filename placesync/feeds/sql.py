"""SQLAlchemy-backed implementation of every remote feed contract.

:class:`SqlRemoteStore` plays the part of the document database: it stores one
JSON profile document per account, answers follow-graph and save-record
queries, and fans fresh snapshots out to in-process subscribers.  Realtime
delivery is local to the process; it is meant for single-node deployments,
integration tests and local development.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from placesync.db.models import FollowRow, PlaceStatsRow, PlaceUserSaveRow, ProfileDocumentRow
from placesync.errors import WriteError
from placesync.feeds.channels import Broadcaster, Subscription
from placesync.schemas.lists import ProfileDocument
from placesync.schemas.places import BUCKETS, Bucket, PlaceAggregate, PlaceSaveRecord, UserLabelSource

logger = logging.getLogger(__name__)


class SqlRemoteStore:
    """Implements ``ProfileFeed``, ``ProfileWriter``, ``PlaceAggregateFeed``,
    ``FollowGraph``, ``PlaceSaveLookup`` and ``UserDirectory``."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._profiles: Broadcaster[ProfileDocument | None] = Broadcaster()
        self._aggregates: Broadcaster[PlaceAggregate | None] = Broadcaster()

    # -- Profiles ----------------------------------------------------------------------

    async def subscribe_profile(self, account_id: str) -> Subscription[ProfileDocument | None]:
        subscription = self._profiles.subscribe(account_id)
        try:
            current = await self.load_profile(account_id)
        except SQLAlchemyError:
            subscription.close()
            raise
        subscription.push_initial(current)
        return subscription

    async def load_profile(self, account_id: str) -> ProfileDocument | None:
        async with self._session_factory() as session:
            row = await session.get(ProfileDocumentRow, account_id)
            if row is None:
                return None
            return ProfileDocument.from_remote(row.document)

    async def persist_profile(self, account_id: str, document: ProfileDocument) -> None:
        """Merge ``document`` into the stored profile and broadcast the result."""

        payload = document.to_remote()
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    row = await session.get(ProfileDocumentRow, account_id)
                    if row is None:
                        row = ProfileDocumentRow(account_id=account_id, document=payload)
                        session.add(row)
                    else:
                        row.document = {**(row.document or {}), **payload}
                    merged: dict[str, Any] = dict(row.document)
        except SQLAlchemyError as exc:
            raise WriteError(f"Failed to persist profile for {account_id}: {exc}") from exc

        delivered = self._profiles.publish(account_id, ProfileDocument.from_remote(merged))
        logger.debug(
            "Persisted profile for %s (%d list(s), %d entr(ies)); %d subscriber(s) notified",
            account_id,
            len(document.lists),
            len(document.entries),
            delivered,
        )

    async def upsert_profile_fields(
        self,
        account_id: str,
        *,
        username: str | None = None,
        display_name: str | None = None,
    ) -> None:
        """Set the display fields used to label the account in social proof."""

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    row = await session.get(ProfileDocumentRow, account_id)
                    if row is None:
                        row = ProfileDocumentRow(account_id=account_id, document={})
                        session.add(row)
                    row.username = username
                    row.display_name = display_name
        except SQLAlchemyError as exc:
            raise WriteError(f"Failed to update profile fields for {account_id}: {exc}") from exc

    async def get_display_label(self, account_id: str) -> UserLabelSource | None:
        async with self._session_factory() as session:
            row = await session.get(ProfileDocumentRow, account_id)
            if row is None:
                return None
            return UserLabelSource(username=row.username, display_name=row.display_name)

    # -- Follow graph --------------------------------------------------------------------

    async def follow(self, follower_id: str, followee_id: str) -> None:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    existing = await session.scalar(
                        select(FollowRow.id).where(
                            FollowRow.follower_id == follower_id,
                            FollowRow.followee_id == followee_id,
                        )
                    )
                    if existing is None:
                        session.add(FollowRow(follower_id=follower_id, followee_id=followee_id))
        except SQLAlchemyError as exc:
            raise WriteError(f"Failed to follow {followee_id}: {exc}") from exc

    async def list_followee_ids(self, account_id: str) -> list[str]:
        async with self._session_factory() as session:
            result = await session.scalars(
                select(FollowRow.followee_id)
                .where(FollowRow.follower_id == account_id)
                .order_by(FollowRow.created_at, FollowRow.id)
            )
            return list(result)

    # -- Places ------------------------------------------------------------------------------

    async def subscribe_place_aggregate(
        self, place_key: str
    ) -> Subscription[PlaceAggregate | None]:
        subscription = self._aggregates.subscribe(place_key)
        try:
            current = await self.load_place_aggregate(place_key)
        except SQLAlchemyError:
            subscription.close()
            raise
        subscription.push_initial(current)
        return subscription

    async def load_place_aggregate(self, place_key: str) -> PlaceAggregate | None:
        async with self._session_factory() as session:
            row = await session.get(PlaceStatsRow, place_key)
            if row is None:
                return None
            return PlaceAggregate(
                wishlist_count=row.wishlist_count, favourite_count=row.favourite_count
            )

    async def publish_place_aggregate(self, place_key: str) -> int:
        """Re-read a place's counters and broadcast them to subscribers."""

        aggregate = await self.load_place_aggregate(place_key)
        return self._aggregates.publish(place_key, aggregate)

    async def get_place_save_record(
        self, place_key: str, account_id: str
    ) -> PlaceSaveRecord | None:
        async with self._session_factory() as session:
            row = await session.get(PlaceUserSaveRow, (place_key, account_id))
            if row is None or row.bucket not in BUCKETS:
                return None
            return PlaceSaveRecord(bucket=row.bucket, saved_at=row.saved_at)

    async def record_place_save(
        self,
        place_key: str,
        account_id: str,
        bucket: Bucket | None,
        *,
        saved_at: int = 0,
    ) -> PlaceAggregate:
        """Backend-side bookkeeping for one account's save of a place.

        Upserts (or, for ``bucket=None``, deletes) the save record, recounts the
        place's counters from the save records and broadcasts them.
        """

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    row = await session.get(PlaceUserSaveRow, (place_key, account_id))
                    if bucket is None:
                        if row is not None:
                            await session.delete(row)
                    elif row is None:
                        session.add(
                            PlaceUserSaveRow(
                                place_key=place_key,
                                account_id=account_id,
                                bucket=bucket,
                                saved_at=saved_at,
                            )
                        )
                    else:
                        row.bucket = bucket
                        row.saved_at = saved_at
                    await session.flush()

                    counts = dict(
                        (
                            await session.execute(
                                select(PlaceUserSaveRow.bucket, func.count())
                                .where(PlaceUserSaveRow.place_key == place_key)
                                .group_by(PlaceUserSaveRow.bucket)
                            )
                        ).all()
                    )
                    stats = await session.get(PlaceStatsRow, place_key)
                    if stats is None:
                        stats = PlaceStatsRow(place_key=place_key)
                        session.add(stats)
                    stats.wishlist_count = int(counts.get("wishlist", 0))
                    stats.favourite_count = int(counts.get("favourite", 0))
                    aggregate = PlaceAggregate(
                        wishlist_count=stats.wishlist_count,
                        favourite_count=stats.favourite_count,
                    )
        except SQLAlchemyError as exc:
            raise WriteError(f"Failed to record save of {place_key}: {exc}") from exc

        self._aggregates.publish(place_key, aggregate)
        return aggregate

    async def aclose(self) -> None:
        self._profiles.close_all()
        self._aggregates.close_all()


__all__ = ["SqlRemoteStore"]
