"""Pick the followee to name on each social-proof line."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from placesync.feeds.base import FollowGraph, PlaceSaveLookup, UserDirectory
from placesync.schemas.places import Bucket, PlaceSaveRecord, UserLabelSource
from placesync.schemas.social_proof import FriendAttribution, FriendLabel
from placesync.settings import DEFAULT_FOLLOWEE_SAMPLE_SIZE

logger = logging.getLogger(__name__)

FALLBACK_LABEL = "Someone"


@dataclass(frozen=True, slots=True)
class SaveCandidate:
    account_id: str
    saved_at: int


def pick_latest(candidates: Sequence[SaveCandidate]) -> str | None:
    """Return the most recent saver; ties keep the earliest candidate."""

    if not candidates:
        return None
    return max(candidates, key=lambda candidate: candidate.saved_at).account_id


def format_user_label(source: UserLabelSource | None) -> str:
    if source is None:
        return FALLBACK_LABEL
    if source.username:
        return f"@{source.username}"
    if source.display_name:
        return source.display_name
    return FALLBACK_LABEL


@dataclass(slots=True)
class FriendAttributionResolver:
    """Resolve the most recently active followee per bucket for one place.

    Only the first ``sample_size`` followees are checked.  Save records are
    fetched concurrently; a record that fails to load counts as "not saved".
    Any other failure degrades the whole result to "no friend labels".
    """

    follow_graph: FollowGraph
    save_lookup: PlaceSaveLookup
    directory: UserDirectory
    sample_size: int = DEFAULT_FOLLOWEE_SAMPLE_SIZE

    async def resolve(self, viewer_id: str | None, place_key: str) -> FriendAttribution:
        if not viewer_id:
            return FriendAttribution()
        try:
            return await self._resolve(viewer_id, place_key)
        except Exception as exc:  # type: ignore[broad-except]
            logger.warning("Failed to load place engagement for %s: %s", place_key, exc)
            return FriendAttribution()

    async def _resolve(self, viewer_id: str, place_key: str) -> FriendAttribution:
        followee_ids = [
            followee_id
            for followee_id in await self.follow_graph.list_followee_ids(viewer_id)
            if followee_id
        ]
        if not followee_ids:
            return FriendAttribution()

        sampled = followee_ids[: max(0, self.sample_size)]
        records = await asyncio.gather(
            *(self._load_record(place_key, followee_id) for followee_id in sampled)
        )

        candidates: dict[Bucket, list[SaveCandidate]] = {"wishlist": [], "favourite": []}
        for followee_id, record in zip(sampled, records):
            if record is None:
                continue
            candidates[record.bucket].append(SaveCandidate(followee_id, record.saved_at))

        top_wishlist = pick_latest(candidates["wishlist"])
        top_favourite = pick_latest(candidates["favourite"])
        winners = list(dict.fromkeys(i for i in (top_wishlist, top_favourite) if i))
        labels = dict(
            zip(
                winners,
                await asyncio.gather(*(self._load_label(account_id) for account_id in winners)),
            )
        )

        return FriendAttribution(
            wishlist_friend=(
                FriendLabel(id=top_wishlist, label=labels[top_wishlist]) if top_wishlist else None
            ),
            favourite_friend=(
                FriendLabel(id=top_favourite, label=labels[top_favourite])
                if top_favourite
                else None
            ),
        )

    async def _load_record(self, place_key: str, account_id: str) -> PlaceSaveRecord | None:
        try:
            return await self.save_lookup.get_place_save_record(place_key, account_id)
        except Exception as exc:  # type: ignore[broad-except]
            logger.debug("Save record for %s at %s unavailable: %s", account_id, place_key, exc)
            return None

    async def _load_label(self, account_id: str) -> str:
        return format_user_label(await self.directory.get_display_label(account_id))


__all__ = [
    "FALLBACK_LABEL",
    "FriendAttributionResolver",
    "SaveCandidate",
    "format_user_label",
    "pick_latest",
]
