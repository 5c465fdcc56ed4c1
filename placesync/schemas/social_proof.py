"""Schemas exchanged between the social-proof aggregator and its callers."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from placesync.schemas.places import Bucket, BucketOrNone


class SocialProofLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Bucket
    text: str


class SocialProofResult(BaseModel):
    """Rendered lines, or a single incentive string when nobody saved the place."""

    model_config = ConfigDict(frozen=True)

    lines: tuple[SocialProofLine, ...] = Field(default_factory=tuple)
    incentive: str | None = None


class FriendLabel(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str


class FriendAttribution(BaseModel):
    """Most recently active followee per bucket."""

    model_config = ConfigDict(frozen=True)

    wishlist_friend: FriendLabel | None = None
    favourite_friend: FriendLabel | None = None

    def label_for(self, bucket: Bucket) -> str | None:
        friend = self.wishlist_friend if bucket == "wishlist" else self.favourite_friend
        return friend.label if friend is not None else None


class Transition(BaseModel):
    """A local change of the viewer's own bucket for a place."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    from_bucket: BucketOrNone = Field("none", alias="from")
    to_bucket: BucketOrNone = Field("none", alias="to")

    def delta_for(self, bucket: Bucket) -> int:
        """Return ``+1``, ``-1`` or ``0`` for the displayed count of ``bucket``."""

        return int(self.to_bucket == bucket) - int(self.from_bucket == bucket)


__all__ = [
    "FriendAttribution",
    "FriendLabel",
    "SocialProofLine",
    "SocialProofResult",
    "Transition",
]
