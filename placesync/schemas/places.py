"""Pydantic schemas describing places, pins and per-place aggregates."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from placesync.utils.place_keys import place_key, same_place

Bucket = Literal["wishlist", "favourite"]
BucketOrNone = Literal["wishlist", "favourite", "none"]

BUCKETS: tuple[Bucket, ...] = ("wishlist", "favourite")


class PlacePin(BaseModel):
    """A geographic pin selected by the user."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    lat: float = Field(..., ge=-90.0, le=90.0)
    lng: float = Field(..., ge=-180.0, le=180.0)
    label: str = Field("", description="Human readable name captured at save time.")
    place_id: str | None = Field(
        None,
        alias="placeId",
        description="External place identifier; takes precedence over coordinates.",
    )

    @field_validator("label", mode="before")
    @classmethod
    def _coerce_label(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @property
    def key(self) -> str:
        """Stable identity key for the pin."""

        return place_key(self)

    def is_same_place(self, other: PlacePin) -> bool:
        return same_place(self, other)


class PlaceAggregate(BaseModel):
    """Backend-maintained save counters for a single place."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    wishlist_count: int = Field(0, ge=0, alias="wishlistCount")
    favourite_count: int = Field(0, ge=0, alias="favouriteCount")

    @field_validator("wishlist_count", "favourite_count", mode="before")
    @classmethod
    def _coerce_count(cls, value: Any) -> int:
        """Non-numeric or negative counters are read as zero."""

        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return 0
        return max(0, int(value))

    def count_for(self, bucket: Bucket) -> int:
        return self.wishlist_count if bucket == "wishlist" else self.favourite_count


class PlaceSaveRecord(BaseModel):
    """One account's save of a place, as exposed to followers."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    bucket: Bucket
    saved_at: int = Field(0, alias="savedAt", description="Epoch milliseconds.")


class UserLabelSource(BaseModel):
    """Profile fields used to build a display label."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    username: str | None = None
    display_name: str | None = Field(None, alias="displayName")


__all__ = [
    "BUCKETS",
    "Bucket",
    "BucketOrNone",
    "PlaceAggregate",
    "PlacePin",
    "PlaceSaveRecord",
    "UserLabelSource",
]
