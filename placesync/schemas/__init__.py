"""Pydantic schemas shared across the store, feeds and social-proof layers."""

from .lists import LikedListRef, ListDefinition, ProfileDocument, SavedEntry, Visibility
from .places import (
    BUCKETS,
    Bucket,
    BucketOrNone,
    PlaceAggregate,
    PlacePin,
    PlaceSaveRecord,
    UserLabelSource,
)
from .social_proof import (
    FriendAttribution,
    FriendLabel,
    SocialProofLine,
    SocialProofResult,
    Transition,
)

__all__ = [
    "BUCKETS",
    "Bucket",
    "BucketOrNone",
    "FriendAttribution",
    "FriendLabel",
    "LikedListRef",
    "ListDefinition",
    "PlaceAggregate",
    "PlacePin",
    "PlaceSaveRecord",
    "ProfileDocument",
    "SavedEntry",
    "SocialProofLine",
    "SocialProofResult",
    "Transition",
    "UserLabelSource",
    "Visibility",
]
