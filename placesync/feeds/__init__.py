"""Remote feed contracts, subscription channels and the SQL reference adapter."""

from .base import (
    FollowGraph,
    PlaceAggregateFeed,
    PlaceSaveLookup,
    ProfileFeed,
    ProfileWriter,
    UserDirectory,
)
from .channels import Broadcaster, Subscription

__all__ = [
    "Broadcaster",
    "FollowGraph",
    "PlaceAggregateFeed",
    "PlaceSaveLookup",
    "ProfileFeed",
    "ProfileWriter",
    "Subscription",
    "UserDirectory",
]
