"""SQLAlchemy persistence for the reference remote store."""

from .models import Base, FollowRow, PlaceStatsRow, PlaceUserSaveRow, ProfileDocumentRow

__all__ = [
    "Base",
    "FollowRow",
    "PlaceStatsRow",
    "PlaceUserSaveRow",
    "ProfileDocumentRow",
]
