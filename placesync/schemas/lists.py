"""Pydantic schemas for saved lists and the account-scoped profile document."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as SchemaValidationError

from placesync.schemas.places import Bucket, PlacePin

logger = logging.getLogger(__name__)


class Visibility(str, Enum):
    """Who may read a list owned by another account."""

    PUBLIC = "public"
    FOLLOWERS = "followers"
    PRIVATE = "private"


class ListDefinition(BaseModel):
    """A named list owned by exactly one account."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str | None = None
    cover_image: str | None = Field(None, alias="coverImage")
    visibility: Visibility | None = Field(
        None,
        description="Absent for documents written before visibility existed; read as public.",
    )

    @field_validator("visibility", mode="before")
    @classmethod
    def _unknown_visibility_is_private(cls, value: Any) -> Any:
        if value is None or isinstance(value, Visibility):
            return value
        try:
            return Visibility(str(value).strip().lower())
        except ValueError:
            return Visibility.PRIVATE


class SavedEntry(BaseModel):
    """A pin saved into one list under one bucket."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    list_id: str = Field(..., alias="listId", min_length=1)
    list_name: str = Field(
        "",
        alias="listName",
        description="Copy of the list name at save time; may drift from the live name.",
    )
    bucket: Bucket
    pin: PlacePin
    saved_at: int = Field(..., alias="savedAt", description="Epoch milliseconds.")

    def matches(self, list_id: str, pin: PlacePin) -> bool:
        """Return ``True`` for the same ``(list, place identity)`` pair."""

        return self.list_id == list_id and self.pin.is_same_place(pin)


class LikedListRef(BaseModel):
    """Read-only cached copy of another account's list the viewer starred."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    owner_id: str = Field(..., alias="ownerId", min_length=1)
    owner_display_name: str | None = Field(None, alias="ownerDisplayName")
    owner_username: str | None = Field(None, alias="ownerUsername")
    list_id: str = Field(..., alias="listId", min_length=1)
    list_name: str = Field("", alias="listName")
    description: str | None = None
    wishlist: tuple[SavedEntry, ...] = Field(default_factory=tuple)
    favourite: tuple[SavedEntry, ...] = Field(default_factory=tuple)

    @property
    def ref_key(self) -> tuple[str, str]:
        return (self.owner_id, self.list_id)


class ProfileDocument(BaseModel):
    """The unit of remote persistence: always read and written whole."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    lists: tuple[ListDefinition, ...] = Field(default_factory=tuple)
    entries: tuple[SavedEntry, ...] = Field(default_factory=tuple)
    liked_lists: tuple[LikedListRef, ...] = Field(default_factory=tuple, alias="likedLists")
    liked_lists_visible: bool = Field(True, alias="likedListsVisible")

    @field_validator("liked_lists_visible", mode="before")
    @classmethod
    def _visible_unless_false(cls, value: Any) -> bool:
        return value is not False

    @classmethod
    def from_remote(cls, payload: Mapping[str, Any] | None) -> ProfileDocument:
        """Build a document from loosely typed remote data.

        Arrays that are not lists become empty and malformed items are dropped
        so a single bad entry never blocks hydration of the rest.
        """

        if not payload:
            return cls()

        return cls(
            lists=_parse_items(ListDefinition, payload.get("lists")),
            entries=_parse_items(SavedEntry, payload.get("entries")),
            liked_lists=_parse_items(LikedListRef, payload.get("likedLists")),
            liked_lists_visible=payload.get("likedListsVisible", True),
        )

    def to_remote(self) -> dict[str, Any]:
        """Serialise the document in the remote camelCase shape."""

        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def _parse_items(model: type[BaseModel], raw: Any) -> tuple[Any, ...]:
    if not isinstance(raw, list):
        return ()

    parsed: list[Any] = []
    for item in raw:
        try:
            parsed.append(model.model_validate(item))
        except SchemaValidationError as exc:
            logger.warning(
                "Dropping malformed %s from profile document: %s",
                model.__name__,
                exc.errors()[0]["msg"] if exc.errors() else exc,
            )
    return tuple(parsed)


__all__ = [
    "LikedListRef",
    "ListDefinition",
    "ProfileDocument",
    "SavedEntry",
    "Visibility",
]
