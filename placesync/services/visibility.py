"""Who may see which lists of another account's profile."""

from __future__ import annotations

from dataclasses import dataclass

from placesync.schemas.lists import (
    LikedListRef,
    ListDefinition,
    ProfileDocument,
    SavedEntry,
    Visibility,
)


@dataclass(frozen=True, slots=True)
class ViewerRelationship:
    """How the viewer relates to the owner of the document being read."""

    is_self: bool = False
    is_follower: bool = False


def can_view(visibility: Visibility | str | None, viewer: ViewerRelationship) -> bool:
    """Return whether ``viewer`` may read a list with ``visibility``.

    Missing visibility predates the setting and is public.  Values that are not
    a known visibility are treated as private.
    """

    if visibility is None:
        return True
    try:
        resolved = Visibility(visibility)
    except ValueError:
        resolved = Visibility.PRIVATE

    if resolved is Visibility.PUBLIC:
        return True
    if resolved is Visibility.FOLLOWERS:
        return viewer.is_self or viewer.is_follower
    return viewer.is_self


@dataclass(frozen=True, slots=True)
class GroupedList:
    definition: ListDefinition
    wishlist: tuple[SavedEntry, ...] = ()
    favourite: tuple[SavedEntry, ...] = ()

    @property
    def total(self) -> int:
        return len(self.wishlist) + len(self.favourite)

    def to_liked_ref(
        self,
        owner_id: str,
        *,
        owner_display_name: str | None = None,
        owner_username: str | None = None,
    ) -> LikedListRef:
        """Snapshot this list as the cached copy stored when a viewer likes it."""

        return LikedListRef(
            owner_id=owner_id,
            owner_display_name=owner_display_name,
            owner_username=owner_username,
            list_id=self.definition.id,
            list_name=self.definition.name,
            description=self.definition.description,
            wishlist=self.wishlist,
            favourite=self.favourite,
        )


@dataclass(frozen=True, slots=True)
class ProfileView:
    """What a viewer is allowed to see of a profile document."""

    lists: tuple[GroupedList, ...] = ()
    liked_lists: tuple[LikedListRef, ...] = ()
    show_liked_lists: bool = False


def build_profile_view(
    document: ProfileDocument | None, viewer: ViewerRelationship
) -> ProfileView:
    document = document or ProfileDocument()

    entries_by_list: dict[str, list[SavedEntry]] = {}
    for entry in document.entries:
        entries_by_list.setdefault(entry.list_id, []).append(entry)

    grouped: list[GroupedList] = []
    for definition in document.lists:
        if not can_view(definition.visibility, viewer):
            continue
        related = entries_by_list.get(definition.id, [])
        grouped.append(
            GroupedList(
                definition=definition,
                wishlist=tuple(entry for entry in related if entry.bucket == "wishlist"),
                favourite=tuple(entry for entry in related if entry.bucket == "favourite"),
            )
        )

    show_liked = bool(document.liked_lists) and (
        viewer.is_self or document.liked_lists_visible
    )
    return ProfileView(
        lists=tuple(grouped),
        liked_lists=document.liked_lists if show_liked else (),
        show_liked_lists=show_liked,
    )


__all__ = [
    "GroupedList",
    "ProfileView",
    "ViewerRelationship",
    "build_profile_view",
    "can_view",
]
