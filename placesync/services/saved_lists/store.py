"""In-memory, optimistic store for the signed-in account's saved lists."""

from __future__ import annotations

import logging
import secrets
import string
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field

from placesync.errors import NotSignedIn, ValidationError
from placesync.schemas.lists import (
    LikedListRef,
    ListDefinition,
    ProfileDocument,
    SavedEntry,
    Visibility,
)
from placesync.schemas.places import Bucket, BucketOrNone, PlacePin
from placesync.services.saved_lists.serializer import WriteSerializer
from placesync.services.saved_lists.session import SessionToken

logger = logging.getLogger(__name__)

_BASE36_ALPHABET = string.digits + string.ascii_lowercase
_LIST_ID_SUFFIX_LENGTH = 6


def _now_millis() -> int:
    return int(time.time() * 1000)


def _to_base36(value: int) -> str:
    if value <= 0:
        return "0"
    digits: list[str] = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_list_id(now_millis: int) -> str:
    """Return ``"<base36 millis>-<random suffix>"``."""

    suffix = "".join(secrets.choice(_BASE36_ALPHABET) for _ in range(_LIST_ID_SUFFIX_LENGTH))
    return f"{_to_base36(now_millis)}-{suffix}"


@dataclass(frozen=True, slots=True)
class SavedListsSnapshot:
    """Immutable view of the store handed to readers and listeners."""

    account_id: str | None = None
    ready: bool = False
    lists: tuple[ListDefinition, ...] = ()
    entries: tuple[SavedEntry, ...] = ()
    liked_lists: tuple[LikedListRef, ...] = ()
    liked_lists_visible: bool = True

    def document(self) -> ProfileDocument:
        return ProfileDocument(
            lists=self.lists,
            entries=self.entries,
            liked_lists=self.liked_lists,
            liked_lists_visible=self.liked_lists_visible,
        )


SnapshotListener = Callable[[SavedListsSnapshot], None]


@dataclass(slots=True)
class _State:
    lists: tuple[ListDefinition, ...] = ()
    entries: tuple[SavedEntry, ...] = ()
    liked_lists: tuple[LikedListRef, ...] = ()
    liked_lists_visible: bool = True
    listeners: list[SnapshotListener] = field(default_factory=list)


class SavedListsStore:
    """Owns the canonical lists, entries and liked lists of the active session.

    Every mutator runs synchronously: local state changes immediately, change
    listeners fire, and a full-document write is handed to the
    :class:`WriteSerializer` tagged with the session active at mutation time.
    Writes are suppressed until the first :meth:`hydrate` so an empty local
    default never overwrites the stored document.  Mutators must be called
    from a running event loop.
    """

    def __init__(
        self,
        serializer: WriteSerializer,
        *,
        clock: Callable[[], int] = _now_millis,
        id_factory: Callable[[int], str] = generate_list_id,
    ) -> None:
        self._serializer = serializer
        self._clock = clock
        self._id_factory = id_factory
        self._session: SessionToken | None = None
        self._ready = False
        self._state = _State()

    # -- Session lifecycle -------------------------------------------------------

    @property
    def session(self) -> SessionToken | None:
        return self._session

    @property
    def ready(self) -> bool:
        return self._ready

    def begin_session(self, session: SessionToken | None) -> None:
        """Discard all state and start over for ``session`` (``None`` = signed out)."""

        listeners = self._state.listeners
        self._session = session
        self._ready = False
        self._state = _State(listeners=listeners)
        self._serializer.activate(session)
        logger.info(
            "Saved lists session started for %s",
            session.account_id if session else "<signed out>",
        )
        self._notify()

    def hydrate(self, session: SessionToken, document: ProfileDocument | None) -> bool:
        """Replace local state wholesale with a remote snapshot.

        Returns ``False`` (and changes nothing) when ``session`` is no longer
        the active session.
        """

        if session != self._session:
            logger.debug("Ignoring profile snapshot for inactive session %s", session.account_id)
            return False

        document = document or ProfileDocument()
        self._state.lists = document.lists
        self._state.entries = document.entries
        self._state.liked_lists = document.liked_lists
        self._state.liked_lists_visible = document.liked_lists_visible
        if not self._ready:
            logger.info(
                "Hydrated saved lists for %s: %d list(s), %d entr(ies)",
                session.account_id,
                len(document.lists),
                len(document.entries),
            )
        self._ready = True
        self._notify()
        return True

    # -- Reads ---------------------------------------------------------------------

    def snapshot(self) -> SavedListsSnapshot:
        return SavedListsSnapshot(
            account_id=self._session.account_id if self._session else None,
            ready=self._ready,
            lists=self._state.lists,
            entries=self._state.entries,
            liked_lists=self._state.liked_lists,
            liked_lists_visible=self._state.liked_lists_visible,
        )

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register ``listener`` for every state change; returns an unsubscribe callable."""

        self._state.listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._state.listeners:
                self._state.listeners.remove(listener)

        return unsubscribe

    def get_list(self, list_id: str) -> ListDefinition | None:
        return next((item for item in self._state.lists if item.id == list_id), None)

    def entries_for_list(self, list_id: str) -> list[SavedEntry]:
        return [entry for entry in self._state.entries if entry.list_id == list_id]

    def bucket_for(self, pin: PlacePin) -> Bucket | None:
        """Return the viewer's own bucket for ``pin`` across all lists."""

        buckets = {entry.bucket for entry in self._state.entries if entry.pin.is_same_place(pin)}
        if "favourite" in buckets:
            return "favourite"
        if "wishlist" in buckets:
            return "wishlist"
        return None

    # -- Entry mutations -------------------------------------------------------------

    def add_entry(self, entry: SavedEntry) -> SavedEntry:
        """Save ``entry``, replacing any entry for the same list and place."""

        self._require_session()
        remaining = [
            existing
            for existing in self._state.entries
            if not existing.matches(entry.list_id, entry.pin)
        ]
        self._commit(entries=(*remaining, entry))
        return entry

    def remove_entry(self, list_id: str, pin: PlacePin) -> bool:
        """Remove the entry for ``(list_id, pin)``; absent entries are a no-op."""

        self._require_session()
        remaining = tuple(
            existing for existing in self._state.entries if not existing.matches(list_id, pin)
        )
        if len(remaining) == len(self._state.entries):
            return False
        self._commit(entries=remaining)
        return True

    def apply_bucket_changes(
        self,
        pin: PlacePin,
        initial: Mapping[str, BucketOrNone],
        pending: Mapping[str, BucketOrNone],
    ) -> int:
        """Apply the per-list bucket choices made for one place in a single write.

        Lists whose pending bucket equals the initial bucket are untouched;
        ``"none"`` removes the entry, any other bucket saves it with
        ``saved_at = now + list index`` so the ordering of the batch is kept.
        Returns the number of lists changed.
        """

        self._require_session()
        timestamp = self._clock()
        entries = list(self._state.entries)
        changed = 0
        for index, definition in enumerate(self._state.lists):
            before = initial.get(definition.id, "none")
            after = pending.get(definition.id, "none")
            if before == after:
                continue
            entries = [existing for existing in entries if not existing.matches(definition.id, pin)]
            if after != "none":
                entries.append(
                    SavedEntry(
                        list_id=definition.id,
                        list_name=definition.name,
                        bucket=after,
                        pin=pin,
                        saved_at=timestamp + index,
                    )
                )
            changed += 1

        if changed:
            self._commit(entries=tuple(entries))
        return changed

    # -- List mutations ------------------------------------------------------------------

    def add_list(
        self,
        name: str,
        visibility: Visibility | None = Visibility.PUBLIC,
        *,
        description: str | None = None,
        cover_image: str | None = None,
    ) -> ListDefinition:
        """Create a list locally and return it immediately."""

        self._require_session()
        trimmed = self._validate_name(name)
        existing_ids = {item.id for item in self._state.lists}
        now = self._clock()
        list_id = self._id_factory(now)
        while list_id in existing_ids:
            list_id = self._id_factory(now)

        definition = ListDefinition(
            id=list_id,
            name=trimmed,
            description=description,
            cover_image=cover_image,
            visibility=visibility,
        )
        self._commit(lists=(*self._state.lists, definition))
        return definition

    def update_list(
        self,
        list_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        cover_image: str | None = None,
        visibility: Visibility | None = None,
    ) -> ListDefinition:
        """Edit a list definition; fields left as ``None`` keep their value."""

        self._require_session()
        current = self.get_list(list_id)
        if current is None:
            raise LookupError(f"List {list_id} not found")

        changes: dict[str, object] = {}
        if name is not None:
            trimmed = self._validate_name(name, ignore_id=list_id)
            if trimmed != current.name:
                changes["name"] = trimmed
        if description is not None and description != current.description:
            changes["description"] = description
        if cover_image is not None and cover_image != current.cover_image:
            changes["cover_image"] = cover_image
        if visibility is not None and visibility != current.visibility:
            changes["visibility"] = visibility
        if not changes:
            return current

        updated = current.model_copy(update=changes)
        self._commit(
            lists=tuple(updated if item.id == list_id else item for item in self._state.lists)
        )
        return updated

    def remove_list(self, list_id: str) -> bool:
        """Delete a list together with every entry that references it."""

        self._require_session()
        lists = tuple(item for item in self._state.lists if item.id != list_id)
        entries = tuple(entry for entry in self._state.entries if entry.list_id != list_id)
        if len(lists) == len(self._state.lists) and len(entries) == len(self._state.entries):
            return False
        self._commit(lists=lists, entries=entries)
        return True

    # -- Liked lists -----------------------------------------------------------------------

    def like_list(self, ref: LikedListRef) -> bool:
        """Star another account's list; repeating an identical like is a no-op."""

        self._require_session()
        existing = next(
            (item for item in self._state.liked_lists if item.ref_key == ref.ref_key), None
        )
        if existing == ref:
            return False
        if existing is None:
            liked = (*self._state.liked_lists, ref)
        else:
            liked = tuple(ref if item.ref_key == ref.ref_key else item for item in self._state.liked_lists)
        self._commit(liked_lists=liked)
        return True

    def unlike_list(self, owner_id: str, list_id: str) -> bool:
        self._require_session()
        liked = tuple(
            item for item in self._state.liked_lists if item.ref_key != (owner_id, list_id)
        )
        if len(liked) == len(self._state.liked_lists):
            return False
        self._commit(liked_lists=liked)
        return True

    def set_liked_lists_visibility(self, visible: bool) -> bool:
        self._require_session()
        if bool(visible) == self._state.liked_lists_visible:
            return False
        self._commit(liked_lists_visible=bool(visible))
        return True

    # -- Internals -------------------------------------------------------------------------

    def _require_session(self) -> SessionToken:
        if self._session is None:
            raise NotSignedIn("Sign in to change saved lists")
        return self._session

    def _validate_name(self, name: str, *, ignore_id: str | None = None) -> str:
        trimmed = (name or "").strip()
        if not trimmed:
            raise ValidationError("List name must not be empty")
        lowered = trimmed.lower()
        if any(
            item.name.lower() == lowered for item in self._state.lists if item.id != ignore_id
        ):
            raise ValidationError("You already have a list with that name.")
        return trimmed

    def _commit(
        self,
        *,
        lists: Iterable[ListDefinition] | None = None,
        entries: Iterable[SavedEntry] | None = None,
        liked_lists: Iterable[LikedListRef] | None = None,
        liked_lists_visible: bool | None = None,
    ) -> None:
        session = self._require_session()
        if lists is not None:
            self._state.lists = tuple(lists)
        if entries is not None:
            self._state.entries = tuple(entries)
        if liked_lists is not None:
            self._state.liked_lists = tuple(liked_lists)
        if liked_lists_visible is not None:
            self._state.liked_lists_visible = liked_lists_visible

        self._notify()

        if not self._ready:
            logger.debug(
                "Skipping profile write for %s until the first snapshot arrives",
                session.account_id,
            )
            return
        self._serializer.schedule(session, self.snapshot().document())

    def _notify(self) -> None:
        if not self._state.listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._state.listeners):
            try:
                listener(snapshot)
            except Exception:  # type: ignore[broad-except]
                logger.exception("Saved lists listener raised; continuing")


__all__ = ["SavedListsSnapshot", "SavedListsStore", "generate_list_id"]
