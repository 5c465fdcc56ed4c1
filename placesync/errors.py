"""Exception taxonomy shared by the store, serializer and feed adapters."""

from __future__ import annotations

__all__ = [
    "NotSignedIn",
    "PlaceSyncError",
    "StaleAccountWrite",
    "ValidationError",
    "WriteError",
]


class PlaceSyncError(Exception):
    """Base class for every error raised by :mod:`placesync`."""


class ValidationError(PlaceSyncError, ValueError):
    """Raised synchronously when user input (for example a list name) is rejected.

    Local state is left untouched when this error is raised.
    """


class NotSignedIn(PlaceSyncError, PermissionError):
    """Raised when a mutation is attempted without an active session."""


class WriteError(PlaceSyncError, RuntimeError):
    """Remote persistence failed.

    The write serializer logs and swallows these; local state stays
    authoritative until the next mutation re-sends the full document.
    """


class StaleAccountWrite(PlaceSyncError):
    """A queued write belongs to a session that is no longer active."""

    def __init__(self, account_id: str) -> None:
        super().__init__(f"Dropping write scheduled for inactive session of {account_id}")
        self.account_id = account_id
