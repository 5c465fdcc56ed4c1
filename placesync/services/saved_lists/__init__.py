"""Saved-list state split by responsibility.

* :class:`SessionToken` identifies one signed-in period of an account.
* :class:`WriteSerializer` lands full-document writes in schedule order.
* :class:`SavedListsStore` owns the optimistic in-memory state.
"""

from .serializer import WriteSerializer, WriteStats
from .session import SessionToken
from .store import SavedListsSnapshot, SavedListsStore, generate_list_id

__all__ = [
    "SavedListsSnapshot",
    "SavedListsStore",
    "SessionToken",
    "WriteSerializer",
    "WriteStats",
    "generate_list_id",
]
