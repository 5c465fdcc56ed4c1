"""Session tokens identifying one signed-in period of one account."""

from __future__ import annotations

import itertools
from dataclasses import dataclass

_generation = itertools.count(1)


@dataclass(frozen=True, slots=True)
class SessionToken:
    """Explicit stand-in for "the active account".

    A fresh token is issued on every sign-in, so signing out and back into the
    same account still invalidates writes queued by the earlier session.
    """

    account_id: str
    generation: int

    @classmethod
    def issue(cls, account_id: str) -> SessionToken:
        if not account_id:
            raise ValueError("account_id must not be empty")
        return cls(account_id=account_id, generation=next(_generation))


__all__ = ["SessionToken"]
