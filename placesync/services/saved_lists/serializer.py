"""Ordered, one-at-a-time persistence of profile documents."""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from placesync.errors import StaleAccountWrite, WriteError
from placesync.feeds.base import ProfileWriter
from placesync.schemas.lists import ProfileDocument
from placesync.services.saved_lists.session import SessionToken

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class WriteStats:
    """Running counters describing how scheduled writes ended."""

    completed: int = 0
    failed: int = 0
    dropped: int = 0
    retried: int = 0


class WriteSerializer:
    """Chain profile writes per account so they land in schedule order.

    Each scheduled write awaits the previous write for the same account before
    it starts, which keeps at most one write in flight per account even when
    mutations arrive faster than the remote round trip.  The session captured
    at schedule time is compared with the active session when the write
    actually runs; writes from a session that has since ended are dropped.

    Failed writes are logged and swallowed.  Local state stays authoritative
    and the next mutation re-sends the whole document.  ``retry_attempts``
    adds bounded retries with linear backoff on :class:`WriteError`.
    """

    def __init__(
        self,
        writer: ProfileWriter,
        *,
        retry_attempts: int = 0,
        retry_backoff_seconds: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._writer = writer
        self._retry_attempts = max(0, retry_attempts)
        self._retry_backoff_seconds = max(0.0, retry_backoff_seconds)
        self._sleep = sleep
        self._active: SessionToken | None = None
        self._tails: dict[str, asyncio.Task[None]] = {}
        self._pending: Counter[str] = Counter()
        self.stats = WriteStats()

    @property
    def active_session(self) -> SessionToken | None:
        return self._active

    def activate(self, session: SessionToken | None) -> None:
        """Make ``session`` the only session whose writes may still land."""

        if session != self._active:
            logger.debug(
                "Write serializer switching session %s -> %s",
                self._active.account_id if self._active else None,
                session.account_id if session else None,
            )
        self._active = session

    def is_active(self, session: SessionToken) -> bool:
        return self._active is not None and session == self._active

    def pending(self, account_id: str) -> int:
        """Number of writes scheduled for ``account_id`` that have not finished."""

        return self._pending[account_id]

    def schedule(self, session: SessionToken, document: ProfileDocument) -> asyncio.Task[None]:
        """Queue ``document`` behind every earlier write of the same account."""

        loop = asyncio.get_running_loop()
        account_id = session.account_id
        previous = self._tails.get(account_id)
        self._pending[account_id] += 1
        task = loop.create_task(
            self._run(previous, session, document),
            name=f"persist-profile:{account_id}",
        )
        self._tails[account_id] = task
        task.add_done_callback(lambda finished: self._release(account_id, finished))
        return task

    async def drain(self) -> None:
        """Wait until every scheduled write has finished."""

        while self._tails:
            await asyncio.gather(*list(self._tails.values()), return_exceptions=True)

    async def _run(
        self,
        previous: asyncio.Task[None] | None,
        session: SessionToken,
        document: ProfileDocument,
    ) -> None:
        if previous is not None and not previous.done():
            await asyncio.wait([previous])

        try:
            await self._persist(session, document)
        except StaleAccountWrite as exc:
            self.stats.dropped += 1
            logger.debug("%s", exc)
        except Exception as exc:  # type: ignore[broad-except]
            self.stats.failed += 1
            logger.warning(
                "Failed to persist profile for %s; keeping local state: %s",
                session.account_id,
                exc,
            )
        else:
            self.stats.completed += 1

    async def _persist(self, session: SessionToken, document: ProfileDocument) -> None:
        attempt = 0
        while True:
            if not self.is_active(session):
                raise StaleAccountWrite(session.account_id)
            try:
                await self._writer.persist_profile(session.account_id, document)
                return
            except WriteError as exc:
                if attempt >= self._retry_attempts:
                    raise
                attempt += 1
                self.stats.retried += 1
                delay = self._retry_backoff_seconds * attempt
                logger.info(
                    "Retrying profile write for %s in %.2fs (attempt %d/%d): %s",
                    session.account_id,
                    delay,
                    attempt,
                    self._retry_attempts,
                    exc,
                )
                await self._sleep(delay)

    def _release(self, account_id: str, task: asyncio.Task[None]) -> None:
        self._pending[account_id] -= 1
        if self._pending[account_id] <= 0:
            del self._pending[account_id]
        if self._tails.get(account_id) is task:
            del self._tails[account_id]


__all__ = ["WriteSerializer", "WriteStats"]
