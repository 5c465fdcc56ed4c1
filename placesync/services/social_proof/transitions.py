"""Optimistic overlay for a bucket change that the backend has not counted yet."""

from __future__ import annotations

import logging
from enum import Enum

from placesync.schemas.places import BUCKETS, Bucket, PlaceAggregate
from placesync.schemas.social_proof import Transition

logger = logging.getLogger(__name__)


class TransitionPhase(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SETTLED = "settled"


class TransitionOverlay:
    """State machine ``IDLE -> PENDING -> SETTLED -> (clear) IDLE``.

    While pending, displayed counts are the remote counts shifted by the
    transition's delta so the viewer sees their own change immediately.  The
    overlay settles the first time the remote counters move in the expected
    direction relative to the baseline captured when the transition began;
    from then on the raw remote counts are shown, which already include the
    change, so nothing is double counted.
    """

    def __init__(self) -> None:
        self._phase = TransitionPhase.IDLE
        self._transition: Transition | None = None
        self._baseline: PlaceAggregate | None = None

    @property
    def phase(self) -> TransitionPhase:
        return self._phase

    @property
    def transition(self) -> Transition | None:
        return self._transition

    @property
    def baseline(self) -> PlaceAggregate | None:
        return self._baseline

    @property
    def pending(self) -> bool:
        return self._phase is TransitionPhase.PENDING

    def begin(self, transition: Transition, current: PlaceAggregate | None = None) -> None:
        """Start overlaying ``transition``; ``current`` becomes the baseline when known."""

        self._transition = transition
        self._baseline = current
        self._phase = TransitionPhase.PENDING
        logger.debug(
            "Transition %s -> %s pending (baseline %s)",
            transition.from_bucket,
            transition.to_bucket,
            current,
        )

    def clear(self) -> None:
        self._phase = TransitionPhase.IDLE
        self._transition = None
        self._baseline = None

    def observe(self, aggregate: PlaceAggregate) -> bool:
        """Feed a remote snapshot; return ``True`` exactly once, on settlement."""

        if self._phase is not TransitionPhase.PENDING or self._transition is None:
            return False

        if self._baseline is None:
            self._baseline = aggregate
            if self._has_delta():
                return False
            return self._settle()

        if not self._has_delta() or self._moved(aggregate):
            return self._settle()
        return False

    def display_count(self, bucket: Bucket, remote: int) -> int:
        if self._phase is TransitionPhase.PENDING and self._transition is not None:
            return max(0, remote + self._transition.delta_for(bucket))
        return remote

    def effective_self_bucket(self, viewer_bucket: Bucket | None) -> Bucket | None:
        """The viewer's bucket as it should be rendered right now."""

        if self._phase is TransitionPhase.PENDING and self._transition is not None:
            target = self._transition.to_bucket
            return None if target == "none" else target
        return viewer_bucket

    def _has_delta(self) -> bool:
        assert self._transition is not None
        return any(self._transition.delta_for(bucket) for bucket in BUCKETS)

    def _moved(self, aggregate: PlaceAggregate) -> bool:
        assert self._transition is not None and self._baseline is not None
        for bucket in BUCKETS:
            delta = self._transition.delta_for(bucket)
            now = aggregate.count_for(bucket)
            before = self._baseline.count_for(bucket)
            if delta > 0 and now > before:
                return True
            if delta < 0 and now < before:
                return True
        return False

    def _settle(self) -> bool:
        self._phase = TransitionPhase.SETTLED
        logger.debug("Transition settled against remote counters")
        return True


__all__ = ["TransitionOverlay", "TransitionPhase"]
