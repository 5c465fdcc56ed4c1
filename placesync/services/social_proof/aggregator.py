"""Place-level social proof combining counters, friends and the viewer's own edit.

One :class:`PlaceSocialProofAggregator` serves the place detail surface.  Each
``open`` creates a new context that owns the aggregate subscription and the
friend-attribution task for one place.  Results are committed only while their
context is still current, so a slow attribution lookup for a previous place
never shows up on the next one.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from placesync.feeds.base import PlaceAggregateFeed
from placesync.feeds.channels import Subscription
from placesync.schemas.places import Bucket, PlaceAggregate, PlacePin
from placesync.schemas.social_proof import FriendAttribution, SocialProofResult, Transition
from placesync.services.social_proof.attribution import FriendAttributionResolver
from placesync.services.social_proof.formatting import get_social_proof_lines
from placesync.services.social_proof.transitions import TransitionOverlay

logger = logging.getLogger(__name__)

ResultListener = Callable[[SocialProofResult | None], None]


@dataclass(slots=True, eq=False)
class _PlaceContext:
    pin: PlacePin
    place_key: str
    viewer_id: str | None
    subscription: Subscription[PlaceAggregate | None] | None = None
    consumer: asyncio.Task[None] | None = None
    attribution_task: asyncio.Task[None] | None = None
    aggregate: PlaceAggregate | None = None
    attribution: FriendAttribution = field(default_factory=FriendAttribution)


class PlaceSocialProofAggregator:
    def __init__(
        self,
        *,
        aggregate_feed: PlaceAggregateFeed,
        attribution: FriendAttributionResolver,
    ) -> None:
        self._aggregate_feed = aggregate_feed
        self._attribution = attribution
        self._context: _PlaceContext | None = None
        self._overlay = TransitionOverlay()
        self._on_settled: Callable[[], None] | None = None
        self._viewer_bucket: Bucket | None = None
        self._listeners: list[ResultListener] = []

    @property
    def place_key(self) -> str | None:
        return self._context.place_key if self._context else None

    @property
    def aggregate(self) -> PlaceAggregate | None:
        return self._context.aggregate if self._context else None

    @property
    def attribution(self) -> FriendAttribution:
        return self._context.attribution if self._context else FriendAttribution()

    @property
    def overlay(self) -> TransitionOverlay:
        return self._overlay

    async def open(
        self,
        pin: PlacePin,
        viewer_id: str | None,
        *,
        viewer_bucket: Bucket | None = None,
    ) -> None:
        """Start following ``pin``; any previously open place is torn down first."""

        await self._teardown()

        context = _PlaceContext(pin=pin, place_key=pin.key, viewer_id=viewer_id)
        self._context = context
        self._viewer_bucket = viewer_bucket

        context.subscription = await self._aggregate_feed.subscribe_place_aggregate(
            context.place_key
        )
        if self._context is not context:
            context.subscription.close()
            return
        context.consumer = asyncio.create_task(
            self._consume(context), name=f"place-aggregate:{context.place_key}"
        )
        context.attribution_task = asyncio.create_task(
            self._attribute(context), name=f"place-attribution:{context.place_key}"
        )
        logger.debug("Opened social proof for %s", context.place_key)

    async def close(self) -> None:
        await self._teardown()
        self._notify()

    def begin_transition(
        self,
        transition: Transition,
        on_settled: Callable[[], None] | None = None,
    ) -> None:
        """Overlay the viewer's pending bucket change on the displayed counts."""

        current = self._context.aggregate if self._context else None
        self._overlay.begin(transition, current)
        self._on_settled = on_settled
        self._notify()

    def clear_transition(self) -> None:
        self._overlay.clear()
        self._on_settled = None
        self._notify()

    def set_viewer_bucket(self, bucket: Bucket | None) -> None:
        if bucket == self._viewer_bucket:
            return
        self._viewer_bucket = bucket
        self._notify()

    def render(self) -> SocialProofResult | None:
        """Current lines, or ``None`` until the first aggregate snapshot arrives."""

        context = self._context
        if context is None or context.aggregate is None:
            return None

        overlay = self._overlay
        aggregate = context.aggregate
        return get_social_proof_lines(
            wishlist_count=overlay.display_count("wishlist", aggregate.wishlist_count),
            favourite_count=overlay.display_count("favourite", aggregate.favourite_count),
            wishlist_friend_label=context.attribution.label_for("wishlist"),
            favourite_friend_label=context.attribution.label_for("favourite"),
            self_bucket=overlay.effective_self_bucket(self._viewer_bucket),
        )

    def subscribe(self, listener: ResultListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _consume(self, context: _PlaceContext) -> None:
        assert context.subscription is not None
        async for aggregate in context.subscription:
            if self._context is not context:
                break
            context.aggregate = aggregate or PlaceAggregate()
            if self._overlay.observe(context.aggregate) and self._on_settled is not None:
                callback = self._on_settled
                self._on_settled = None
                callback()
            self._notify()

    async def _attribute(self, context: _PlaceContext) -> None:
        result = await self._attribution.resolve(context.viewer_id, context.place_key)
        if self._context is not context:
            logger.debug("Discarding friend attribution for closed place %s", context.place_key)
            return
        context.attribution = result
        self._notify()

    async def _teardown(self) -> None:
        context = self._context
        self._context = None
        self._overlay.clear()
        self._on_settled = None
        if context is None:
            return
        if context.subscription is not None:
            context.subscription.close()
        for task in (context.consumer, context.attribution_task):
            if task is None or task.done():
                continue
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    def _notify(self) -> None:
        if not self._listeners:
            return
        result = self.render()
        for listener in list(self._listeners):
            try:
                listener(result)
            except Exception:  # type: ignore[broad-except]
                logger.exception("Social proof listener raised; continuing")


__all__ = ["PlaceSocialProofAggregator"]
