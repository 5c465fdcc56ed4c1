"""Message channels used to deliver realtime snapshots.

Every realtime subscription is an inbound :class:`Subscription` consumed by a
single task in arrival order.  Tearing a subscription down is ``close()``:
the consumer's ``async for`` loop ends and later publications are ignored, so
a callback from a previous account or place can never write into a newer
context.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CLOSED = object()


class Subscription(Generic[T]):
    """Async iterator over the snapshots published to one topic."""

    def __init__(self, topic: str, *, on_close: Callable[[Subscription[T]], None] | None = None) -> None:
        self.topic = topic
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._on_close = on_close
        self._closed = False
        self._delivered = False

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, value: T) -> None:
        """Queue ``value`` for the consumer; ignored once the channel is closed."""

        if self._closed:
            return
        self._delivered = True
        self._queue.put_nowait(value)

    def push_initial(self, value: T) -> None:
        """Queue the current stored value unless a newer publication already arrived."""

        if self._delivered:
            return
        self.push(value)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)
        if self._on_close is not None:
            self._on_close(self)

    def __aiter__(self) -> Subscription[T]:
        return self

    async def __anext__(self) -> T:
        if self._closed:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED or self._closed:
            raise StopAsyncIteration
        return item  # type: ignore[return-value]


class Broadcaster(Generic[T]):
    """Fan snapshots out to every open subscription of a topic."""

    def __init__(self) -> None:
        self._subscribers: dict[str, set[Subscription[T]]] = defaultdict(set)

    def subscribe(self, topic: str) -> Subscription[T]:
        subscription: Subscription[T] = Subscription(topic, on_close=self._discard)
        self._subscribers[topic].add(subscription)
        return subscription

    def publish(self, topic: str, value: T) -> int:
        """Deliver ``value`` to the topic's subscribers and return how many received it."""

        subscribers = list(self._subscribers.get(topic, ()))
        for subscription in subscribers:
            subscription.push(value)
        logger.debug("Published %s to %d subscriber(s)", topic, len(subscribers))
        return len(subscribers)

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, ()))

    def close_all(self) -> None:
        for subscriptions in list(self._subscribers.values()):
            for subscription in list(subscriptions):
                subscription.close()
        self._subscribers.clear()

    def _discard(self, subscription: Subscription[T]) -> None:
        subscribers = self._subscribers.get(subscription.topic)
        if subscribers is None:
            return
        subscribers.discard(subscription)
        if not subscribers:
            self._subscribers.pop(subscription.topic, None)


__all__ = ["Broadcaster", "Subscription"]
