"""
In-memory broadcast channel connecting the bot components.
Every subscriber gets its own bounded buffer. Producers in the pipeline use
`send`, which waits until every subscriber has room; `publish` never waits
and drops the oldest item of a full buffer instead.
"""
import asyncio
from collections import deque
from typing import Deque, Generic, List, TypeVar

import structlog

from binbot.errors import ChannelClosed, NoSubscribers

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_CAPACITY = 16


class Subscription(Generic[T]):
    """Receiving end of a broadcast channel."""

    def __init__(self, channel: "Broadcast[T]", capacity: int):
        self._channel = channel
        self._capacity = capacity
        self._buffer: Deque[T] = deque()
        self._ready = asyncio.Event()
        self._room = asyncio.Event()
        self._room.set()
        self._closed = False
        self.dropped = 0

    @property
    def name(self) -> str:
        return self._channel.name

    @property
    def closed(self) -> bool:
        return self._closed

    def pending(self) -> int:
        """Number of items buffered and not yet received."""
        return len(self._buffer)

    def full(self) -> bool:
        return not self._closed and len(self._buffer) >= self._capacity

    def _push(self, item: T) -> None:
        if len(self._buffer) >= self._capacity:
            self._buffer.popleft()
            self.dropped += 1
            logger.warning(
                "subscriber lagging, dropped oldest item",
                channel=self.name, dropped=self.dropped,
            )
        self._buffer.append(item)
        self._ready.set()
        if len(self._buffer) >= self._capacity:
            self._room.clear()

    def _close(self) -> None:
        self._closed = True
        self._ready.set()
        self._room.set()

    async def recv(self) -> T:
        """Wait for the next item; raises ChannelClosed once drained after close."""
        while not self._buffer:
            if self._closed:
                raise ChannelClosed(self.name)
            self._ready.clear()
            await self._ready.wait()
        item = self._buffer.popleft()
        self._room.set()
        return item

    def close(self) -> None:
        """Stop receiving from the channel."""
        self._channel._unsubscribe(self)
        self._close()


class Broadcast(Generic[T]):
    """Multi-producer, multi-consumer channel where each subscriber sees every item."""

    def __init__(self, name: str, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.name = name
        self.capacity = capacity
        self._subscribers: List[Subscription[T]] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription[T]:
        """Register a new subscriber; it sees items published from now on."""
        if self._closed:
            raise ChannelClosed(self.name)
        subscription = Subscription(self, self.capacity)
        self._subscribers.append(subscription)
        logger.debug("new subscriber", channel=self.name, subscribers=len(self._subscribers))
        return subscription

    def publish(self, item: T) -> int:
        """Deliver an item to every subscriber, returning how many received it."""
        if self._closed:
            raise ChannelClosed(self.name)
        if not self._subscribers:
            raise NoSubscribers(self.name)
        for subscription in self._subscribers:
            subscription._push(item)
        return len(self._subscribers)

    async def send(self, item: T) -> int:
        """Wait until every subscriber has room, then deliver the item.

        Nothing is dropped; a subscriber that stops reading stalls the sender.
        """
        while True:
            if self._closed:
                raise ChannelClosed(self.name)
            if not self._subscribers:
                raise NoSubscribers(self.name)
            full = next((s for s in self._subscribers if s.full()), None)
            if full is None:
                return self.publish(item)
            await full._room.wait()

    def close(self) -> None:
        """Close the channel; subscribers drain their buffers then see ChannelClosed."""
        if self._closed:
            return
        self._closed = True
        for subscription in self._subscribers:
            subscription._close()
        self._subscribers.clear()
        logger.info("channel closed", channel=self.name)

    def _unsubscribe(self, subscription: Subscription[T]) -> None:
        if subscription in self._subscribers:
            self._subscribers.remove(subscription)
