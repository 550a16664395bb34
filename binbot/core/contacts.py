"""
Contact registry: remembers every chat that wrote to the bot.
"""
import asyncio
from typing import FrozenSet, Set

import structlog

from binbot.core.broadcast import Subscription
from binbot.core.models import Message, RecipientId

logger = structlog.get_logger(__name__)


class ContactBook:
    """Lock-guarded set of known recipients. Members are never removed."""

    def __init__(self):
        self._contacts: Set[RecipientId] = set()
        self._lock = asyncio.Lock()

    async def add(self, recipient: RecipientId) -> bool:
        """Insert a recipient, returning True when it was not known yet."""
        async with self._lock:
            if recipient in self._contacts:
                return False
            self._contacts.add(recipient)
            return True

    async def snapshot(self) -> FrozenSet[RecipientId]:
        """Copy of the current contacts; the lock is released on return."""
        async with self._lock:
            return frozenset(self._contacts)

    async def size(self) -> int:
        async with self._lock:
            return len(self._contacts)


class ContactRegistry:
    """Consumes the inbox and records each message's recipient."""

    def __init__(self, inbox: Subscription[Message], book: ContactBook):
        self.inbox = inbox
        self.book = book

    async def handle(self, message: Message) -> bool:
        added = await self.book.add(message.recipient)
        if added:
            logger.info("new contact", chat_id=message.recipient)
        return added

    async def run(self) -> None:
        """Record contacts until the inbox closes (ChannelClosed propagates)."""
        logger.info("contact registry started")
        while True:
            message = await self.inbox.recv()
            await self.handle(message)

    async def report(self, interval: float = 10.0) -> None:
        """Periodically log how many contacts are known."""
        while True:
            await asyncio.sleep(interval)
            logger.debug("current contacts", count=await self.book.size())
