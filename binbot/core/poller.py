"""
Update cursor poller.
Long-polls getUpdates with an advancing offset and publishes every text
message on the inbox channel in the order the server returned them.
"""
from typing import List, Optional, Protocol, Tuple

import structlog

from binbot.core.broadcast import Broadcast
from binbot.core.models import Message
from binbot.errors import NoSubscribers

logger = structlog.get_logger(__name__)


class UpdateSource(Protocol):
    async def get_updates(self, offset: Optional[int] = None, limit: Optional[int] = None,
                          timeout: int = 60) -> List[Tuple[int, Optional[Message]]]:
        ...


class UpdatePoller:
    """Owns the update cursor; the only writer of the inbox channel."""

    NO_OFFSET = -1

    def __init__(self, source: UpdateSource, inbox: Broadcast[Message],
                 timeout: int = 60, limit: Optional[int] = None):
        self.source = source
        self.inbox = inbox
        self.timeout = timeout
        self.limit = limit
        self._cursor = self.NO_OFFSET
        self.rounds = 0

    @property
    def cursor(self) -> int:
        """Lowest update id not yet acknowledged, or NO_OFFSET."""
        return self._cursor

    @property
    def offset(self) -> Optional[int]:
        return self._cursor if self._cursor >= 0 else None

    async def poll_once(self) -> List[Message]:
        """Run one long-poll round and publish what it returned.

        TransportError and DecodeError propagate; the cursor is left untouched
        when the round fails.
        """
        log = logger.bind(cursor=self._cursor)
        log.debug("polling for updates")
        updates = await self.source.get_updates(
            offset=self.offset, limit=self.limit, timeout=self.timeout
        )
        self.rounds += 1

        published = []
        for update_id, message in updates:
            self._cursor = max(self._cursor, update_id + 1)
            if message is None:
                log.debug("skipping update without text", update_id=update_id)
                continue
            log.info("received message", update_id=update_id, chat_id=message.recipient)
            try:
                await self.inbox.send(message)
            except NoSubscribers:
                log.warning("no inbox subscribers, message dropped", update_id=update_id)
                continue
            published.append(message)
        return published

    async def run(self) -> None:
        """Poll forever; any gateway error ends the loop."""
        logger.info("update poller started", timeout=self.timeout)
        while True:
            await self.poll_once()
