"""
Outbound dispatcher: drains the outbox into sendMessage calls.
Failures are per item; the loop only stops when the outbox closes.
"""
from typing import Any, Dict, Optional, Protocol

import structlog

from binbot.core.broadcast import Subscription
from binbot.core.models import Message, OutboundItem
from binbot.errors import GatewayError

logger = structlog.get_logger(__name__)


class MessageSink(Protocol):
    async def send_message(self, chat_id: int, text: str) -> Optional[Message]:
        ...


class OutboundDispatcher:
    """Sends outbox items one at a time, best effort, no retry."""

    def __init__(self, outbox: Subscription[OutboundItem], sink: MessageSink):
        self.outbox = outbox
        self.sink = sink
        self.sent = 0
        self.failed = 0

    async def dispatch(self, item: OutboundItem) -> bool:
        """Send a single item, returning False when the Bot API call failed."""
        log = logger.bind(chat_id=item.recipient)
        log.debug("sending message to client", text=item.text)
        try:
            await self.sink.send_message(chat_id=item.recipient, text=item.text)
        except GatewayError as e:
            self.failed += 1
            log.warning("error sending message to telegram", error=str(e),
                        error_type=type(e).__name__)
            return False
        self.sent += 1
        log.debug("message sent to telegram")
        return True

    async def run(self) -> None:
        logger.info("outbound dispatcher started")
        while True:
            item = await self.outbox.recv()
            await self.dispatch(item)

    @property
    def statistics(self) -> Dict[str, Any]:
        return {
            "sent": self.sent,
            "failed": self.failed,
            "dropped": self.outbox.dropped,
        }
