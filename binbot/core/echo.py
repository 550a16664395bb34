"""
Echo relay: sends every inbound text back to the chat it came from.
"""
import structlog

from binbot.core.broadcast import Broadcast, Subscription
from binbot.core.models import Message, OutboundItem
from binbot.errors import NoSubscribers

logger = structlog.get_logger(__name__)


class EchoRelay:
    """Re-publishes inbox messages onto the outbox."""

    def __init__(self, inbox: Subscription[Message], outbox: Broadcast[OutboundItem]):
        self.inbox = inbox
        self.outbox = outbox

    async def relay(self, message: Message) -> bool:
        """Queue one echo; a failed publish is logged, not raised."""
        item = OutboundItem(recipient=message.recipient, text=message.text)
        try:
            await self.outbox.send(item)
        except NoSubscribers:
            logger.warning("error sending message to outbox", chat_id=message.recipient)
            return False
        return True

    async def run(self) -> None:
        logger.info("echo relay started")
        while True:
            message = await self.inbox.recv()
            await self.relay(message)
