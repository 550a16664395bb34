"""
Bot API gateway using python-telegram-bot v20+.
Exposes the two calls the bot needs and maps library errors onto
TransportError and DecodeError.
"""
from typing import List, Optional, Tuple

import structlog
from telegram import Bot
from telegram.error import BadRequest, NetworkError, TelegramError

from binbot.clients.codec import decode_updates, message_from_telegram
from binbot.core.models import Message
from binbot.errors import DecodeError, GatewayError, TransportError

logger = structlog.get_logger(__name__)


def translate_error(error: TelegramError) -> GatewayError:
    """Map a python-telegram-bot error onto the gateway taxonomy."""
    # BadRequest subclasses NetworkError but means the server answered
    if isinstance(error, BadRequest):
        return DecodeError(str(error))
    if isinstance(error, NetworkError):
        return TransportError(str(error))
    return DecodeError(str(error))


class BotGateway:
    """Thin wrapper around telegram.Bot for polling and sending."""

    def __init__(self, token: Optional[str] = None, bot: Optional[Bot] = None):
        if bot is None:
            if not token:
                raise ValueError("either a token or a bot is required")
            bot = Bot(token=token)
        self.bot = bot
        self._is_running = False

    async def start(self) -> None:
        """Initialize the bot; this performs getMe and validates the token."""
        if self._is_running:
            return
        logger.info("Starting Bot API gateway...")
        try:
            await self.bot.initialize()
        except TelegramError as e:
            raise translate_error(e) from e
        self._is_running = True
        logger.info("Bot API gateway started", username=self.bot.username)

    async def stop(self) -> None:
        """Shut the underlying HTTP connections down."""
        if not self._is_running:
            return
        logger.info("Stopping Bot API gateway...")
        await self.bot.shutdown()
        self._is_running = False
        logger.info("Bot API gateway stopped")

    async def get_updates(self, offset: Optional[int] = None, limit: Optional[int] = None,
                          timeout: int = 60) -> List[Tuple[int, Optional[Message]]]:
        """Long-poll for updates newer than offset."""
        try:
            updates = await self.bot.get_updates(
                offset=offset,
                limit=limit,
                timeout=timeout,
                allowed_updates=["message"],
            )
        except TelegramError as e:
            raise translate_error(e) from e
        logger.debug("getUpdates returned", count=len(updates), offset=offset)
        return decode_updates(updates)

    async def send_message(self, chat_id: int, text: str) -> Optional[Message]:
        """Send a text message to a chat."""
        try:
            sent = await self.bot.send_message(chat_id=chat_id, text=text)
        except TelegramError as e:
            raise translate_error(e) from e
        return message_from_telegram(sent)

    @property
    def is_running(self) -> bool:
        """Check if the gateway has been started."""
        return self._is_running
