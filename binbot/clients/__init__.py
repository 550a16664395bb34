"""Bot API client module."""

from .bot_client import BotGateway, translate_error
from .codec import decode_updates, message_from_telegram

__all__ = [
    "BotGateway",
    "translate_error",
    "decode_updates",
    "message_from_telegram",
]
