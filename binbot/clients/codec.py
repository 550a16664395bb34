"""
Conversion between python-telegram-bot objects and the bot's domain messages.
"""
from typing import List, Optional, Sequence, Tuple

from telegram import Message as TelegramMessage
from telegram import Update

from binbot.core.models import Message


def message_from_telegram(message: Optional[TelegramMessage]) -> Optional[Message]:
    """Extract text and chat id; non-text messages yield None."""
    if message is None or message.text is None:
        return None
    return Message(text=message.text, recipient=message.chat.id)


def decode_updates(updates: Sequence[Update]) -> List[Tuple[int, Optional[Message]]]:
    """Pair each update id with its text message, keeping the server order."""
    return [(update.update_id, message_from_telegram(update.message)) for update in updates]
