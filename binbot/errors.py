"""
Error taxonomy shared by the bot components.
Fatal versus recoverable handling is decided by the component catching them.
"""
from typing import Iterable


class BinbotError(Exception):
    """Base class for all bot errors."""


class ConfigMissing(BinbotError):
    """A required setting is absent at startup."""

    def __init__(self, names: Iterable[str]):
        self.names = sorted(names)
        super().__init__(f"Missing required configuration: {', '.join(self.names)}")


class GatewayError(BinbotError):
    """Calling the Bot API failed."""


class TransportError(GatewayError):
    """Network or HTTP level failure talking to the Bot API."""


class DecodeError(GatewayError):
    """The Bot API answered with something other than the expected payload."""


class ChannelClosed(BinbotError):
    """A broadcast channel or subscription can no longer be used."""

    def __init__(self, channel: str):
        self.channel = channel
        super().__init__(f"Broadcast channel '{channel}' is closed")


class NoSubscribers(BinbotError):
    """An item was published on a channel nobody listens to."""

    def __init__(self, channel: str):
        self.channel = channel
        super().__init__(f"Broadcast channel '{channel}' has no subscribers")


class CalendarError(BinbotError):
    """The calendar document could not be fetched or parsed."""


class FatalTaskError(BinbotError):
    """A supervised task died; every sibling task has been cancelled."""

    def __init__(self, task_name: str, error: BaseException):
        self.task_name = task_name
        self.error = error
        super().__init__(f"Task '{task_name}' failed: {error!r}")
