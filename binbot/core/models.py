"""Domain types flowing through the broadcast channels."""
from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Union
from zoneinfo import ZoneInfo

# Telegram chat identifier
RecipientId = int


@dataclass(frozen=True)
class Message:
    """A text message received from a chat."""

    text: str
    recipient: RecipientId


@dataclass(frozen=True)
class OutboundItem:
    """A text waiting to be sent to a chat."""

    recipient: RecipientId
    text: str


@dataclass(frozen=True)
class ScheduledEvent:
    """A calendar event together with the moment its notification is due."""

    uid: str
    name: str
    fire_at: datetime

    @classmethod
    def from_date(cls, uid: str, name: str, day: date, at: time,
                  tz: Union[str, ZoneInfo]) -> "ScheduledEvent":
        """Combine an event date with the local notification time."""
        if isinstance(tz, str):
            tz = ZoneInfo(tz)
        return cls(uid=uid, name=name, fire_at=datetime.combine(day, at, tzinfo=tz))


class OverduePolicy(str, Enum):
    """What to do with an event whose notification time already passed."""

    SKIP = "skip"
    FIRE = "fire"
