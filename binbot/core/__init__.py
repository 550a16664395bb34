"""Core message pipeline for the bot."""

from .broadcast import Broadcast, Subscription
from .contacts import ContactBook, ContactRegistry
from .dispatcher import OutboundDispatcher
from .echo import EchoRelay
from .models import Message, OutboundItem, OverduePolicy, ScheduledEvent
from .poller import UpdatePoller
from .scheduler import NotificationScheduler
from .supervisor import TaskSupervisor

__all__ = [
    "Broadcast",
    "Subscription",
    "ContactBook",
    "ContactRegistry",
    "OutboundDispatcher",
    "EchoRelay",
    "Message",
    "OutboundItem",
    "OverduePolicy",
    "ScheduledEvent",
    "UpdatePoller",
    "NotificationScheduler",
    "TaskSupervisor",
]
