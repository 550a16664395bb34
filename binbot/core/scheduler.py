"""
Notification scheduler.

Each scheduled event gets its own task. The task repeatedly sleeps half of
the time left until the event, so a clock jump or a long suspension is
noticed on the next wake-up. Once the remaining time drops below the sleep
granularity it sleeps the rest in one go, then publishes the notification
text for every known contact and finishes.
"""
import asyncio
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

import structlog

from binbot.core.broadcast import Broadcast
from binbot.core.contacts import ContactBook
from binbot.core.models import OutboundItem, OverduePolicy, ScheduledEvent
from binbot.errors import NoSubscribers

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]
Sleeper = Callable[[float], Awaitable[None]]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class NotificationScheduler:
    """Fires one notification round per event, at most once."""

    def __init__(self, book: ContactBook, outbox: Broadcast[OutboundItem], text: str,
                 policy: OverduePolicy = OverduePolicy.SKIP, min_delay: float = 1.0,
                 clock: Optional[Clock] = None, sleep: Optional[Sleeper] = None):
        self.book = book
        self.outbox = outbox
        self.text = text
        self.policy = policy
        self.min_delay = min_delay
        self._clock = clock or utc_now
        self._sleep = sleep or asyncio.sleep

    def remaining(self, event: ScheduledEvent) -> float:
        """Seconds left until the event, negative once it passed."""
        return (event.fire_at - self._clock()).total_seconds()

    def next_delay(self, remaining: float) -> float:
        delay = remaining / 2
        if delay < self.min_delay:
            return remaining
        return delay

    async def run_event(self, event: ScheduledEvent) -> int:
        """Wait for the event and notify every contact; returns items published."""
        log = logger.bind(uid=event.uid, event_name=event.name,
                          fire_at=event.fire_at.isoformat())
        remaining = self.remaining(event)

        if remaining <= 0 and self.policy is OverduePolicy.SKIP:
            log.info("event already passed, skipping notification")
            return 0

        while remaining > 0:
            delay = self.next_delay(remaining)
            log.info("sleeping for half the duration until the notification", delay=delay)
            await self._sleep(delay)
            remaining = self.remaining(event)

        return await self.notify(event)

    async def notify(self, event: ScheduledEvent) -> int:
        """Publish the notification for a snapshot of the contacts."""
        contacts = await self.book.snapshot()
        published = 0
        for recipient in contacts:
            try:
                await self.outbox.send(OutboundItem(recipient=recipient, text=self.text))
            except NoSubscribers:
                logger.warning("error sending notification", uid=event.uid, chat_id=recipient)
                continue
            published += 1
        logger.info("notification fired", uid=event.uid, contacts=len(contacts),
                    published=published)
        return published
