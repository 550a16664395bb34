"""
Tests for the notification scheduler.
"""
from datetime import date, time, timedelta, timezone

import pytest

from binbot.core import (
    NotificationScheduler, OutboundItem, OverduePolicy, ScheduledEvent,
)


def event_in(clock, seconds):
    return ScheduledEvent(uid="evt-1", name="Paper", fire_at=clock.now + timedelta(seconds=seconds))


async def drain(subscription):
    items = []
    while subscription.pending():
        items.append(await subscription.recv())
    return items


@pytest.fixture
def scheduler(book, outbox, fake_clock):
    return NotificationScheduler(
        book, outbox, "notification !!",
        clock=fake_clock, sleep=fake_clock.sleep,
    )


class TestHalvingSchedule:
    """Sleeps halve until the event time is reached."""

    @pytest.mark.asyncio
    async def test_event_100s_ahead_fires_at_target(self, scheduler, book, outbox, fake_clock):
        await book.add(42)
        received = outbox.subscribe()
        start = fake_clock.now
        event = event_in(fake_clock, 100)

        published = await scheduler.run_event(event)

        assert published == 1
        assert fake_clock.now == event.fire_at
        assert (fake_clock.now - start).total_seconds() == 100
        assert len(fake_clock.sleeps) >= 2
        assert fake_clock.sleeps[0] == 50
        assert fake_clock.sleeps[1] == 25
        assert await drain(received) == [OutboundItem(recipient=42, text="notification !!")]

    @pytest.mark.asyncio
    async def test_every_wake_before_firing_had_time_left(self, scheduler, book, outbox, fake_clock):
        await book.add(1)
        outbox.subscribe()
        event = event_in(fake_clock, 100)
        wakes = []

        async def recording_sleep(delay):
            await fake_clock.sleep(delay)
            wakes.append((event.fire_at - fake_clock.now).total_seconds())

        scheduler._sleep = recording_sleep
        await scheduler.run_event(event)

        assert wakes[-1] <= 0
        assert all(left > 0 for left in wakes[:-1])

    @pytest.mark.asyncio
    async def test_delays_never_drop_below_granularity(self, book, outbox, fake_clock):
        scheduler = NotificationScheduler(
            book, outbox, "x", min_delay=5.0, clock=fake_clock, sleep=fake_clock.sleep,
        )

        await scheduler.run_event(event_in(fake_clock, 100))

        assert fake_clock.sleeps == [50, 25, 12.5, 6.25, 6.25]

    @pytest.mark.asyncio
    async def test_contacts_added_while_waiting_are_notified(self, scheduler, book, outbox, fake_clock):
        received = outbox.subscribe()

        async def sleep_and_register(delay):
            await fake_clock.sleep(delay)
            await book.add(len(fake_clock.sleeps))

        scheduler._sleep = sleep_and_register
        published = await scheduler.run_event(event_in(fake_clock, 10))

        assert published == len(fake_clock.sleeps)
        items = await drain(received)
        assert {item.recipient for item in items} == set(range(1, published + 1))


class TestOverduePolicy:
    """Events whose time already passed."""

    @pytest.mark.asyncio
    async def test_past_event_is_skipped_by_default(self, scheduler, book, outbox, fake_clock):
        await book.add(42)
        received = outbox.subscribe()

        published = await scheduler.run_event(event_in(fake_clock, -3600))

        assert published == 0
        assert fake_clock.sleeps == []
        assert received.pending() == 0

    @pytest.mark.asyncio
    async def test_event_due_exactly_now_is_skipped(self, scheduler, book, outbox, fake_clock):
        await book.add(42)
        received = outbox.subscribe()

        assert await scheduler.run_event(event_in(fake_clock, 0)) == 0
        assert received.pending() == 0

    @pytest.mark.asyncio
    async def test_past_event_fires_immediately_with_fire_policy(self, book, outbox, fake_clock):
        scheduler = NotificationScheduler(
            book, outbox, "late!", policy=OverduePolicy.FIRE,
            clock=fake_clock, sleep=fake_clock.sleep,
        )
        await book.add(7)
        await book.add(8)
        received = outbox.subscribe()

        published = await scheduler.run_event(event_in(fake_clock, -60))

        assert published == 2
        assert fake_clock.sleeps == []
        items = await drain(received)
        assert sorted(item.recipient for item in items) == [7, 8]


class TestNotify:
    """Fan-out to the contact snapshot."""

    @pytest.mark.asyncio
    async def test_no_contacts_sends_nothing(self, scheduler, outbox, fake_clock):
        received = outbox.subscribe()

        assert await scheduler.run_event(event_in(fake_clock, 4)) == 0
        assert received.pending() == 0

    @pytest.mark.asyncio
    async def test_missing_outbox_subscribers_is_not_fatal(self, scheduler, book, fake_clock):
        await book.add(1)
        await book.add(2)

        assert await scheduler.run_event(event_in(fake_clock, 4)) == 0

    @pytest.mark.asyncio
    async def test_each_contact_notified_once(self, scheduler, book, outbox, fake_clock):
        for recipient in (1, 2, 3):
            await book.add(recipient)
        received = outbox.subscribe()

        await scheduler.run_event(event_in(fake_clock, 30))

        items = await drain(received)
        assert len(items) == 3
        assert {item.recipient for item in items} == {1, 2, 3}
        assert {item.text for item in items} == {"notification !!"}


class TestScheduledEvent:
    """Building notification moments from calendar dates."""

    def test_winter_date_uses_standard_time(self):
        event = ScheduledEvent.from_date("u", "Paper", date(2024, 1, 15), time(8, 0), "Europe/Amsterdam")

        assert event.fire_at.astimezone(timezone.utc).hour == 7

    def test_summer_date_uses_daylight_saving_time(self):
        event = ScheduledEvent.from_date("u", "Glass", date(2024, 7, 15), time(8, 0), "Europe/Amsterdam")

        assert event.fire_at.astimezone(timezone.utc).hour == 6
        assert event.fire_at.date() == date(2024, 7, 15)
