"""
Shared pytest fixtures for all tests.
"""
import asyncio
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

import pytest

from binbot.config import Settings
from binbot.core import Broadcast, ContactBook, Message, OutboundItem
from binbot.errors import TransportError


class FakeClock:
    """Deterministic clock whose sleep advances time instead of waiting."""

    def __init__(self, start: datetime):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> datetime:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.now += timedelta(seconds=delay)


class FakeGateway:
    """Stand-in for BotGateway serving scripted getUpdates batches.

    Once the batches run out, get_updates either blocks like an idle long
    poll or, with fail_after_batches, waits for the first send and then
    raises TransportError.
    """

    def __init__(self, batches: Optional[List[List[Tuple[int, Optional[Message]]]]] = None,
                 fail_after_batches: bool = True):
        self.batches = list(batches or [])
        self.fail_after_batches = fail_after_batches
        self.offsets: List[Optional[int]] = []
        self.sent: List[Tuple[int, str]] = []
        self.started = False
        self.stopped = False
        self._first_send = asyncio.Event()

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    async def get_updates(self, offset=None, limit=None, timeout=60):
        self.offsets.append(offset)
        if self.batches:
            return self.batches.pop(0)
        if not self.fail_after_batches:
            await asyncio.Event().wait()
        await self._first_send.wait()
        raise TransportError("connection reset by peer")

    async def send_message(self, chat_id: int, text: str):
        self.sent.append((chat_id, text))
        self._first_send.set()
        return Message(text=text, recipient=chat_id)


@pytest.fixture
def settings() -> Settings:
    """Settings that ignore the environment's .env file."""
    return Settings(
        _env_file=None,
        telegram_token="123456:TEST-TOKEN",
        calendar_url="https://calendar.example.com/waste.ics",
        contacts_report_interval=60,
    )


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock(datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def inbox() -> Broadcast[Message]:
    return Broadcast("inbox", capacity=16)


@pytest.fixture
def outbox() -> Broadcast[OutboundItem]:
    return Broadcast("outbox", capacity=16)


@pytest.fixture
def book() -> ContactBook:
    return ContactBook()
