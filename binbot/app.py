"""
Main application for the calendar notification bot.
Wires the poller, contact registry, echo relay, scheduler and dispatcher
together through the inbox and outbox broadcast channels and runs them
under a single supervisor.
"""
import asyncio
import logging
import signal
import sys
from typing import List, Optional

import structlog
from pydantic import ValidationError

from binbot.calendar import CalendarEvent, fetch_events
from binbot.clients import BotGateway
from binbot.config import Settings, load_settings
from binbot.core import (
    Broadcast, ContactBook, ContactRegistry, EchoRelay, Message,
    NotificationScheduler, OutboundDispatcher, OutboundItem, ScheduledEvent,
    TaskSupervisor, UpdatePoller,
)
from binbot.errors import CalendarError, ConfigMissing, FatalTaskError, GatewayError

logger = structlog.get_logger(__name__)


def configure_logging(settings: Settings) -> None:
    """Configure structlog on top of the standard logging module."""
    level = logging.DEBUG if settings.debug_mode else getattr(logging, settings.log_level)
    renderer = (
        structlog.dev.ConsoleRenderer() if settings.debug_mode
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # httpx logs every request URL, which contains the bot token
    logging.getLogger("httpx").setLevel(logging.WARNING)


def schedule_events(events: List[CalendarEvent], settings: Settings) -> List[ScheduledEvent]:
    """Turn calendar dates into notification moments in the configured zone."""
    return [
        ScheduledEvent.from_date(
            event.uid, event.name, event.date, settings.notification_time, settings.tzinfo
        )
        for event in events
    ]


class BinBot:
    """Main application class for the notification bot."""

    def __init__(self, settings: Settings, gateway: Optional[BotGateway] = None,
                 events: Optional[List[CalendarEvent]] = None):
        self.settings = settings
        self.gateway = gateway
        self.events = events
        self.supervisor = TaskSupervisor()
        self.contacts = ContactBook()
        self.inbox: Optional[Broadcast[Message]] = None
        self.outbox: Optional[Broadcast[OutboundItem]] = None
        self.poller: Optional[UpdatePoller] = None
        self.registry: Optional[ContactRegistry] = None
        self.echo: Optional[EchoRelay] = None
        self.dispatcher: Optional[OutboundDispatcher] = None
        self.scheduler: Optional[NotificationScheduler] = None
        self.scheduled: List[ScheduledEvent] = []
        self._shutdown_event = asyncio.Event()
        self._running = False

    async def initialize(self) -> None:
        """Fetch the calendar, start the gateway and build the pipeline."""
        settings = self.settings
        logger.info("Initializing bot...")

        if self.events is None:
            self.events = await fetch_events(settings.calendar_url)
        self.scheduled = schedule_events(self.events, settings)
        logger.info("Calendar loaded", events=len(self.scheduled))

        if self.gateway is None:
            self.gateway = BotGateway(token=settings.telegram_token)
        await self.gateway.start()

        self.inbox = Broadcast("inbox", settings.channel_capacity)
        self.outbox = Broadcast("outbox", settings.channel_capacity)

        # Subscribe everyone before the poller can publish
        self.registry = ContactRegistry(self.inbox.subscribe(), self.contacts)
        self.echo = EchoRelay(self.inbox.subscribe(), self.outbox)
        self.dispatcher = OutboundDispatcher(self.outbox.subscribe(), self.gateway)
        self.poller = UpdatePoller(
            self.gateway, self.inbox,
            timeout=settings.poll_timeout, limit=settings.poll_limit,
        )
        self.scheduler = NotificationScheduler(
            self.contacts, self.outbox, settings.notification_text,
            policy=settings.overdue_policy, min_delay=settings.min_sleep,
        )
        logger.info("Bot initialization completed")

    def start(self) -> None:
        """Spawn one task per component and per scheduled event."""
        if self._running:
            return
        self.supervisor.spawn("contact-registry", self.registry.run())
        self.supervisor.spawn(
            "contact-report", self.registry.report(self.settings.contacts_report_interval)
        )
        self.supervisor.spawn("echo-relay", self.echo.run())
        self.supervisor.spawn("outbound-dispatcher", self.dispatcher.run())
        for event in self.scheduled:
            self.supervisor.spawn(f"event-{event.uid}", self.scheduler.run_event(event))
        self.supervisor.spawn("update-poller", self.poller.run())
        self._running = True
        logger.info("Bot is now running", tasks=len(self.supervisor.task_names))

    async def stop(self) -> None:
        """Cancel the tasks, close the channels and the gateway."""
        if not self._running:
            if self.gateway:
                await self.gateway.stop()
            return
        logger.info("Stopping bot...")
        self._running = False
        await self.supervisor.cancel_all()
        for channel in (self.inbox, self.outbox):
            if channel:
                channel.close()
        if self.gateway:
            await self.gateway.stop()
        if self.dispatcher:
            logger.info("Outbound statistics", **self.dispatcher.statistics)
        logger.info("Bot stopped")

    async def run(self) -> None:
        """Run until a task fails or a shutdown is requested.

        Raises FatalTaskError when a component died.
        """
        try:
            await self.initialize()
            self.start()
            supervised = asyncio.create_task(self.supervisor.run(), name="supervisor")
            shutdown = asyncio.create_task(self._shutdown_event.wait(), name="shutdown")
            done, _ = await asyncio.wait(
                {supervised, shutdown}, return_when=asyncio.FIRST_COMPLETED
            )
            shutdown.cancel()
            if supervised in done:
                supervised.result()
            else:
                logger.info("Shutdown requested")
                supervised.cancel()
                await asyncio.gather(supervised, return_exceptions=True)
        finally:
            await self.stop()

    def request_shutdown(self) -> None:
        self._shutdown_event.set()

    def setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_shutdown)
            except NotImplementedError:
                signal.signal(sig, lambda signum, frame: self.request_shutdown())

    @property
    def is_running(self) -> bool:
        """Check if bot is currently running."""
        return self._running


async def main(settings: Optional[Settings] = None) -> int:
    """Application entry point; returns the process exit status."""
    if settings is None:
        try:
            settings = load_settings()
        except (ConfigMissing, ValidationError) as e:
            logger.error("Invalid configuration", error=str(e))
            return 1

    configure_logging(settings)
    bot = BinBot(settings)
    bot.setup_signal_handlers()

    try:
        await bot.run()
    except (CalendarError, GatewayError) as e:
        logger.error("Startup failed", error=str(e), error_type=type(e).__name__)
        return 1
    except FatalTaskError as e:
        logger.error("Fatal error, terminating", task=e.task_name, error=str(e.error))
        return 1
    return 0


def run() -> None:
    """Console script entry point."""
    if sys.platform != "win32":
        import uvloop
        sys.exit(uvloop.run(main()))
    sys.exit(asyncio.run(main()))
