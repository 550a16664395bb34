#!/usr/bin/env python3
"""
Management script for the calendar notification bot.
Provides CLI interface for running the bot and checking its inputs.
"""
import argparse
import asyncio
import sys

from pydantic import ValidationError

from binbot.app import main as run_bot, schedule_events
from binbot.calendar import fetch_events
from binbot.config import load_settings
from binbot.errors import CalendarError, ConfigMissing


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Calendar Notification Bot Management CLI")
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    subparsers.add_parser('run', help='Run the bot until interrupted')
    subparsers.add_parser('check-config', help='Validate the environment configuration')

    events_parser = subparsers.add_parser('events', help='List the scheduled notifications')
    events_parser.add_argument('--url', help='Calendar URL (defaults to CALENDAR_URL)')

    return parser


async def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    try:
        if args.command == 'run':
            return await run_bot()
        elif args.command == 'check-config':
            return handle_check_config()
        elif args.command == 'events':
            return await handle_events(args)
        else:
            print(f"Unknown command: {args.command}")
            return 1

    except KeyboardInterrupt:
        print("\n⏹️  Operation cancelled by user")
        return 1
    except (ConfigMissing, ValidationError) as e:
        print(f"❌ Configuration error: {e}")
        return 1
    except CalendarError as e:
        print(f"❌ Calendar error: {e}")
        return 1


def handle_check_config() -> int:
    """Load the settings and print a summary without secrets."""
    settings = load_settings()
    print("✅ Configuration loaded successfully!")
    print(f"   Calendar URL: {settings.calendar_url}")
    print(f"   Notification time: {settings.notification_time.strftime('%H:%M')} {settings.timezone}")
    print(f"   Overdue policy: {settings.overdue_policy.value}")
    print(f"   Poll timeout: {settings.poll_timeout}s")
    print(f"   Channel capacity: {settings.channel_capacity}")
    print(f"   Log level: {'DEBUG' if settings.debug_mode else settings.log_level}")
    return 0


async def handle_events(args) -> int:
    """Fetch the calendar and print when each notification would fire."""
    settings = load_settings()
    url = args.url or settings.calendar_url

    print(f"📅 Fetching calendar from {url}...")
    events = await fetch_events(url)
    scheduled = schedule_events(events, settings)

    if not scheduled:
        print("No valid events found.")
        return 0

    for event in sorted(scheduled, key=lambda e: e.fire_at):
        print(f"   {event.fire_at.isoformat()}  {event.name}  ({event.uid})")
    print(f"📊 {len(scheduled)} notifications scheduled")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
