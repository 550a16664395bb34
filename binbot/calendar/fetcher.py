"""
Calendar collaborator: downloads an iCalendar document and extracts the
events the bot sends notifications for.
"""
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Set

import httpx
import structlog
import vobject
from vobject.base import ParseError

from binbot.calendar.dates import InvalidDate, date_from_string
from binbot.errors import CalendarError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CalendarEvent:
    """A dated calendar entry."""

    uid: str
    name: str
    date: date


def _first_value(component, name: str) -> Optional[str]:
    lines = component.contents.get(name.lower())
    if not lines:
        return None
    value = lines[0].value
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def parse_events(text: str) -> List[CalendarEvent]:
    """Parse VEVENTs, skipping entries without uid, summary or an 8-digit start date."""
    events: List[CalendarEvent] = []
    seen: Set[str] = set()

    try:
        calendars = list(vobject.readComponents(text, transform=False))
    except (ParseError, ValueError) as e:
        raise CalendarError(f"Could not parse calendar document: {e}") from e

    for calendar in calendars:
        for vevent in calendar.contents.get("vevent", []):
            uid = _first_value(vevent, "UID")
            name = _first_value(vevent, "SUMMARY")
            raw_start = _first_value(vevent, "DTSTART")

            event_date = None
            if raw_start is not None:
                try:
                    event_date = date_from_string(raw_start)
                except InvalidDate as e:
                    logger.debug("invalid DTSTART", value=raw_start, error=str(e))

            if uid is None or name is None or event_date is None:
                logger.warning("skipping event that could not be parsed", uid=uid)
                continue
            if uid in seen:
                logger.warning("skipping event with duplicate uid", uid=uid)
                continue

            seen.add(uid)
            logger.debug("found a valid event", uid=uid, event_name=name, date=event_date.isoformat())
            events.append(CalendarEvent(uid=uid, name=name, date=event_date))

    return events


async def fetch_events(url: str, client: Optional[httpx.AsyncClient] = None,
                       timeout: float = 30.0) -> List[CalendarEvent]:
    """Download and parse the calendar at url."""
    logger.info("fetching calendar information", url=url)
    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=timeout, follow_redirects=True)
    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise CalendarError(f"Failed to fetch calendar from {url}: {e}") from e
    finally:
        if owns_client:
            await client.aclose()

    events = parse_events(response.text)
    logger.info("fetched calendar events", count=len(events), url=url)
    return events
