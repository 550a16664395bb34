"""Calendar fetching and parsing."""

from .dates import InvalidDate, date_from_string
from .fetcher import CalendarEvent, fetch_events, parse_events

__all__ = [
    "InvalidDate",
    "date_from_string",
    "CalendarEvent",
    "fetch_events",
    "parse_events",
]
