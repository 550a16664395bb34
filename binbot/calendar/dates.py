"""Parsing of DTSTART values of the form YYYYMMDD."""
from datetime import date


class InvalidDate(ValueError):
    """The value is not a valid 8-digit calendar date."""


def date_from_string(value: str) -> date:
    if len(value) != 8:
        raise InvalidDate(f"expected 8 characters, got {len(value)}")
    if not value.isdigit():
        raise InvalidDate(f"not a numeric date: {value!r}")
    try:
        return date(int(value[0:4]), int(value[4:6]), int(value[6:8]))
    except ValueError as e:
        raise InvalidDate(f"impossible date: {value!r}") from e
