"""Utility functions for crosslink."""

from datetime import datetime, timezone


def to_iso8601(timestamp: float) -> str:
    """Render a POSIX timestamp as a UTC ISO-8601 string.

    Millisecond precision with a ``Z`` suffix, the format browsers and the
    peer system produce for dates.

    Examples:
        >>> to_iso8601(0)
        '1970-01-01T00:00:00.000Z'
    """
    moment = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def is_numeric_id(value: object) -> bool:
    """Whether value is an integer or a string holding one."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, float):
        return value.is_integer()
    if isinstance(value, str):
        text = value.strip()
        if text.startswith(("-", "+")):
            text = text[1:]
        return text.isdigit() and text.isascii()
    return False
