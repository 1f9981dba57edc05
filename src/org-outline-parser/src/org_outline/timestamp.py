"""Org timestamp parsing.

Handles active and inactive org timestamps (``<2019-03-10 Sun 14:30>``,
``[2019-03-10 Sun]``) including repeaters and warning delays, plain
``YYYY-MM-DD[ HH:MM[:SS]]`` dates and ISO-8601 strings with an offset.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Optional


_ORG_TIMESTAMP_RE = re.compile(
    r"^[<\[]"
    r"(?P<date>\d{4}-\d{2}-\d{2})"
    r"(?:[ \t]+[^\d\s>\]]+)?"
    r"(?:[ \t]+(?P<time>\d{1,2}:\d{2}(?::\d{2})?)(?:-\d{1,2}:\d{2})?)?"
    r"(?:[ \t]+(?:\.\+|\+\+|\+|--|-)\d+[hdwmy](?:/\d+[hdwmy])?)*"
    r"[ \t]*[>\]]$"
)
_PLAIN_RE = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})(?:[ T](?P<time>\d{1,2}:\d{2}(?::\d{2})?))?$"
)
_OFFSET_RE = re.compile(r"^(?P<sign>[+-])(?P<hours>\d{2}):?(?P<minutes>\d{2})$")


def parse_timestamp(raw: str) -> datetime:
    """Parse a timestamp string.

    Org and plain timestamps produce naive datetimes; ISO-8601 strings with
    an explicit offset (or ``Z``) produce aware ones.

    Args:
        raw: Timestamp text

    Returns:
        Parsed datetime

    Raises:
        ValueError: If the text is not a timestamp or names an impossible date

    Examples:
        >>> parse_timestamp("<2019-03-10 Sun 14:30>")
        datetime.datetime(2019, 3, 10, 14, 30)
    """
    text = raw.strip()
    match = _ORG_TIMESTAMP_RE.match(text) or _PLAIN_RE.match(text)
    if match:
        return _combine(match.group("date"), match.group("time"))

    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError as e:
        raise ValueError(f"Unrecognised timestamp: {raw!r}") from e


def parse_utc_offset(value: str) -> timezone:
    """Parse ``+HH:MM`` / ``-HHMM`` / ``Z`` / ``UTC`` into a fixed timezone.

    Raises:
        ValueError: If the offset is malformed or out of range
    """
    text = value.strip()
    if text.upper() in ("Z", "UTC"):
        return timezone.utc
    match = _OFFSET_RE.match(text)
    if not match:
        raise ValueError(f"Invalid UTC offset: {value!r} (expected +HH:MM)")
    delta = timedelta(hours=int(match.group("hours")), minutes=int(match.group("minutes")))
    if match.group("sign") == "-":
        delta = -delta
    return timezone(delta)


def _combine(date_text: str, time_text: Optional[str]) -> datetime:
    year, month, day = (int(part) for part in date_text.split("-"))
    hour = minute = second = 0
    if time_text:
        parts = [int(part) for part in time_text.split(":")]
        hour, minute = parts[0], parts[1]
        if len(parts) > 2:
            second = parts[2]
    try:
        return datetime(year, month, day, hour, minute, second)
    except ValueError as e:
        raise ValueError(f"Invalid calendar date: {date_text} {time_text or ''}".rstrip()) from e
