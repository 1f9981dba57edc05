"""Untyped property bag with typed accessors.

Org properties are plain strings. Values are only interpreted when a field
asks for them, and interpretation errors name the heading and property.
"""

import re
from collections.abc import Mapping
from datetime import datetime, tzinfo
from typing import Iterator, Optional

from org_outline.timestamp import parse_timestamp

from orgpost.services.exceptions import InvalidDateFormat, InvalidPropertyValue


_TRUE_VALUES = {"t", "true", "yes", "y", "on", "1"}
_FALSE_VALUES = {"nil", "false", "no", "n", "off", "0"}
_PAIR_RE = re.compile(r"(?:^|\s):(?P<key>[^\s:][^\s]*)(?:\s+(?P<value>(?:(?!\s:[^\s:]).)*))?")


def normalize_timestamp(value: datetime, tz: tzinfo) -> str:
    """Render a datetime as ISO-8601 in the fixed offset ``tz``.

    Naive values are taken to already be in ``tz``; aware ones are converted.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=tz)
    else:
        value = value.astimezone(tz)
    return value.isoformat()


class PropertyBag(Mapping):
    """Read-only, case-insensitive view over one heading's properties."""

    def __init__(self, properties: Mapping[str, str], heading: str):
        self._properties = dict(properties)
        self._keys = {key.casefold(): key for key in self._properties}
        self.heading = heading

    def __getitem__(self, key: str) -> str:
        return self._properties[self._keys[key.casefold()]]

    def __iter__(self) -> Iterator[str]:
        return iter(self._properties)

    def __len__(self) -> int:
        return len(self._properties)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.casefold() in self._keys

    def get_str(self, key: str) -> Optional[str]:
        """Stripped value, or None when the property is missing or blank."""
        value = self.get(key)
        if value is None or not value.strip():
            return None
        return value.strip()

    def get_bool(self, key: str) -> Optional[bool]:
        """Boolean value (org's ``t``/``nil`` as well as true/false, yes/no).

        Raises:
            InvalidPropertyValue: If the value is not a recognised boolean
        """
        value = self.get_str(key)
        if value is None:
            return None
        lowered = value.lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise InvalidPropertyValue(self.heading, key, value, "a boolean such as t/nil or true/false")

    def get_list(self, key: str) -> Optional[list[str]]:
        """Whitespace-separated words, or None when missing or blank."""
        value = self.get_str(key)
        if value is None:
            return None
        return value.split()

    def get_date(self, key: str, tz: tzinfo) -> Optional[str]:
        """ISO-8601 date in the fixed offset ``tz``.

        Raises:
            InvalidDateFormat: If the value is not a timestamp
        """
        value = self.get_str(key)
        if value is None:
            return None
        return parse_date(value, tz, self.heading, key)

    def get_pairs(self, key: str) -> dict[str, str]:
        """Parse ``:key value :key2 "value two"`` into an ordered dict.

        One pair of surrounding double quotes is removed from each value.
        """
        value = self.get_str(key)
        if value is None:
            return {}
        pairs = {}
        for match in _PAIR_RE.finditer(value):
            text = (match.group("value") or "").strip()
            if len(text) >= 2 and text[0] == text[-1] == '"':
                text = text[1:-1]
            pairs[match.group("key")] = text
        return pairs


def parse_date(value: str, tz: tzinfo, heading: str, key: str) -> str:
    """Parse and normalize a date value, raising InvalidDateFormat on failure."""
    try:
        parsed = parse_timestamp(value)
    except ValueError as e:
        raise InvalidDateFormat(heading, key, value) from e
    return normalize_timestamp(parsed, tz)
