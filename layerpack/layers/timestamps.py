#!/usr/bin/env python3
"""Timestamp parsing for archive entries and image creation time.

A timestamp string is either a millisecond Unix epoch ("1700000000000") or a
date/time in one of a fixed set of layouts. Parsing never raises: a failed
parse yields the current time together with a ``TimestampParseError`` so the
caller decides whether the fallback is acceptable.

Example:
    >>> result = parse_timestamp("2020-01-01T00:00:00Z")
    >>> result.ok, result.value.year
    (True, 2020)
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from layerpack.core.constants import ErrorCode

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Canonical base-10 integer: no sign on zero, no leading zeros, no "+"
_MILLIS_RE = re.compile(r"0|-?[1-9][0-9]*")

# RFC-3339 with numeric offset or "Z" (%z accepts both)
RFC3339_LAYOUTS = (
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f%z",
)

# Tried in order after the millisecond form
DATETIME_LAYOUTS = RFC3339_LAYOUTS + (
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S",
)


class TimestampParseError(ValueError):
    """Raised-as-value when a timestamp string matches no known form."""

    def __init__(self, text: str, error_code: ErrorCode = ErrorCode.DEGRADED):
        super().__init__(f"failed to parse timestamp: {text!r}")
        self.text = text
        self.error_code = error_code


@dataclass(frozen=True)
class TimestampResult:
    """Outcome of a timestamp parse.

    ``value`` is always a usable timezone-aware datetime; ``error`` is set
    when ``value`` is the fallback rather than the parsed input.
    """

    value: datetime
    error: Optional[TimestampParseError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def epoch_seconds(self) -> float:
        return to_epoch_seconds(self.value)


def to_epoch_seconds(value: datetime) -> float:
    """Convert a datetime to seconds since the Unix epoch.

    Whole seconds are returned as ``int`` so tar headers stay in the
    fixed-width octal fields.
    """
    seconds = (value - EPOCH).total_seconds()
    if seconds == int(seconds):
        return int(seconds)
    return seconds


def from_millis(millis: int) -> datetime:
    """Build a UTC datetime from milliseconds since the epoch."""
    return EPOCH + timedelta(milliseconds=millis)


def _parse_millis(text: str) -> Optional[datetime]:
    if not _MILLIS_RE.fullmatch(text):
        return None
    try:
        return from_millis(int(text))
    except OverflowError:
        return None


def _parse_layouts(text: str, layouts: Sequence[str]) -> Optional[datetime]:
    for layout in layouts:
        try:
            parsed = datetime.strptime(text, layout)
        except ValueError:
            continue
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return None


def parse_timestamp(text: str, layouts: Sequence[str] = DATETIME_LAYOUTS) -> TimestampResult:
    """Normalize a string into an absolute point in time.

    Args:
        text: Millisecond epoch or formatted date/time
        layouts: strptime layouts tried after the millisecond form

    Returns:
        TimestampResult; on failure the value is the current UTC time
    """
    parsed = _parse_millis(text)
    if parsed is None:
        parsed = _parse_layouts(text, layouts)

    if parsed is None:
        return TimestampResult(datetime.now(timezone.utc), TimestampParseError(text))

    return TimestampResult(parsed)


def parse_entry_timestamp(text: str) -> TimestampResult:
    """Parse a per-entry timestamp (millisecond epoch or RFC-3339 only)."""
    return parse_timestamp(text, RFC3339_LAYOUTS)
