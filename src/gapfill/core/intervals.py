"""Minute-of-day interval arithmetic - pure, no I/O."""

import re
from dataclasses import dataclass

MINUTES_PER_DAY = 24 * 60

_HHMM_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


class InvalidTimeError(ValueError):
    """Raised when a time-of-day string cannot be parsed."""


def parse_hhmm(value: str) -> int:
    """Convert "HH:MM" to minutes since midnight.

    "24:00" is accepted as the end of the day.
    """
    match = _HHMM_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise InvalidTimeError(f"Malformed time: {value!r}")

    hours, minutes = int(match.group(1)), int(match.group(2))
    if minutes >= 60 or hours > 24 or (hours == 24 and minutes != 0):
        raise InvalidTimeError(f"Time out of range: {value!r}")
    return hours * 60 + minutes


def format_hhmm(minutes: int) -> str:
    """Convert minutes since midnight back to "HH:MM"."""
    if not 0 <= minutes <= MINUTES_PER_DAY:
        raise InvalidTimeError(f"Minutes out of range: {minutes}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def format_duration(minutes: int) -> str:
    """Human-readable duration: 45m, 2h, 1h 30m."""
    hours, mins = divmod(minutes, 60)
    if hours == 0:
        return f"{mins}m"
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}m"


def snap_up(minutes: int, increment: int) -> int:
    if increment <= 1:
        return minutes
    return -(-minutes // increment) * increment


def snap_down(minutes: int, increment: int) -> int:
    if increment <= 1:
        return minutes
    return (minutes // increment) * increment


@dataclass(frozen=True)
class TimeRange:
    """A half-open range [start, end) in minutes since midnight."""

    start: int
    end: int

    @classmethod
    def parse(cls, start: str, end: str) -> "TimeRange":
        return cls(parse_hhmm(start), parse_hhmm(end))

    @property
    def duration(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "TimeRange") -> bool:
        """Strict overlap - ranges that only touch do not overlap."""
        return self.start < other.end and other.start < self.end

    def contains(self, other: "TimeRange") -> bool:
        """Check if another range lies entirely within this one."""
        return self.start <= other.start and other.end <= self.end

    def format(self) -> str:
        return f"{format_hhmm(self.start)}-{format_hhmm(self.end)} ({format_duration(self.duration)})"


def merge_ranges(ranges: list[TimeRange]) -> list[TimeRange]:
    """
    Merge overlapping and touching ranges.

    Pure function - no I/O.

    Returns a sorted list of disjoint ranges with gaps of at least one
    minute between them.
    """
    merged: list[TimeRange] = []
    for current in sorted(ranges, key=lambda r: (r.start, r.end)):
        if current.duration <= 0:
            continue
        if merged and current.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = TimeRange(last.start, max(last.end, current.end))
        else:
            merged.append(current)
    return merged


def subtract_ranges(window: TimeRange, busy: list[TimeRange]) -> list[TimeRange]:
    """
    Return the parts of window not covered by any busy range.

    Pure function - no I/O.
    """
    free = []
    cursor = window.start
    for block in merge_ranges(busy):
        if block.end <= window.start or block.start >= window.end:
            continue
        if block.start > cursor:
            free.append(TimeRange(cursor, block.start))
        cursor = max(cursor, block.end)
    if cursor < window.end:
        free.append(TimeRange(cursor, window.end))
    return free
