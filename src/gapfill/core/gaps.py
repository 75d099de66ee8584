"""Gap finding: turn a day's busy events into free intervals.

Pure functions - no I/O.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime

from .intervals import (
    InvalidTimeError,
    TimeRange,
    format_hhmm,
    parse_hhmm,
    snap_down,
    snap_up,
    subtract_ranges,
)

logger = logging.getLogger(__name__)

MIN_GAP_MINUTES = 5
ALL_DAY_RANGE = TimeRange(0, parse_hhmm("23:59"))


@dataclass
class Event:
    """A busy block on the target day, times as HH:MM."""

    id: str
    title: str
    start: str
    end: str
    crosses_midnight: bool = False
    all_day: bool = False
    location: str | None = None


@dataclass(frozen=True)
class DayBoundaries:
    """The user's configured waking window."""

    day_start: str = "08:00"
    day_end: str = "23:00"

    def window(self) -> TimeRange:
        window = TimeRange.parse(self.day_start, self.day_end)
        if window.duration <= 0:
            raise InvalidTimeError(f"Day start {self.day_start} must be before day end {self.day_end}")
        return window


@dataclass(frozen=True)
class Gap:
    """A free interval. Replaced, never mutated."""

    gap_id: str
    start: str
    end: str
    location_label: str | None = None

    @property
    def time_range(self) -> TimeRange:
        return TimeRange.parse(self.start, self.end)

    @property
    def duration(self) -> int:
        return self.time_range.duration

    def format(self) -> str:
        label = f" @ {self.location_label}" if self.location_label else ""
        return f"{self.time_range.format()}{label}"

    def to_dict(self) -> dict:
        return {
            "gap_id": self.gap_id,
            "start": self.start,
            "end": self.end,
            "duration": self.duration,
            "location_label": self.location_label,
        }


@dataclass
class BusyEvent:
    event: Event
    range: TimeRange
    # Only ordinary timed events may stretch the window
    stretches_window: bool


def parse_busy_events(events: list[Event]) -> list[BusyEvent]:
    """Parse events into busy ranges, skipping malformed ones with a warning."""
    parsed = []
    for event in events:
        try:
            start = parse_hhmm(event.start)
            end = parse_hhmm(event.end)
        except InvalidTimeError as e:
            logger.warning(f"Skipping event {event.id!r}: {e}")
            continue

        if event.all_day:
            parsed.append(BusyEvent(event, ALL_DAY_RANGE, False))
        elif event.crosses_midnight or start > end:
            # The part before midnight belongs to the previous day
            parsed.append(BusyEvent(event, TimeRange(0, end), False))
        elif start == end:
            logger.debug(f"Ignoring zero-length event {event.id!r}")
        else:
            parsed.append(BusyEvent(event, TimeRange(start, end), True))
    return parsed


def _effective_window(boundaries: DayBoundaries, parsed: list[BusyEvent]) -> TimeRange:
    window = boundaries.window()
    start, end = window.start, window.end
    for p in parsed:
        if p.stretches_window:
            start = min(start, p.range.start)
            end = max(end, p.range.end)
    return TimeRange(start, end)


def effective_boundaries(boundaries: DayBoundaries, events: list[Event]) -> DayBoundaries:
    """
    Widen the day window so timed events outside it are still accounted for.

    All-day and midnight-crossing events never move the window.
    """
    window = _effective_window(boundaries, parse_busy_events(events))
    return DayBoundaries(format_hhmm(window.start), format_hhmm(window.end))


def _now_minutes(now: datetime | int | None) -> int | None:
    if now is None:
        return None
    if isinstance(now, datetime):
        return now.hour * 60 + now.minute
    return now


def find_gaps(
    boundaries: DayBoundaries,
    events: list[Event],
    *,
    now: datetime | int | None = None,
    min_gap_minutes: int = MIN_GAP_MINUTES,
    snap_minutes: int = 1,
    buffer_before_event: int = 0,
) -> list[Gap]:
    """
    Find free intervals in the effective day window.

    Pure function - no I/O.

    Args:
        boundaries: Configured day start/end
        events: Busy events for the day (malformed ones are skipped)
        now: Current time when planning for today; time already past is blocked
        min_gap_minutes: Shorter gaps are discarded
        snap_minutes: Snap gap starts up and ends down to this increment
        buffer_before_event: Minutes kept free before the next event

    Returns:
        Chronological list of Gaps
    """
    parsed = parse_busy_events(events)
    window = _effective_window(boundaries, parsed)

    busy = [p.range for p in parsed]
    now_minutes = _now_minutes(now)
    if now_minutes is not None and now_minutes > window.start:
        busy.append(TimeRange(window.start, min(now_minutes, window.end)))

    gaps: list[Gap] = []
    for slot in subtract_ranges(window, busy):
        start = snap_up(slot.start, snap_minutes)
        end = slot.end
        if end < window.end:
            end -= buffer_before_event
        end = snap_down(end, snap_minutes)

        if end - start < min_gap_minutes:
            continue

        start_str = format_hhmm(start)
        gaps.append(
            Gap(
                gap_id=f"gap-{start_str.replace(':', '')}-{len(gaps)}",
                start=start_str,
                end=format_hhmm(end),
            )
        )

    logger.debug(f"Found {len(gaps)} gaps in {window.format()} from {len(events)} events")
    return gaps


def subtract_blockers(
    gaps: list[Gap],
    blockers: list[TimeRange],
    min_gap_minutes: int = MIN_GAP_MINUTES,
) -> list[Gap]:
    """
    Remove committed ranges from gaps, splitting them where needed.

    Pure function - no I/O.

    Untouched gaps keep their ids. Split pieces get "-sub-N" suffixes and
    keep the parent's location label.
    """
    result = []
    for gap in gaps:
        pieces = subtract_ranges(gap.time_range, blockers)
        if pieces == [gap.time_range]:
            result.append(gap)
            continue

        kept = [p for p in pieces if p.duration >= min_gap_minutes]
        for n, piece in enumerate(kept):
            result.append(
                replace(
                    gap,
                    gap_id=f"{gap.gap_id}-sub-{n}",
                    start=format_hhmm(piece.start),
                    end=format_hhmm(piece.end),
                )
            )
    return result
