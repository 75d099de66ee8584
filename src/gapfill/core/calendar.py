"""Pure calendar domain logic - no I/O dependencies."""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from .gaps import Event


@dataclass
class CalendarEvent:
    """A calendar event as delivered by a calendar source."""

    id: str
    title: str
    start: datetime
    end: datetime | None
    location: str | None = None
    calendar: str = ""
    all_day: bool = False
    source: str = ""

    def format_time(self) -> str:
        """Format the event time for display."""
        if self.all_day:
            return "All day"
        return self.start.strftime("%H:%M")

    def duration_minutes(self) -> int | None:
        """Event duration in minutes, or None if no end time."""
        if not self.end:
            return None
        return int((self.end - self.start).total_seconds() / 60)


def local_naive(dt: datetime) -> datetime:
    """Local wall-clock time. Naive datetimes are taken as local already."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone().replace(tzinfo=None)


def filter_events_by_date(events: list[CalendarEvent], target_date: date) -> list[CalendarEvent]:
    """
    Keep events that touch target_date, including ones spilling over midnight.

    Pure function - no I/O. Timed events with a timezone are compared in
    local time; all-day events keep their calendar date.
    """
    day_start = datetime.combine(target_date, time.min)
    day_end = day_start + timedelta(days=1)
    kept = []
    for e in events:
        if e.all_day:
            first = e.start.date()
            last = max((e.end or e.start).date(), first)
            if first <= target_date <= last:
                kept.append(e)
            continue
        start = local_naive(e.start)
        end = local_naive(e.end or e.start)
        if start < day_end and (end > day_start or start >= day_start):
            kept.append(e)
    return kept


def sort_events_by_start(events: list[CalendarEvent]) -> list[CalendarEvent]:
    """Sort events by start time."""
    return sorted(events, key=lambda e: local_naive(e.start))


def to_day_events(events: list[CalendarEvent], target_date: date) -> list[Event]:
    """
    Convert datetime events into day-local HH:MM events for the gap finder.

    Pure function - no I/O.

    Events that began on an earlier day are flagged as crossing midnight and
    start at 00:00. Events that run past midnight are cut at 23:59.
    """
    day_events = []
    for e in sort_events_by_start(filter_events_by_date(events, target_date)):
        if e.all_day:
            day_events.append(
                Event(id=e.id, title=e.title, start="00:00", end="23:59", all_day=True, location=e.location)
            )
            continue

        start = local_naive(e.start)
        end = local_naive(e.end or e.start)
        crosses_midnight = start.date() < target_date
        start_str = "00:00" if crosses_midnight else start.strftime("%H:%M")
        end_str = "23:59" if end.date() > target_date else end.strftime("%H:%M")
        day_events.append(
            Event(
                id=e.id,
                title=e.title,
                start=start_str,
                end=end_str,
                crosses_midnight=crosses_midnight,
                location=e.location,
            )
        )
    return day_events
