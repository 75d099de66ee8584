"""Calendar repository interface."""

from datetime import date
from typing import Protocol

from gapfill.core.calendar import CalendarEvent


class CalendarRepository(Protocol):
    """Interface for fetching calendar events from any backend."""

    def fetch_day(self, target_date: date) -> list[CalendarEvent]:
        """Fetch events touching a single day."""
        ...
