"""JSON-file calendar adapter."""

import json
import logging
from datetime import date, datetime
from pathlib import Path

from gapfill.core.calendar import CalendarEvent, filter_events_by_date, sort_events_by_start

logger = logging.getLogger(__name__)


class JsonCalendarAdapter:
    """
    Calendar events exported to a JSON file.

    Implements CalendarRepository protocol. Each entry needs a title and an
    ISO start; end, location, all_day and calendar are optional.
    """

    def __init__(self, path: Path | str, label: str = "json"):
        self.path = Path(path).expanduser()
        self.label = label

    def fetch_all(self) -> list[CalendarEvent]:
        if not self.path.exists():
            logger.info(f"No events file at {self.path}")
            return []

        events = []
        for i, item in enumerate(json.loads(self.path.read_text())):
            try:
                start = datetime.fromisoformat(item["start"])
                end = datetime.fromisoformat(item["end"]) if item.get("end") else None
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed event #{i} in {self.path.name}: {e}")
                continue
            events.append(
                CalendarEvent(
                    id=str(item.get("id") or f"{self.label}-{i}"),
                    title=item.get("title", "Untitled"),
                    start=start,
                    end=end,
                    location=item.get("location") or None,
                    calendar=item.get("calendar", self.label),
                    all_day=bool(item.get("all_day", False)),
                    source="json",
                )
            )
        return events

    def fetch_day(self, target_date: date) -> list[CalendarEvent]:
        """Fetch events touching a single day."""
        return sort_events_by_start(filter_events_by_date(self.fetch_all(), target_date))
