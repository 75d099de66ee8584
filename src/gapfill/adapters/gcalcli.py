"""gcalcli adapter - subprocess wrapper for Google Calendar."""

import logging
import subprocess
from datetime import date, datetime

from gapfill.core.calendar import CalendarEvent

logger = logging.getLogger(__name__)


def tag_location(raw: str, location_tags: dict[str, str]) -> str | None:
    """Map a free-text event location to a location tag.

    The first configured key found in the location (case-insensitive) wins.
    """
    if not raw:
        return None
    lowered = raw.lower()
    for needle, tag in location_tags.items():
        if needle.lower() in lowered:
            return tag
    return None


class GcalcliAdapter:
    """
    gcalcli subprocess adapter.

    Implements CalendarRepository protocol. Fetches one day of events via
    the gcalcli CLI tool and tags their locations for gap labelling.
    """

    def __init__(
        self,
        config_folder: str | None = None,
        calendars: list[str] | None = None,
        location_tags: dict[str, str] | None = None,
        timeout: int = 30,
    ):
        """
        Initialize the gcalcli adapter.

        Args:
            config_folder: Path to gcalcli config folder (for multi-account support).
            calendars: Calendar names to include. If None, all calendars are fetched.
            location_tags: Substring -> tag map applied to event locations,
                e.g. {"Main St": "workplace"}.
            timeout: Command timeout in seconds.
        """
        self.config_folder = config_folder
        self.label = config_folder.split("/")[-1] if config_folder else "Google"
        self.calendars = calendars
        self.location_tags = location_tags or {}
        self.timeout = timeout

    def fetch_day(self, target_date: date) -> list[CalendarEvent]:
        """Fetch events for a specific date. Raises RuntimeError if gcalcli fails."""
        cmd = [
            "gcalcli",
            "agenda",
            target_date.isoformat(),
            target_date.isoformat(),
            "--tsv",
            "--details",
            "location",
        ]
        if self.config_folder:
            cmd.extend(["--config-folder", self.config_folder])
        for cal in self.calendars or []:
            cmd.extend(["--calendar", cal])

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=True,
                timeout=self.timeout,
            )
        except subprocess.CalledProcessError as e:
            raise RuntimeError(f"gcalcli command failed: {e.stderr or e}")
        except FileNotFoundError:
            raise RuntimeError("gcalcli not found - install with 'pip install gcalcli'")
        except subprocess.TimeoutExpired:
            raise RuntimeError(f"gcalcli timed out after {self.timeout}s")

        return self._parse_output(result.stdout)

    def _parse_output(self, output: str) -> list[CalendarEvent]:
        """Parse gcalcli TSV output into CalendarEvents."""
        events = []
        lines = output.strip().split("\n")

        # Skip header line
        for n, line in enumerate(lines[1:]):
            if not line:
                continue

            parts = line.split("\t")
            if len(parts) < 5:
                continue

            try:
                all_day = not parts[1]
                start = datetime.fromisoformat(f"{parts[0]}T{parts[1] or '00:00'}")
                end = None
                if parts[2]:
                    end = datetime.fromisoformat(f"{parts[2]}T{parts[3] or '00:00'}")
            except ValueError as e:
                logger.debug(f"Skipping malformed gcalcli line: {e}")
                continue

            events.append(
                CalendarEvent(
                    id=f"{self.label}-{parts[0]}-{n}",
                    title=parts[4] or "Untitled",
                    start=start,
                    end=end,
                    location=tag_location(parts[5] if len(parts) > 5 else "", self.location_tags),
                    calendar=self.label,
                    all_day=all_day,
                    source="gcalcli",
                )
            )

        return events
