"""File-based suggestion action store adapter."""

import json
import logging
from datetime import date
from pathlib import Path

from gapfill.core.actions import SuggestionAction

logger = logging.getLogger(__name__)


class FileActionStore:
    """
    Suggestion actions kept as one JSON file per day.

    Implements SuggestionActionStore protocol.
    """

    def __init__(self, actions_dir: Path | str):
        self.actions_dir = Path(actions_dir).expanduser()
        self.actions_dir.mkdir(parents=True, exist_ok=True)

    def _path_for_date(self, day: date) -> Path:
        """Get the file path for a given date."""
        return self.actions_dir / f"{day.isoformat()}.json"

    def _read(self, day: date) -> dict[str, dict]:
        path = self._path_for_date(day)
        if not path.exists():
            return {}
        return json.loads(path.read_text())

    def _write(self, day: date, entries: dict[str, dict]) -> None:
        self._path_for_date(day).write_text(json.dumps(entries, indent=2))

    def load(self, day: date) -> list[SuggestionAction]:
        """Load the actions recorded for a day."""
        actions = []
        for suggestion_id, data in self._read(day).items():
            try:
                actions.append(SuggestionAction.from_dict(data))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping malformed action {suggestion_id!r}: {e}")
        return actions

    def record(self, action: SuggestionAction) -> None:
        entries = self._read(action.day)
        entries[action.suggestion_id] = action.to_dict()
        self._write(action.day, entries)

    def remove(self, day: date, suggestion_id: str) -> None:
        entries = self._read(day)
        if entries.pop(suggestion_id, None) is not None:
            self._write(day, entries)

    def clear(self) -> None:
        for path in self.actions_dir.glob("*.json"):
            path.unlink()

    def last_day(self) -> date | None:
        """Most recent day with recorded actions."""
        days = []
        for path in self.actions_dir.glob("*.json"):
            try:
                days.append(date.fromisoformat(path.stem))
            except ValueError:
                continue
        return max(days, default=None)
