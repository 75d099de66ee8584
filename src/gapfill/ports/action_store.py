"""Suggestion action store interface."""

from datetime import date
from typing import Protocol

from gapfill.core.actions import SuggestionAction


class SuggestionActionStore(Protocol):
    """Interface for persisting the user's accept/reject/move decisions."""

    def load(self, day: date) -> list[SuggestionAction]:
        """Load the actions recorded for a day."""
        ...

    def record(self, action: SuggestionAction) -> None:
        """Store an action, replacing any earlier one for the same suggestion."""
        ...

    def remove(self, day: date, suggestion_id: str) -> None:
        """Forget the action for a suggestion."""
        ...

    def clear(self) -> None:
        """Forget all recorded actions."""
        ...

    def last_day(self) -> date | None:
        """Most recent day with recorded actions, or None."""
        ...
