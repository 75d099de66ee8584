"""Task repository interface."""

from typing import Protocol

from gapfill.core.memos import Memo


class TaskRepository(Protocol):
    """Interface for loading and persisting memos."""

    def fetch_all(self) -> list[Memo]:
        """Fetch all memos."""
        ...

    def get(self, memo_id: str) -> Memo | None:
        """Fetch one memo, or None if unknown."""
        ...

    def save(self, memo: Memo) -> None:
        """Persist a memo, replacing any stored version."""
        ...
