"""Shared fixtures: memo factories and in-memory ports."""

import copy
from datetime import date, datetime, time

import pytest

from gapfill.core.memos import (
    BacklogState,
    DeadlineState,
    Importance,
    Memo,
    Period,
    RecurrenceGoal,
    RoutineState,
)


@pytest.fixture
def today():
    return date(2025, 1, 15)


@pytest.fixture
def now(today):
    return datetime.combine(today, time(10, 0))


@pytest.fixture
def make_routine(now):
    """Factory for routine memos."""
    def _make(memo_id: str = "r1", count: int = 3, period: Period = Period.WEEK, **kwargs) -> Memo:
        state_fields = {
            k: kwargs.pop(k)
            for k in list(kwargs)
            if k in ("accepted_today", "rejected_today", "completed_today", "completed_count_this_period",
                     "last_completed_day", "period_start_date", "accepted_slot")
        }
        return Memo(
            id=memo_id,
            title=kwargs.pop("title", f"Routine {memo_id}"),
            state=RoutineState(goal=RecurrenceGoal(count=count, period=period), **state_fields),
            created_at=kwargs.pop("created_at", datetime(2025, 1, 1, 9, 0)),
            **kwargs,
        )
    return _make


@pytest.fixture
def make_deadline(now):
    """Factory for deadline memos."""
    def _make(memo_id: str = "d1", deadline: datetime | None = None, **kwargs) -> Memo:
        state_fields = {
            k: kwargs.pop(k)
            for k in list(kwargs)
            if k in ("accepted_slots", "rejected_today", "last_completed_day", "actual_durations", "smoothed_multiplier")
        }
        return Memo(
            id=memo_id,
            title=kwargs.pop("title", f"Deadline {memo_id}"),
            state=DeadlineState(deadline=deadline or datetime(2025, 1, 15, 18, 0), **state_fields),
            created_at=kwargs.pop("created_at", datetime(2025, 1, 1, 9, 0)),
            **kwargs,
        )
    return _make


@pytest.fixture
def make_backlog(now):
    """Factory for backlog memos."""
    def _make(memo_id: str = "b1", importance: Importance = Importance.MEDIUM, **kwargs) -> Memo:
        state_fields = {
            k: kwargs.pop(k)
            for k in list(kwargs)
            if k in ("accepted_today", "rejected_today", "last_completed_day", "accepted_slot")
        }
        return Memo(
            id=memo_id,
            title=kwargs.pop("title", f"Backlog {memo_id}"),
            state=BacklogState(**state_fields),
            created_at=kwargs.pop("created_at", now),
            importance=importance,
            **kwargs,
        )
    return _make


class InMemoryTasks:
    """TaskRepository backed by a dict; hands out copies like a real store."""

    def __init__(self, memos: list[Memo]):
        self.memos = {m.id: copy.deepcopy(m) for m in memos}
        self.saved: list[str] = []

    def fetch_all(self) -> list[Memo]:
        return [copy.deepcopy(m) for m in self.memos.values()]

    def get(self, memo_id: str) -> Memo | None:
        memo = self.memos.get(memo_id)
        return copy.deepcopy(memo) if memo else None

    def save(self, memo: Memo) -> None:
        self.memos[memo.id] = copy.deepcopy(memo)
        self.saved.append(memo.id)


class StaticCalendar:
    """CalendarRepository returning the same events for any day."""

    def __init__(self, events):
        self.events = events

    def fetch_day(self, target_date: date):
        return list(self.events)


class InMemoryActions:
    """SuggestionActionStore backed by a dict per day."""

    def __init__(self):
        self.days: dict[date, dict] = {}

    def load(self, day):
        return list(self.days.get(day, {}).values())

    def record(self, action):
        self.days.setdefault(action.day, {})[action.suggestion_id] = action

    def remove(self, day, suggestion_id):
        self.days.get(day, {}).pop(suggestion_id, None)

    def clear(self):
        self.days.clear()

    def last_day(self):
        return max(self.days, default=None)


class Clock:
    """Settable stand-in for datetime.now."""

    def __init__(self, current: datetime):
        self.current = current

    def __call__(self) -> datetime:
        return self.current
