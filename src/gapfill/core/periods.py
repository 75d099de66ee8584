"""Day/week/month period arithmetic for memos - pure, no I/O.

Weeks start on Sunday.
"""

import calendar
import copy
from datetime import date, datetime, timedelta

from .memos import BacklogState, DeadlineState, Memo, Period, RoutineState


def is_same_day(a: datetime | date, b: datetime | date) -> bool:
    return _as_date(a) == _as_date(b)


def is_same_week(a: datetime | date, b: datetime | date) -> bool:
    return week_start(_as_date(a)) == week_start(_as_date(b))


def is_same_month(a: datetime | date, b: datetime | date) -> bool:
    a, b = _as_date(a), _as_date(b)
    return (a.year, a.month) == (b.year, b.month)


def week_start(day: date) -> date:
    """The Sunday on or before day."""
    # date.weekday(): Monday=0 ... Sunday=6
    return day - timedelta(days=(day.weekday() + 1) % 7)


def period_start(day: date, period: Period) -> date:
    match period:
        case Period.DAY:
            return day
        case Period.WEEK:
            return week_start(day)
        case Period.MONTH:
            return day.replace(day=1)
    raise ValueError(f"Unknown period: {period}")


def period_days(day: date, period: Period) -> int:
    """Length in days of the period containing day."""
    match period:
        case Period.DAY:
            return 1
        case Period.WEEK:
            return 7
        case Period.MONTH:
            return calendar.monthrange(day.year, day.month)[1]
    raise ValueError(f"Unknown period: {period}")


def period_progress(now: datetime, period: Period) -> float:
    """How far through the current period now is, from 0.0 to just under 1.0."""
    day_fraction = (now.hour * 60 + now.minute) / (24 * 60)
    elapsed_days = (now.date() - period_start(now.date(), period)).days
    return (elapsed_days + day_fraction) / period_days(now.date(), period)


def _as_date(value: datetime | date) -> date:
    return value.date() if isinstance(value, datetime) else value


def reset_period_if_needed(memo: Memo, now: datetime) -> Memo:
    """
    Clear day-scoped flags left over from an earlier day.

    Returns a new memo when something changed, otherwise the same object.
    The day boundary is detected from last_activity; a memo with no
    recorded activity keeps its state, except deadline memos holding
    slots, which are always cleared.

    Routines also roll their completion counter when a new period begins.
    """
    last = memo.last_activity
    new_day = last is not None and not is_same_day(last, now)
    state = memo.state
    changes: dict = {}

    match state:
        case RoutineState():
            if new_day and (
                state.accepted_today
                or state.completed_today
                or state.rejected_today
                or state.accepted_slot
                or memo.status.time_spent_today > 0
            ):
                changes.update(accepted_today=False, completed_today=False, rejected_today=False, accepted_slot=None)
            current_start = period_start(now.date(), state.goal.period)
            if state.period_start_date != current_start:
                changes.update(period_start_date=current_start)
                if state.period_start_date is not None:
                    changes.update(completed_count_this_period=0)
        case BacklogState():
            if new_day and (
                state.accepted_today
                or state.rejected_today
                or state.accepted_slot
                or memo.status.time_spent_today > 0
            ):
                changes.update(accepted_today=False, rejected_today=False, accepted_slot=None)
        case DeadlineState():
            needs_reset = new_day if last is not None else bool(state.accepted_slots)
            if needs_reset and (state.accepted_slots or state.rejected_today or memo.status.time_spent_today > 0):
                changes.update(accepted_slots=[], rejected_today=False)

    if not changes:
        return memo

    updated = copy.deepcopy(memo)
    for name, value in changes.items():
        setattr(updated.state, name, value)
    if new_day or isinstance(state, DeadlineState):
        updated.status.time_spent_today = 0
    return updated


def clear_daily_flags(memo: Memo) -> Memo:
    """Unconditionally clear today's accepted/rejected state on a copy of memo."""
    updated = copy.deepcopy(memo)
    state = updated.state
    state.rejected_today = False
    if isinstance(state, DeadlineState):
        state.accepted_slots = []
    else:
        state.accepted_today = False
        state.accepted_slot = None
        if isinstance(state, RoutineState):
            state.completed_today = False
    updated.status.time_spent_today = 0
    return updated
