"""Task scoring: need, importance and session length per memo.

Pure functions - no I/O.

Need is the urgency of doing a task today. A need of MANDATORY_THRESHOLD
or more makes the task mandatory. Importance is a fixed per-task weight
used to break ties between equally needed tasks.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime

from .memos import (
    BacklogState,
    DeadlineState,
    Importance,
    InvalidMemoError,
    Memo,
    MemoKind,
    RoutineState,
)
from .periods import period_days, reset_period_if_needed

logger = logging.getLogger(__name__)

MANDATORY_THRESHOLD = 1.0

ROUTINE_MIN_NEED = 0.3
ROUTINE_MAX_NEED = 0.8
ROUTINE_GOAL_MET_NEED = 0.1

DEADLINE_MIN_NEED = 0.1
DEADLINE_APPROACH_MAX = 0.95
DEADLINE_LAST_DAY_NEED = 0.9
OVERDUE_STEP_PER_DAY = 0.1
OVERDUE_MAX_BONUS = 0.5
ACCEPTED_NEED_CAP = 0.3

BACKLOG_BASE_NEED = {
    Importance.LOW: 0.5,
    Importance.MEDIUM: 0.55,
    Importance.HIGH: 0.6,
}
BACKLOG_DAILY_GROWTH = 0.02
BACKLOG_MAX_NEED = 0.7

IMPORTANCE_WEIGHTS = {
    Importance.LOW: 0.3,
    Importance.MEDIUM: 0.6,
    Importance.HIGH: 0.9,
}

DEFAULT_SESSION_MINUTES = 30
MIN_SESSION_MINUTES = 15
MAX_SESSION_MINUTES = 120
# Without an explicit session length, the expected total is split this many ways
SESSIONS_PER_TOTAL = 4

# Used when a memo gives no total expected effort
DEFAULT_TOTAL_MINUTES = 60

SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True)
class Suggestion:
    """A scored task, ready for allocation."""

    suggestion_id: str
    memo_id: str
    title: str
    kind: MemoKind
    need: float
    importance: float
    duration: int
    location_preference: str = "no_preference"
    explanation: str | None = field(default=None, compare=False)

    @property
    def is_mandatory(self) -> bool:
        return self.need >= MANDATORY_THRESHOLD

    def to_dict(self) -> dict:
        return {
            "suggestion_id": self.suggestion_id,
            "memo_id": self.memo_id,
            "title": self.title,
            "kind": self.kind.value,
            "need": round(self.need, 3),
            "importance": round(self.importance, 3),
            "duration": self.duration,
            "location_preference": self.location_preference,
            "mandatory": self.is_mandatory,
            "explanation": self.explanation,
        }


def suggestion_id_for(memo_id: str, day: date, sequence: int = 0) -> str:
    """Stable suggestion id for a memo on a given day.

    Deadline memos can hold several sessions a day; later ones get a suffix.
    """
    base = f"suggestion-{memo_id}-{day.strftime('%Y%m%d')}"
    return f"{base}-{sequence + 1}" if sequence else base


def remaining_work_ratio(memo: Memo) -> float:
    """Share of the estimated effort still to do, from 0.0 to 1.0."""
    expected = memo.total_duration_expected or DEFAULT_TOTAL_MINUTES
    if isinstance(memo.state, DeadlineState):
        expected *= memo.state.smoothed_multiplier
    if expected <= 0:
        return 0.0
    return 1.0 - min(memo.status.time_spent_minutes / expected, 1.0)


def routine_need(memo: Memo, now: datetime) -> float:
    """
    Need grows with the days since the last completion.

    It goes from ROUTINE_MIN_NEED right after a completion to
    ROUTINE_MAX_NEED once the goal's implied interval has passed (7/3 days
    for three times a week). Routines never become mandatory.
    """
    state = memo.state
    goal = state.goal
    if state.completed_count_this_period >= goal.count:
        return ROUTINE_GOAL_MET_NEED
    if state.last_completed_day is None:
        return ROUTINE_MAX_NEED

    interval_days = period_days(now.date(), goal.period) / goal.count
    elapsed_days = (now.date() - state.last_completed_day).days
    ratio = min(max(elapsed_days / interval_days, 0.0), 1.0)
    return ROUTINE_MIN_NEED + (ROUTINE_MAX_NEED - ROUTINE_MIN_NEED) * ratio


def deadline_need(memo: Memo, now: datetime) -> float:
    """
    Need rises along an ease-in curve from creation to deadline.

    It is exactly MANDATORY_THRESHOLD on the due day and above it once the
    deadline has passed, escalating per day overdue.
    """
    deadline = memo.state.deadline

    if now >= deadline:
        days_overdue = (now - deadline).total_seconds() / SECONDS_PER_DAY
        return MANDATORY_THRESHOLD + min(days_overdue * OVERDUE_STEP_PER_DAY, OVERDUE_MAX_BONUS)

    if now.date() == deadline.date():
        return MANDATORY_THRESHOLD

    span = (deadline - memo.created_at).total_seconds()
    if span <= 0:
        return MANDATORY_THRESHOLD

    elapsed = (now - memo.created_at).total_seconds()
    position = min(max(elapsed / span, 0.0), 1.0)
    base = DEADLINE_MIN_NEED + (DEADLINE_APPROACH_MAX - DEADLINE_MIN_NEED) * position**2
    need = max(DEADLINE_MIN_NEED, base * (0.3 + 0.7 * remaining_work_ratio(memo)))

    if (deadline.date() - now.date()).days == 1:
        need = max(need, DEADLINE_LAST_DAY_NEED)
    return min(need, DEADLINE_APPROACH_MAX)


def backlog_need(memo: Memo, now: datetime) -> float:
    """Importance-based need, nudged up for each day the item sits untouched."""
    touched = memo.last_activity or memo.created_at
    days_untouched = max((now - touched).days, 0)
    base = BACKLOG_BASE_NEED[memo.importance]
    return min(base + BACKLOG_DAILY_GROWTH * days_untouched, BACKLOG_MAX_NEED)


def calculate_need(memo: Memo, now: datetime) -> float:
    match memo.state:
        case RoutineState():
            return routine_need(memo, now)
        case DeadlineState():
            return deadline_need(memo, now)
        case BacklogState():
            return backlog_need(memo, now)
    raise InvalidMemoError(f"Memo {memo.id!r} has unknown kind")


def calculate_importance(memo: Memo) -> float:
    return IMPORTANCE_WEIGHTS[memo.importance]


def select_duration(memo: Memo) -> int:
    """
    Session length in minutes, clamped to MIN_SESSION_MINUTES..MAX_SESSION_MINUTES.

    The memo's own session_duration wins; otherwise a quarter of the expected
    total, otherwise DEFAULT_SESSION_MINUTES.
    """
    if memo.session_duration and memo.session_duration > 0:
        return _clamp_session(memo.session_duration)
    if memo.total_duration_expected and memo.total_duration_expected > 0:
        return _clamp_session(math.ceil(memo.total_duration_expected / SESSIONS_PER_TOTAL))
    return DEFAULT_SESSION_MINUTES


def _clamp_session(minutes: int) -> int:
    return min(max(minutes, MIN_SESSION_MINUTES), MAX_SESSION_MINUTES)


def is_active(memo: Memo) -> bool:
    """Completed, accepted and rejected memos are kept out of allocation."""
    return not (memo.is_completed or memo.accepted_today or memo.rejected_today)


def _free_suggestion_id(memo: Memo, day: date, taken_ids: set[str]) -> str:
    """Id for the memo's next session, skipping ids already in use today."""
    sequence = len(memo.accepted_slots())
    suggestion_id = suggestion_id_for(memo.id, day, sequence)
    while suggestion_id in taken_ids:
        sequence += 1
        suggestion_id = suggestion_id_for(memo.id, day, sequence)
    return suggestion_id


def score_memo(
    memo: Memo,
    now: datetime,
    accepted: bool = False,
    taken_ids: set[str] | None = None,
) -> Suggestion:
    """Score a single memo. Call reset_period_if_needed first."""
    need = calculate_need(memo, now)
    importance = calculate_importance(memo)
    if accepted:
        # Already committed earlier today; keep it behind everything else
        need = min(need * 0.5, ACCEPTED_NEED_CAP)
        importance *= 0.5

    return Suggestion(
        suggestion_id=_free_suggestion_id(memo, now.date(), taken_ids or set()),
        memo_id=memo.id,
        title=memo.title,
        kind=memo.kind,
        need=need,
        importance=importance,
        duration=select_duration(memo),
        location_preference=memo.location_preference,
    )


def score_tasks(
    tasks: list[Memo],
    now: datetime,
    accepted_memo_ids: set[str] | None = None,
    taken_ids: set[str] | None = None,
) -> list[Suggestion]:
    """
    Score every active memo.

    Pure function - no I/O. Input memos are not modified.

    Args:
        tasks: Memos of any kind
        now: Current time
        accepted_memo_ids: Memos already committed today; their need is
            forced low so they sort behind fresh work
        taken_ids: Suggestion ids already committed today; new ids avoid them

    Returns:
        One Suggestion per active, valid memo, in input order
    """
    accepted_memo_ids = accepted_memo_ids or set()
    suggestions = []
    for memo in tasks:
        try:
            memo.validate()
        except InvalidMemoError as e:
            logger.warning(f"Skipping memo: {e}")
            continue

        memo = reset_period_if_needed(memo, now)
        if not is_active(memo):
            continue
        suggestions.append(score_memo(memo, now, accepted=memo.id in accepted_memo_ids, taken_ids=taken_ids))
    return suggestions
