"""Task ("memo") model - pure data, no I/O.

A memo is exactly one of three kinds, each with its own day-scoped state:
routines recur toward a period goal, deadline tasks must be done by an
instant, backlog items have no time pressure at all.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from .intervals import InvalidTimeError, TimeRange


class MemoKind(str, Enum):
    ROUTINE = "routine"
    DEADLINE = "deadline"
    BACKLOG = "backlog"


class Importance(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CompletionState(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Period(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class InvalidMemoError(ValueError):
    """Raised when a memo is malformed."""


@dataclass
class AcceptedSlot:
    """A time range the user committed to for a memo."""

    start_time: str
    end_time: str
    duration: int
    logged: bool = False

    @property
    def time_range(self) -> TimeRange:
        return TimeRange.parse(self.start_time, self.end_time)

    def to_dict(self) -> dict:
        return {
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration": self.duration,
            "logged": self.logged,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AcceptedSlot":
        return cls(
            start_time=data["start_time"],
            end_time=data["end_time"],
            duration=int(data["duration"]),
            logged=bool(data.get("logged", False)),
        )


@dataclass
class RecurrenceGoal:
    count: int
    period: Period


@dataclass
class MemoStatus:
    time_spent_minutes: int = 0
    time_spent_today: int = 0
    completion_state: CompletionState = CompletionState.NOT_STARTED


@dataclass
class RoutineState:
    goal: RecurrenceGoal
    accepted_today: bool = False
    rejected_today: bool = False
    completed_today: bool = False
    completed_count_this_period: int = 0
    last_completed_day: date | None = None
    period_start_date: date | None = None
    accepted_slot: AcceptedSlot | None = None


@dataclass
class DeadlineState:
    deadline: datetime
    accepted_slots: list[AcceptedSlot] = field(default_factory=list)
    rejected_today: bool = False
    last_completed_day: date | None = None
    # Minutes logged per day, indexed from the memo's creation day
    actual_durations: list[int] = field(default_factory=list)
    # Running estimate of actual/expected effort
    smoothed_multiplier: float = 1.0


@dataclass
class BacklogState:
    accepted_today: bool = False
    rejected_today: bool = False
    last_completed_day: date | None = None
    accepted_slot: AcceptedSlot | None = None


MemoState = RoutineState | DeadlineState | BacklogState


@dataclass
class Memo:
    """A schedulable task."""

    id: str
    title: str
    state: MemoState
    created_at: datetime
    importance: Importance = Importance.MEDIUM
    location_preference: str = "no_preference"
    session_duration: int | None = None
    total_duration_expected: int | None = None
    status: MemoStatus = field(default_factory=MemoStatus)
    last_activity: datetime | None = None
    genre: str = ""

    @property
    def kind(self) -> MemoKind:
        match self.state:
            case RoutineState():
                return MemoKind.ROUTINE
            case DeadlineState():
                return MemoKind.DEADLINE
            case BacklogState():
                return MemoKind.BACKLOG
        raise InvalidMemoError(f"Memo {self.id!r} has unknown state {type(self.state).__name__}")

    @property
    def is_completed(self) -> bool:
        return self.status.completion_state == CompletionState.COMPLETED

    @property
    def accepted_today(self) -> bool:
        """Whether the memo already holds a commitment that hides it for the day."""
        if isinstance(self.state, DeadlineState):
            return False
        return self.state.accepted_today

    @property
    def rejected_today(self) -> bool:
        return self.state.rejected_today

    def accepted_slots(self) -> list[AcceptedSlot]:
        """All current commitments, regardless of kind."""
        if isinstance(self.state, DeadlineState):
            return list(self.state.accepted_slots)
        return [self.state.accepted_slot] if self.state.accepted_slot else []

    def validate(self) -> None:
        """Raise InvalidMemoError if the memo cannot be scheduled."""
        if not self.id:
            raise InvalidMemoError("Memo has no id")
        if self.created_at is None:
            raise InvalidMemoError(f"Memo {self.id!r} has no creation time")
        if isinstance(self.state, DeadlineState) and self.state.deadline is None:
            raise InvalidMemoError(f"Deadline memo {self.id!r} has no deadline")
        if self.session_duration is not None and self.session_duration <= 0:
            raise InvalidMemoError(f"Memo {self.id!r} has non-positive session duration {self.session_duration}")
        if self.total_duration_expected is not None and self.total_duration_expected < 0:
            raise InvalidMemoError(f"Memo {self.id!r} has negative expected duration")
        if isinstance(self.state, RoutineState) and self.state.goal.count < 1:
            raise InvalidMemoError(f"Routine {self.id!r} needs a goal count of at least 1")
        for slot in self.accepted_slots():
            try:
                slot.time_range
            except InvalidTimeError as e:
                raise InvalidMemoError(f"Memo {self.id!r} has a bad accepted slot: {e}") from e

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "kind": self.kind.value,
            "created_at": self.created_at.isoformat(),
            "importance": self.importance.value,
            "location_preference": self.location_preference,
            "session_duration": self.session_duration,
            "total_duration_expected": self.total_duration_expected,
            "status": {
                "time_spent_minutes": self.status.time_spent_minutes,
                "time_spent_today": self.status.time_spent_today,
                "completion_state": self.status.completion_state.value,
            },
            "last_activity": self.last_activity.isoformat() if self.last_activity else None,
            "genre": self.genre,
            "state": _state_to_dict(self.state),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Memo":
        """Build a memo from its JSON form.

        Raises InvalidMemoError on structural problems. Scheduling rules are
        checked separately by validate().
        """
        try:
            status = data.get("status") or {}
            memo = cls(
                id=str(data["id"]),
                title=data.get("title", ""),
                state=_state_from_dict(data["kind"], data.get("state") or {}),
                created_at=_parse_datetime(data["created_at"]),
                importance=Importance(data.get("importance", "medium")),
                location_preference=data.get("location_preference") or "no_preference",
                session_duration=data.get("session_duration"),
                total_duration_expected=data.get("total_duration_expected"),
                status=MemoStatus(
                    time_spent_minutes=int(status.get("time_spent_minutes", 0)),
                    time_spent_today=int(status.get("time_spent_today", 0)),
                    completion_state=CompletionState(status.get("completion_state", "not_started")),
                ),
                last_activity=_parse_datetime(data.get("last_activity")),
                genre=data.get("genre", ""),
            )
        except (KeyError, TypeError, ValueError) as e:
            if isinstance(e, InvalidMemoError):
                raise
            raise InvalidMemoError(f"Malformed memo {data.get('id', '?')!r}: {e}") from e

        return memo


def _parse_datetime(value: str | None) -> datetime | None:
    """Parse an ISO timestamp into a naive local datetime."""
    if not value:
        return None
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def _parse_date(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value else None


def _slot_or_none(data: dict | None) -> AcceptedSlot | None:
    return AcceptedSlot.from_dict(data) if data else None


def _state_from_dict(kind: str, data: dict) -> MemoState:
    match MemoKind(kind):
        case MemoKind.ROUTINE:
            goal = data.get("goal") or {}
            return RoutineState(
                goal=RecurrenceGoal(count=int(goal.get("count", 1)), period=Period(goal.get("period", "week"))),
                accepted_today=bool(data.get("accepted_today", False)),
                rejected_today=bool(data.get("rejected_today", False)),
                completed_today=bool(data.get("completed_today", False)),
                completed_count_this_period=int(data.get("completed_count_this_period", 0)),
                last_completed_day=_parse_date(data.get("last_completed_day")),
                period_start_date=_parse_date(data.get("period_start_date")),
                accepted_slot=_slot_or_none(data.get("accepted_slot")),
            )
        case MemoKind.DEADLINE:
            return DeadlineState(
                deadline=_parse_datetime(data["deadline"]),
                accepted_slots=[AcceptedSlot.from_dict(s) for s in data.get("accepted_slots", [])],
                rejected_today=bool(data.get("rejected_today", False)),
                last_completed_day=_parse_date(data.get("last_completed_day")),
                actual_durations=[int(m) for m in data.get("actual_durations", [])],
                smoothed_multiplier=float(data.get("smoothed_multiplier", 1.0)),
            )
        case MemoKind.BACKLOG:
            return BacklogState(
                accepted_today=bool(data.get("accepted_today", False)),
                rejected_today=bool(data.get("rejected_today", False)),
                last_completed_day=_parse_date(data.get("last_completed_day")),
                accepted_slot=_slot_or_none(data.get("accepted_slot")),
            )


def _state_to_dict(state: MemoState) -> dict:
    match state:
        case RoutineState():
            return {
                "goal": {"count": state.goal.count, "period": state.goal.period.value},
                "accepted_today": state.accepted_today,
                "rejected_today": state.rejected_today,
                "completed_today": state.completed_today,
                "completed_count_this_period": state.completed_count_this_period,
                "last_completed_day": _iso(state.last_completed_day),
                "period_start_date": _iso(state.period_start_date),
                "accepted_slot": state.accepted_slot.to_dict() if state.accepted_slot else None,
            }
        case DeadlineState():
            return {
                "deadline": state.deadline.isoformat(),
                "accepted_slots": [s.to_dict() for s in state.accepted_slots],
                "rejected_today": state.rejected_today,
                "last_completed_day": _iso(state.last_completed_day),
                "actual_durations": list(state.actual_durations),
                "smoothed_multiplier": state.smoothed_multiplier,
            }
        case BacklogState():
            return {
                "accepted_today": state.accepted_today,
                "rejected_today": state.rejected_today,
                "last_completed_day": _iso(state.last_completed_day),
                "accepted_slot": state.accepted_slot.to_dict() if state.accepted_slot else None,
            }
    raise InvalidMemoError(f"Unknown memo state {type(state).__name__}")
