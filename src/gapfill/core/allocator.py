"""Greedy placement of suggestions into gaps - pure, no I/O."""

import logging
from dataclasses import dataclass, field

from .gaps import Gap
from .intervals import TimeRange, format_hhmm
from .locations import location_compatible
from .scoring import Suggestion

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduledBlock:
    """A suggestion placed at a concrete time."""

    suggestion_id: str
    memo_id: str
    gap_id: str
    start_time: str
    end_time: str
    duration: int
    explanation: str | None = None

    @property
    def time_range(self) -> TimeRange:
        return TimeRange.parse(self.start_time, self.end_time)

    def to_dict(self) -> dict:
        return {
            "suggestion_id": self.suggestion_id,
            "memo_id": self.memo_id,
            "gap_id": self.gap_id,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration": self.duration,
            "explanation": self.explanation,
        }


@dataclass
class ScheduleResult:
    """Outcome of one allocation pass."""

    scheduled: list[ScheduledBlock] = field(default_factory=list)
    dropped: list[Suggestion] = field(default_factory=list)
    mandatory_dropped: list[Suggestion] = field(default_factory=list)

    @property
    def total_scheduled_minutes(self) -> int:
        return sum(b.duration for b in self.scheduled)

    @property
    def total_dropped_minutes(self) -> int:
        return sum(s.duration for s in self.dropped + self.mandatory_dropped)

    def to_dict(self) -> dict:
        return {
            "scheduled": [b.to_dict() for b in self.scheduled],
            "dropped": [s.to_dict() for s in self.dropped],
            "mandatory_dropped": [s.to_dict() for s in self.mandatory_dropped],
            "total_scheduled_minutes": self.total_scheduled_minutes,
            "total_dropped_minutes": self.total_dropped_minutes,
        }


@dataclass
class _OpenGap:
    """Working copy of a gap whose start advances as blocks are placed."""

    gap: Gap
    start: int
    end: int

    @property
    def remaining(self) -> int:
        return self.end - self.start


def priority_order(suggestions: list[Suggestion]) -> list[Suggestion]:
    """Need descending, then importance descending, then id for stability."""
    return sorted(suggestions, key=lambda s: (-s.need, -s.importance, s.suggestion_id))


def allocate(suggestions: list[Suggestion], gaps: list[Gap]) -> ScheduleResult:
    """
    Place suggestions into gaps, most needed first.

    Pure function - no I/O.

    Each suggestion takes the first gap, in chronological order, that is
    long enough and compatible with its location preference. The block
    sits at the start of that gap and the gap shrinks from the front.
    Suggestions that fit nowhere are dropped; mandatory ones are reported
    separately.
    """
    open_gaps = sorted(
        (_OpenGap(g, g.time_range.start, g.time_range.end) for g in gaps),
        key=lambda og: og.start,
    )
    result = ScheduleResult()
    placed_memos: set[str] = set()

    for suggestion in priority_order(suggestions):
        if suggestion.memo_id in placed_memos:
            logger.warning(f"Ignoring duplicate suggestion for memo {suggestion.memo_id!r}")
            continue
        placed_memos.add(suggestion.memo_id)

        target = next(
            (
                og
                for og in open_gaps
                if og.remaining >= suggestion.duration
                and location_compatible(suggestion.location_preference, og.gap.location_label)
            ),
            None,
        )

        if target is None or suggestion.duration <= 0:
            if suggestion.is_mandatory:
                logger.info(f"Mandatory task {suggestion.memo_id!r} ({suggestion.duration}m) does not fit")
                result.mandatory_dropped.append(suggestion)
            else:
                result.dropped.append(suggestion)
            continue

        start = target.start
        end = start + suggestion.duration
        result.scheduled.append(
            ScheduledBlock(
                suggestion_id=suggestion.suggestion_id,
                memo_id=suggestion.memo_id,
                gap_id=target.gap.gap_id,
                start_time=format_hhmm(start),
                end_time=format_hhmm(end),
                duration=suggestion.duration,
                explanation=suggestion.explanation,
            )
        )
        target.start = end
        if target.remaining <= 0:
            open_gaps.remove(target)

    result.scheduled.sort(key=lambda b: b.start_time)
    return result
