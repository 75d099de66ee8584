"""Suggestion lifecycle: user actions over the current schedule.

The ScheduleManager owns the day's gaps and blockers. Accepted and moved
blocks are blockers: they are subtracted from the gaps before every
allocation pass. Each user action updates the memo through the task
repository, records the action in the action store (in the background),
and regenerates the schedule.

Suggestion states for the day:

    pending -> accepted -> completed | missed
    pending -> rejected
    pending -> moved -> pending (a moved suggestion can be moved again)
"""

import logging
from dataclasses import replace
from datetime import date, datetime
from enum import Enum
from typing import Callable

from .core.actions import ActionKind, SuggestionAction
from .core.allocator import ScheduleResult, ScheduledBlock
from .core.calendar import to_day_events
from .core.engine import PipelineSummary, SuggestionEngine
from .core.gaps import MIN_GAP_MINUTES, DayBoundaries, Gap, find_gaps, subtract_blockers
from .core.intervals import TimeRange, format_hhmm, parse_hhmm
from .core.locations import enrich_gaps
from .core.memos import AcceptedSlot, CompletionState, DeadlineState, Memo, RoutineState
from .core.periods import clear_daily_flags, reset_period_if_needed
from .ports.action_store import SuggestionActionStore
from .ports.calendar_repo import CalendarRepository
from .ports.task_repo import TaskRepository
from .sync import ActionSync

logger = logging.getLogger(__name__)

# Weight of the newest session when updating a deadline's effort multiplier
SMOOTHING_ALPHA = 0.3


class SuggestionStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    MOVED = "moved"
    COMPLETED = "completed"
    MISSED = "missed"


class SuggestionNotFoundError(LookupError):
    """Raised when an action names a suggestion that is not on the schedule."""


class InvalidTransitionError(ValueError):
    """Raised when an action does not apply to the suggestion's current state."""


class ScheduleConflictError(ValueError):
    """Raised when a move or resize would leave its gap or hit a commitment."""


def log_session(memo: Memo, block: ScheduledBlock, minutes: int, now: datetime) -> None:
    """
    Record time spent on an accepted block.

    Mutates memo in place. Memos with an expected total are marked completed
    once enough time is logged; routines never complete this way.
    """
    today = now.date()
    memo.status.time_spent_minutes += minutes
    memo.status.time_spent_today += minutes
    if memo.status.completion_state == CompletionState.NOT_STARTED:
        memo.status.completion_state = CompletionState.IN_PROGRESS
    memo.last_activity = now

    state = memo.state
    state.last_completed_day = today
    match state:
        case RoutineState():
            state.completed_count_this_period += 1
            state.completed_today = True
            if state.accepted_slot:
                state.accepted_slot.logged = True
        case DeadlineState():
            day_index = max((today - memo.created_at.date()).days, 0)
            if len(state.actual_durations) <= day_index:
                state.actual_durations.extend([0] * (day_index + 1 - len(state.actual_durations)))
            state.actual_durations[day_index] += minutes
            for slot in state.accepted_slots:
                if slot.start_time == block.start_time and not slot.logged:
                    slot.logged = True
                    break
            if block.duration > 0:
                ratio = minutes / block.duration
                state.smoothed_multiplier = (
                    (1 - SMOOTHING_ALPHA) * state.smoothed_multiplier + SMOOTHING_ALPHA * ratio
                )
        case _:
            if state.accepted_slot:
                state.accepted_slot.logged = True

    expected = memo.total_duration_expected
    if expected and not isinstance(state, RoutineState) and memo.status.time_spent_minutes >= expected:
        memo.status.completion_state = CompletionState.COMPLETED


class ScheduleManager:
    """
    Holds the day's schedule and applies user actions to it.

    Args:
        tasks: Memo store
        calendar: Source of the day's events
        engine: Scoring/allocation pipeline
        boundaries: Configured day window
        actions: Optional store for recorded accept/reject/move actions
        sync: Writer for the action store (defaults to a background worker)
        explain: Ask the engine for explanations on each regeneration
        clock: Returns the current local time
    """

    def __init__(
        self,
        tasks: TaskRepository,
        calendar: CalendarRepository,
        engine: SuggestionEngine,
        boundaries: DayBoundaries,
        actions: SuggestionActionStore | None = None,
        sync: ActionSync | None = None,
        min_gap_minutes: int = MIN_GAP_MINUTES,
        snap_minutes: int = 1,
        buffer_before_event: int = 0,
        explain: bool = True,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.tasks = tasks
        self.calendar = calendar
        self.engine = engine
        self.boundaries = boundaries
        self.actions = actions
        self.sync = sync or ActionSync()
        self.min_gap_minutes = min_gap_minutes
        self.snap_minutes = snap_minutes
        self.buffer_before_event = buffer_before_event
        self.explain = explain
        self.clock = clock

        # Gaps for the whole day, and the part of them not yet in the past
        self.day_gaps: list[Gap] = []
        self.base_gaps: list[Gap] = []
        self.accepted: dict[str, ScheduledBlock] = {}
        self.rejected: dict[str, str] = {}
        self.moved: dict[str, ScheduledBlock] = {}
        self.closed: dict[str, SuggestionStatus] = {}
        self.result: ScheduleResult | None = None
        self.summary: PipelineSummary | None = None
        self.last_regenerated: date | None = None
        # Memos changed by this manager, kept even if persisting them failed
        self._local_memos: dict[str, Memo] = {}

    # ------------------------------------------------------------------ gaps

    def refresh_gaps(self, now: datetime | None = None) -> list[Gap]:
        """Rebuild base gaps from the calendar. Keeps the old ones if the calendar fails."""
        now = now or self.clock()
        try:
            events = self.calendar.fetch_day(now.date())
        except Exception as e:
            logger.error(f"Calendar unavailable, keeping previous gaps: {e}")
            return self.base_gaps

        day_events = to_day_events(events, now.date())
        options = dict(
            min_gap_minutes=self.min_gap_minutes,
            snap_minutes=self.snap_minutes,
            buffer_before_event=self.buffer_before_event,
        )
        self.day_gaps = enrich_gaps(find_gaps(self.boundaries, day_events, **options), day_events)
        self.base_gaps = enrich_gaps(find_gaps(self.boundaries, day_events, now=now, **options), day_events)
        return self.base_gaps

    def blockers(self) -> list[TimeRange]:
        """Time ranges of accepted and moved blocks."""
        return [b.time_range for b in [*self.accepted.values(), *self.moved.values()]]

    def available_gaps(self) -> list[Gap]:
        """Gaps net of accepted commitments; the valid targets for a move."""
        accepted = [b.time_range for b in self.accepted.values()]
        return subtract_blockers(self.base_gaps, accepted, self.min_gap_minutes)

    def open_gaps(self) -> list[Gap]:
        """Gaps net of every blocker; what the allocator gets."""
        return subtract_blockers(self.base_gaps, self.blockers(), self.min_gap_minutes)

    # ------------------------------------------------------------ generation

    def _load_memos(self) -> list[Memo]:
        return [self._local_memos.get(m.id, m) for m in self.tasks.fetch_all()]

    def _get_memo(self, memo_id: str) -> Memo:
        memo = self._local_memos.get(memo_id) or self.tasks.get(memo_id)
        if memo is None:
            raise SuggestionNotFoundError(f"Unknown memo {memo_id!r}")
        return memo

    def _save(self, memo: Memo) -> None:
        self._local_memos[memo.id] = memo
        try:
            self.tasks.save(memo)
        except Exception as e:
            logger.error(f"Failed to save memo {memo.id!r}: {e}")

    def regenerate(self, refresh: bool = True) -> ScheduleResult:
        """
        Run the pipeline over current memos and gaps.

        Crosses the day boundary first if needed. Rejected and moved memos
        are left out; accepted ones are passed on so the engine can keep
        them behind fresh work. If the task store cannot be read, the
        previous schedule is kept.
        """
        now = self.clock()
        self.check_day_boundary(now)
        if refresh or not self.base_gaps:
            self.refresh_gaps(now)

        # Snapshot so the pass sees one consistent blocker set
        gaps = subtract_blockers(self.base_gaps, list(self.blockers()), self.min_gap_minutes)
        try:
            loaded = self._load_memos()
        except Exception as e:
            logger.error(f"Task store unavailable, keeping previous schedule: {e}")
            return self.result
        excluded = set(self.rejected.values()) | {b.memo_id for b in self.moved.values()}
        memos = [m for m in loaded if m.id not in excluded]
        accepted_ids = {b.memo_id for b in self.accepted.values()}
        # A missed session may be offered again under its old id; the rest may not
        taken_ids = set(self.accepted) | {
            sid for sid, status in self.closed.items() if status == SuggestionStatus.COMPLETED
        }

        generated = self.engine.generate_schedule(
            memos,
            gaps,
            accepted_memo_ids=accepted_ids,
            skip_enrichment=not self.explain,
            now=now,
            taken_ids=taken_ids,
        )
        self.result = generated.schedule
        self.summary = generated.summary
        self.last_regenerated = now.date()
        return self.result

    def pending(self) -> list[ScheduledBlock]:
        """Blocks awaiting a decision: freshly scheduled and moved ones."""
        scheduled = self.result.scheduled if self.result else []
        blocks = [b for b in scheduled if b.suggestion_id not in self.moved] + list(self.moved.values())
        return sorted(blocks, key=lambda b: b.start_time)

    def status_of(self, suggestion_id: str) -> SuggestionStatus:
        if suggestion_id in self.accepted:
            return SuggestionStatus.ACCEPTED
        if suggestion_id in self.rejected:
            return SuggestionStatus.REJECTED
        if suggestion_id in self.moved:
            return SuggestionStatus.MOVED
        if any(b.suggestion_id == suggestion_id for b in self.pending()):
            return SuggestionStatus.PENDING
        if suggestion_id in self.closed:
            return self.closed[suggestion_id]
        raise SuggestionNotFoundError(f"No suggestion {suggestion_id!r} today")

    def _find_pending(self, suggestion_id: str) -> ScheduledBlock:
        for block in self.pending():
            if block.suggestion_id == suggestion_id and suggestion_id not in self.accepted:
                return block
        status = self.status_of(suggestion_id)
        raise InvalidTransitionError(f"Suggestion {suggestion_id!r} is {status.value}, not pending")

    def _find_accepted(self, suggestion_id: str) -> ScheduledBlock:
        if suggestion_id in self.accepted:
            return self.accepted[suggestion_id]
        status = self.status_of(suggestion_id)
        raise InvalidTransitionError(f"Suggestion {suggestion_id!r} is {status.value}, not accepted")

    def _record(self, kind: ActionKind, block: ScheduledBlock) -> None:
        if self.actions is None:
            return
        action = SuggestionAction.from_block(self.clock().date(), kind, block)
        self.sync.submit(self.actions.record, action)

    def _forget(self, suggestion_id: str) -> None:
        if self.actions is None:
            return
        self.sync.submit(self.actions.remove, self.clock().date(), suggestion_id)

    def _evict_overlapping(self, target: TimeRange, keep: str) -> None:
        """Drop pending suggestions that overlap target, except the one being placed."""
        if self.result is not None:
            kept = [
                b
                for b in self.result.scheduled
                if b.suggestion_id != keep and not b.time_range.overlaps(target)
            ]
            evicted = len(self.result.scheduled) - len(kept)
            self.result = replace(self.result, scheduled=kept)
            if evicted:
                logger.debug(f"Evicted {evicted} scheduled suggestions overlapping {target.format()}")

        for suggestion_id, block in list(self.moved.items()):
            if suggestion_id != keep and block.time_range.overlaps(target):
                del self.moved[suggestion_id]
                self._forget(suggestion_id)

    # --------------------------------------------------------------- actions

    def accept(self, suggestion_id: str) -> ScheduledBlock:
        """Commit to a pending suggestion at its current time."""
        block = self._find_pending(suggestion_id)
        now = self.clock()

        memo = self._get_memo(block.memo_id)
        slot = AcceptedSlot(block.start_time, block.end_time, block.duration)
        if isinstance(memo.state, DeadlineState):
            memo.state.accepted_slots.append(slot)
        else:
            memo.state.accepted_today = True
            memo.state.accepted_slot = slot
        memo.last_activity = now
        self._save(memo)

        self.moved.pop(suggestion_id, None)
        self.accepted[suggestion_id] = block
        self._record(ActionKind.ACCEPTED, block)
        logger.info(f"Accepted {suggestion_id} at {block.start_time}-{block.end_time}")

        self.regenerate(refresh=False)
        return block

    def reject(self, suggestion_id: str) -> None:
        """Decline a pending suggestion; its memo stays hidden for the rest of the day."""
        block = self._find_pending(suggestion_id)

        memo = self._get_memo(block.memo_id)
        memo.state.rejected_today = True
        memo.last_activity = self.clock()
        self._save(memo)

        self.moved.pop(suggestion_id, None)
        self.rejected[suggestion_id] = block.memo_id
        self._record(ActionKind.REJECTED, block)
        logger.info(f"Rejected {suggestion_id}")

        self.regenerate(refresh=False)

    def move(self, suggestion_id: str, start_time: str, end_time: str, gap_id: str | None = None) -> ScheduledBlock:
        """
        Pin a pending suggestion to a new range inside an available gap.

        Other pending suggestions overlapping the new range are evicted
        before regeneration refills the schedule.
        """
        block = self._find_pending(suggestion_id)
        target = TimeRange.parse(start_time, end_time)
        if target.duration <= 0:
            raise ScheduleConflictError(f"Range {start_time}-{end_time} is empty")

        gaps = self.available_gaps()
        if gap_id is not None:
            gap = next((g for g in gaps if g.gap_id == gap_id), None)
            if gap is None:
                raise ScheduleConflictError(f"No available gap {gap_id!r}")
        else:
            gap = next((g for g in gaps if g.time_range.contains(target)), None)
        if gap is None or not gap.time_range.contains(target):
            raise ScheduleConflictError(f"{start_time}-{end_time} does not fit inside an available gap")

        moved = replace(
            block,
            gap_id=gap.gap_id,
            start_time=format_hhmm(target.start),
            end_time=format_hhmm(target.end),
            duration=target.duration,
        )
        self._evict_overlapping(target, keep=suggestion_id)
        self.moved[suggestion_id] = moved
        self._record(ActionKind.MOVED, moved)
        logger.info(f"Moved {suggestion_id} to {moved.start_time}-{moved.end_time}")

        self.regenerate(refresh=False)
        return moved

    def resize(self, suggestion_id: str, end_time: str) -> ScheduledBlock:
        """Change a block's end time, keeping its start."""
        if suggestion_id in self.accepted:
            return self._resize_accepted(suggestion_id, end_time)
        block = self._find_pending(suggestion_id)
        return self.move(suggestion_id, block.start_time, end_time)

    def _resize_accepted(self, suggestion_id: str, end_time: str) -> ScheduledBlock:
        block = self.accepted[suggestion_id]
        target = TimeRange(block.time_range.start, parse_hhmm(end_time))
        if target.duration <= 0:
            raise ScheduleConflictError(f"End {end_time} is not after start {block.start_time}")

        enclosing = next(
            (g for g in self.day_gaps if g.time_range.start <= target.start < g.time_range.end),
            None,
        )
        if enclosing is None or not enclosing.time_range.contains(target):
            raise ScheduleConflictError(f"{block.start_time}-{end_time} runs outside its free gap")

        others = [
            b for sid, b in [*self.accepted.items(), *self.moved.items()] if sid != suggestion_id
        ]
        clash = next((b for b in others if b.time_range.overlaps(target)), None)
        if clash is not None:
            raise ScheduleConflictError(
                f"{block.start_time}-{end_time} overlaps {clash.suggestion_id} at {clash.start_time}-{clash.end_time}"
            )

        resized = replace(block, end_time=format_hhmm(target.end), duration=target.duration)
        memo = self._get_memo(block.memo_id)
        for slot in memo.accepted_slots():
            if slot.start_time == block.start_time:
                slot.end_time = resized.end_time
                slot.duration = resized.duration
                break
        memo.last_activity = self.clock()
        self._save(memo)

        self._evict_overlapping(target, keep=suggestion_id)
        self.accepted[suggestion_id] = resized
        self._record(ActionKind.ACCEPTED, resized)
        logger.info(f"Resized {suggestion_id} to {resized.start_time}-{resized.end_time}")

        self.regenerate(refresh=False)
        return resized

    def complete(self, suggestion_id: str, minutes: int | None = None) -> Memo:
        """Log time spent on an accepted block and release its blocker."""
        block = self._find_accepted(suggestion_id)
        minutes = block.duration if minutes is None else minutes
        if minutes < 0:
            raise ValueError(f"Cannot log negative time ({minutes} minutes)")

        memo = self._get_memo(block.memo_id)
        log_session(memo, block, minutes, self.clock())
        self._save(memo)

        del self.accepted[suggestion_id]
        self.closed[suggestion_id] = SuggestionStatus.COMPLETED
        self._record(ActionKind.COMPLETED, block)
        logger.info(f"Completed {suggestion_id}: {minutes} minutes on {memo.title!r}")
        return memo

    def missed(self, suggestion_id: str) -> None:
        """Release an accepted block without logging progress."""
        block = self._find_accepted(suggestion_id)

        memo = self._get_memo(block.memo_id)
        if isinstance(memo.state, DeadlineState):
            memo.state.accepted_slots = [
                s for s in memo.state.accepted_slots if s.start_time != block.start_time
            ]
        else:
            memo.state.accepted_today = False
            memo.state.accepted_slot = None
        memo.last_activity = self.clock()
        self._save(memo)

        del self.accepted[suggestion_id]
        self.closed[suggestion_id] = SuggestionStatus.MISSED
        self._record(ActionKind.MISSED, block)
        logger.info(f"Missed {suggestion_id}")

        self.regenerate(refresh=False)

    # ---------------------------------------------------------- day boundary

    def check_day_boundary(self, now: datetime | None = None) -> bool:
        """Reset day-scoped state if the date changed since the last pass."""
        now = now or self.clock()
        if self.last_regenerated is None or self.last_regenerated == now.date():
            return False
        logger.info(f"New day {now.date()} (last pass {self.last_regenerated}), resetting")
        self.reset_day(now)
        return True

    def reset_day(self, now: datetime | None = None, force: bool = False) -> None:
        """
        Clear accepted, rejected and moved state.

        Memos are reset through the task repository. With force, today's
        flags are cleared too; otherwise only flags left over from an earlier
        day are.
        """
        now = now or self.clock()
        self.accepted.clear()
        self.rejected.clear()
        self.moved.clear()
        self.closed.clear()
        self._local_memos.clear()
        self.result = None
        self.base_gaps = []
        self.day_gaps = []

        try:
            memos = self.tasks.fetch_all()
        except Exception as e:
            logger.error(f"Task store unavailable, memos not reset: {e}")
            memos = []
        for memo in memos:
            refreshed = clear_daily_flags(memo) if force else reset_period_if_needed(memo, now)
            if refreshed is not memo:
                self._save(refreshed)

        if self.actions is not None:
            self.sync.submit(self.actions.clear)

    def load_synced(self) -> None:
        """Restore today's recorded actions from the action store."""
        if self.actions is None:
            return
        today = self.clock().date()
        try:
            last_day = self.actions.last_day()
            actions = self.actions.load(today)
        except Exception as e:
            logger.error(f"Could not load recorded actions: {e}")
            return

        for action in actions:
            block = action.to_block()
            match action.kind:
                case ActionKind.ACCEPTED:
                    self.accepted[action.suggestion_id] = block
                case ActionKind.REJECTED:
                    self.rejected[action.suggestion_id] = action.memo_id
                case ActionKind.MOVED:
                    self.moved[action.suggestion_id] = block
                case ActionKind.COMPLETED:
                    self.closed[action.suggestion_id] = SuggestionStatus.COMPLETED
                case ActionKind.MISSED:
                    self.closed[action.suggestion_id] = SuggestionStatus.MISSED
        # An older last day makes the next regeneration cross the day boundary
        self.last_regenerated = last_day
        logger.debug(f"Restored {len(actions)} actions for {today}")
