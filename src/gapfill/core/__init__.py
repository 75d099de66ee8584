"""Functional core - pure business logic with no I/O."""

from .intervals import InvalidTimeError, TimeRange, format_hhmm, merge_ranges, parse_hhmm
from .gaps import DayBoundaries, Event, Gap, effective_boundaries, find_gaps, subtract_blockers
from .locations import enrich_gaps, location_compatible
from .memos import InvalidMemoError, Memo, MemoKind
from .scoring import MANDATORY_THRESHOLD, Suggestion, score_tasks
from .allocator import ScheduleResult, ScheduledBlock, allocate
from .engine import GenerationResult, PipelineSummary, SuggestionEngine

__all__ = [
    # Intervals
    "InvalidTimeError",
    "TimeRange",
    "format_hhmm",
    "merge_ranges",
    "parse_hhmm",
    # Gaps
    "DayBoundaries",
    "Event",
    "Gap",
    "effective_boundaries",
    "find_gaps",
    "subtract_blockers",
    "enrich_gaps",
    "location_compatible",
    # Memos and scoring
    "InvalidMemoError",
    "Memo",
    "MemoKind",
    "MANDATORY_THRESHOLD",
    "Suggestion",
    "score_tasks",
    # Allocation
    "ScheduleResult",
    "ScheduledBlock",
    "allocate",
    "GenerationResult",
    "PipelineSummary",
    "SuggestionEngine",
]
