"""Pure schedule formatting - no I/O dependencies."""

from .allocator import ScheduleResult, ScheduledBlock
from .engine import PipelineSummary
from .gaps import Gap
from .intervals import format_duration
from .scoring import Suggestion


def format_gap_line(gap: Gap) -> str:
    """
    Format a single gap for display.

    Pure function - no I/O.
    """
    return f"- {gap.format()}  [{gap.gap_id}]"


def format_block_line(block: ScheduledBlock, titles: dict[str, str], marker: str = "") -> str:
    """
    Format a scheduled block for display.

    Pure function - no I/O.
    """
    title = titles.get(block.memo_id, block.memo_id)
    line = f"- {block.start_time}-{block.end_time} {marker}{title} ({format_duration(block.duration)})  [{block.suggestion_id}]"
    if block.explanation:
        line += f"\n    {block.explanation}"
    return line


def format_dropped_line(suggestion: Suggestion) -> str:
    flag = "!" if suggestion.is_mandatory else " "
    return f"- [{flag}] {suggestion.title} ({format_duration(suggestion.duration)}, need {suggestion.need:.2f})"


def format_schedule_sections(
    result: ScheduleResult,
    pending: list[ScheduledBlock],
    committed: list[ScheduledBlock],
    titles: dict[str, str],
    moved_ids: set[str] | None = None,
) -> dict[str, str]:
    """
    Format a schedule into markdown sections.

    Pure function - no I/O.
    Returns dict with keys: suggestions, committed, dropped
    """
    moved_ids = moved_ids or set()
    suggestions_md = (
        "\n".join(
            format_block_line(b, titles, "(moved) " if b.suggestion_id in moved_ids else "") for b in pending
        )
        or "Nothing to suggest."
    )
    committed_md = "\n".join(format_block_line(b, titles) for b in committed) or "Nothing accepted yet."

    unplaced = result.mandatory_dropped + result.dropped
    dropped_md = "\n".join(format_dropped_line(s) for s in unplaced) or "Everything fit."

    return {
        "suggestions": suggestions_md,
        "committed": committed_md,
        "dropped": dropped_md,
    }


def format_summary(summary: PipelineSummary) -> str:
    text = (
        f"{summary.suggestions_scheduled}/{summary.suggestions_generated} suggestions placed "
        f"in {summary.gaps_available} gaps ({summary.active_memos} of {summary.memos_processed} memos active, "
        f"{summary.execution_time_ms:.0f}ms)"
    )
    if summary.invalid_memo_ids:
        text += f"\nInvalid memos skipped: {', '.join(summary.invalid_memo_ids)}"
    return text
