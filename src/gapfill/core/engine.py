"""Suggestion pipeline: score, optionally explain, then allocate."""

import logging
import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable

from .allocator import ScheduleResult, allocate
from .gaps import Gap
from .memos import InvalidMemoError, Memo
from .periods import reset_period_if_needed
from .scoring import Suggestion, is_active, score_tasks
from ..ports.llm_service import LLMService

logger = logging.getLogger(__name__)

EXPLANATION_PROMPT = """\
You are helping someone decide what to do with a free moment in their day.
For each task below, write one short, friendly sentence on why it is worth
doing now. Reply with exactly one line per task in the form `<id>: <sentence>`.

{tasks}
"""


@dataclass
class PipelineSummary:
    """Counts describing one generation pass."""

    memos_processed: int
    active_memos: int
    suggestions_generated: int
    gaps_available: int
    suggestions_scheduled: int
    execution_time_ms: float
    invalid_memo_ids: list[str] = field(default_factory=list)
    explanations_added: int = 0

    def to_dict(self) -> dict:
        return {
            "memos_processed": self.memos_processed,
            "active_memos": self.active_memos,
            "suggestions_generated": self.suggestions_generated,
            "gaps_available": self.gaps_available,
            "suggestions_scheduled": self.suggestions_scheduled,
            "execution_time_ms": round(self.execution_time_ms, 2),
            "invalid_memo_ids": self.invalid_memo_ids,
            "explanations_added": self.explanations_added,
        }


@dataclass
class GenerationResult:
    schedule: ScheduleResult
    summary: PipelineSummary


def build_explanation_prompt(suggestions: list[Suggestion]) -> str:
    lines = [
        f"- {s.memo_id}: {s.title} ({s.kind.value}, {s.duration} min"
        + (", mandatory today)" if s.is_mandatory else ")")
        for s in suggestions
    ]
    return EXPLANATION_PROMPT.format(tasks="\n".join(lines))


def parse_explanations(output: str, memo_ids: set[str]) -> dict[str, str]:
    """Pull `<id>: <sentence>` lines out of a model response."""
    explanations = {}
    for line in output.splitlines():
        line = line.strip().lstrip("-*").strip().strip("`")
        memo_id, sep, text = line.partition(":")
        memo_id = memo_id.strip().strip("`")
        if sep and memo_id in memo_ids and text.strip():
            explanations[memo_id] = text.strip()
    return explanations


class SuggestionEngine:
    """
    Runs the scoring and allocation pipeline over a snapshot of tasks and gaps.

    The optional explanation step asks an LLMService for a sentence per
    suggestion. Any failure there leaves suggestions unexplained; it never
    fails the pass.
    """

    def __init__(
        self,
        llm: LLMService | None = None,
        enable_explanations: bool = False,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.llm = llm
        self.enable_explanations = enable_explanations
        self.clock = clock

    def explain(self, suggestions: list[Suggestion]) -> list[Suggestion]:
        """Attach explanation text where the LLM provides it."""
        if not suggestions:
            return suggestions
        try:
            output = self.llm.generate(build_explanation_prompt(suggestions))
        except Exception as e:
            logger.warning(f"Explanations unavailable this pass: {e}")
            return suggestions

        explanations = parse_explanations(output, {s.memo_id for s in suggestions})
        return [
            replace(s, explanation=explanations[s.memo_id]) if s.memo_id in explanations else s
            for s in suggestions
        ]

    def generate_schedule(
        self,
        tasks: list[Memo],
        gaps: list[Gap],
        accepted_memo_ids: set[str] | None = None,
        skip_enrichment: bool = False,
        now: datetime | None = None,
        taken_ids: set[str] | None = None,
    ) -> GenerationResult:
        """
        Score tasks and allocate them into gaps.

        Args:
            tasks: All memos; inactive and invalid ones are left out
            gaps: Enriched gaps, already net of accepted/moved blockers
            accepted_memo_ids: Memos committed earlier today
            skip_enrichment: Skip the explanation step for this pass
            now: Current time (defaults to the engine clock)
            taken_ids: Suggestion ids already committed today

        Returns:
            GenerationResult with the schedule and a summary
        """
        started = time.perf_counter()
        now = now or self.clock()

        valid = []
        invalid_ids = []
        for memo in tasks:
            try:
                memo.validate()
            except InvalidMemoError as e:
                logger.warning(f"Rejecting memo: {e}")
                invalid_ids.append(memo.id)
                continue
            valid.append(reset_period_if_needed(memo, now))

        active = [m for m in valid if is_active(m)]
        suggestions = score_tasks(active, now, accepted_memo_ids, taken_ids)

        explained = 0
        if self.enable_explanations and self.llm is not None and not skip_enrichment:
            suggestions = self.explain(suggestions)
            explained = sum(1 for s in suggestions if s.explanation)

        schedule = allocate(suggestions, gaps)
        elapsed_ms = (time.perf_counter() - started) * 1000

        summary = PipelineSummary(
            memos_processed=len(tasks),
            active_memos=len(active),
            suggestions_generated=len(suggestions),
            gaps_available=len(gaps),
            suggestions_scheduled=len(schedule.scheduled),
            execution_time_ms=elapsed_ms,
            invalid_memo_ids=invalid_ids,
            explanations_added=explained,
        )
        logger.info(
            f"Scheduled {summary.suggestions_scheduled}/{summary.suggestions_generated} suggestions "
            f"into {summary.gaps_available} gaps in {elapsed_ms:.1f}ms"
        )
        if schedule.mandatory_dropped:
            logger.warning(f"{len(schedule.mandatory_dropped)} mandatory tasks could not be placed")
        return GenerationResult(schedule=schedule, summary=summary)
