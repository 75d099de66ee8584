"""Location labelling for gaps - pure, no I/O."""

import logging
from dataclasses import replace

from .gaps import Event, Gap, parse_busy_events

logger = logging.getLogger(__name__)

NO_PREFERENCE = "no_preference"


def _place(tag: str) -> str:
    """The primary place of a tag: "home/near_home" -> "home"."""
    return tag.split("/", 1)[0].strip().lower()


def location_compatible(preference: str | None, label: str | None) -> bool:
    """Check whether a task with this preference may go in a gap with this label."""
    if not preference or preference == NO_PREFERENCE or not label:
        return True
    return preference == label or _place(preference) == _place(label)


def _agreed_location(events: list[Event]) -> str | None:
    """The shared location of equally-near events, or None if they disagree."""
    locations = {e.location for e in events}
    if len(locations) != 1:
        return None
    return locations.pop()


def enrich_gaps(gaps: list[Gap], events: list[Event]) -> list[Gap]:
    """
    Label each gap with a location when its bordering events agree.

    Pure function - no I/O. Gap boundaries are never changed.

    The preceding event is the one ending at or nearest before the gap start,
    the following event the one starting at or nearest after the gap end.
    Both must carry the same location for the gap to be labelled.
    """
    timed = [p for p in parse_busy_events(events) if not p.event.all_day]

    enriched = []
    for gap in gaps:
        span = gap.time_range

        before_ends = [p.range.end for p in timed if p.range.end <= span.start]
        after_starts = [p.range.start for p in timed if p.range.start >= span.end]
        if not before_ends or not after_starts:
            enriched.append(replace(gap, location_label=None))
            continue

        preceding = [p.event for p in timed if p.range.end == max(before_ends)]
        following = [p.event for p in timed if p.range.start == min(after_starts)]
        before_loc = _agreed_location(preceding)
        after_loc = _agreed_location(following)

        if before_loc and before_loc == after_loc:
            enriched.append(replace(gap, location_label=before_loc))
        else:
            enriched.append(replace(gap, location_label=None))

    labelled = sum(1 for g in enriched if g.location_label)
    logger.debug(f"Labelled {labelled} of {len(enriched)} gaps")
    return enriched
