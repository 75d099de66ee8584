"""Records of what the user did with a suggestion."""

from dataclasses import dataclass
from datetime import date
from enum import Enum

from .allocator import ScheduledBlock


class ActionKind(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    MOVED = "moved"
    COMPLETED = "completed"
    MISSED = "missed"


@dataclass(frozen=True)
class SuggestionAction:
    day: date
    kind: ActionKind
    suggestion_id: str
    memo_id: str
    gap_id: str
    start_time: str
    end_time: str
    duration: int

    @classmethod
    def from_block(cls, day: date, kind: ActionKind, block: ScheduledBlock) -> "SuggestionAction":
        return cls(
            day=day,
            kind=kind,
            suggestion_id=block.suggestion_id,
            memo_id=block.memo_id,
            gap_id=block.gap_id,
            start_time=block.start_time,
            end_time=block.end_time,
            duration=block.duration,
        )

    def to_block(self) -> ScheduledBlock:
        return ScheduledBlock(
            suggestion_id=self.suggestion_id,
            memo_id=self.memo_id,
            gap_id=self.gap_id,
            start_time=self.start_time,
            end_time=self.end_time,
            duration=self.duration,
        )

    def to_dict(self) -> dict:
        return {
            "day": self.day.isoformat(),
            "kind": self.kind.value,
            "suggestion_id": self.suggestion_id,
            "memo_id": self.memo_id,
            "gap_id": self.gap_id,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration": self.duration,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SuggestionAction":
        return cls(
            day=date.fromisoformat(data["day"]),
            kind=ActionKind(data["kind"]),
            suggestion_id=data["suggestion_id"],
            memo_id=data["memo_id"],
            gap_id=data.get("gap_id", ""),
            start_time=data["start_time"],
            end_time=data["end_time"],
            duration=int(data["duration"]),
        )
