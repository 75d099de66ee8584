"""Adapters - I/O implementations of ports."""

from .claude_cli import ClaudeCLIService
from .file_actions import FileActionStore
from .gcalcli import GcalcliAdapter
from .json_calendar import JsonCalendarAdapter
from .json_tasks import JsonTaskStore

__all__ = [
    "ClaudeCLIService",
    "FileActionStore",
    "GcalcliAdapter",
    "JsonCalendarAdapter",
    "JsonTaskStore",
]
