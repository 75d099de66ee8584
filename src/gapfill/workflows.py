"""Shared workflow layer between the CLI and the daemon.

Builds the adapters named in the config and wires them into a
ScheduleManager.
"""

from pathlib import Path

from .adapters.claude_cli import ClaudeCLIService
from .adapters.file_actions import FileActionStore
from .adapters.gcalcli import GcalcliAdapter
from .adapters.json_calendar import JsonCalendarAdapter
from .adapters.json_tasks import JsonTaskStore
from .config import GAPFILL_HOME, Config
from .core.engine import SuggestionEngine
from .core.gaps import DayBoundaries
from .lifecycle import ScheduleManager
from .sync import ActionSync


def get_calendar(config: Config) -> GcalcliAdapter | JsonCalendarAdapter:
    """Resolve the calendar source from config."""
    if config.calendar_source == "gcalcli":
        return GcalcliAdapter(
            config_folder=config.gcalcli_config_folder or None,
            calendars=config.gcalcli_calendars or None,
            location_tags=config.location_tags,
        )
    return JsonCalendarAdapter(Path(config.events_file).expanduser())


def get_engine(config: Config) -> SuggestionEngine:
    """Engine with the Claude explainer attached when explanations are on."""
    llm = None
    if config.enable_explanations:
        llm = ClaudeCLIService(cwd=GAPFILL_HOME, timeout=config.explanation_timeout)
    return SuggestionEngine(llm=llm, enable_explanations=config.enable_explanations)


def build_manager(config: Config, background_sync: bool = True, explain: bool = True) -> ScheduleManager:
    """Wire adapters into a ScheduleManager."""
    return ScheduleManager(
        tasks=JsonTaskStore(config.tasks_file),
        calendar=get_calendar(config),
        engine=get_engine(config),
        boundaries=DayBoundaries(config.day_start, config.day_end),
        actions=FileActionStore(config.actions_dir),
        sync=ActionSync(background=background_sync),
        min_gap_minutes=config.min_gap_minutes,
        snap_minutes=config.snap_minutes,
        buffer_before_event=config.buffer_before_event,
        explain=explain,
    )


def open_manager(config: Config, explain: bool = False) -> ScheduleManager:
    """
    Manager restored to today's state, for one-shot CLI commands.

    Action-store writes run inline so they are on disk before the process exits.
    """
    manager = build_manager(config, background_sync=False, explain=explain)
    manager.load_synced()
    manager.regenerate()
    return manager


def memo_titles(manager: ScheduleManager) -> dict[str, str]:
    return {m.id: m.title for m in manager.tasks.fetch_all()}
