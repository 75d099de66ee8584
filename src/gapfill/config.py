"""Configuration management for gapfill."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from .core.intervals import InvalidTimeError, parse_hhmm

logger = logging.getLogger(__name__)

GAPFILL_HOME = Path(os.environ.get("GAPFILL_HOME", Path.home() / "gapfill"))
CONFIG_FILE = GAPFILL_HOME / "config" / "gapfill.conf"
DATA_DIR = GAPFILL_HOME / "data"


@dataclass
class Config:
    """gapfill configuration."""

    day_start: str = "08:00"
    day_end: str = "23:00"
    min_gap_minutes: int = 5
    snap_minutes: int = 1
    buffer_before_event: int = 0
    tasks_file: str = str(DATA_DIR / "memos.json")
    calendar_source: str = "json"
    events_file: str = str(DATA_DIR / "events.json")
    gcalcli_config_folder: str = ""
    gcalcli_calendars: list[str] = field(default_factory=list)
    location_tags: dict[str, str] = field(default_factory=dict)
    actions_dir: str = str(DATA_DIR / "actions")
    enable_explanations: bool = False
    explanation_timeout: int = 20
    timezone: str = "America/Toronto"
    daily_reset_time: str = "00:01"
    regenerate_interval_minutes: int = 15


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_time(key: str, value: str, default: str) -> str:
    try:
        parse_hhmm(value)
    except InvalidTimeError as e:
        logger.warning(f"Ignoring {key.upper()}: {e}")
        return default
    return value


def _parse_int(key: str, value: str, default: int) -> int:
    try:
        parsed = int(value)
    except ValueError:
        logger.warning(f"Ignoring {key.upper()}: {value!r} is not a number")
        return default
    if parsed < 0:
        logger.warning(f"Ignoring {key.upper()}: {parsed} is negative")
        return default
    return parsed


def _parse_location_tags(value: str) -> dict[str, str]:
    """Parse "Main St=workplace,Elm Rd=home/near_home"."""
    tags = {}
    for entry in value.split(","):
        needle, sep, tag = entry.partition("=")
        if sep and needle.strip() and tag.strip():
            tags[needle.strip()] = tag.strip()
        elif entry.strip():
            logger.warning(f"Ignoring LOCATION_TAGS entry {entry.strip()!r}")
    return tags


def load_config(path: Path | None = None) -> Config:
    """Load configuration from gapfill.conf."""
    config = Config()
    config_file = path or CONFIG_FILE

    if not config_file.exists():
        return config

    for line in config_file.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = value.strip()

        # Handle quoted values with inline comments: "value" # comment
        if value[:1] in ('"', "'"):
            quote = value[0]
            end_quote = value.find(quote, 1)
            value = value[1:end_quote] if end_quote != -1 else value[1:]
        elif "#" in value:
            value = value.split("#")[0].strip()

        match key:
            case "day_start":
                config.day_start = _parse_time(key, value, config.day_start)
            case "day_end":
                config.day_end = _parse_time(key, value, config.day_end)
            case "min_gap_minutes":
                config.min_gap_minutes = _parse_int(key, value, config.min_gap_minutes)
            case "snap_minutes":
                config.snap_minutes = _parse_int(key, value, config.snap_minutes) or 1
            case "buffer_before_event":
                config.buffer_before_event = _parse_int(key, value, config.buffer_before_event)
            case "tasks_file":
                config.tasks_file = value
            case "calendar_source":
                config.calendar_source = value.lower()
            case "events_file":
                config.events_file = value
            case "gcalcli_config_folder":
                config.gcalcli_config_folder = value
            case "gcalcli_calendars":
                config.gcalcli_calendars = [c.strip() for c in value.split(",") if c.strip()]
            case "location_tags":
                config.location_tags = _parse_location_tags(value)
            case "actions_dir":
                config.actions_dir = value
            case "enable_explanations":
                config.enable_explanations = _parse_bool(value)
            case "explanation_timeout":
                config.explanation_timeout = _parse_int(key, value, config.explanation_timeout)
            case "timezone":
                config.timezone = value
            case "daily_reset_time":
                config.daily_reset_time = _parse_time(key, value, config.daily_reset_time)
            case "regenerate_interval_minutes":
                config.regenerate_interval_minutes = (
                    _parse_int(key, value, config.regenerate_interval_minutes) or config.regenerate_interval_minutes
                )
            case _:
                logger.debug(f"Unknown config key {key.upper()}")

    return config
