"""Tests for gcalcli adapter."""

import subprocess
from datetime import date, datetime
from unittest.mock import MagicMock, patch

import pytest

from gapfill.adapters.gcalcli import GcalcliAdapter, tag_location

HEADER = "Start\tStart Time\tEnd\tEnd Time\tTitle\tLocation\n"


class TestTagLocation:
    """Tests for free-text location tagging."""

    def test_first_matching_needle_wins(self):
        """Substring match is case-insensitive and ordered."""
        tags = {"Main St": "workplace", "Elm": "home"}
        assert tag_location("12 main st, Springfield", tags) == "workplace"
        assert tag_location("4 Elm Rd", tags) == "home"

    def test_no_match(self):
        """Unknown or empty locations get no tag."""
        assert tag_location("Airport", {"Elm": "home"}) is None
        assert tag_location("", {"Elm": "home"}) is None


class TestGcalcliAdapter:
    """Tests for GcalcliAdapter."""

    def test_default_label(self):
        """Default label is 'Google' when no config folder."""
        adapter = GcalcliAdapter()
        assert adapter.label == "Google"
        assert adapter.config_folder is None

    def test_label_from_config_folder(self):
        """Label is derived from config folder name."""
        adapter = GcalcliAdapter(config_folder="/home/user/.gcalcli/work")
        assert adapter.label == "work"

    @patch("gapfill.adapters.gcalcli.subprocess.run")
    def test_command_options(self, mock_run):
        """Config folder and calendars are passed to gcalcli."""
        mock_run.return_value = MagicMock(stdout=HEADER, returncode=0)
        adapter = GcalcliAdapter(config_folder="/home/user/.gcalcli/work", calendars=["Work", "Gym"])
        adapter.fetch_day(date(2025, 1, 15))

        cmd = mock_run.call_args[0][0]
        assert cmd[:4] == ["gcalcli", "agenda", "2025-01-15", "2025-01-15"]
        assert "--config-folder" in cmd
        assert cmd.count("--calendar") == 2

    @patch("gapfill.adapters.gcalcli.subprocess.run")
    def test_only_location_details_requested(self, mock_run):
        """Only the location detail is requested, so it stays in the sixth TSV column."""
        mock_run.return_value = MagicMock(stdout=HEADER, returncode=0)
        GcalcliAdapter().fetch_day(date(2025, 1, 15))

        cmd = mock_run.call_args[0][0]
        assert "length" not in cmd
        assert cmd[cmd.index("--details") + 1] == "location"
        assert cmd.count("--details") == 1

    @patch("gapfill.adapters.gcalcli.subprocess.run")
    def test_no_config_folder_in_default_command(self, mock_run):
        """No config folder flag when using default."""
        mock_run.return_value = MagicMock(stdout="", returncode=0)
        GcalcliAdapter().fetch_day(date(2025, 1, 15))

        cmd = mock_run.call_args[0][0]
        assert "--config-folder" not in cmd

    @patch("gapfill.adapters.gcalcli.subprocess.run")
    def test_parses_events(self, mock_run):
        """Timed and all-day events are parsed and locations tagged."""
        tsv_output = (
            HEADER
            + "2025-01-15\t10:00\t2025-01-15\t11:00\tMeeting\t12 Main St\n"
            + "2025-01-15\t\t2025-01-16\t\tHoliday\t\n"
            + "garbage line\n"
            + "not-a-date\t10:00\t2025-01-15\t11:00\tBroken\t\n"
        )
        mock_run.return_value = MagicMock(stdout=tsv_output, returncode=0)

        adapter = GcalcliAdapter(config_folder="/home/user/.gcalcli/work", location_tags={"Main St": "workplace"})
        events = adapter.fetch_day(date(2025, 1, 15))

        assert [e.title for e in events] == ["Meeting", "Holiday"]
        meeting, holiday = events
        assert meeting.start == datetime(2025, 1, 15, 10, 0)
        assert meeting.end == datetime(2025, 1, 15, 11, 0)
        assert meeting.location == "workplace"
        assert meeting.calendar == "work"
        assert meeting.id == "work-2025-01-15-0"
        assert holiday.all_day
        assert holiday.location is None

    @pytest.mark.parametrize(
        "error, message",
        [
            (subprocess.CalledProcessError(1, "gcalcli", stderr="auth expired"), "auth expired"),
            (FileNotFoundError(), "not found"),
            (subprocess.TimeoutExpired("gcalcli", 30), "timed out"),
        ],
    )
    @patch("gapfill.adapters.gcalcli.subprocess.run")
    def test_failures_raise_runtime_error(self, mock_run, error, message):
        """Every subprocess failure surfaces as RuntimeError."""
        mock_run.side_effect = error
        with pytest.raises(RuntimeError, match=message):
            GcalcliAdapter().fetch_day(date(2025, 1, 15))
