"""Tests for the file-backed adapters and the Claude CLI adapter."""

import json
import logging
import subprocess
from datetime import date, datetime
from unittest.mock import MagicMock, patch

import pytest

from gapfill.adapters.claude_cli import ClaudeCLIService
from gapfill.adapters.file_actions import FileActionStore
from gapfill.adapters.json_calendar import JsonCalendarAdapter
from gapfill.adapters.json_tasks import JsonTaskStore
from gapfill.core.actions import ActionKind, SuggestionAction


class TestJsonTaskStore:
    def test_missing_file_is_empty(self, tmp_path):
        assert JsonTaskStore(tmp_path / "memos.json").fetch_all() == []

    def test_save_then_fetch(self, tmp_path, make_backlog, make_deadline):
        store = JsonTaskStore(tmp_path / "data" / "memos.json")
        store.save(make_backlog())
        store.save(make_deadline())

        assert [m.id for m in store.fetch_all()] == ["b1", "d1"]
        assert store.get("d1") == make_deadline()
        assert store.get("zz") is None

    def test_save_replaces_existing(self, tmp_path, make_backlog):
        store = JsonTaskStore(tmp_path / "memos.json")
        store.save(make_backlog(title="Old"))
        store.save(make_backlog(title="New"))

        memos = store.fetch_all()
        assert [m.title for m in memos] == ["New"]
        assert not (tmp_path / "memos.json.tmp").exists()

    def test_wrapped_in_memos_key(self, tmp_path, make_backlog):
        path = tmp_path / "memos.json"
        path.write_text(json.dumps({"memos": [make_backlog().to_dict()]}))
        assert [m.id for m in JsonTaskStore(path).fetch_all()] == ["b1"]

    def test_unreadable_entries_are_skipped_and_kept(self, tmp_path, make_backlog, caplog):
        path = tmp_path / "memos.json"
        path.write_text(json.dumps([{"id": "broken", "kind": "chore"}, make_backlog().to_dict()]))
        store = JsonTaskStore(path)

        with caplog.at_level(logging.WARNING):
            assert [m.id for m in store.fetch_all()] == ["b1"]
        assert "Skipping unreadable memo" in caplog.text

        store.save(make_backlog(title="Renamed"))
        raw = json.loads(path.read_text())
        assert raw[0] == {"id": "broken", "kind": "chore"}
        assert raw[1]["title"] == "Renamed"

    def test_invalid_json_raises(self, tmp_path):
        path = tmp_path / "memos.json"
        path.write_text("{not json")
        with pytest.raises(RuntimeError, match="not valid JSON"):
            JsonTaskStore(path).fetch_all()


class TestJsonCalendarAdapter:
    @pytest.fixture
    def events_file(self, tmp_path):
        path = tmp_path / "events.json"
        path.write_text(
            json.dumps(
                [
                    {"id": "a", "title": "Standup", "start": "2025-01-15T09:00", "end": "2025-01-15T09:15"},
                    {"title": "Gym", "start": "2025-01-15T07:00", "end": "2025-01-15T08:00", "location": "gym"},
                    {"title": "Tomorrow", "start": "2025-01-16T09:00", "end": "2025-01-16T10:00"},
                    {"title": "Broken", "start": "whenever"},
                    {"title": "Holiday", "start": "2025-01-15", "all_day": True},
                ]
            )
        )
        return path

    def test_fetch_day_filters_and_sorts(self, events_file, caplog):
        with caplog.at_level(logging.WARNING):
            events = JsonCalendarAdapter(events_file).fetch_day(date(2025, 1, 15))

        assert [e.title for e in events] == ["Holiday", "Gym", "Standup"]
        assert events[1].location == "gym"
        assert events[1].id == "json-1"
        assert events[0].all_day
        assert "Skipping malformed event #3" in caplog.text

    def test_missing_file(self, tmp_path):
        assert JsonCalendarAdapter(tmp_path / "none.json").fetch_day(date(2025, 1, 15)) == []


class TestFileActionStore:
    @pytest.fixture
    def action(self):
        return SuggestionAction(
            day=date(2025, 1, 15),
            kind=ActionKind.ACCEPTED,
            suggestion_id="suggestion-b1-20250115",
            memo_id="b1",
            gap_id="gap-1000-1",
            start_time="10:00",
            end_time="10:30",
            duration=30,
        )

    def test_record_and_load(self, tmp_path, action):
        store = FileActionStore(tmp_path / "actions")
        store.record(action)

        assert store.load(date(2025, 1, 15)) == [action]
        assert store.load(date(2025, 1, 16)) == []
        assert (tmp_path / "actions" / "2025-01-15.json").exists()

    def test_record_replaces_by_suggestion(self, tmp_path, action):
        store = FileActionStore(tmp_path)
        store.record(action)
        completed = SuggestionAction(**{**action.__dict__, "kind": ActionKind.COMPLETED})
        store.record(completed)
        assert store.load(action.day) == [completed]

    def test_remove(self, tmp_path, action):
        store = FileActionStore(tmp_path)
        store.record(action)
        store.remove(action.day, action.suggestion_id)
        store.remove(action.day, "unknown")
        assert store.load(action.day) == []

    def test_clear_and_last_day(self, tmp_path, action):
        store = FileActionStore(tmp_path)
        assert store.last_day() is None

        store.record(action)
        store.record(SuggestionAction(**{**action.__dict__, "day": date(2025, 1, 14)}))
        (tmp_path / "notes.json").write_text("{}")
        assert store.last_day() == date(2025, 1, 15)

        store.clear()
        assert store.last_day() is None

    def test_malformed_entry_is_skipped(self, tmp_path, action, caplog):
        store = FileActionStore(tmp_path)
        store.record(action)
        path = tmp_path / "2025-01-15.json"
        entries = json.loads(path.read_text())
        entries["bad"] = {"kind": "accepted"}
        path.write_text(json.dumps(entries))

        with caplog.at_level(logging.WARNING):
            assert store.load(action.day) == [action]
        assert "Skipping malformed action" in caplog.text


class TestClaudeCLIService:
    @patch("gapfill.adapters.claude_cli.subprocess.run")
    def test_generate(self, mock_run):
        mock_run.return_value = MagicMock(stdout="b1: Worth it.\n", returncode=0)
        service = ClaudeCLIService(binary="/usr/bin/claude", timeout=5)

        assert service.generate("prompt") == "b1: Worth it.\n"
        cmd = mock_run.call_args[0][0]
        assert cmd == ["/usr/bin/claude", "-p", "prompt"]
        assert mock_run.call_args.kwargs["timeout"] == 5

    @patch("gapfill.adapters.claude_cli.subprocess.run")
    def test_non_zero_exit(self, mock_run):
        mock_run.return_value = MagicMock(stdout="", stderr="rate limited", returncode=1)
        with pytest.raises(RuntimeError, match="rate limited"):
            ClaudeCLIService(binary="claude").generate("prompt")

    @patch("gapfill.adapters.claude_cli.subprocess.run")
    def test_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="claude", timeout=20)
        with pytest.raises(RuntimeError, match="timed out"):
            ClaudeCLIService(binary="claude").generate("prompt")

    @patch("gapfill.adapters.claude_cli.subprocess.run")
    def test_not_installed(self, mock_run):
        mock_run.side_effect = FileNotFoundError()
        with pytest.raises(RuntimeError, match="not found"):
            ClaudeCLIService(binary="claude").generate("prompt")

    @patch("gapfill.adapters.claude_cli.shutil.which", return_value=None)
    def test_binary_fallback(self, _mock_which):
        assert ClaudeCLIService().binary == "claude"
