"""Tests for the terminal, JSON and YAML reporters."""

import io
import json

import yaml
from rich.console import Console

from vibesnap.commands import (
    ActionResult,
    FilesResult,
    FriendlyDiffResult,
    HistoryItem,
    HistoryResult,
    RepoStatusResult,
    WatcherResult,
)
from vibesnap.engine.state import Notification, NotificationKind, WatcherState
from vibesnap.git.models import ChangeType, DiffLine, FriendlyDiff, RepoStatus
from vibesnap.output import json_report, terminal, yaml_report


def _console() -> tuple[Console, io.StringIO]:
    buf = io.StringIO()
    return Console(file=buf, width=120, color_system=None), buf


def _history() -> HistoryResult:
    return HistoryResult(
        success=True,
        history=[
            HistoryItem(hash="a" * 40, date="2024-05-01 10:00", message="[Vibe] AI Prompt: add login"),
            HistoryItem(hash="b" * 40, date="2024-05-01 09:00", message="[Vibe] Auto: AI modified files"),
        ],
    )


def _friendly() -> FriendlyDiffResult:
    return FriendlyDiffResult(
        success=True,
        diff=FriendlyDiff(
            summary="This snapshot modified the file: added 1 line, removed 1 line.",
            lines=[
                DiffLine("keep", ChangeType.UNCHANGED, 1),
                DiffLine("old", ChangeType.REMOVED, None),
                DiffLine("new", ChangeType.ADDED, 2),
            ],
        ),
    )


class TestJsonReport:
    def test_history(self):
        data = json.loads(json_report.render(_history()))
        assert data["success"] is True
        assert data["history"][0]["message"] == "[Vibe] AI Prompt: add login"
        assert "error" not in data

    def test_error_included(self):
        data = json.loads(json_report.render(ActionResult(False, "Rollback failed", error="boom")))
        assert data == {"success": False, "message": "Rollback failed", "error": "boom"}

    def test_friendly_diff_lines(self):
        data = json.loads(json_report.render(_friendly()))
        assert data["lines"][1] == {"content": "old", "change_type": "removed"}
        assert data["lines"][2] == {"content": "new", "change_type": "added", "line_number": 2}

    def test_notification(self):
        note = Notification(NotificationKind.AUTO_COMMIT_SUCCESS, "[Vibe] Auto: x")
        assert json.loads(json_report.render(note)) == {
            "kind": "auto-commit-success",
            "payload": "[Vibe] Auto: x",
        }


class TestYamlReport:
    def test_history(self):
        data = yaml.safe_load(yaml_report.render(_history()))
        assert [item["hash"] for item in data["history"]] == ["a" * 40, "b" * 40]

    def test_key_order_preserved(self):
        text = yaml_report.render(ActionResult(True, "Snapshot saved (abcd1234)"))
        assert text.splitlines()[0].startswith("success:")

    def test_watcher_state(self):
        data = yaml.safe_load(yaml_report.render(WatcherResult(WatcherState())))
        assert data["is_watching"] is False
        assert data["last_auto_commit"] is None


class TestTerminal:
    def test_history_table(self):
        console, buf = _console()
        terminal.render_history(_history(), console)
        out = buf.getvalue()
        assert "aaaaaaaa" in out
        assert "[Vibe] AI Prompt: add login" in out

    def test_empty_history(self):
        console, buf = _console()
        terminal.render_history(HistoryResult(True), console)
        assert "No snapshots yet" in buf.getvalue()

    def test_action_message_not_eaten_as_markup(self):
        console, buf = _console()
        terminal.render_action(ActionResult(True, "[Vibe] saved"), console)
        assert "[Vibe] saved" in buf.getvalue()

    def test_action_error(self):
        console, buf = _console()
        terminal.render_action(ActionResult(False, "Rollback failed", error="Unknown commit: x"), console)
        out = buf.getvalue()
        assert "Rollback failed" in out
        assert "Unknown commit: x" in out

    def test_friendly_diff(self):
        console, buf = _console()
        terminal.render_friendly_diff("app.py", _friendly(), console)
        out = buf.getvalue()
        assert "app.py" in out
        assert "added 1 line" in out
        assert "+ new" in out
        assert "- old" in out

    def test_friendly_diff_empty(self):
        console, buf = _console()
        terminal.render_friendly_diff("logo.png", FriendlyDiffResult(True), console)
        assert "No textual changes" in buf.getvalue()

    def test_files(self):
        console, buf = _console()
        terminal.render_files("c" * 40, FilesResult(True, ["a.txt", "b.txt"]), console)
        out = buf.getvalue()
        assert "2 file(s) changed in cccccccc" in out
        assert "b.txt" in out

    def test_status(self):
        console, buf = _console()
        status = RepoStatus(branch="main", latest_commit_summary="abc123 [Vibe] Auto: x", dirty_file_count=3)
        terminal.render_status(RepoStatusResult(True, status), console)
        out = buf.getvalue()
        assert "main" in out
        assert "[Vibe] Auto: x" in out
        assert "3 changed file(s)" in out

    def test_watcher_idle(self):
        console, buf = _console()
        terminal.render_watcher(WatcherResult(WatcherState()), console)
        assert "not running" in buf.getvalue()

    def test_notification(self):
        console, buf = _console()
        note = Notification(NotificationKind.AUTO_COMMIT_ERROR, "git commit failed: [hook] no")
        terminal.render_notification(note, console)
        out = buf.getvalue()
        assert "Auto-commit failed" in out
        assert "[hook] no" in out
