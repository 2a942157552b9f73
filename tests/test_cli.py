"""Tests for the CLI commands."""

import json
from pathlib import Path

import yaml
from typer.testing import CliRunner

from conftest import commit_subjects, git
from vibesnap.cli import app

runner = CliRunner()


class TestVersion:
    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "vibesnap" in result.output


class TestInit:
    def test_initializes_directory(self, empty_project: Path):
        result = runner.invoke(app, ["init", str(empty_project)])
        assert result.exit_code == 0
        assert (empty_project / ".git").is_dir()
        assert "Git repository is ready" in result.output

    def test_defaults_to_cwd(self, empty_project: Path, monkeypatch):
        monkeypatch.chdir(empty_project)
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 0
        assert (empty_project / ".git").is_dir()

    def test_json_reports_initialization(self, empty_project: Path):
        first = runner.invoke(app, ["init", str(empty_project), "--format", "json"])
        second = runner.invoke(app, ["init", str(empty_project), "--format", "json"])
        assert json.loads(first.stdout)["was_initialized"] is True
        assert json.loads(second.stdout)["was_initialized"] is False

    def test_write_config(self, empty_project: Path):
        result = runner.invoke(app, ["init", str(empty_project), "--write-config"])
        assert result.exit_code == 0
        assert (empty_project / ".vibesnap.toml").exists()

    def test_write_config_refuses_overwrite(self, tmp_git_repo: Path):
        (tmp_git_repo / ".vibesnap.toml").write_text("version = \"1.0\"\n")
        result = runner.invoke(app, ["init", str(tmp_git_repo), "--write-config"])
        assert result.exit_code == 1

    def test_missing_directory(self, tmp_path: Path):
        result = runner.invoke(app, ["init", str(tmp_path / "nope")])
        assert result.exit_code == 1


class TestSnap:
    def test_snapshot(self, tmp_git_repo: Path):
        (tmp_git_repo / "login.py").write_text("def login(): ...\n")
        result = runner.invoke(app, ["snap", "add login", "--path", str(tmp_git_repo)])
        assert result.exit_code == 0
        assert commit_subjects(tmp_git_repo)[0] == "[Vibe] AI Prompt: add login"

    def test_no_changes_exit_1(self, tmp_git_repo: Path):
        result = runner.invoke(app, ["snap", "nothing", "-p", str(tmp_git_repo)])
        assert result.exit_code == 1
        assert "No changes detected" in result.output

    def test_not_a_repo(self, tmp_path: Path):
        result = runner.invoke(app, ["snap", "x", "-p", str(tmp_path)])
        assert result.exit_code == 1


class TestHistory:
    def test_json_history(self, tmp_git_repo: Path):
        for i in range(3):
            (tmp_git_repo / f"{i}.txt").write_text(str(i))
            runner.invoke(app, ["snap", f"step {i}", "-p", str(tmp_git_repo)])
        result = runner.invoke(app, ["history", "-p", str(tmp_git_repo), "-f", "json", "--limit", "2"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert [item["message"] for item in data["history"]] == [
            "[Vibe] AI Prompt: step 2",
            "[Vibe] AI Prompt: step 1",
        ]

    def test_yaml_history(self, tmp_git_repo: Path):
        (tmp_git_repo / "a.txt").write_text("a")
        runner.invoke(app, ["snap", "a", "-p", str(tmp_git_repo)])
        result = runner.invoke(app, ["history", "-p", str(tmp_git_repo), "-f", "yaml"])
        assert result.exit_code == 0
        assert yaml.safe_load(result.stdout)["history"][0]["message"] == "[Vibe] AI Prompt: a"

    def test_terminal_empty(self, tmp_git_repo: Path):
        result = runner.invoke(app, ["history", "-p", str(tmp_git_repo)])
        assert result.exit_code == 0
        assert "No snapshots yet" in result.output

    def test_invalid_format(self, tmp_git_repo: Path):
        result = runner.invoke(app, ["history", "-p", str(tmp_git_repo), "-f", "xml"])
        assert result.exit_code == 2

    def test_invalid_limit(self, tmp_git_repo: Path):
        result = runner.invoke(app, ["history", "-p", str(tmp_git_repo), "--limit", "0"])
        assert result.exit_code == 2

    def test_bad_config_exit_2(self, tmp_git_repo: Path):
        (tmp_git_repo / ".vibesnap.toml").write_text("[watcher\n")
        result = runner.invoke(app, ["history", "-p", str(tmp_git_repo)])
        assert result.exit_code == 2
        assert "Config error" in result.output


class TestShow:
    def _snapshot(self, repo: Path) -> str:
        (repo / "README.md").write_text("# Test\nmore\n")
        runner.invoke(app, ["snap", "more", "-p", str(repo)])
        return git(repo, "rev-parse", "HEAD").strip()

    def test_list_files(self, tmp_git_repo: Path):
        sha = self._snapshot(tmp_git_repo)
        result = runner.invoke(app, ["show", sha[:8], "-p", str(tmp_git_repo), "-f", "json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["files"] == ["README.md"]

    def test_friendly_diff(self, tmp_git_repo: Path):
        sha = self._snapshot(tmp_git_repo)
        result = runner.invoke(app, ["show", sha, "README.md", "-p", str(tmp_git_repo)])
        assert result.exit_code == 0
        assert "added 1 line" in result.output
        assert "more" in result.output

    def test_raw_diff(self, tmp_git_repo: Path):
        sha = self._snapshot(tmp_git_repo)
        result = runner.invoke(app, ["show", sha, "README.md", "--raw", "-p", str(tmp_git_repo)])
        assert result.exit_code == 0
        assert "+more" in result.stdout

    def test_unknown_commit(self, tmp_git_repo: Path):
        result = runner.invoke(app, ["show", "deadbeef", "-p", str(tmp_git_repo)])
        assert result.exit_code == 1


class TestRollback:
    def test_rollback_with_yes(self, tmp_git_repo: Path):
        (tmp_git_repo / "a.txt").write_text("one")
        runner.invoke(app, ["snap", "one", "-p", str(tmp_git_repo)])
        target = git(tmp_git_repo, "rev-parse", "HEAD").strip()
        (tmp_git_repo / "a.txt").write_text("two")
        runner.invoke(app, ["snap", "two", "-p", str(tmp_git_repo)])

        result = runner.invoke(app, ["rollback", target, "--yes", "-p", str(tmp_git_repo)])

        assert result.exit_code == 0
        assert (tmp_git_repo / "a.txt").read_text() == "one"

    def test_rollback_declined(self, tmp_git_repo: Path):
        (tmp_git_repo / "a.txt").write_text("one")
        runner.invoke(app, ["snap", "one", "-p", str(tmp_git_repo)])
        head = git(tmp_git_repo, "rev-parse", "HEAD").strip()
        root = git(tmp_git_repo, "rev-list", "--max-parents=0", "HEAD").strip()

        result = runner.invoke(app, ["rollback", root, "-p", str(tmp_git_repo)], input="n\n")

        assert result.exit_code == 1
        assert git(tmp_git_repo, "rev-parse", "HEAD").strip() == head

    def test_rollback_confirmed(self, tmp_git_repo: Path):
        (tmp_git_repo / "a.txt").write_text("one")
        runner.invoke(app, ["snap", "one", "-p", str(tmp_git_repo)])
        root = git(tmp_git_repo, "rev-list", "--max-parents=0", "HEAD").strip()

        result = runner.invoke(app, ["rollback", root, "-p", str(tmp_git_repo)], input="y\n")

        assert result.exit_code == 0
        assert not (tmp_git_repo / "a.txt").exists()

    def test_rollback_unknown(self, tmp_git_repo: Path):
        result = runner.invoke(app, ["rollback", "nope", "-y", "-p", str(tmp_git_repo)])
        assert result.exit_code == 1
        assert "Rollback failed" in result.output


class TestStatus:
    def test_clean(self, tmp_git_repo: Path):
        result = runner.invoke(app, ["status", "-p", str(tmp_git_repo)])
        assert result.exit_code == 0
        assert "clean" in result.output

    def test_json(self, tmp_git_repo: Path):
        (tmp_git_repo / "a.txt").write_text("a")
        result = runner.invoke(app, ["status", "-p", str(tmp_git_repo), "-f", "json"])
        assert json.loads(result.stdout)["dirty_file_count"] == 1

    def test_not_a_repo(self, tmp_path: Path):
        result = runner.invoke(app, ["status", "-p", str(tmp_path)])
        assert result.exit_code == 1


class TestWatch:
    def test_watch_refuses_non_repo(self, tmp_path: Path):
        result = runner.invoke(app, ["watch", "-p", str(tmp_path)])
        assert result.exit_code == 1
        assert "Watcher could not start" in result.output

    def test_watch_negative_debounce(self, tmp_git_repo: Path):
        result = runner.invoke(app, ["watch", "-p", str(tmp_git_repo), "--debounce", "-5"])
        assert result.exit_code == 2
