"""Shared test fixtures — sample diffs, temp git repos, polling helpers."""

from __future__ import annotations

import subprocess
import textwrap
import time
from pathlib import Path
from typing import Callable, List

import pytest

from vibesnap.engine.state import Notification


@pytest.fixture
def sample_diff_added() -> str:
    """A new file with three lines."""
    return textwrap.dedent("""\
        diff --git a/hello.py b/hello.py
        new file mode 100644
        index 0000000..e69de29
        --- /dev/null
        +++ b/hello.py
        @@ -0,0 +1,3 @@
        +def greet(name):
        +    return f"Hello, {name}!"
        +
    """)


@pytest.fixture
def sample_diff_modified() -> str:
    """One line replaced inside surrounding context."""
    return textwrap.dedent("""\
        diff --git a/app.py b/app.py
        index 1234567..abcdef0 100644
        --- a/app.py
        +++ b/app.py
        @@ -10,3 +10,3 @@ def main():
             setup()
        -    run(debug=True)
        +    run(debug=False)
             teardown()
    """)


@pytest.fixture
def sample_diff_two_hunks() -> str:
    """Two hunks in one file: two additions, one removal."""
    return textwrap.dedent("""\
        diff --git a/notes.txt b/notes.txt
        index 1111111..2222222 100644
        --- a/notes.txt
        +++ b/notes.txt
        @@ -1,2 +1,3 @@
         first
        +inserted
         second
        @@ -8,2 +9,2 @@
         eighth
        -ninth
        +ninth, revised
    """)


@pytest.fixture
def sample_diff_deleted() -> str:
    """A deleted file."""
    return textwrap.dedent("""\
        diff --git a/old.txt b/old.txt
        deleted file mode 100644
        index abc1234..0000000
        --- a/old.txt
        +++ /dev/null
        @@ -1,2 +0,0 @@
        -goodbye
        -world
    """)


@pytest.fixture
def sample_diff_binary() -> str:
    """A diff with a binary file."""
    return textwrap.dedent("""\
        diff --git a/image.png b/image.png
        new file mode 100644
        Binary files /dev/null and b/image.png differ
    """)


@pytest.fixture
def sample_diff_rename() -> str:
    """A renamed file with one added line."""
    return textwrap.dedent("""\
        diff --git a/old_name.py b/new_name.py
        similarity index 97%
        rename from old_name.py
        rename to new_name.py
        index abc1234..def5678 100644
        --- a/old_name.py
        +++ b/new_name.py
        @@ -1,0 +2,1 @@
        +# New line added after rename
    """)


@pytest.fixture
def sample_diff_mode_only() -> str:
    """A diff with only file mode change."""
    return textwrap.dedent("""\
        diff --git a/script.sh b/script.sh
        old mode 100644
        new mode 100755
    """)


@pytest.fixture
def sample_diff_no_newline() -> str:
    """A diff with 'No newline at end of file' marker."""
    return textwrap.dedent("""\
        diff --git a/data.txt b/data.txt
        new file mode 100644
        index 0000000..abc1234
        --- /dev/null
        +++ b/data.txt
        @@ -0,0 +1 @@
        +final line without newline
        \\ No newline at end of file
    """)


def git(repo: Path, *args: str) -> str:
    """Run git in *repo* and return stdout; fail the test on error."""
    result = subprocess.run(
        ["git", *args], cwd=repo, capture_output=True, text=True, check=True,
    )
    return result.stdout


def commit_subjects(repo: Path) -> List[str]:
    return git(repo, "log", "--format=%s").splitlines()


def wait_for(predicate: Callable[[], bool], timeout: float = 10.0, interval: float = 0.05) -> bool:
    """Poll *predicate* until it is true or *timeout* seconds pass."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def tmp_git_repo(tmp_path: Path) -> Path:
    """Create a temporary git repository with one root commit."""
    repo = tmp_path / "project"
    repo.mkdir()
    subprocess.run(["git", "init", "-q", str(repo)], capture_output=True, check=True)
    git(repo, "config", "user.email", "test@test.com")
    git(repo, "config", "user.name", "Test")
    (repo / "README.md").write_text("# Test\n")
    git(repo, "add", ".")
    git(repo, "commit", "-q", "-m", "init")
    return repo


@pytest.fixture
def empty_project(tmp_path: Path) -> Path:
    """An empty directory that is not yet a repository."""
    project = tmp_path / "fresh"
    project.mkdir()
    return project


@pytest.fixture
def isolated_git_env(monkeypatch, tmp_path: Path) -> Path:
    """Hide the user's global git config so identity fallbacks are observable."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(home / ".gitconfig"))
    for var in ("GIT_AUTHOR_NAME", "GIT_AUTHOR_EMAIL", "GIT_COMMITTER_NAME", "GIT_COMMITTER_EMAIL"):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture(autouse=True)
def clean_vibesnap_env(monkeypatch):
    """Keep VIBESNAP_* variables from the outer shell out of every test."""
    for var in (
        "VIBESNAP_DEBOUNCE_MS",
        "VIBESNAP_LOG_FILE",
        "VIBESNAP_FORMAT",
        "VIBESNAP_GIT_TIMEOUT",
        "VIBESNAP_HISTORY_LIMIT",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def notifications() -> List[Notification]:
    """A list that doubles as a notify callback via ``notifications.append``."""
    return []
