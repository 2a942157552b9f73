"""Unified diff translator — raw git diff text to a FriendlyDiff.

Git metadata headers are skipped; every hunk content line becomes a
DiffLine tagged added / removed / unchanged, numbered by its position in
the post-change file. Hunk counts are tracked so a truncated diff is
reported instead of silently rendered.
"""

from __future__ import annotations

import re
from typing import List

from vibesnap.git.models import ChangeType, DiffLine, FriendlyDiff

# --- Regex patterns for diff parsing ---

_DIFF_HEADER_RE = re.compile(r"^diff --git ")
_HUNK_HEADER_RE = re.compile(
    r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@"
)
_BINARY_RE = re.compile(r"^Binary files .* differ$")
_BINARY_PATCH_RE = re.compile(r"^GIT binary patch$")
_NO_NEWLINE_RE = re.compile(r"^\\ No newline at end of file$")
_FILE_HEADER_RE = re.compile(r"^(?:--- |\+\+\+ )")
_META_RE = re.compile(
    r"^(?:index [0-9a-f]+\.\.[0-9a-f]+"
    r"|(?:old|new|deleted file|new file) mode \d+"
    r"|similarity index \d+%|dissimilarity index \d+%"
    r"|rename (?:from|to) .+|copy (?:from|to) .+)"
)

# A change this large (on one side) gets the "a lot of" wording.
_LARGE_CHANGE = 5


class UnparseableDiff(ValueError):
    """Raised when the input is not well-formed unified-diff text."""


def _lines(n: int) -> str:
    return f"{n} line" if n == 1 else f"{n} lines"


def summarize(added: int, removed: int) -> str:
    """Return a one-sentence description of a change of *added* / *removed* lines."""
    if added > removed and added > _LARGE_CHANGE:
        return "This snapshot added a lot of new content to the file."
    if removed > added and removed > _LARGE_CHANGE:
        return "This snapshot removed some old code from the file."
    if added and removed:
        return f"This snapshot modified the file: added {_lines(added)}, removed {_lines(removed)}."
    if added:
        return f"This snapshot added {_lines(added)} to the file."
    if removed:
        return f"This snapshot removed {_lines(removed)} from the file."
    return "This snapshot did not change the file content."


class DiffTranslator:
    """Translate one file's unified diff into a FriendlyDiff.

    Usage::

        friendly = DiffTranslator(raw_diff).translate()
        for line in friendly.lines:
            ...
    """

    def __init__(self, diff_text: str) -> None:
        self._text = diff_text
        self._lines = diff_text.splitlines()

    def translate(self) -> FriendlyDiff:
        if not self._text.strip():
            return FriendlyDiff()

        out: List[DiffLine] = []
        saw_header = False
        saw_hunk = False
        saw_file_pair = False
        old_header_open = False
        is_binary = False
        old_left = new_left = 0
        line_no = 0
        added = removed = 0

        for idx, raw_line in enumerate(self._lines, start=1):
            # --- Inside a hunk: consume exactly the announced line counts ---
            if old_left > 0 or new_left > 0:
                if _NO_NEWLINE_RE.match(raw_line):
                    continue
                marker, content = raw_line[:1], raw_line[1:]
                if marker == "+" and new_left > 0:
                    out.append(DiffLine(content, ChangeType.ADDED, line_no))
                    new_left -= 1
                    line_no += 1
                    added += 1
                elif marker == "-" and old_left > 0:
                    out.append(DiffLine(content, ChangeType.REMOVED, None))
                    old_left -= 1
                    removed += 1
                elif marker in (" ", "") and old_left > 0 and new_left > 0:
                    # Some tools strip the space from blank context lines
                    out.append(DiffLine(content, ChangeType.UNCHANGED, line_no))
                    old_left -= 1
                    new_left -= 1
                    line_no += 1
                else:
                    raise UnparseableDiff(f"line {idx}: unexpected content in hunk: {raw_line!r}")
                continue

            if _NO_NEWLINE_RE.match(raw_line):
                continue

            # --- Hunk header ---
            hm = _HUNK_HEADER_RE.match(raw_line)
            if hm:
                if old_header_open:
                    raise UnparseableDiff(f"line {idx}: '---' header has no matching '+++' line")
                old_left = int(hm.group(2)) if hm.group(2) is not None else 1
                new_left = int(hm.group(4)) if hm.group(4) is not None else 1
                line_no = int(hm.group(3))
                saw_hunk = True
                continue
            if raw_line.startswith("@@"):
                raise UnparseableDiff(f"line {idx}: malformed hunk header: {raw_line!r}")

            # --- Metadata headers → skip ---
            if _DIFF_HEADER_RE.match(raw_line) or _META_RE.match(raw_line):
                saw_header = True
                continue
            if _FILE_HEADER_RE.match(raw_line):
                saw_header = True
                if raw_line.startswith("--- "):
                    old_header_open = True
                elif not old_header_open:
                    raise UnparseableDiff(f"line {idx}: '+++' header without a preceding '---' line")
                else:
                    old_header_open = False
                    saw_file_pair = True
                continue
            if _BINARY_RE.match(raw_line) or _BINARY_PATCH_RE.match(raw_line):
                is_binary = True
                break

            if not raw_line.strip():
                continue
            if saw_hunk or saw_header:
                raise UnparseableDiff(f"line {idx}: content outside of a hunk: {raw_line!r}")
            raise UnparseableDiff("input is not a unified diff")

        if is_binary:
            return FriendlyDiff()
        if old_left > 0 or new_left > 0:
            raise UnparseableDiff(
                f"diff is truncated: hunk ended with {old_left} old / {new_left} new lines missing"
            )
        if old_header_open:
            raise UnparseableDiff("diff is truncated: '---' header has no matching '+++' line")
        if not saw_hunk:
            # git only writes ---/+++ when hunks follow
            if saw_file_pair:
                raise UnparseableDiff("diff is truncated: file headers are not followed by a hunk")
            # Header-only diffs (mode change, empty file) carry no text change
            return FriendlyDiff()

        return FriendlyDiff(summary=summarize(added, removed), lines=out)


def translate(diff_text: str) -> FriendlyDiff:
    """Shorthand for ``DiffTranslator(diff_text).translate()``."""
    return DiffTranslator(diff_text).translate()


def as_initial_version(friendly: FriendlyDiff) -> FriendlyDiff:
    """Re-summarize the diff of a root commit, where the whole file is new."""
    return FriendlyDiff(
        summary=f"This snapshot is the initial version of the file, with {_lines(len(friendly.lines))}.",
        lines=friendly.lines,
    )


def unchanged_version(content: str) -> FriendlyDiff:
    """Render a file the snapshot did not touch: every line unchanged."""
    lines = content.splitlines()
    return FriendlyDiff(
        summary=summarize(0, 0),
        lines=[DiffLine(text, ChangeType.UNCHANGED, i) for i, text in enumerate(lines, start=1)],
    )
