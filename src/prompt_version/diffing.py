"""Line-level diffing between two versions of a prompt."""

import difflib
from dataclasses import dataclass
from typing import List, Tuple


@dataclass
class Change:
    """A run of consecutive lines that were added, removed, or kept."""

    value: str
    added: bool = False
    removed: bool = False
    count: int = 0

    @property
    def kind(self) -> str:
        if self.added:
            return "added"
        if self.removed:
            return "removed"
        return "unchanged"

    def lines(self) -> List[str]:
        """Lines of this change without their terminators."""
        parts = self.value.split("\n")
        if parts and parts[-1] == "":
            parts.pop()
        return parts


def split_lines(text: str) -> List[str]:
    """Split on '\\n' keeping terminators; a trailing partial line is kept."""
    parts = text.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


def count_lines(value: str) -> int:
    """Count lines in a hunk; a terminating newline does not start a new line."""
    if not value:
        return 0
    return value.count("\n") + (0 if value.endswith("\n") else 1)


def _make_change(lines: List[str], added: bool = False, removed: bool = False) -> Change:
    value = "".join(lines)
    return Change(value=value, added=added, removed=removed, count=count_lines(value))


def diff_lines(old: str, new: str) -> List[Change]:
    """Compute an ordered list of changes turning ``old`` into ``new``.

    Replaced regions are reported as a removal followed by an addition.
    """
    old_lines = split_lines(old)
    new_lines = split_lines(new)
    matcher = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)

    changes: List[Change] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            changes.append(_make_change(old_lines[i1:i2]))
            continue
        if tag in ("delete", "replace"):
            changes.append(_make_change(old_lines[i1:i2], removed=True))
        if tag in ("insert", "replace"):
            changes.append(_make_change(new_lines[j1:j2], added=True))

    return changes


def summarize(changes: List[Change]) -> Tuple[int, int, int]:
    """Return (additions, deletions, unchanged) line counts."""
    additions = deletions = unchanged = 0
    for change in changes:
        if change.added:
            additions += change.count
        elif change.removed:
            deletions += change.count
        else:
            unchanged += change.count
    return additions, deletions, unchanged


def apply_changes(changes: List[Change]) -> str:
    """Rebuild the new content from a diff."""
    return "".join(change.value for change in changes if not change.removed)


def revert_changes(changes: List[Change]) -> str:
    """Rebuild the old content from a diff."""
    return "".join(change.value for change in changes if not change.added)
