"""
Diff position mapping for pull request review comments.

The review API addresses a line by its position inside the file's patch,
not by its line number in the file. A file's patch starts at its first hunk
header, which is position 1.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from tools.llm.tool import Finding

HUNK_HEADER = re.compile(r"^@@ -\d+(?:,\d+)? \+(\d+)(?:,\d+)? @@")
FILE_HEADER = re.compile(r"^diff --git a/(.+?) b/(.+)$")


@dataclass
class InlinePlacement:
    """A finding that can be shown on a diff line."""

    path: str
    position: int
    finding: Finding


def split_patches(diff_text: str) -> dict[str, list[str]]:
    """Split a unified diff into per-file patch lines.

    Files are keyed by their new path. Lines before the first hunk header
    (index, mode and ---/+++ headers) are dropped.
    """
    patches: dict[str, list[str]] = {}
    current: list[str] | None = None

    for line in diff_text.splitlines():
        header = FILE_HEADER.match(line)
        if header:
            current = patches.setdefault(header.group(2), [])
            continue
        if current is None:
            continue
        if not current and not line.startswith("@@"):
            continue
        current.append(line)
    return patches


def find_diff_position(patch_lines: Iterable[str], line_number: int) -> int | None:
    """Position of new-file `line_number` within a file's patch.

    Returns:
        1-based index into `patch_lines`, or None when the line is not part
        of any hunk.
    """
    current_line = 0
    for position, line in enumerate(patch_lines, start=1):
        header = HUNK_HEADER.match(line)
        if header:
            current_line = int(header.group(1)) - 1
            continue

        if line.startswith("+") or line.startswith(" "):
            current_line += 1
            if current_line == line_number:
                return position
    return None


def place_findings(
    diff_text: str, findings: Iterable[Finding]
) -> tuple[list[InlinePlacement], list[Finding]]:
    """Split findings into inline placements and those outside the diff."""
    patches = split_patches(diff_text)
    placed: list[InlinePlacement] = []
    unplaced: list[Finding] = []

    for finding in findings:
        path = finding.comment.file
        patch = patches.get(path)
        position = find_diff_position(patch, finding.comment.line) if patch else None
        if position is None:
            unplaced.append(finding)
        else:
            placed.append(InlinePlacement(path=path, position=position, finding=finding))
    return placed, unplaced
