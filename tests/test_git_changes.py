"""Tests for change detection against a throwaway Git repository."""

from __future__ import annotations

from pathlib import Path

import pytest

from tools.base import DiffError, ToolErrorCode
from tools.git.git_changes import ChangeSetInput, GitChangeDetector


def test_changed_files_filtered_by_extension(git_repo: Path) -> None:
    detector = GitChangeDetector(str(git_repo))
    assert detector.get_changed_files("main", [".py"]) == ["pkg/core.py"]
    assert sorted(detector.get_changed_files("main")) == ["README.md", "pkg/core.py"]


def test_diff_contains_the_change(git_repo: Path) -> None:
    diff = GitChangeDetector(str(git_repo)).get_diff("main")
    assert "diff --git a/pkg/core.py b/pkg/core.py" in diff
    assert "-    return a + b" in diff
    assert "+    return a * b" in diff


def test_run_returns_change_set(git_repo: Path) -> None:
    result = GitChangeDetector(str(git_repo)).run(ChangeSetInput(base_ref="main"))
    assert result.ok
    assert result.output is not None
    assert result.output.changed_files == ["pkg/core.py"]
    assert "return a * b" in result.output.diff
    assert result.metrics is not None
    assert result.metrics.files_processed == 1


def test_unknown_base_is_git_error(git_repo: Path) -> None:
    detector = GitChangeDetector(str(git_repo))
    with pytest.raises(DiffError):
        detector.get_changed_files("no-such-branch")

    result = detector.run(ChangeSetInput(base_ref="no-such-branch"))
    assert not result.ok
    assert result.error_code == ToolErrorCode.GIT_ERROR


def test_not_a_repository(tmp_path: Path) -> None:
    plain = tmp_path / "plain"
    plain.mkdir()
    with pytest.raises(DiffError):
        GitChangeDetector(str(plain))


def test_fetch_without_remote_returns_false(git_repo: Path) -> None:
    assert GitChangeDetector(str(git_repo)).fetch_base_branch("main") is False
