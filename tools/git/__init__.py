"""
Git tools package for comment-catcher.

This package provides tools for:
- Detecting changed files and diffs against a base branch
- Mapping file lines to pull request diff positions
- Publishing results to GitHub pull requests
"""

from .git_changes import ChangeSet, ChangeSetInput, GitChangeDetector

__all__ = ["ChangeSet", "ChangeSetInput", "GitChangeDetector"]
