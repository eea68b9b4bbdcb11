"""Tests for the InlineReviewer agent using a recording poster."""

from __future__ import annotations

from typing import Any

from agents.reviewer.reviewer import (
    SUMMARY_MARKER,
    InlineReviewer,
    build_comment_body,
    build_summary,
)
from tools.comments.extractor import CodeComment
from tools.git.provider_github import PullRequestContext
from tools.llm.tool import Finding

DIFF = """diff --git a/pkg/core.py b/pkg/core.py
index 1111111..2222222 100644
--- a/pkg/core.py
+++ b/pkg/core.py
@@ -1,3 +1,3 @@
 # Returns the sum of the two numbers given
 def add(a, b):
-    return a + b
+    return a * b
"""


class RecordingPoster:
    """Stands in for GitHubPoster and records every call."""

    def __init__(self, diff: str = DIFF) -> None:
        self.diff = diff
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def get_pull_request_diff(self, owner: str, repo: str, pr_number: int) -> str:
        self.calls.append(("diff", {"pr": pr_number}))
        return self.diff

    def create_review(self, owner, repo, pr_number, body, comments, commit_id=None):
        self.calls.append(("review", {"body": body, "comments": comments, "commit_id": commit_id}))
        return {"id": 100}

    def upsert_comment(self, owner, repo, pr_number, body, marker):
        self.calls.append(("summary", {"body": body, "marker": marker}))
        return {"id": 200}


CONTEXT = PullRequestContext(owner="org", repo="repo", number=7, head_sha="abc123")


def _finding(file: str, line: int, suggestion: str | None = None) -> Finding:
    return Finding(
        comment=CodeComment(file=file, line=line, text="Returns the sum of the two numbers given"),
        reason="add now multiplies",
        suggestion=suggestion,
    )


def test_comment_body_with_suggestion() -> None:
    body = build_comment_body(_finding("pkg/core.py", 1, "Returns the product"))
    assert body.startswith("**🔍 Outdated Comment Detected**")
    assert "**Current comment:** Returns the sum of the two numbers given" in body
    assert "**Why it's outdated:** add now multiplies" in body
    assert "```suggestion\nReturns the product\n```" in body


def test_comment_body_without_suggestion() -> None:
    assert "```suggestion" not in build_comment_body(_finding("pkg/core.py", 1))


def test_publish_posts_review_and_summary() -> None:
    poster = RecordingPoster()
    inline = _finding("pkg/core.py", 1, "Returns the product")
    elsewhere = _finding("pkg/api.py", 4)

    outcome = InlineReviewer(poster, CONTEXT).publish([inline, elsewhere])

    assert [name for name, _ in poster.calls] == ["diff", "review", "summary"]
    review = poster.calls[1][1]
    assert review["commit_id"] == "abc123"
    assert review["comments"][0]["path"] == "pkg/core.py"
    assert review["comments"][0]["position"] == 2
    assert "```suggestion" in review["comments"][0]["body"]

    summary = poster.calls[2][1]
    assert summary["marker"] == SUMMARY_MARKER
    assert summary["body"].startswith(SUMMARY_MARKER)
    assert "Found 2 potentially outdated comment(s)" in summary["body"]
    assert "`pkg/api.py:4`" in summary["body"]
    assert "`pkg/core.py:1`" not in summary["body"]

    assert outcome.unplaced == [elsewhere]
    assert outcome.review == {"id": 100}
    assert outcome.summary == {"id": 200}


def test_publish_without_placeable_findings_skips_review() -> None:
    poster = RecordingPoster()
    outcome = InlineReviewer(poster, CONTEXT).publish([_finding("pkg/api.py", 4)], diff=DIFF)

    assert [name for name, _ in poster.calls] == ["summary"]
    assert outcome.placed == []
    assert outcome.review is None


def test_publish_without_findings_posts_clean_summary() -> None:
    poster = RecordingPoster()
    InlineReviewer(poster, CONTEXT).publish([])

    assert [name for name, _ in poster.calls] == ["summary"]
    assert "No outdated comments detected" in poster.calls[0][1]["body"]


def test_summary_lists_suggestions_of_unplaced_findings() -> None:
    finding = _finding("pkg/api.py", 4, "Mention multiplication")
    summary = build_summary([finding], [finding])
    assert "1 comment(s) could not be posted inline" in summary
    assert "**Suggestion:** Mention multiplication" in summary
