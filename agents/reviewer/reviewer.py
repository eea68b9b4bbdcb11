"""Inline reviewer agent that publishes findings on a pull request.

This module implements `InlineReviewer`, which maps each finding to its
position in the pull request diff, posts the placeable ones as a single
review with inline comments, and keeps one summary comment on the
conversation up to date.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from agents.base import BaseAgent
from tools.git.diff_position import InlinePlacement, place_findings
from tools.git.provider_github import GitHubPoster, PullRequestContext
from tools.llm.tool import Finding

SUMMARY_MARKER = "<!-- comment-catcher-summary -->"
REVIEW_BODY = (
    "## 🔍 Comment Catcher Review\n\n"
    "I found some potentially outdated comments in this PR. "
    "Please review the inline suggestions below."
)
FOOTER = "---\n*This comment was automatically generated by Comment Catcher*"


@dataclass
class ReviewOutcome:
    """What was published for a pull request."""

    placed: list[InlinePlacement] = field(default_factory=list)
    unplaced: list[Finding] = field(default_factory=list)
    review: dict[str, Any] | None = None
    summary: dict[str, Any] | None = None


def build_comment_body(finding: Finding) -> str:
    """Markdown body of one inline review comment."""
    body = "**🔍 Outdated Comment Detected**\n\n"
    body += f"**Current comment:** {finding.comment.text}\n\n"
    body += f"**Why it's outdated:** {finding.reason}\n\n"
    if finding.suggestion:
        body += "**Suggested update:**\n"
        body += "```suggestion\n"
        body += finding.suggestion + "\n"
        body += "```\n"
    return body


def build_summary(findings: list[Finding], unplaced: list[Finding]) -> str:
    """Markdown body of the summary comment, starting with the marker."""
    if not findings:
        return (
            f"{SUMMARY_MARKER}\n## ✅ Comment Catcher Results\n\n"
            "No outdated comments detected. "
            "Great job keeping documentation up to date!\n\n"
            f"{FOOTER}"
        )

    summary = (
        f"{SUMMARY_MARKER}\n## 🔍 Comment Catcher Summary\n\n"
        f"Found {len(findings)} potentially outdated comment(s). "
        "See the inline review comments for details and suggested updates.\n\n"
    )
    if unplaced:
        summary += (
            f"⚠️ {len(unplaced)} comment(s) could not be posted inline "
            "because they are not visible in the PR diff:\n\n"
        )
        for finding in unplaced:
            summary += f"- `{finding.key}`: {finding.comment.text}\n"
            summary += f"  - **Reason:** {finding.reason}\n"
            if finding.suggestion:
                summary += f"  - **Suggestion:** {finding.suggestion}\n"
        summary += "\n"
    return summary + FOOTER


class InlineReviewer(BaseAgent):
    """Publishes findings to one pull request."""

    def __init__(self, poster: GitHubPoster, context: PullRequestContext) -> None:
        super().__init__("InlineReviewer")
        self.poster = poster
        self.context = context

    def publish(self, findings: list[Finding], diff: str | None = None) -> ReviewOutcome:
        """Post the review and the summary comment.

        Args:
            findings: Findings to publish.
            diff: Pull request diff; fetched from GitHub when omitted.

        Returns:
            What was placed inline, what was not, and the API responses.

        Raises:
            RuntimeError: A GitHub request failed.
        """
        ctx = self.context
        outcome = ReviewOutcome()

        if findings:
            if diff is None:
                logger.info("Getting PR diff")
                diff = self.poster.get_pull_request_diff(ctx.owner, ctx.repo, ctx.number)

            outcome.placed, outcome.unplaced = place_findings(diff, findings)
            for finding in outcome.unplaced:
                logger.info(f"Could not find position for comment at {finding.key} in diff")

            if outcome.placed:
                logger.info(f"Creating review with {len(outcome.placed)} inline comment(s)")
                comments = [
                    {
                        "path": placement.path,
                        "position": placement.position,
                        "body": build_comment_body(placement.finding),
                    }
                    for placement in outcome.placed
                ]
                outcome.review = self.poster.create_review(
                    ctx.owner,
                    ctx.repo,
                    ctx.number,
                    REVIEW_BODY,
                    comments,
                    commit_id=ctx.head_sha,
                )
        else:
            logger.info("No outdated comments found")

        outcome.summary = self.poster.upsert_comment(
            ctx.owner,
            ctx.repo,
            ctx.number,
            build_summary(findings, outcome.unplaced),
            SUMMARY_MARKER,
        )
        return outcome


__all__ = ["InlineReviewer", "ReviewOutcome", "build_comment_body", "build_summary"]
