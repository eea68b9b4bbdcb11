"""
GitHub provider utility for publishing comment-catcher results.

This module wraps the handful of GitHub REST endpoints the review flow needs:
issue comments (post, list, update), pull request reviews with inline
comments, and the pull request diff. Requests retry transient failures with
exponential backoff and wait out primary rate limits.

The implementation intentionally uses the `requests` library for clarity.
"""

from __future__ import annotations

import json
import os
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import requests
from loguru import logger

USER_AGENT = "comment-catcher"
DEFAULT_API_URL = "https://api.github.com"


def parse_github_pr_url(pr_url: str) -> tuple[str, str, int]:
    """Parse a GitHub PR URL and return (owner, repo, number).

    Supported form: https://github.com/{owner}/{repo}/pull/{number}

    Raises ValueError if parsing fails.
    """
    if not pr_url:
        raise ValueError("Empty PR URL")

    m = re.search(r"github\.com/([^/]+)/([^/]+)/pull/(\d+)", pr_url)
    if m:
        return m.group(1), m.group(2), int(m.group(3))

    raise ValueError(f"Unable to parse GitHub PR URL: {pr_url}")


@dataclass(frozen=True)
class PullRequestContext:
    """The pull request a review is posted to."""

    owner: str
    repo: str
    number: int
    head_sha: str | None = None


def load_pull_request_context(
    event_path: str | None = None, repository: str | None = None
) -> PullRequestContext | None:
    """Read the pull request from a GitHub Actions event payload.

    Args:
        event_path: Event JSON file; defaults to GITHUB_EVENT_PATH.
        repository: ``owner/repo``; defaults to GITHUB_REPOSITORY.

    Returns:
        The context, or None when the event is not a pull request event.

    Raises:
        ValueError: The environment does not describe a repository or the
            event file cannot be parsed.
    """
    event_path = event_path or os.getenv("GITHUB_EVENT_PATH")
    repository = repository or os.getenv("GITHUB_REPOSITORY")
    if not event_path or not repository or "/" not in repository:
        raise ValueError("GITHUB_EVENT_PATH and GITHUB_REPOSITORY are required")

    try:
        event = json.loads(Path(event_path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ValueError(f"Failed to parse GitHub event: {e}") from e

    pull_request = event.get("pull_request") or {}
    number = pull_request.get("number")
    if not number:
        return None

    owner, repo = repository.split("/", 1)
    return PullRequestContext(
        owner=owner,
        repo=repo,
        number=int(number),
        head_sha=(pull_request.get("head") or {}).get("sha"),
    )


class GitHubPoster:
    """Poster for GitHub pull request comments and reviews.

    Usage:
        poster = GitHubPoster(token=os.getenv("GITHUB_TOKEN"))
        poster.post_comment("owner", "repo", 123, "hello")
    """

    def __init__(
        self,
        token: str | None,
        api_url: str = DEFAULT_API_URL,
        timeout: int = 10,
        max_attempts: int = 3,
    ) -> None:
        if not token:
            raise ValueError("GitHub token is required")
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.max_attempts = max_attempts

    def _headers(self, accept: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": accept,
            "User-Agent": USER_AGENT,
        }

    def _request(
        self,
        method: str,
        path: str,
        *,
        payload: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        accept: str = "application/vnd.github+json",
    ) -> requests.Response:
        """Send a request, retrying transient failures.

        Raises:
            RuntimeError: Authentication failure, a non-retryable client
                error, or retries exhausted.
        """
        url = f"{self.api_url}{path}"
        for attempt in range(1, self.max_attempts + 1):
            try:
                logger.debug(f"{method} {url} (attempt {attempt})")
                resp = requests.request(
                    method,
                    url,
                    headers=self._headers(accept),
                    json=payload,
                    params=params,
                    timeout=self.timeout,
                )
                if resp.ok:
                    return resp

                remaining = resp.headers.get("X-RateLimit-Remaining")
                if resp.status_code == 403 and remaining == "0":
                    reset = int(resp.headers.get("X-RateLimit-Reset", "0"))
                    sleep_for = max(1, reset - int(time.time()) + 1)
                    logger.warning(f"Rate limited by GitHub, waiting {sleep_for}s")
                    time.sleep(sleep_for)
                    continue

                # Authentication/authorization errors should not be retried
                if resp.status_code in (401, 403):
                    logger.error(f"Auth error on {method} {url}: {resp.status_code}")
                    raise RuntimeError(f"GitHub auth error: {resp.status_code}")

                if resp.status_code < 500 and resp.status_code != 429:
                    raise RuntimeError(
                        f"GitHub request failed: {method} {path} "
                        f"{resp.status_code} {resp.text}"
                    )

                logger.warning(
                    f"Non-ok response (attempt {attempt}): {resp.status_code} {resp.text}"
                )
            except requests.RequestException as exc:
                logger.warning(f"RequestException (attempt {attempt}): {exc}")

            if attempt < self.max_attempts:
                time.sleep(2 ** (attempt - 1))

        raise RuntimeError(f"GitHub request failed after retries: {method} {path}")

    @staticmethod
    def _json(resp: requests.Response) -> dict[str, Any]:
        try:
            data = resp.json()
        except ValueError:
            return {"raw_text": resp.text}
        if isinstance(data, dict):
            return data
        return {"raw_text": str(data)}

    def post_comment(
        self, owner: str, repo: str, pr_number: int, body: str
    ) -> dict[str, Any]:
        """Post a conversation comment to the given PR."""
        resp = self._request(
            "POST",
            f"/repos/{owner}/{repo}/issues/{pr_number}/comments",
            payload={"body": body},
        )
        return self._json(resp)

    def update_comment(
        self, owner: str, repo: str, comment_id: int, body: str
    ) -> dict[str, Any]:
        resp = self._request(
            "PATCH",
            f"/repos/{owner}/{repo}/issues/comments/{comment_id}",
            payload={"body": body},
        )
        return self._json(resp)

    def list_comments(self, owner: str, repo: str, pr_number: int) -> list[dict[str, Any]]:
        """All conversation comments of a PR, following pagination."""
        comments: list[dict[str, Any]] = []
        page = 1
        while True:
            resp = self._request(
                "GET",
                f"/repos/{owner}/{repo}/issues/{pr_number}/comments",
                params={"page": page, "per_page": 100},
            )
            items = resp.json()
            if not items:
                break
            comments.extend(items)
            if len(items) < 100:
                break
            page += 1
        return comments

    def upsert_comment(
        self, owner: str, repo: str, pr_number: int, body: str, marker: str
    ) -> dict[str, Any]:
        """Update the comment containing `marker`, or post a new one."""
        for comment in self.list_comments(owner, repo, pr_number):
            if marker in (comment.get("body") or ""):
                logger.info(f"Updating existing summary comment {comment['id']}")
                return self.update_comment(owner, repo, int(comment["id"]), body)

        logger.info("Posting new summary comment")
        return self.post_comment(owner, repo, pr_number, body)

    def create_review(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        body: str,
        comments: list[dict[str, Any]],
        commit_id: str | None = None,
    ) -> dict[str, Any]:
        """Create a COMMENT review with inline comments."""
        payload: dict[str, Any] = {"event": "COMMENT", "body": body, "comments": comments}
        if commit_id:
            payload["commit_id"] = commit_id
        resp = self._request(
            "POST", f"/repos/{owner}/{repo}/pulls/{pr_number}/reviews", payload=payload
        )
        return self._json(resp)

    def get_pull_request_diff(self, owner: str, repo: str, pr_number: int) -> str:
        resp = self._request(
            "GET",
            f"/repos/{owner}/{repo}/pulls/{pr_number}",
            accept="application/vnd.github.diff",
        )
        return resp.text
