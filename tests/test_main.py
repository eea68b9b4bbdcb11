"""CLI tests driving `main()` against a throwaway repository."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

import main as cli
from tools import __version__
from tools.llm.base import LLMConfig
from tools.llm.providers import MockProvider

OUTDATED = {
    "outdated_comments": [
        {
            "file": "pkg/core.py",
            "line": 1,
            "comment_text": "Returns the sum of the two numbers given",
            "reason": "add now returns the product",
        }
    ]
}


@pytest.fixture
def cli_env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("LLM_PROVIDER", "mock")
    for var in (
        "LLM_MODEL",
        "GITHUB_TOKEN",
        "GITHUB_API_URL",
        "GITHUB_EVENT_PATH",
        "GITHUB_REPOSITORY",
    ):
        monkeypatch.delenv(var, raising=False)


def _exit_code(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(argv)
    return excinfo.value.code


def _report_outdated(monkeypatch) -> None:
    monkeypatch.setattr(
        "agents.catcher.create_provider",
        lambda options, api_key: MockProvider(
            LLMConfig(api_key=api_key, model=options.model), mock_responses=[OUTDATED]
        ),
    )


def test_version(capsys) -> None:
    assert _exit_code(["--version"]) == 0
    assert __version__ in capsys.readouterr().out


def test_command_is_required() -> None:
    assert _exit_code([]) == 2


def test_check_without_findings_exits_zero(cli_env, git_repo: Path, capsys) -> None:
    code = _exit_code(["check", "--repo-path", str(git_repo), "--depth", "1"])

    assert code == 0
    assert "No outdated comments found." in capsys.readouterr().out


def test_check_with_findings_exits_one(cli_env, git_repo: Path, monkeypatch, tmp_path) -> None:
    _report_outdated(monkeypatch)
    output = tmp_path / "report.json"

    code = _exit_code(
        ["check", "--repo-path", str(git_repo), "-f", "json", "-o", str(output)]
    )

    assert code == 1
    data = json.loads(output.read_text(encoding="utf-8"))
    assert data[0]["comment"]["file"] == "pkg/core.py"
    assert data[0]["reason"] == "add now returns the product"


def test_check_missing_api_key_exits_one(cli_env, git_repo: Path, monkeypatch) -> None:
    monkeypatch.setenv("LLM_PROVIDER", "anthropic")
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

    assert _exit_code(["check", "--repo-path", str(git_repo)]) == 1


def test_check_negative_depth_exits_one(cli_env, git_repo: Path) -> None:
    assert _exit_code(["check", "--repo-path", str(git_repo), "--depth", "-1"]) == 1


def test_check_bad_base_exits_one(cli_env, git_repo: Path) -> None:
    assert _exit_code(["check", "--repo-path", str(git_repo), "-b", "nope"]) == 1


def test_review_requires_token(cli_env, git_repo: Path) -> None:
    assert _exit_code(["review", "--repo-path", str(git_repo)]) == 1


def test_review_skips_non_pull_request_event(cli_env, monkeypatch, tmp_path) -> None:
    event = tmp_path / "event.json"
    event.write_text(json.dumps({"ref": "refs/heads/main"}), encoding="utf-8")
    monkeypatch.setenv("GITHUB_TOKEN", "tok")
    monkeypatch.setenv("GITHUB_EVENT_PATH", str(event))
    monkeypatch.setenv("GITHUB_REPOSITORY", "org/repo")

    assert _exit_code(["review"]) == 0


def test_review_publishes_existing_report(cli_env, monkeypatch, tmp_path) -> None:
    published = {}

    class FakePoster:
        def __init__(self, token, api_url):
            published["token"] = token
            published["api_url"] = api_url

        def get_pull_request_diff(self, owner, repo, pr_number):
            return ""

        def create_review(self, owner, repo, pr_number, body, comments, commit_id=None):
            published["review"] = comments

        def upsert_comment(self, owner, repo, pr_number, body, marker):
            published["summary"] = (owner, repo, pr_number, body)

    monkeypatch.setattr(cli, "GitHubPoster", FakePoster)
    monkeypatch.setenv("GITHUB_TOKEN", "tok")

    report = tmp_path / "report.json"
    report.write_text(
        json.dumps(
            [
                {
                    "comment": {"file": "pkg/core.py", "line": 1, "text": "Returns the sum"},
                    "reason": "add now multiplies",
                    "suggestion": None,
                }
            ]
        ),
        encoding="utf-8",
    )

    code = _exit_code(
        [
            "review",
            "--report",
            str(report),
            "--pr-url",
            "https://github.com/org/repo/pull/9",
        ]
    )

    assert code == 0
    assert published["token"] == "tok"
    assert published["api_url"] == "https://api.github.com"
    assert "review" not in published
    owner, repo, number, body = published["summary"]
    assert (owner, repo, number) == ("org", "repo", 9)
    assert "`pkg/core.py:1`" in body
