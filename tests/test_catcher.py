"""End-to-end tests for the CommentCatcher pipeline on a throwaway repository."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from agents.catcher import CommentCatcher
from tools.base import DiffError
from tools.config import CatcherConfig, LLMOptions
from tools.dependencies.graph import ModuleRecord
from tools.llm.base import LLMConfig
from tools.llm.providers import MockProvider

OUTDATED = {
    "outdated_comments": [
        {
            "file": "pkg/core.py",
            "line": 1,
            "comment_text": "Returns the sum of the two numbers given",
            "reason": "add now returns the product",
            "suggestion": "Returns the product of the two numbers given",
        }
    ]
}


def _catcher(repo: Path, *responses, **kwargs) -> tuple[CommentCatcher, MockProvider]:
    provider = MockProvider(
        LLMConfig(api_key="k", model="mock-model"), mock_responses=list(responses)
    )
    config = CatcherConfig(llm_options=LLMOptions(provider="mock"))
    return CommentCatcher(config, provider=provider, repo_path=str(repo), **kwargs), provider


def test_run_finds_outdated_comment(git_repo: Path) -> None:
    catcher, provider = _catcher(git_repo, OUTDATED)
    state = asyncio.run(catcher.run(base_ref="main", depth=1))

    assert state.changed_files == ["pkg/core.py"]
    assert state.related_files == ["pkg/api.py"]
    assert [(c.file, c.line) for c in state.comments] == [
        ("pkg/core.py", 1),
        ("pkg/api.py", 4),
    ]
    assert len(state.findings) == 1
    finding = state.findings[0]
    assert finding.comment.context.startswith("# Returns the sum")
    assert finding.suggestion == "Returns the product of the two numbers given"

    prompt = provider.calls[0]["messages"][-1].content
    assert "+    return a * b" in prompt
    assert "File: pkg/api.py" in prompt


def test_no_deps_only_analyzes_changed_files(git_repo: Path) -> None:
    catcher, _ = _catcher(git_repo, {"outdated_comments": []})
    state = asyncio.run(catcher.run(base_ref="main", depth=3, use_deps=False))

    assert state.related_files == []
    assert [c.file for c in state.comments] == ["pkg/core.py"]
    assert state.findings == []


def test_depth_zero_skips_expansion(git_repo: Path) -> None:
    catcher, _ = _catcher(git_repo, {"outdated_comments": []})
    state = asyncio.run(catcher.run(base_ref="main", depth=0))
    assert state.related_files == []


def test_resolver_failure_does_not_abort(git_repo: Path) -> None:
    class FailingResolver:
        def resolve(self, seeds: list[str], max_depth: int) -> list[ModuleRecord]:
            raise RuntimeError("resolver crashed")

    catcher, _ = _catcher(git_repo, OUTDATED, resolver=FailingResolver())
    state = asyncio.run(catcher.run(base_ref="main", depth=2))

    assert state.related_files == []
    assert len(state.findings) == 1


def test_no_changes_makes_no_llm_call(git_repo: Path) -> None:
    catcher, provider = _catcher(git_repo, OUTDATED)
    state = asyncio.run(catcher.run(base_ref="feature"))

    assert state.changed_files == []
    assert state.findings == []
    assert provider.calls == []


def test_bad_base_raises_diff_error(git_repo: Path) -> None:
    catcher, _ = _catcher(git_repo, OUTDATED)
    with pytest.raises(DiffError):
        asyncio.run(catcher.run(base_ref="does-not-exist"))


def test_state_serializes(git_repo: Path, tmp_path: Path) -> None:
    catcher, _ = _catcher(git_repo, OUTDATED)
    state = asyncio.run(catcher.run(base_ref="main", depth=1))

    out = tmp_path / "state.json"
    text = state.to_json(out)
    assert out.read_text(encoding="utf-8") == text
    data = state.to_dict()
    assert data["findings"][0]["comment"]["file"] == "pkg/core.py"
    assert data["diff_lines"] > 0
