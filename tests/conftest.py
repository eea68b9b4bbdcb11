"""Shared fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest
from git import Repo

CORE_BEFORE = '''# Returns the sum of the two numbers given
def add(a, b):
    return a + b
'''

CORE_AFTER = '''# Returns the sum of the two numbers given
def add(a, b):
    return a * b
'''

API = '''from pkg.core import add


# Adds one to the value using the add helper
def inc(x):
    return add(x, 1)
'''


@pytest.fixture
def write_files(tmp_path: Path):
    """Create files under tmp_path from a {relative path: content} mapping."""

    def _write(files: dict[str, str]) -> Path:
        for rel_path, content in files.items():
            path = tmp_path / rel_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return tmp_path

    return _write


def _commit(repo: Repo, root: Path, files: dict[str, str], message: str) -> None:
    for rel_path, content in files.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    repo.index.add(list(files))
    repo.index.commit(message)


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """Repository with a `main` branch and a checked-out `feature` branch.

    On `feature`, `pkg/core.py` changes `add` to multiply (its comment is
    left untouched) and `README.md` is edited. `pkg/api.py` imports
    `pkg/core.py` and is unchanged.
    """
    root = tmp_path / "repo"
    root.mkdir()
    repo = Repo.init(root)
    with repo.config_writer() as cw:
        cw.set_value("user", "name", "Test User")
        cw.set_value("user", "email", "test@example.com")

    _commit(
        repo,
        root,
        {
            "pkg/__init__.py": "",
            "pkg/core.py": CORE_BEFORE,
            "pkg/api.py": API,
            "README.md": "# Sample\n",
        },
        "initial",
    )
    repo.git.branch("-M", "main")
    repo.git.checkout("-b", "feature")
    _commit(
        repo,
        root,
        {"pkg/core.py": CORE_AFTER, "README.md": "# Sample\n\nNow multiplies.\n"},
        "multiply instead of add",
    )
    return root
