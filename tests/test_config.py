"""Tests for configuration loading."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from tools.base import ConfigError
from tools.config import (
    DEFAULT_MODEL,
    CatcherConfig,
    LLMOptions,
    build_config,
    load_config,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in (
        "LLM_PROVIDER",
        "LLM_MODEL",
        "ANTHROPIC_API_KEY",
        "ANTHROPIC_BASE_URL",
        "OPENAI_API_KEY",
        "OPENAI_BASE_URL",
    ):
        monkeypatch.delenv(var, raising=False)


def test_defaults(tmp_path: Path) -> None:
    config = load_config(search_dir=tmp_path)
    assert config.source is None
    assert config.extensions == [".py"]
    assert config.llm_options.provider == "anthropic"
    assert config.llm_options.model == DEFAULT_MODEL
    assert config.llm_options.batch_size == 50
    assert config.comment_filters.min_length == 10
    assert config.comment_options.context_radius == 3


def test_json_file_is_merged_by_section(tmp_path: Path) -> None:
    (tmp_path / "comment-catcher.config.json").write_text(
        json.dumps(
            {
                "extensions": [".py", ".pyi"],
                "comment_filters": {"min_length": 20},
                "llm_options": {"batch_size": 10},
            }
        ),
        encoding="utf-8",
    )
    config = load_config(search_dir=tmp_path)
    assert config.extensions == [".py", ".pyi"]
    assert config.comment_filters.min_length == 20
    # untouched keys keep their defaults
    assert config.comment_filters.ignore_patterns
    assert config.llm_options.batch_size == 10
    assert config.llm_options.provider == "anthropic"
    assert config.source and config.source.endswith("comment-catcher.config.json")


def test_dotfile_is_discovered(tmp_path: Path) -> None:
    (tmp_path / ".comment-catcher.json").write_text(
        '{"comment_options": {"group_consecutive": false}}', encoding="utf-8"
    )
    assert load_config(search_dir=tmp_path).comment_options.group_consecutive is False


def test_pyproject_table(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text(
        '[project]\nname = "x"\n\n'
        '[tool.comment-catcher]\nexclude_patterns = ["generated/"]\n\n'
        '[tool.comment-catcher.dependency_options]\nsource_roots = ["src"]\n',
        encoding="utf-8",
    )
    config = load_config(search_dir=tmp_path)
    assert config.exclude_patterns == ["generated/"]
    assert config.dependency_options.source_roots == ["src"]


def test_pyproject_without_table_is_ignored(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text('[project]\nname = "x"\n', encoding="utf-8")
    assert load_config(search_dir=tmp_path).source is None


def test_explicit_path_must_exist(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(tmp_path / "nope.json")


def test_malformed_json(tmp_path: Path) -> None:
    path = tmp_path / "cc.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)


def test_wrong_types_raise() -> None:
    with pytest.raises(ConfigError):
        build_config({"comment_filters": {"min_length": "10"}})
    with pytest.raises(ConfigError):
        build_config({"extensions": ".py"})
    with pytest.raises(ConfigError):
        build_config({"llm_options": {"batch_size": 0}})
    with pytest.raises(ConfigError):
        build_config({"comment_options": {"context_radius": -1}})


def test_unknown_keys_are_ignored() -> None:
    config = build_config({"mystery": 1, "llm_options": {"temperature": 1.0}})
    assert config.llm_options == LLMOptions()


def test_environment_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / ".comment-catcher.json").write_text(
        '{"llm_options": {"model": "from-file"}}', encoding="utf-8"
    )
    monkeypatch.setenv("LLM_PROVIDER", "openai")
    monkeypatch.setenv("LLM_MODEL", "gpt-4o")
    monkeypatch.setenv("OPENAI_BASE_URL", "https://llm.internal/v1")

    llm = load_config(search_dir=tmp_path).llm_options
    assert llm.provider == "openai"
    assert llm.model == "gpt-4o"
    assert llm.base_url == "https://llm.internal/v1"


def test_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    config = CatcherConfig()
    with pytest.raises(ConfigError, match="ANTHROPIC_API_KEY"):
        config.api_key()

    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
    assert config.api_key() == "sk-test"

    config.llm_options.provider = "mock"
    assert config.api_key() == "mock-key"

    config.llm_options.provider = "unknown"
    with pytest.raises(ConfigError):
        config.api_key()
