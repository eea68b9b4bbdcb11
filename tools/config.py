"""
Configuration loading for comment-catcher.

Configuration comes from the first file found in the working directory
(`comment-catcher.config.json`, `.comment-catcher.json`, or the
`[tool.comment-catcher]` table of `pyproject.toml`) merged section by section
over the defaults below. Environment variables override the LLM provider,
model and endpoint.
"""

from __future__ import annotations

import json
import os
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from loguru import logger

from tools.base import ConfigError

CONFIG_FILE_NAMES = ("comment-catcher.config.json", ".comment-catcher.json")
PYPROJECT_TABLE = "comment-catcher"

DEFAULT_EXCLUDE_PATTERNS = [
    r"\.git/",
    r"\.venv/",
    r"venv/",
    r"__pycache__",
    r"build/",
    r"dist/",
    r"\.tox/",
    r"node_modules",
]

DEFAULT_IGNORE_PATTERNS = [
    r"^TODO:",
    r"^FIXME:",
    r"^NOTE:",
    r"^HACK:",
    r"^XXX:",
    r"^type:\s*ignore",
    r"^noqa",
    r"^pylint:",
    r"^mypy:",
    r"^pyright:",
    r"^fmt:\s*(on|off|skip)",
    r"^isort:",
    r"^pragma:",
    r"-\*-\s*coding",
]

DEFAULT_MODEL = "claude-3-5-sonnet-20241022"

API_KEY_ENV_VARS = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
}
BASE_URL_ENV_VARS = {
    "anthropic": "ANTHROPIC_BASE_URL",
    "openai": "OPENAI_BASE_URL",
}


@dataclass
class DependencyOptions:
    source_roots: list[str] = field(default_factory=lambda: ["."])


@dataclass
class CommentFilterOptions:
    min_length: int = 10
    ignore_patterns: list[str] = field(
        default_factory=lambda: list(DEFAULT_IGNORE_PATTERNS)
    )


@dataclass
class CommentOptions:
    group_consecutive: bool = True
    include_docstrings: bool = True
    context_radius: int = 3


@dataclass
class LLMOptions:
    provider: str = "anthropic"  # 'anthropic', 'openai', 'mock'
    model: str = DEFAULT_MODEL
    base_url: str | None = None
    max_tokens: int = 4096
    batch_size: int = 50
    consolidate_duplicates: bool = True


@dataclass
class CatcherConfig:
    """Complete runtime configuration."""

    exclude_patterns: list[str] = field(
        default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS)
    )
    extensions: list[str] = field(default_factory=lambda: [".py"])
    dependency_options: DependencyOptions = field(default_factory=DependencyOptions)
    comment_filters: CommentFilterOptions = field(
        default_factory=CommentFilterOptions
    )
    comment_options: CommentOptions = field(default_factory=CommentOptions)
    llm_options: LLMOptions = field(default_factory=LLMOptions)
    source: str | None = None  # file the config was loaded from

    def api_key(self) -> str:
        """Return the credential for the configured provider.

        Raises:
            ConfigError: The provider needs a key and none is set.
        """
        provider = self.llm_options.provider
        if provider == "mock":
            return "mock-key"

        env_var = API_KEY_ENV_VARS.get(provider)
        if env_var is None:
            raise ConfigError(f"Unsupported LLM provider: {provider}")

        api_key = os.getenv(env_var)
        if not api_key:
            raise ConfigError(f"{env_var} environment variable is required")
        return api_key


_SECTIONS: dict[str, type] = {
    "dependency_options": DependencyOptions,
    "comment_filters": CommentFilterOptions,
    "comment_options": CommentOptions,
    "llm_options": LLMOptions,
}


def _check_type(key: str, value: Any, expected: Any) -> None:
    if isinstance(expected, bool):
        ok = isinstance(value, bool)
    elif isinstance(expected, int):
        ok = isinstance(value, int) and not isinstance(value, bool)
    elif isinstance(expected, list):
        ok = isinstance(value, list) and all(isinstance(v, str) for v in value)
    elif isinstance(expected, str) or expected is None:
        ok = value is None or isinstance(value, str)
    else:
        ok = True

    if not ok:
        raise ConfigError(f"Invalid type for '{key}': {value!r}")


def _merge_section(name: str, section_cls: type, raw: Any) -> Any:
    if not isinstance(raw, dict):
        raise ConfigError(f"Section '{name}' must be an object")

    section = section_cls()
    known = {f.name for f in fields(section_cls)}
    for key, value in raw.items():
        if key not in known:
            logger.warning("Unknown config key '{}.{}' ignored", name, key)
            continue
        _check_type(f"{name}.{key}", value, getattr(section, key))
        setattr(section, key, value)
    return section


def build_config(raw: dict[str, Any], source: str | None = None) -> CatcherConfig:
    """Merge a raw mapping over the defaults.

    Args:
        raw: Parsed config file content.
        source: Where the mapping came from (for diagnostics).

    Returns:
        The merged configuration.

    Raises:
        ConfigError: A value has the wrong type.
    """
    if not isinstance(raw, dict):
        raise ConfigError(f"Config in {source or '<input>'} must be an object")

    config = CatcherConfig(source=source)
    for key, value in raw.items():
        if key in _SECTIONS:
            setattr(config, key, _merge_section(key, _SECTIONS[key], value))
        elif key in ("exclude_patterns", "extensions"):
            _check_type(key, value, [])
            setattr(config, key, list(value))
        else:
            logger.warning("Unknown config key '{}' ignored", key)

    if config.comment_options.context_radius < 0:
        raise ConfigError("comment_options.context_radius must be >= 0")
    if config.llm_options.batch_size < 1:
        raise ConfigError("llm_options.batch_size must be >= 1")
    return config


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e

    if path.name == "pyproject.toml":
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Malformed {path}: {e}") from e
        table: dict[str, Any] = data.get("tool", {}).get(PYPROJECT_TABLE, {})
        return table

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Malformed config file {path}: {e}") from e
    return data


def _find_config_file(search_dir: Path) -> Path | None:
    for name in CONFIG_FILE_NAMES:
        candidate = search_dir / name
        if candidate.exists():
            return candidate

    pyproject = search_dir / "pyproject.toml"
    if pyproject.exists():
        try:
            data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError):
            return None
        if PYPROJECT_TABLE in data.get("tool", {}):
            return pyproject
    return None


def apply_env_overrides(config: CatcherConfig) -> CatcherConfig:
    """Let LLM_PROVIDER, LLM_MODEL and the provider's base URL variable win."""
    llm = config.llm_options
    llm.provider = os.getenv("LLM_PROVIDER", llm.provider)
    llm.model = os.getenv("LLM_MODEL", llm.model)

    base_url_var = BASE_URL_ENV_VARS.get(llm.provider)
    if base_url_var and os.getenv(base_url_var):
        llm.base_url = os.getenv(base_url_var)
    return config


def load_config(
    config_path: str | Path | None = None, search_dir: str | Path = "."
) -> CatcherConfig:
    """Load configuration from an explicit path or by discovery.

    Args:
        config_path: Explicit config file; must exist when given.
        search_dir: Directory searched when no path is given.

    Returns:
        Merged configuration with environment overrides applied.

    Raises:
        ConfigError: The file is missing, unreadable or malformed.
    """
    if config_path is not None:
        path: Path | None = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {config_path}")
    else:
        path = _find_config_file(Path(search_dir))

    if path is None:
        logger.debug("No config file found, using defaults")
        return apply_env_overrides(CatcherConfig())

    logger.info("Loading config from {}", path)
    config = build_config(_read_config_file(path), source=str(path))
    return apply_env_overrides(config)
