"""Comment significance filter."""

from __future__ import annotations

import re
from collections.abc import Iterable

from tools.base import ConfigError
from tools.config import DEFAULT_IGNORE_PATTERNS, CommentFilterOptions


class CommentFilter:
    """Decides whether a cleaned comment is worth sending to the LLM.

    A comment is rejected when it is shorter than `min_length` or matches
    any ignore pattern (case-insensitive, anywhere in the text). An empty
    pattern list falls back to the defaults.

    Raises:
        ConfigError: A pattern is not a valid regular expression.
    """

    def __init__(
        self, min_length: int = 10, ignore_patterns: Iterable[str] | None = None
    ) -> None:
        self.min_length = min_length
        raw_patterns = list(ignore_patterns or []) or list(DEFAULT_IGNORE_PATTERNS)
        self.patterns: list[re.Pattern[str]] = []
        for pattern in raw_patterns:
            try:
                self.patterns.append(re.compile(pattern, re.IGNORECASE))
            except re.error as e:
                raise ConfigError(f"Invalid ignore pattern {pattern!r}: {e}") from e

    @classmethod
    def from_options(cls, options: CommentFilterOptions) -> CommentFilter:
        return cls(min_length=options.min_length, ignore_patterns=options.ignore_patterns)

    def is_noise(self, text: str) -> bool:
        if len(text) < self.min_length:
            return True
        return any(pattern.search(text) for pattern in self.patterns)

    def is_significant(self, text: str) -> bool:
        return not self.is_noise(text)
