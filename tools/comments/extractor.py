"""
Comment Extractor Tool

Extracts the comments of Python source files:
- `#` comments via the tokenizer, with adjacent standalone lines merged into
  one block
- module, class and function docstrings via the AST

Each comment is cleaned, filtered for significance and returned with a small
window of surrounding source for the LLM.
"""

from __future__ import annotations

import ast
import io
import tokenize
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger

from tools.base import BaseTool, CommentExtractionError, ToolResult
from tools.comments.filters import CommentFilter
from tools.config import CatcherConfig


@dataclass
class CodeComment:
    """A comment as seen by the analyzer."""

    file: str
    line: int  # 1-based first line
    text: str  # cleaned text
    context: str = ""
    end_line: int | None = None  # last line, for multi-line blocks

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CodeComment:
        return cls(
            file=str(data["file"]),
            line=int(data["line"]),
            text=str(data.get("text", "")),
            context=str(data.get("context") or ""),
            end_line=data.get("end_line"),
        )


@dataclass
class RawComment:
    """Uncleaned comment lines before filtering."""

    start: int
    end: int
    lines: list[str] = field(default_factory=list)
    standalone: bool = True
    docstring: bool = False


@dataclass
class ExtractionInput:
    files: list[str]


class CommentExtractor(BaseTool[ExtractionInput, list[CodeComment]]):
    """Extracts significant comments from a list of files."""

    def __init__(
        self,
        comment_filter: CommentFilter | None = None,
        group_consecutive: bool = True,
        include_docstrings: bool = True,
        context_radius: int = 3,
        root: str | Path = ".",
    ) -> None:
        super().__init__("CommentExtractor")
        self.comment_filter = comment_filter or CommentFilter()
        self.group_consecutive = group_consecutive
        self.include_docstrings = include_docstrings
        self.context_radius = context_radius
        self.root = Path(root)

    @classmethod
    def from_config(cls, config: CatcherConfig, root: str | Path = ".") -> CommentExtractor:
        options = config.comment_options
        return cls(
            comment_filter=CommentFilter.from_options(config.comment_filters),
            group_consecutive=options.group_consecutive,
            include_docstrings=options.include_docstrings,
            context_radius=options.context_radius,
            root=root,
        )

    def execute(self, input_data: ExtractionInput) -> ToolResult[list[CodeComment]]:
        comments = self.extract(input_data.files)
        return ToolResult.success(
            output=comments,
            metrics=self._create_metrics(files_processed=len(input_data.files)),
        )

    def extract(self, files: list[str]) -> list[CodeComment]:
        """Extract comments from every existing file, in input order.

        Missing files (deleted in the change set) are skipped.

        Raises:
            CommentExtractionError: A file exists but cannot be read.
        """
        comments: list[CodeComment] = []
        for file_path in files:
            path = self.root / file_path
            if not path.is_file():
                logger.debug("Skipping missing file {}", file_path)
                continue

            try:
                with tokenize.open(path) as f:
                    source = f.read()
            except (OSError, UnicodeDecodeError, SyntaxError) as e:
                raise CommentExtractionError(f"Failed to read {file_path}: {e}") from e

            file_comments = self.extract_from_source(file_path, source)
            logger.debug("{}: {} comment(s)", file_path, len(file_comments))
            comments.extend(file_comments)
        return comments

    def extract_from_source(self, file_path: str, source: str) -> list[CodeComment]:
        raw = self._hash_comments(file_path, source)
        if self.group_consecutive:
            raw = self._group_consecutive(raw)
        if self.include_docstrings:
            raw.extend(self._docstrings(file_path, source))

        lines = source.splitlines()
        comments: list[CodeComment] = []
        for item in sorted(raw, key=lambda r: r.start):
            if item.docstring:
                text = clean_docstring(item.lines)
            else:
                text = clean_comment(item.lines)

            if not text or not self.comment_filter.is_significant(text):
                continue

            comments.append(
                CodeComment(
                    file=file_path,
                    line=item.start,
                    end_line=item.end if item.end > item.start else None,
                    text=text,
                    context=get_context(lines, item.start - 1, self.context_radius),
                )
            )
        return comments

    def _hash_comments(self, file_path: str, source: str) -> list[RawComment]:
        raw: list[RawComment] = []
        tokens = tokenize.generate_tokens(io.StringIO(source).readline)
        try:
            for token in tokens:
                if token.type != tokenize.COMMENT:
                    continue
                row, col = token.start
                if row == 1 and token.string.startswith("#!"):
                    continue
                raw.append(
                    RawComment(
                        start=row,
                        end=row,
                        lines=[token.string],
                        standalone=not token.line[:col].strip(),
                    )
                )
        except (tokenize.TokenError, SyntaxError) as e:
            logger.warning("Tokenizer stopped early in {}: {}", file_path, e)
        return raw

    @staticmethod
    def _group_consecutive(raw: list[RawComment]) -> list[RawComment]:
        grouped: list[RawComment] = []
        for item in raw:
            previous = grouped[-1] if grouped else None
            if (
                previous is not None
                and previous.standalone
                and item.standalone
                and item.start == previous.end + 1
            ):
                previous.end = item.end
                previous.lines.extend(item.lines)
            else:
                grouped.append(
                    RawComment(
                        start=item.start,
                        end=item.end,
                        lines=list(item.lines),
                        standalone=item.standalone,
                    )
                )
        return grouped

    @staticmethod
    def _docstrings(file_path: str, source: str) -> list[RawComment]:
        try:
            tree = ast.parse(source, filename=file_path)
        except (SyntaxError, ValueError) as e:
            logger.warning("Skipping docstrings of {}: {}", file_path, e)
            return []

        raw: list[RawComment] = []
        for node in ast.walk(tree):
            if not isinstance(
                node, ast.Module | ast.ClassDef | ast.FunctionDef | ast.AsyncFunctionDef
            ):
                continue
            docstring = ast.get_docstring(node, clean=True)
            if not docstring:
                continue
            expr = node.body[0]
            raw.append(
                RawComment(
                    start=expr.lineno,
                    end=expr.end_lineno or expr.lineno,
                    lines=docstring.splitlines(),
                    docstring=True,
                )
            )
        return raw


def clean_comment(lines: list[str]) -> str:
    """Strip `#` markers and join the non-empty lines with spaces."""
    cleaned = (line.strip().lstrip("#").strip() for line in lines)
    return " ".join(line for line in cleaned if line)


def clean_docstring(lines: list[str]) -> str:
    cleaned = (line.strip() for line in lines)
    return " ".join(line for line in cleaned if line)


def get_context(lines: list[str], index: int, radius: int = 3) -> str:
    """Source lines within `radius` of the 0-based `index`."""
    start = max(0, index - radius)
    end = min(len(lines), index + radius + 1)
    return "\n".join(lines[start:end])
