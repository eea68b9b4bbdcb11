"""
LLM comment analysis.

Sends the extracted comments together with the diff to the configured
provider and collects the comments the model reports as outdated. The model
answers through a forced tool call, so its output is structured and can be
validated field by field before it becomes a `Finding`.
"""

from __future__ import annotations

import io
import re
import tokenize
from dataclasses import dataclass
from typing import Any

from loguru import logger

from tools.comments.extractor import CodeComment
from tools.dependencies.graph import normalize_path
from tools.llm.base import LLMMessage, LLMProvider, LLMToolSpec, LLMUsage
from tools.llm.prompts import PromptManager, get_prompt_manager

REPORT_TOOL = LLMToolSpec(
    name="report_outdated_comments",
    description="Report comments that are likely outdated based on code changes",
    input_schema={
        "type": "object",
        "properties": {
            "outdated_comments": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "file": {"type": "string", "description": "File path"},
                        "line": {"type": "number", "description": "Line number"},
                        "comment_text": {
                            "type": "string",
                            "description": "The comment text",
                        },
                        "reason": {
                            "type": "string",
                            "description": "Why this comment is outdated",
                        },
                        "suggestion": {
                            "type": "string",
                            "description": "Optional suggestion for updating the comment",
                        },
                    },
                    "required": ["file", "line", "comment_text", "reason"],
                },
            }
        },
        "required": ["outdated_comments"],
    },
)

CONSOLIDATE_TOOL = LLMToolSpec(
    name="consolidate_comment_analysis",
    description="Provide consolidated analysis of why a comment is outdated",
    input_schema={
        "type": "object",
        "properties": {
            "consolidated_reason": {
                "type": "string",
                "description": "The top 2 most important reasons, combined into a clear explanation",
            },
            "consolidated_suggestion": {
                "type": "string",
                "description": "A single, clear suggestion for updating the comment",
            },
        },
        "required": ["consolidated_reason", "consolidated_suggestion"],
    },
)

CONSOLIDATE_MAX_TOKENS = 1024


@dataclass
class Finding:
    """A comment the model considers outdated."""

    comment: CodeComment
    reason: str
    suggestion: str | None = None

    @property
    def key(self) -> str:
        return f"{self.comment.file}:{self.comment.line}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "comment": self.comment.to_dict(),
            "reason": self.reason,
            "suggestion": self.suggestion,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Finding:
        """
        Rebuild a finding from its report form.

        Raises:
            ValueError: Required fields are missing.
        """
        try:
            return cls(
                comment=CodeComment.from_dict(data["comment"]),
                reason=str(data["reason"]),
                suggestion=data.get("suggestion") or None,
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed finding: {e}") from e


def extract_deleted_comments(diff: str) -> list[str]:
    """`#` comments on lines the diff removes."""
    deleted: list[str] = []
    for line in diff.splitlines():
        if not line.startswith("-") or line.startswith("---"):
            continue
        code = line[1:].lstrip()
        if "#" not in code:
            continue

        try:
            tokens = list(tokenize.generate_tokens(io.StringIO(code + "\n").readline))
        except (tokenize.TokenError, SyntaxError):
            # Fragment of a larger statement; only trust an unquoted '#'
            match = re.match(r"^[^'\"#]*#\s*(.+)$", code)
            if match:
                deleted.append(match.group(1).strip())
            continue

        for token in tokens:
            if token.type == tokenize.COMMENT:
                text = token.string.lstrip("#").strip()
                if text:
                    deleted.append(text)
    return deleted


def _format_comments(comments: list[CodeComment]) -> str:
    blocks = []
    for i, comment in enumerate(comments, start=1):
        blocks.append(
            f"## Comment {i}\n"
            f"File: {comment.file}\n"
            f"Line: {comment.line}\n"
            f"Comment: {comment.text}\n"
            f"Context:\n```\n{comment.context}\n```\n"
        )
    return "\n".join(blocks)


def _as_line(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


class CommentAnalyzer:
    """
    Finds outdated comments with an LLM.

    Comments are sent in batches, one request at a time. Results are
    deduplicated by file:line; several reports for the same comment are
    merged with a second tool call when `consolidate_duplicates` is set.
    """

    def __init__(
        self,
        provider: LLMProvider,
        batch_size: int = 50,
        consolidate_duplicates: bool = True,
        prompt_manager: PromptManager | None = None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.provider = provider
        self.batch_size = batch_size
        self.consolidate_duplicates = consolidate_duplicates
        self.prompt_manager = prompt_manager or get_prompt_manager()
        self.usage = LLMUsage()

    async def analyze(self, comments: list[CodeComment], diff: str) -> list[Finding]:
        """
        Analyze comments against the diff.

        Args:
            comments: Comments that currently exist in the code
            diff: Unified diff of the change set

        Returns:
            Deduplicated findings

        Raises:
            RuntimeError: The provider call failed
        """
        if not comments:
            return []

        deleted = extract_deleted_comments(diff)
        batches = [
            comments[i : i + self.batch_size]
            for i in range(0, len(comments), self.batch_size)
        ]

        findings: list[Finding] = []
        for number, batch in enumerate(batches, start=1):
            if len(batches) > 1:
                logger.info(
                    f"Processing batch {number}/{len(batches)} ({len(batch)} comments)"
                )
            findings.extend(await self._analyze_batch(batch, diff, deleted))

        if findings:
            logger.info("Deduplicating results")
        result = await self.deduplicate(findings)

        logger.info(
            f"LLM usage: {self.usage.prompt_tokens} prompt + "
            f"{self.usage.completion_tokens} completion tokens"
        )
        return result

    async def _analyze_batch(
        self, batch: list[CodeComment], diff: str, deleted: list[str]
    ) -> list[Finding]:
        system_prompt, user_prompt = self.prompt_manager.render_template(
            "outdated_comments",
            diff=diff,
            comments=_format_comments(batch),
            deleted_comments="\n".join(deleted) if deleted else "None",
        )
        messages = [
            LLMMessage(role="system", content=system_prompt),
            LLMMessage(role="user", content=user_prompt),
        ]

        response = await self.provider.generate(
            messages, tools=[REPORT_TOOL], tool_choice=REPORT_TOOL.name
        )
        self.usage.add(response.usage)

        payload = response.tool_input(REPORT_TOOL.name)
        if payload is None:
            logger.warning("LLM response carried no report_outdated_comments call")
            return []

        items = payload.get("outdated_comments")
        if not isinstance(items, list):
            logger.warning("report_outdated_comments input has no outdated_comments list")
            return []

        return self._validate_findings_structure(items, batch)

    def _validate_findings_structure(
        self, items: list[Any], batch: list[CodeComment]
    ) -> list[Finding]:
        """
        Turn tool items into findings, dropping malformed ones.

        Items are matched back to the analyzed comment by (file, line); an
        unmatched item gets a comment built from its own fields.
        """
        by_location = {(c.file, c.line): c for c in batch}
        findings = []

        for item in items:
            if not isinstance(item, dict):
                logger.warning(f"Skipping non-object finding: {item!r}")
                continue

            file = item.get("file")
            line = _as_line(item.get("line"))
            comment_text = item.get("comment_text")
            reason = item.get("reason")
            suggestion = item.get("suggestion")

            if not isinstance(file, str) or not file or line is None or line < 1:
                logger.warning(f"Skipping finding without a valid location: {item!r}")
                continue
            if not isinstance(comment_text, str) or not isinstance(reason, str) or not reason:
                logger.warning(f"Skipping incomplete finding for {file}:{line}")
                continue
            if suggestion is not None and not isinstance(suggestion, str):
                suggestion = None

            file = normalize_path(file)
            comment = by_location.get((file, line)) or CodeComment(
                file=file, line=line, text=comment_text, context=""
            )
            findings.append(
                Finding(comment=comment, reason=reason, suggestion=suggestion or None)
            )
        return findings

    async def deduplicate(self, findings: list[Finding]) -> list[Finding]:
        """Keep one finding per file:line, in first-seen order."""
        grouped: dict[str, list[Finding]] = {}
        for finding in findings:
            grouped.setdefault(finding.key, []).append(finding)

        result = []
        for key, duplicates in grouped.items():
            if len(duplicates) == 1 or not self.consolidate_duplicates:
                result.append(duplicates[0])
                continue

            logger.info(f"Consolidating {len(duplicates)} entries for {key}")
            result.append(await self._consolidate(duplicates))
        return result

    async def _consolidate(self, duplicates: list[Finding]) -> Finding:
        first = duplicates[0]
        reasons = "\n\n".join(f"{i}. {d.reason}" for i, d in enumerate(duplicates, 1))
        suggestions = [d.suggestion for d in duplicates if d.suggestion]
        suggestion_block = ""
        if suggestions:
            numbered = "\n\n".join(f"{i}. {s}" for i, s in enumerate(suggestions, 1))
            suggestion_block = f"Multiple suggestions given:\n{numbered}\n"

        system_prompt, user_prompt = self.prompt_manager.render_template(
            "consolidate_findings",
            comment_text=first.comment.text,
            location=first.key,
            reasons=reasons,
            suggestions=suggestion_block,
        )
        messages = [
            LLMMessage(role="system", content=system_prompt),
            LLMMessage(role="user", content=user_prompt),
        ]

        try:
            response = await self.provider.generate(
                messages,
                tools=[CONSOLIDATE_TOOL],
                tool_choice=CONSOLIDATE_TOOL.name,
                max_tokens=CONSOLIDATE_MAX_TOKENS,
            )
        except RuntimeError as e:
            logger.warning(f"Consolidation failed for {first.key}, keeping first entry: {e}")
            return first
        self.usage.add(response.usage)

        payload = response.tool_input(CONSOLIDATE_TOOL.name)
        reason = payload.get("consolidated_reason") if payload else None
        if not isinstance(reason, str) or not reason:
            logger.warning(f"No consolidated analysis for {first.key}, keeping first entry")
            return first

        suggestion = payload.get("consolidated_suggestion") if payload else None
        return Finding(
            comment=first.comment,
            reason=reason,
            suggestion=suggestion if isinstance(suggestion, str) and suggestion else None,
        )
