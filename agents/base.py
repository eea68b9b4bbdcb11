"""
Base Agent Contracts and Data Structures

This module defines the state shared by the comment-catcher agents. The
check pipeline fills a `CatcherState` stage by stage; the reviewer reads the
findings from it (or from a saved JSON report) and publishes them.
"""

import json
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from tools.comments.extractor import CodeComment
from tools.llm.tool import Finding


@dataclass
class CatcherState:
    """
    Central state of one comment check.

    Tracks the inputs and the output of every pipeline stage.
    """

    base_ref: str
    depth: int
    changed_files: list[str] = field(default_factory=list)
    related_files: list[str] = field(default_factory=list)
    comments: list[CodeComment] = field(default_factory=list)
    diff: str = ""
    findings: list[Finding] = field(default_factory=list)
    created_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    @property
    def analyzed_files(self) -> list[str]:
        """Changed files followed by related files."""
        return self.changed_files + self.related_files

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization (the diff is summarized)."""
        return {
            "base_ref": self.base_ref,
            "depth": self.depth,
            "changed_files": self.changed_files,
            "related_files": self.related_files,
            "comments": [c.to_dict() for c in self.comments],
            "diff_lines": len(self.diff.splitlines()),
            "findings": [f.to_dict() for f in self.findings],
            "created_at": self.created_at,
        }

    def to_json(self, file_path: str | Path | None = None) -> str:
        """Convert to JSON string and optionally save to file."""
        json_str = json.dumps(self.to_dict(), indent=2, default=str)

        if file_path:
            Path(file_path).write_text(json_str, encoding="utf-8")

        return json_str


# Base Agent Interface
class BaseAgent:
    """
    Base interface for all agents in the system.
    """

    def __init__(self, agent_name: str) -> None:
        """Initialize the agent with a unique name."""
        self.agent_name = agent_name
        self.agent_id = f"{agent_name}_{uuid.uuid4().hex[:8]}"
