"""
Report rendering for comment-catcher findings.

Two formats are supported: `json` (lossless, readable back with
`load_report`) and `markdown` (for humans and PR comments).
"""

from __future__ import annotations

import json
from pathlib import Path

from tools.llm.tool import Finding

REPORT_FORMATS = ("markdown", "json")


def generate_report(findings: list[Finding], fmt: str = "markdown") -> str:
    """
    Render findings in the requested format.

    Raises:
        ValueError: Unknown format
    """
    if fmt == "json":
        return json.dumps([f.to_dict() for f in findings], indent=2, ensure_ascii=False)
    if fmt == "markdown":
        return _markdown(findings)
    raise ValueError(f"Unsupported report format: {fmt}")


def _markdown(findings: list[Finding]) -> str:
    report = "# Outdated Comments Report\n\n"
    if not findings:
        return report + "No outdated comments found.\n"

    for finding in findings:
        comment = finding.comment
        report += f"## {comment.file}:{comment.line}\n\n"
        report += f"**Comment:** {comment.text}\n\n"
        report += f"**Reason:** {finding.reason}\n\n"
        if finding.suggestion:
            report += f"**Suggestion:** {finding.suggestion}\n\n"
        report += "---\n\n"
    return report


def load_report(path: str | Path) -> list[Finding]:
    """
    Read findings back from a JSON report.

    Raises:
        ValueError: The file is not a JSON report
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ValueError(f"Cannot read report {path}: {e}") from e

    if not isinstance(data, list):
        raise ValueError(f"Report {path} must contain a JSON array")
    return [Finding.from_dict(item) for item in data]
