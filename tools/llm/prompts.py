"""
Prompt management system.

Manages template-based prompts for LLM requests. Templates are rendered with
`str.format`, so literal braces in template text must be doubled.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class PromptTemplate:
    """
    Prompt template structure.

    Defines reusable prompt templates.
    """

    name: str  # Template name
    description: str  # Template description
    system_prompt: str  # System prompt
    user_prompt_template: str  # User prompt template
    version: str = "1.0.0"  # Template version
    variables: list[str] = field(default_factory=list)  # Template variables list

    def render(self, **kwargs: Any) -> tuple[str, str]:
        """
        Render template into system prompt and user prompt.

        Args:
            **kwargs: Template variable values

        Returns:
            Tuple of (system_prompt, user_prompt)
        """
        try:
            user_prompt = self.user_prompt_template.format(**kwargs)
            return self.system_prompt, user_prompt
        except KeyError as e:
            raise ValueError(f"Missing template variable: {e}") from e

    def validate_variables(self, variables: dict[str, Any]) -> bool:
        """True when every declared variable is provided."""
        return all(var in variables for var in self.variables)


OUTDATED_COMMENTS_SYSTEM = """You review code comments after a code change.

A comment is outdated if:
- It describes behavior that has changed
- It refers to code that was removed or significantly modified
- It references function signatures, parameters, or return values that changed
- It describes implementation details that are no longer accurate

Only flag comments that currently exist in the codebase and are clearly or
likely outdated based on the changes. Report them with the
report_outdated_comments tool; report an empty list when nothing is outdated."""

OUTDATED_COMMENTS_USER = """You are analyzing code comments to determine if they are outdated based on recent changes.

# Git Diff (changes made):
```diff
{diff}
```

# Important Notes:
- Comments that appear in DELETED lines (lines starting with -) in the diff above have already been removed from the code
- Only analyze comments that CURRENTLY EXIST in the codebase (listed below)
- Do NOT flag comments that were already deleted in the diff

# Currently Existing Comments to Analyze:
{comments}

# Deleted Comments (DO NOT FLAG THESE - they're already removed):
{deleted_comments}

# Task
Analyze each CURRENTLY EXISTING comment and determine if it's likely outdated based on the code changes in the diff.

For each outdated comment, provide:
- The file and line number (must match one from "Currently Existing Comments")
- The comment text
- A clear reason why it's outdated
- An optional suggestion for how to update it"""

CONSOLIDATE_USER = """You have multiple analyses of why the same comment is outdated.
Please consolidate these into the top 2 most important and distinct reasons.

Comment: "{comment_text}"
File: {location}

Multiple reasons given:
{reasons}

{suggestions}
Task:
1. Identify the top 2 most important and distinct reasons why this comment is outdated
2. Combine any overlapping reasons into a single clear reason
3. Provide one consolidated suggestion for how to update the comment

Return your analysis as a consolidated reason and suggestion."""


class PromptManager:
    """
    Prompt template manager.

    Holds the templates used by the comment analyzer.
    """

    def __init__(self) -> None:
        self._templates: dict[str, PromptTemplate] = {}
        self._load_default_templates()

    def _load_default_templates(self) -> None:
        """Load default prompt templates."""
        outdated_comments_template = PromptTemplate(
            name="outdated_comments",
            description="Find comments made outdated by a diff",
            system_prompt=OUTDATED_COMMENTS_SYSTEM,
            user_prompt_template=OUTDATED_COMMENTS_USER,
            variables=["diff", "comments", "deleted_comments"],
        )

        consolidate_template = PromptTemplate(
            name="consolidate_findings",
            description="Merge several analyses of the same comment",
            system_prompt="You consolidate code review findings.",
            user_prompt_template=CONSOLIDATE_USER,
            variables=["comment_text", "location", "reasons", "suggestions"],
        )

        self._templates = {
            "outdated_comments": outdated_comments_template,
            "consolidate_findings": consolidate_template,
        }

    def get_template(self, name: str) -> PromptTemplate | None:
        return self._templates.get(name)

    def render_template(self, name: str, **kwargs: Any) -> tuple[str, str]:
        """
        Render a template by name.

        Args:
            name: Template name
            **kwargs: Template variables

        Returns:
            (system_prompt, user_prompt) tuple
        """
        template = self.get_template(name)
        if not template:
            raise ValueError(f"Template {name} not found")

        if not template.validate_variables(kwargs):
            missing = set(template.variables) - set(kwargs.keys())
            raise ValueError(f"Missing template variables: {missing}")

        return template.render(**kwargs)


# 전역 프롬프트 매니저 인스턴스
prompt_manager = PromptManager()


def get_prompt_manager() -> PromptManager:
    """전역 프롬프트 매니저를 반환합니다."""
    return prompt_manager
