"""
Tools package for comment-catcher.

This package contains the building blocks of a comment check:
- Git change detection and diff position mapping
- Import-based related file discovery
- Comment extraction and filtering
- LLM analysis and report rendering
"""

from .base import (
    BaseTool,
    CommentExtractionError,
    ConfigError,
    DiffError,
    ToolErrorCode,
    ToolMetrics,
    ToolResult,
    ToolStatus,
)
from .comments.extractor import CommentExtractor
from .dependencies.expander import DependencyExpander
from .git.git_changes import GitChangeDetector

__version__ = "0.1.0"

__all__ = [
    # Base classes and types
    "BaseTool",
    "ToolResult",
    "ToolMetrics",
    "ToolStatus",
    "ToolErrorCode",
    # Errors
    "ConfigError",
    "DiffError",
    "CommentExtractionError",
    # Concrete tools
    "GitChangeDetector",
    "DependencyExpander",
    "CommentExtractor",
]
