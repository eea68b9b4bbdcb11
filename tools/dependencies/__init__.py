"""
Dependency tools for comment-catcher.

This package provides:
- Python import resolution around a set of seed files
- The module graph with bounded bidirectional traversal
- The best-effort expander used by the check pipeline
"""

from .expander import DependencyExpander, ExpansionInput, find_related_files
from .graph import DependencyRecord, ModuleGraph, ModuleRecord, normalize_path
from .resolver import ImportResolver

__all__ = [
    "DependencyExpander",
    "DependencyRecord",
    "ExpansionInput",
    "ImportResolver",
    "ModuleGraph",
    "ModuleRecord",
    "find_related_files",
    "normalize_path",
]
