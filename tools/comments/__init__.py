"""
Comment tools for comment-catcher.

This package provides:
- Comment and docstring extraction from Python sources
- The significance filter deciding what reaches the LLM
"""

from .extractor import CodeComment, CommentExtractor, ExtractionInput
from .filters import CommentFilter

__all__ = ["CodeComment", "CommentExtractor", "CommentFilter", "ExtractionInput"]
