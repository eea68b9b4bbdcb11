"""
LLM integration tools.

This package wraps the LLM providers behind one interface and uses them to
decide which comments a change made outdated.
"""

from .base import LLMConfig, LLMMessage, LLMProvider, LLMResponse, LLMToolSpec, LLMUsage
from .prompts import PromptManager, PromptTemplate
from .providers import AnthropicProvider, MockProvider, OpenAIProvider, create_provider
from .tool import CommentAnalyzer, Finding, extract_deleted_comments

__all__ = [
    "LLMProvider",
    "LLMConfig",
    "LLMMessage",
    "LLMResponse",
    "LLMToolSpec",
    "LLMUsage",
    "CommentAnalyzer",
    "Finding",
    "extract_deleted_comments",
    "OpenAIProvider",
    "AnthropicProvider",
    "MockProvider",
    "create_provider",
    "PromptTemplate",
    "PromptManager",
]
