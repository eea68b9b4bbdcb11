"""
LLM provider base interface and data structures.

This module defines the base interface and common data structures that all
LLM providers must implement. Providers return structured output through
tool calls: a request carries `LLMToolSpec` definitions and optionally forces
one of them, and the parsed tool inputs come back in
`LLMResponse.function_calls`.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class LLMConfig:
    """
    LLM provider configuration structure.

    Contains API key, model settings, parameters for each provider.
    """

    api_key: str  # API key
    model: str  # Model name
    base_url: str | None = None  # Custom API endpoint
    timeout: int = 60  # Request timeout (seconds)
    max_tokens: int = 4096  # Maximum token count
    temperature: float = 0.0  # Generation temperature (deterministic)

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary, without the key."""
        result = asdict(self)
        result.pop("api_key", None)
        return result


@dataclass
class LLMMessage:
    """
    LLM conversation message structure.
    """

    role: str  # 'system', 'user', 'assistant'
    content: str  # Message content

    def to_dict(self) -> dict[str, Any]:
        """Convert message to dictionary."""
        return {"role": self.role, "content": self.content}


@dataclass
class LLMToolSpec:
    """A tool the model can call, described by a JSON schema."""

    name: str
    description: str
    input_schema: dict[str, Any]

    def to_anthropic(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }

    def to_openai(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema,
            },
        }


@dataclass
class LLMUsage:
    """
    LLM API usage information.
    """

    prompt_tokens: int = 0  # Number of prompt tokens
    completion_tokens: int = 0  # Number of completion tokens
    total_tokens: int = 0  # Total token count

    def add(self, other: "LLMUsage") -> None:
        """Accumulate another call's usage into this one."""
        self.prompt_tokens += other.prompt_tokens
        self.completion_tokens += other.completion_tokens
        self.total_tokens += other.total_tokens

    def to_dict(self) -> dict[str, Any]:
        """Convert usage info to dictionary."""
        return asdict(self)


@dataclass
class LLMResponse:
    """
    LLM API response structure.
    """

    content: str  # Generated text, if any
    usage: LLMUsage  # Token usage
    model: str  # Model used
    finish_reason: str | None  # Generation completion reason
    function_calls: list[dict[str, Any]] = field(default_factory=list)  # {"name", "input"}
    metadata: dict[str, Any] | None = None  # Additional metadata

    def tool_input(self, name: str) -> dict[str, Any] | None:
        """Input of the first call to tool `name`, if the model made one."""
        for call in self.function_calls:
            if call.get("name") == name and isinstance(call.get("input"), dict):
                return call["input"]
        return None


class LLMProvider(ABC):
    """
    Base interface for LLM providers.

    All LLM providers must implement this interface.
    """

    def __init__(self, config: LLMConfig):
        self.config = config
        self.provider_name = self.__class__.__name__

    @abstractmethod
    async def generate(
        self,
        messages: list[LLMMessage],
        tools: list[LLMToolSpec] | None = None,
        tool_choice: str | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """
        Generate a response using the LLM.

        Args:
            messages: List of conversation messages
            tools: Tools the model may call
            tool_choice: Name of a tool the model must call
            **kwargs: Additional parameters (max_tokens, temperature)

        Returns:
            LLM response

        Raises:
            RuntimeError: The provider call failed
        """

    def estimate_tokens(self, text: str) -> int:
        """
        Estimate token count for text.

        Args:
            text: Text to analyze

        Returns:
            Estimated token count
        """
        # Simple estimation: 1 token ~= 4 characters for English
        return len(text) // 4
