"""
LLM provider implementations.

Contains specific implementations for the Anthropic and OpenAI APIs plus a
mock provider for tests and dry runs.
"""

import json
from typing import Any

from anthropic import AsyncAnthropic
from loguru import logger
from openai import AsyncOpenAI

from tools.base import ConfigError
from tools.config import LLMOptions

from .base import LLMConfig, LLMMessage, LLMProvider, LLMResponse, LLMToolSpec, LLMUsage


class OpenAIProvider(LLMProvider):
    """
    OpenAI LLM provider implementation.

    Structured output uses function tools; a forced tool becomes a named
    `tool_choice`.
    """

    def __init__(self, config: LLMConfig):
        super().__init__(config)
        self.client = AsyncOpenAI(
            api_key=config.api_key,
            base_url=config.base_url,
            timeout=config.timeout,
            max_retries=3,
        )

    async def generate(
        self,
        messages: list[LLMMessage],
        tools: list[LLMToolSpec] | None = None,
        tool_choice: str | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Generate a response using the OpenAI API."""

        request_params: dict[str, Any] = {
            "model": self.config.model,
            "messages": [msg.to_dict() for msg in messages],
            "max_tokens": kwargs.get("max_tokens", self.config.max_tokens),
            "temperature": kwargs.get("temperature", self.config.temperature),
        }
        if tools:
            request_params["tools"] = [tool.to_openai() for tool in tools]
        if tool_choice:
            request_params["tool_choice"] = {
                "type": "function",
                "function": {"name": tool_choice},
            }

        try:
            response = await self.client.chat.completions.create(**request_params)
        except Exception as e:
            raise RuntimeError(f"OpenAI API call failed: {str(e)}") from e

        choice = response.choices[0]
        function_calls = []
        for call in choice.message.tool_calls or []:
            try:
                arguments = json.loads(call.function.arguments or "{}")
            except json.JSONDecodeError:
                logger.warning(f"Unparsable arguments for tool call {call.function.name}")
                continue
            function_calls.append({"name": call.function.name, "input": arguments})

        usage = response.usage
        llm_usage = LLMUsage(
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            total_tokens=usage.total_tokens if usage else 0,
        )

        return LLMResponse(
            content=choice.message.content or "",
            usage=llm_usage,
            model=response.model,
            finish_reason=choice.finish_reason,
            function_calls=function_calls,
            metadata={"provider": "openai"},
        )


class AnthropicProvider(LLMProvider):
    """
    Anthropic LLM provider implementation.

    Supports Claude models. Tool calls arrive as `tool_use` content blocks.
    """

    def __init__(self, config: LLMConfig):
        super().__init__(config)
        self.client = AsyncAnthropic(
            api_key=config.api_key,
            base_url=config.base_url,
            timeout=config.timeout,
            max_retries=3,
        )

    async def generate(
        self,
        messages: list[LLMMessage],
        tools: list[LLMToolSpec] | None = None,
        tool_choice: str | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Generate a response using the Anthropic API."""

        # Separate system message
        system_message = None
        user_messages = []

        for msg in messages:
            if msg.role == "system":
                system_message = msg.content
            else:
                user_messages.append(msg.to_dict())

        request_params: dict[str, Any] = {
            "model": self.config.model,
            "messages": user_messages,
            "max_tokens": kwargs.get("max_tokens", self.config.max_tokens),
            "temperature": kwargs.get("temperature", self.config.temperature),
        }
        if system_message:
            request_params["system"] = system_message
        if tools:
            request_params["tools"] = [tool.to_anthropic() for tool in tools]
        if tool_choice:
            request_params["tool_choice"] = {"type": "tool", "name": tool_choice}

        try:
            response = await self.client.messages.create(**request_params)
        except Exception as e:
            raise RuntimeError(f"Anthropic API call failed: {str(e)}") from e

        text_parts = []
        function_calls = []
        for block in response.content:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                function_calls.append({"name": block.name, "input": block.input})

        usage = response.usage
        llm_usage = LLMUsage(
            prompt_tokens=usage.input_tokens,
            completion_tokens=usage.output_tokens,
            total_tokens=usage.input_tokens + usage.output_tokens,
        )

        return LLMResponse(
            content="".join(text_parts),
            usage=llm_usage,
            model=response.model,
            finish_reason=response.stop_reason,
            function_calls=function_calls,
            metadata={"provider": "anthropic"},
        )


class MockProvider(LLMProvider):
    """
    Mock LLM provider for testing.

    Returns predefined responses without actual API calls. A string response
    is returned as text; a dict response is returned as a call to the forced
    tool (or the first offered tool). Every request is recorded in `calls`.
    """

    def __init__(
        self,
        config: LLMConfig,
        mock_responses: list[str | dict[str, Any]] | None = None,
    ):
        super().__init__(config)
        self.mock_responses = mock_responses or ["Mock response for testing"]
        self.response_index = 0
        self.calls: list[dict[str, Any]] = []

    async def generate(
        self,
        messages: list[LLMMessage],
        tools: list[LLMToolSpec] | None = None,
        tool_choice: str | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Generate mock response."""
        self.calls.append(
            {"messages": messages, "tools": tools, "tool_choice": tool_choice}
        )

        # Estimate token count
        prompt_text = " ".join([msg.content for msg in messages])
        prompt_tokens = self.estimate_tokens(prompt_text)

        response = self.mock_responses[self.response_index % len(self.mock_responses)]
        self.response_index += 1

        content = ""
        function_calls = []
        if isinstance(response, dict):
            name = tool_choice or (tools[0].name if tools else "mock_tool")
            function_calls.append({"name": name, "input": response})
            completion_tokens = self.estimate_tokens(json.dumps(response))
        else:
            content = response
            completion_tokens = self.estimate_tokens(response)

        llm_usage = LLMUsage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        )

        return LLMResponse(
            content=content,
            usage=llm_usage,
            model="mock-model",
            finish_reason="tool_use" if function_calls else "stop",
            function_calls=function_calls,
            metadata={"provider": "mock", "test_mode": True},
        )


def create_provider(options: LLMOptions, api_key: str) -> LLMProvider:
    """
    Factory function to create the configured provider.

    Args:
        options: LLM section of the configuration
        api_key: Credential for the provider

    Returns:
        Provider instance

    Raises:
        ConfigError: Unknown provider name
    """
    config = LLMConfig(
        api_key=api_key,
        model=options.model,
        base_url=options.base_url,
        max_tokens=options.max_tokens,
    )

    if options.provider == "anthropic":
        return AnthropicProvider(config)
    elif options.provider == "openai":
        return OpenAIProvider(config)
    elif options.provider == "mock":
        return MockProvider(config)
    raise ConfigError(f"Unsupported LLM provider: {options.provider}")
