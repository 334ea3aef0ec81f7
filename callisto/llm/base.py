"""
Callisto LLM Client Base - base class and common types for model clients

This module provides:
- BaseLLMClient: Abstract base class for all model clients
- LLMConfig: Configuration dataclass
- LLMResponse: Standardized response format
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from ..tools.models import Tool


class StopReason(str, Enum):
    """Reason why the model stopped generating"""
    END_TURN = "end_turn"           # Natural completion
    MAX_TOKENS = "max_tokens"       # Hit token limit
    STOP_SEQUENCE = "stop_sequence" # Hit stop sequence
    TOOL_USE = "tool_use"           # Model wants to use a tool
    CONTENT_FILTER = "content_filter"
    ERROR = "error"


@dataclass
class LLMConfig:
    """
    Configuration for model clients.

    Attributes:
        api_key: API key for the provider (falls back to the provider's env var)
        model: Model name (e.g., "claude-3-haiku-20240307")
        base_url: Optional base URL override for API
        temperature: Sampling temperature; None leaves the provider default
        max_tokens: Maximum tokens in response
        timeout: Request timeout in seconds
        max_retries: Provider-level retries inside litellm
        extra: Extra provider-specific params
    """
    api_key: Optional[str] = None
    model: str = "claude-3-haiku-20240307"
    base_url: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: int = 2000
    timeout: int = 60
    max_retries: int = 0
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }


@dataclass
class ToolCall:
    """A tool call from the model"""
    id: str
    name: str
    arguments: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "arguments": self.arguments}


@dataclass
class Usage:
    """Token usage information"""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass
class LLMResponse:
    """
    Standardized model response.

    All clients return this format; the orchestrator converts it into
    content blocks.
    """
    content: str
    tool_calls: Optional[List[ToolCall]] = None
    stop_reason: StopReason = StopReason.END_TURN
    usage: Optional[Usage] = None
    model: Optional[str] = None
    raw_response: Optional[Any] = field(default=None, repr=False)

    @property
    def has_tool_calls(self) -> bool:
        return self.tool_calls is not None and len(self.tool_calls) > 0


class BaseLLMClient(ABC):
    """
    Abstract base class for model clients.

    Implements LLMClientProtocol.

    Example:
        class MyClient(BaseLLMClient):
            async def _call_api(self, messages, tools=None, **kwargs):
                ...
    """

    provider: str = "unknown"

    def __init__(self, config: Optional[LLMConfig] = None, **kwargs):
        if config is None:
            config = LLMConfig(**kwargs)
        else:
            for key, value in kwargs.items():
                if hasattr(config, key):
                    setattr(config, key, value)

        self.config = config

    @abstractmethod
    async def _call_api(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        **kwargs
    ) -> LLMResponse:
        """
        Make the actual API call (provider-specific).

        Args:
            messages: OpenAI-format message dicts
            tools: Optional list of OpenAI-format tool schemas
            **kwargs: Additional provider-specific params
        """

    async def chat_completion(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Union[Dict[str, Any], Tool]]] = None,
        config: Optional[Dict[str, Any]] = None,
        **kwargs
    ) -> LLMResponse:
        """
        Send a chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content'
            tools: Optional list of tools (dict or Tool)
            config: Optional config overrides
            **kwargs: Additional parameters (e.g. tool_choice)
        """
        tool_schemas = None
        if tools:
            tool_schemas = [
                self._format_tool(tool) if isinstance(tool, Tool) else tool
                for tool in tools
            ]

        merged_kwargs = {**kwargs}
        if config:
            merged_kwargs.update(config)

        return await self._call_api(messages, tool_schemas, **merged_kwargs)

    def _format_tool(self, tool: Tool) -> Dict[str, Any]:
        """Format a Tool in OpenAI function format."""
        return {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.input_schema,
            },
        }

    async def close(self) -> None:
        """Release client resources"""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
