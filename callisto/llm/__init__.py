"""Model clients"""

from .base import BaseLLMClient, LLMConfig, LLMResponse, StopReason, ToolCall, Usage
from .litellm_client import LiteLLMClient, build_litellm_model_string, parse_tool_arguments
from .messages import response_to_blocks, to_openai_messages

__all__ = [
    "BaseLLMClient",
    "LLMConfig",
    "LLMResponse",
    "StopReason",
    "ToolCall",
    "Usage",
    "LiteLLMClient",
    "build_litellm_model_string",
    "parse_tool_arguments",
    "response_to_blocks",
    "to_openai_messages",
]
