"""
Callisto LiteLLM Client - model client powered by litellm

litellm routes OpenAI-format requests to any provider (Anthropic by
default), so one client covers every supported model.
"""

import json
import logging
import os
from typing import Any, Dict, List, Optional

from .base import (
    BaseLLMClient,
    LLMConfig,
    LLMResponse,
    StopReason,
    ToolCall,
    Usage,
)

logger = logging.getLogger(__name__)

# Provider -> default environment variable for API key
_PROVIDER_ENV_VARS: Dict[str, Optional[str]] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_OPENAI_API_KEY",
    "gemini": "GOOGLE_API_KEY",
    "ollama": None,
}


def build_litellm_model_string(provider: str, model: str) -> str:
    """Map provider + model to the litellm model string.

    Args:
        provider: Provider name (anthropic, openai, azure, gemini, ollama).
        model: Raw model name (e.g. "claude-3-haiku-20240307").

    Returns:
        litellm-compatible model string.
    """
    provider = provider.lower()
    if provider == "openai":
        return model
    if "/" in model:
        return model
    if provider in ("anthropic", "azure", "gemini", "ollama"):
        return f"{provider}/{model}"
    return model


def parse_tool_arguments(arguments: Any) -> Dict[str, Any]:
    """Decode tool-call arguments; malformed JSON yields an empty dict."""
    if isinstance(arguments, dict):
        return arguments
    if not arguments:
        return {}
    try:
        parsed = json.loads(arguments)
    except (json.JSONDecodeError, TypeError):
        logger.warning(f"[LLM] Could not decode tool arguments: {str(arguments)[:200]}")
        return {}
    return parsed if isinstance(parsed, dict) else {}


class LiteLLMClient(BaseLLMClient):
    """
    Model client powered by litellm.

    Example:
        config = LLMConfig(model="claude-3-haiku-20240307", max_tokens=2000)
        client = LiteLLMClient(config=config, provider_name="anthropic")
        response = await client.chat_completion([
            {"role": "user", "content": "Hello!"}
        ])
    """

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        provider_name: str = "anthropic",
        **kwargs,
    ):
        super().__init__(config, **kwargs)

        self.provider = provider_name.lower()
        self._litellm_model = build_litellm_model_string(self.provider, self.config.model)

        # Explicit config > env var
        api_key = self.config.api_key
        if not api_key:
            env_var = _PROVIDER_ENV_VARS.get(self.provider)
            if env_var:
                api_key = os.environ.get(env_var)

        self._base_kwargs: Dict[str, Any] = {}
        if self.config.base_url:
            self._base_kwargs["api_base"] = self.config.base_url
        if api_key:
            self._base_kwargs["api_key"] = api_key

        logger.info(
            f"LiteLLMClient initialized: provider={self.provider}, "
            f"litellm_model={self._litellm_model}"
        )

    def _model_params(self, **kwargs) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "max_tokens": kwargs.get("max_tokens", self.config.max_tokens),
            "timeout": kwargs.get("timeout", self.config.timeout),
            "num_retries": self.config.max_retries,
        }
        temperature = kwargs.get("temperature", self.config.temperature)
        if temperature is not None:
            params["temperature"] = temperature
        params.update(self.config.extra)
        return params

    async def _call_api(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        **kwargs,
    ) -> LLMResponse:
        """Make a non-streaming call via litellm.acompletion."""
        import litellm

        model = kwargs.get("model") or self._litellm_model
        params: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            **self._model_params(**kwargs),
            **self._base_kwargs,
        }

        if tools:
            params["tools"] = tools
            params["tool_choice"] = kwargs.get("tool_choice", "auto")

        logger.info(
            f"[LiteLLM] model={model}, tools={len(tools) if tools else 0}, "
            f"messages={len(messages)}"
        )

        response = await litellm.acompletion(**params)

        choice = response.choices[0]
        message = choice.message

        tool_calls = None
        if message.tool_calls:
            tool_calls = [
                ToolCall(
                    id=tc.id,
                    name=tc.function.name,
                    arguments=parse_tool_arguments(tc.function.arguments),
                )
                for tc in message.tool_calls
            ]

        usage = None
        if getattr(response, "usage", None):
            usage = Usage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )

        return LLMResponse(
            content=message.content or "",
            tool_calls=tool_calls,
            stop_reason=self._parse_stop_reason(choice.finish_reason),
            usage=usage,
            model=getattr(response, "model", self.config.model),
            raw_response=response,
        )

    @staticmethod
    def _parse_stop_reason(finish_reason: Optional[str]) -> StopReason:
        """Map litellm/OpenAI finish_reason to StopReason."""
        if finish_reason is None:
            return StopReason.END_TURN
        mapping = {
            "stop": StopReason.END_TURN,
            "end_turn": StopReason.END_TURN,
            "length": StopReason.MAX_TOKENS,
            "max_tokens": StopReason.MAX_TOKENS,
            "tool_calls": StopReason.TOOL_USE,
            "tool_use": StopReason.TOOL_USE,
            "function_call": StopReason.TOOL_USE,
            "content_filter": StopReason.CONTENT_FILTER,
            "stop_sequence": StopReason.STOP_SEQUENCE,
        }
        return mapping.get(finish_reason, StopReason.END_TURN)
