"""
Callisto Protocols - Abstract interfaces for dependency injection

These protocols define the contracts that external implementations must
fulfill, so the orchestrator can be driven by any model client or tool
server client (real or scripted).
"""

from typing import Protocol, List, Dict, Any, Optional, runtime_checkable


@runtime_checkable
class LLMClientProtocol(Protocol):
    """
    Abstract interface for LLM clients

    Example:
        class ScriptedClient:
            async def chat_completion(self, messages, tools=None, config=None):
                return LLMResponse(content="hello")
    """

    async def chat_completion(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict]] = None,
        config: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Call LLM for chat completion

        Args:
            messages: List of OpenAI-format message dicts
            tools: Optional list of tool schemas (OpenAI format)
            config: Optional configuration (model, max_tokens, etc.)

        Returns:
            LLMResponse
        """
        ...
