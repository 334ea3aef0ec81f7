"""Orchestration loop configuration and bookkeeping dataclasses.

Centralizes the tunable parameters of the tool-use loop, along with a
token usage counter.
"""

from dataclasses import dataclass

from ..constants import DEFAULT_MAX_TOKENS, TOOL_EXECUTION_TIMEOUT


@dataclass
class ReactLoopConfig:
    """All loop configuration centralized in one place."""

    # Loop control
    max_turns: int = 10
    """Model calls per query before the loop gives up."""

    # Model calls
    max_tokens: int = DEFAULT_MAX_TOKENS
    tool_choice: str = "auto"

    # Tool execution
    tool_execution_timeout: float = TOOL_EXECUTION_TIMEOUT
    """Tool timeout in seconds."""
    max_tool_result_share: float = 0.3
    """Single tool result may consume at most 30% of the context window."""
    max_tool_result_chars: int = 100_000
    """Single tool result hard character limit."""

    # Context management
    context_token_limit: int = 200_000
    """Context window size in tokens."""
    context_trim_threshold: float = 0.8
    """Trigger history trimming when usage exceeds this fraction."""
    max_history_messages: int = 40
    """Max messages retained after trimming (besides the seed prompt)."""


@dataclass
class TokenUsage:
    """Accumulated token usage counters."""

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total(self) -> int:
        return self.input_tokens + self.output_tokens

    def add(self, usage) -> None:
        if usage is None:
            return
        self.input_tokens += usage.prompt_tokens or 0
        self.output_tokens += usage.completion_tokens or 0

