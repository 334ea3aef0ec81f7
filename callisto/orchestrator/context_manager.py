"""Context bounding for the model payload.

Defense 1 -- Single tool-result truncation (when a result is produced).
Defense 2 -- History trimming (before each model call).

The first message (the seed prompt) is always kept.
"""

from typing import List

from ..conversation.models import Message, Role, TextBlock, ToolResultBlock
from .react_config import ReactLoopConfig

TRUNCATION_MARKER = "\n[...truncated]"


class ContextManager:
    """Keeps the block-structured history within the model's context."""

    def __init__(self, config: ReactLoopConfig) -> None:
        self.config = config

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def estimate_tokens(self, messages: List[Message]) -> int:
        """Estimate token count using ~4 chars per token."""
        total_chars = 0
        for msg in messages:
            for block in msg.blocks:
                if isinstance(block, TextBlock):
                    total_chars += len(block.text)
                elif isinstance(block, ToolResultBlock):
                    total_chars += len(block.content)
                else:
                    total_chars += len(str(getattr(block, "input", "")))
        return total_chars // 4

    # ------------------------------------------------------------------
    # Defense 1: Single tool-result truncation
    # ------------------------------------------------------------------

    def truncate_tool_result(self, result: str) -> str:
        """Truncate a single tool result to stay within budget.

        The budget is the smaller of:
          - context_token_limit * max_tool_result_share * 4  (chars)
          - max_tool_result_chars
        Truncation prefers a newline boundary when possible.
        """
        max_chars = int(
            min(
                self.config.context_token_limit * self.config.max_tool_result_share * 4,
                self.config.max_tool_result_chars,
            )
        )
        if len(result) <= max_chars:
            return result

        cut = result[:max_chars]
        newline_pos = cut.rfind("\n")
        if newline_pos > max_chars // 2:
            cut = cut[: newline_pos + 1]

        return cut + TRUNCATION_MARKER

    # ------------------------------------------------------------------
    # Defense 2: History trimming
    # ------------------------------------------------------------------

    def trim_if_needed(self, messages: List[Message]) -> List[Message]:
        """Trim history when estimated tokens exceed the trim threshold."""
        threshold = int(self.config.context_token_limit * self.config.context_trim_threshold)
        if self.estimate_tokens(messages) <= threshold:
            return messages

        return self._keep_recent(messages, self.config.max_history_messages)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _keep_recent(messages: List[Message], keep: int) -> List[Message]:
        """Return the seed message plus the last *keep* messages.

        The retained window never starts with a user turn that only
        carries tool results, since their tool uses were trimmed away.
        """
        if len(messages) <= keep + 1:
            return messages

        seed = messages[:1]
        rest = messages[1:][-keep:]
        while rest and rest[0].role == Role.USER and rest[0].tool_results():
            rest = rest[1:]
        return seed + rest
