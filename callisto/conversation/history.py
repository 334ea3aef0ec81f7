"""
Conversation State Manager

Owns the linear message history for one session, persists it to a JSON
file after every completed exchange and reloads it on startup.

The persisted file uses a display-friendly shape: assistant tool-use
blocks are written as ``{"type": "tool_call", "tool": ..., "input": ...}``
and assistant text as ``{"type": "text", "content": ...}``. Messages whose
content is empty after formatting are dropped so they can never reach the
model on a later load.
"""

import json
import logging
import os
from typing import Any, Dict, List, Optional

from .models import Message, Role, decode_message, encode_message

logger = logging.getLogger(__name__)


def format_for_display(messages: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Convert encoded messages into the persisted display shape.

    Applying this twice yields the same result as applying it once.
    """
    formatted: List[Dict[str, Any]] = []
    for msg in messages:
        content = msg.get("content")
        role = msg.get("role")

        if isinstance(content, list):
            if role == Role.ASSISTANT.value:
                content = [_display_assistant_block(item) for item in content]
            if not content:
                continue
            formatted.append({"role": role, "content": content})
        else:
            if not content:
                continue
            formatted.append({"role": role, "content": content})
    return formatted


def _display_assistant_block(item: Dict[str, Any]) -> Dict[str, Any]:
    if item.get("type") == "tool_use":
        return {"type": "tool_call", "tool": item.get("name"), "input": item.get("input", {})}
    if item.get("type") == "text":
        text = item.get("text")
        if text is None:
            text = item.get("content", "")
        return {"type": "text", "content": text}
    return item


class ConversationHistory:
    """
    Linear message history backed by a JSON file.

    Example:
        history = ConversationHistory("chat_history.json", system_prompt)
        history.load()
        history.append(Message.user("What's on my calendar?"))
        history.persist()
    """

    def __init__(self, path: str, system_prompt: str):
        self.path = path
        self.system_prompt = system_prompt
        self._messages: List[Message] = []

    @property
    def messages(self) -> List[Message]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def _seed(self) -> List[Message]:
        return [Message.user(self.system_prompt)]

    def load(self) -> List[Message]:
        """
        Load history from disk.

        A missing file seeds the history with the system prompt and
        persists it immediately. An unreadable file seeds in memory only.
        """
        if not os.path.exists(self.path):
            logger.info(f"No chat history at {self.path}, starting fresh")
            self._messages = self._seed()
            self.persist()
            return self.messages

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            if not isinstance(raw, list):
                raise ValueError("chat history must be a JSON array")
            self._messages = [decode_message(item) for item in raw]
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load chat history from {self.path}: {e}")
            self._messages = self._seed()
            return self.messages

        if not self._messages:
            self._messages = self._seed()
        logger.info(f"Loaded {len(self._messages)} messages from {self.path}")
        return self.messages

    def append(self, message: Message) -> None:
        self._messages.append(message)

    def extend(self, messages: List[Message]) -> None:
        self._messages.extend(messages)

    def last(self) -> Optional[Message]:
        return self._messages[-1] if self._messages else None

    def pop_dangling_assistant(self) -> Optional[Message]:
        """Remove the last message if it is an assistant turn with block content."""
        last = self.last()
        if last is not None and last.role == Role.ASSISTANT and last.has_blocks:
            logger.info("Removing dangling assistant message from history")
            return self._messages.pop()
        return None

    def reset(self) -> None:
        """Reseed history with the system prompt and persist."""
        self._messages = self._seed()
        self.persist()

    def to_display(self) -> List[Dict[str, Any]]:
        return format_for_display([encode_message(m) for m in self._messages])

    def persist(self) -> None:
        """Write the full history, overwriting any previous file."""
        data = self.to_display()
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.error(f"Failed to save chat history to {self.path}: {e}")

    def __repr__(self) -> str:
        return f"ConversationHistory(path='{self.path}', messages={len(self._messages)})"
