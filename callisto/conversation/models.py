"""
Conversation data structures.

Message content is either plain text or an ordered list of content blocks.
Blocks form a closed set of variants; anything carrying an unrecognized
``type`` tag decodes to ``UnknownBlock`` so it can be round-tripped and
filtered out before reaching the model.
"""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Union


class Role(str, Enum):
    """Conversation participant"""
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class TextBlock:
    """Plain text emitted by the model or the user"""
    text: str
    type: str = field(default="text", init=False)


@dataclass
class ToolUseBlock:
    """
    A tool invocation requested by the model

    Attributes:
        id: Tool-use id assigned by the model
        name: Tool name
        input: Tool arguments
    """
    id: str
    name: str
    input: Dict[str, Any] = field(default_factory=dict)
    type: str = field(default="tool_use", init=False)


@dataclass
class ToolResultBlock:
    """
    Outcome of a tool invocation, referencing the originating tool-use id

    Attributes:
        tool_use_id: Id of the ToolUseBlock this result answers
        content: Canonical string content
        is_error: Whether the tool (or dispatch) failed
    """
    tool_use_id: str
    content: str
    is_error: bool = False
    type: str = field(default="tool_result", init=False)


@dataclass
class UnknownBlock:
    """A block with an unrecognized type tag, kept verbatim"""
    raw: Dict[str, Any]

    @property
    def type(self) -> str:
        return str(self.raw.get("type", ""))


ContentBlock = Union[TextBlock, ToolUseBlock, ToolResultBlock, UnknownBlock]
Content = Union[str, List[ContentBlock]]


@dataclass
class Message:
    """One turn in the conversation"""
    role: Role
    content: Content

    @property
    def blocks(self) -> List[ContentBlock]:
        """Content as a block list (plain text becomes a single TextBlock)."""
        if isinstance(self.content, str):
            return [TextBlock(self.content)] if self.content else []
        return list(self.content)

    @property
    def has_blocks(self) -> bool:
        return not isinstance(self.content, str)

    def tool_uses(self) -> List[ToolUseBlock]:
        return [b for b in self.blocks if isinstance(b, ToolUseBlock)]

    def tool_results(self) -> List[ToolResultBlock]:
        return [b for b in self.blocks if isinstance(b, ToolResultBlock)]

    def text(self) -> str:
        """Concatenated text blocks."""
        if isinstance(self.content, str):
            return self.content
        return "".join(b.text for b in self.content if isinstance(b, TextBlock))

    def is_empty(self) -> bool:
        if isinstance(self.content, str):
            return not self.content
        return len(self.content) == 0

    @classmethod
    def user(cls, content: Content) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: Content) -> "Message":
        return cls(role=Role.ASSISTANT, content=content)


# =============================================================================
# Encoding
# =============================================================================

def decode_block(raw: Dict[str, Any]) -> ContentBlock:
    """Decode one wire/persisted block. Never raises on unknown tags."""
    if not isinstance(raw, dict):
        return UnknownBlock(raw={"type": "", "value": raw})

    block_type = raw.get("type")
    if block_type == "text":
        text = raw.get("text")
        if text is None:
            text = raw.get("content", "")
        return TextBlock(str(text))
    if block_type == "tool_use":
        tool_input = raw.get("input")
        return ToolUseBlock(
            id=str(raw.get("id", "")),
            name=str(raw.get("name", "")),
            input=tool_input if isinstance(tool_input, dict) else {},
        )
    if block_type == "tool_result":
        content = raw.get("content", "")
        if not isinstance(content, str):
            content = str(content)
        return ToolResultBlock(
            tool_use_id=str(raw.get("tool_use_id", "")),
            content=content,
            is_error=bool(raw.get("is_error", False)),
        )
    return UnknownBlock(raw=copy.deepcopy(raw))


def encode_block(block: ContentBlock) -> Dict[str, Any]:
    """Encode one block into its wire dict."""
    if isinstance(block, TextBlock):
        return {"type": "text", "text": block.text}
    if isinstance(block, ToolUseBlock):
        return {"type": "tool_use", "id": block.id, "name": block.name, "input": block.input}
    if isinstance(block, ToolResultBlock):
        data: Dict[str, Any] = {
            "type": "tool_result",
            "tool_use_id": block.tool_use_id,
            "content": block.content,
        }
        if block.is_error:
            data["is_error"] = True
        return data
    return copy.deepcopy(block.raw)


def decode_message(raw: Dict[str, Any]) -> Message:
    """Decode a persisted message dict. Raises ValueError on a bad role."""
    if not isinstance(raw, dict):
        raise ValueError(f"message must be an object, got {type(raw).__name__}")
    role = Role(raw.get("role"))
    content = raw.get("content", "")
    if isinstance(content, list):
        return Message(role=role, content=[decode_block(item) for item in content])
    return Message(role=role, content="" if content is None else str(content))


def encode_message(message: Message) -> Dict[str, Any]:
    if isinstance(message.content, str):
        return {"role": message.role.value, "content": message.content}
    return {
        "role": message.role.value,
        "content": [encode_block(b) for b in message.content],
    }
