"""Conversation history and content-block data model"""

from .models import (
    Role,
    TextBlock,
    ToolUseBlock,
    ToolResultBlock,
    UnknownBlock,
    ContentBlock,
    Message,
    decode_block,
    encode_block,
    decode_message,
    encode_message,
)
from .history import ConversationHistory, format_for_display

__all__ = [
    "Role",
    "TextBlock",
    "ToolUseBlock",
    "ToolResultBlock",
    "UnknownBlock",
    "ContentBlock",
    "Message",
    "decode_block",
    "encode_block",
    "decode_message",
    "encode_message",
    "ConversationHistory",
    "format_for_display",
]
