"""
Conversion between block-structured history and OpenAI-format payloads.

History keeps tool uses and results as content blocks. litellm accepts
OpenAI-format messages for every provider, so each assistant turn becomes
an assistant message with ``tool_calls`` and each tool result becomes a
``role: tool`` message.
"""

import json
from typing import Any, Dict, List

from ..conversation.models import (
    ContentBlock,
    Message,
    Role,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from .base import LLMResponse

ERROR_PREFIX = "[ERROR] "


def _tool_result_message(block: ToolResultBlock) -> Dict[str, Any]:
    content = block.content
    if block.is_error and not content.startswith(ERROR_PREFIX):
        content = f"{ERROR_PREFIX}{content}"
    return {"role": "tool", "tool_call_id": block.tool_use_id, "content": content}


def _assistant_message(msg: Message) -> Dict[str, Any]:
    text = msg.text()
    out: Dict[str, Any] = {"role": "assistant", "content": text or None}
    tool_uses = msg.tool_uses()
    if tool_uses:
        out["tool_calls"] = [
            {
                "id": tu.id,
                "type": "function",
                "function": {"name": tu.name, "arguments": json.dumps(tu.input)},
            }
            for tu in tool_uses
        ]
    return out


def to_openai_messages(system_prompt: str, messages: List[Message]) -> List[Dict[str, Any]]:
    """
    Build the model payload.

    *messages* must already be repaired (see transcript_repair): every
    tool result answers a tool use of the preceding assistant turn.
    """
    payload: List[Dict[str, Any]] = []
    if system_prompt:
        payload.append({"role": "system", "content": system_prompt})

    for msg in messages:
        if msg.role == Role.ASSISTANT:
            out = _assistant_message(msg)
            if out["content"] is None and "tool_calls" not in out:
                continue
            payload.append(out)
            continue

        if not msg.has_blocks:
            payload.append({"role": "user", "content": msg.content})
            continue

        for block in msg.tool_results():
            payload.append(_tool_result_message(block))
        text = msg.text()
        if text:
            payload.append({"role": "user", "content": text})

    return payload


def response_to_blocks(response: LLMResponse) -> List[ContentBlock]:
    """Content blocks of a model response: text first, then tool uses in order."""
    blocks: List[ContentBlock] = []
    if response.content:
        blocks.append(TextBlock(response.content))
    for tc in response.tool_calls or []:
        arguments = tc.arguments if isinstance(tc.arguments, dict) else {}
        blocks.append(ToolUseBlock(id=tc.id, name=tc.name, input=arguments))
    return blocks
