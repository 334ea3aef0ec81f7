"""
Transcript Repair - Fix malformed block transcripts before model calls

Handles three categories of issues in a block-structured history:

1. Unknown blocks: display-only or unrecognized blocks are stripped.
2. Tool use / result pairing: every tool_use in an assistant turn must be
   answered by a tool_result in the immediately following user turn.
   Missing results get a synthetic error result, duplicates keep the
   first, and results with no matching tool_use in the preceding turn
   (orphans) are dropped.
3. Empty messages: turns left with no content are removed.

Repairs never mutate their input; they return new lists (or the original
list reference when nothing changed).
"""

import logging
from typing import List, Set, Tuple

from ..conversation.models import (
    ContentBlock,
    Message,
    Role,
    ToolResultBlock,
    UnknownBlock,
)

logger = logging.getLogger(__name__)

SYNTHETIC_TOOL_RESULT = "[synthetic] missing tool result - inserted for transcript repair"


def strip_unknown_blocks(messages: List[Message]) -> Tuple[List[Message], int]:
    """
    Remove UnknownBlock entries from block-content messages.

    Returns:
        Tuple of (repaired_messages, dropped_blocks_count).
    """
    dropped = 0
    repaired: List[Message] = []
    for msg in messages:
        if not msg.has_blocks:
            repaired.append(msg)
            continue
        kept = [b for b in msg.content if not isinstance(b, UnknownBlock)]
        if len(kept) != len(msg.content):
            dropped += len(msg.content) - len(kept)
            repaired.append(Message(role=msg.role, content=kept))
        else:
            repaired.append(msg)

    if not dropped:
        return messages, 0
    return repaired, dropped


def drop_empty_messages(messages: List[Message]) -> Tuple[List[Message], int]:
    """Remove messages whose content is empty. Returns (messages, dropped)."""
    kept = [m for m in messages if not m.is_empty()]
    dropped = len(messages) - len(kept)
    if not dropped:
        return messages, 0
    return kept, dropped


def repair_tool_use_result_pairing(
    messages: List[Message],
) -> Tuple[List[Message], int, int, int]:
    """
    Ensure every tool_use is answered in the next user turn, and that every
    tool_result answers a tool_use of the immediately preceding assistant turn.

    Returns:
        Tuple of (repaired_messages, added_synthetic, dropped_duplicates,
        dropped_orphans). Returns the original list reference when no
        changes were needed.
    """
    added_synthetic = 0
    dropped_duplicates = 0
    dropped_orphans = 0
    repaired: List[Message] = []
    changed = False

    i = 0
    while i < len(messages):
        msg = messages[i]

        if msg.role == Role.ASSISTANT and msg.tool_uses():
            repaired.append(msg)
            expected = [tu.id for tu in msg.tool_uses()]
            nxt = messages[i + 1] if i + 1 < len(messages) else None

            if nxt is not None and nxt.role == Role.USER:
                blocks, dups, orphans, synthetic = _pair_results(expected, nxt.blocks)
                dropped_duplicates += dups
                dropped_orphans += orphans
                added_synthetic += synthetic
                if not nxt.has_blocks or blocks != nxt.content:
                    changed = True
                    repaired.append(Message(role=Role.USER, content=blocks))
                else:
                    repaired.append(nxt)
                i += 2
                continue

            # No user turn follows: answer every tool_use synthetically
            synthetic_blocks: List[ContentBlock] = []
            for tool_use_id in _unique(expected):
                synthetic_blocks.append(_synthetic_result(tool_use_id))
                added_synthetic += 1
            repaired.append(Message(role=Role.USER, content=synthetic_blocks))
            changed = True
            i += 1
            continue

        if msg.role == Role.USER and msg.tool_results():
            kept = [b for b in msg.content if not isinstance(b, ToolResultBlock)]
            orphan_count = len(msg.content) - len(kept)
            for block in msg.tool_results():
                logger.warning(
                    "transcript_repair: dropped orphaned tool result for tool_use_id %s at index %d",
                    block.tool_use_id, i,
                )
            dropped_orphans += orphan_count
            repaired.append(Message(role=Role.USER, content=kept))
            changed = True
            i += 1
            continue

        repaired.append(msg)
        i += 1

    if not changed:
        return messages, 0, 0, 0

    return repaired, added_synthetic, dropped_duplicates, dropped_orphans


def repair_transcript(messages: List[Message]) -> List[Message]:
    """
    Run all transcript repairs in sequence.

    Strips unknown blocks, drops empty turns, repairs tool pairing, then
    drops any turns the pairing pass emptied.
    """
    messages, unknown = strip_unknown_blocks(messages)
    if unknown:
        logger.info("transcript_repair: stripped %d unknown blocks", unknown)

    messages, _ = drop_empty_messages(messages)

    messages, synthetic, duplicates, orphans = repair_tool_use_result_pairing(messages)
    if synthetic or duplicates or orphans:
        logger.info(
            "transcript_repair: result_pairing phase - %d synthetic, %d duplicates dropped, %d orphans dropped",
            synthetic, duplicates, orphans,
        )

    messages, emptied = drop_empty_messages(messages)
    if emptied:
        logger.info("transcript_repair: dropped %d empty messages", emptied)

    return messages


# ------------------------------------------------------------------
# Internal
# ------------------------------------------------------------------

def _pair_results(
    expected_ids: List[str],
    blocks: List[ContentBlock],
) -> Tuple[List[ContentBlock], int, int, int]:
    """Rebuild a user turn so its results match *expected_ids* exactly once."""
    expected: Set[str] = set(expected_ids)
    seen: Set[str] = set()
    results: List[ContentBlock] = []
    others: List[ContentBlock] = []
    duplicates = 0
    orphans = 0

    for block in blocks:
        if not isinstance(block, ToolResultBlock):
            others.append(block)
            continue
        if block.tool_use_id not in expected:
            orphans += 1
            logger.warning(
                "transcript_repair: dropped orphaned tool result for tool_use_id %s",
                block.tool_use_id,
            )
            continue
        if block.tool_use_id in seen:
            duplicates += 1
            logger.warning(
                "transcript_repair: dropped duplicate result for tool_use %s",
                block.tool_use_id,
            )
            continue
        seen.add(block.tool_use_id)
        results.append(block)

    synthetic = 0
    for tool_use_id in _unique(expected_ids):
        if tool_use_id not in seen:
            results.append(_synthetic_result(tool_use_id))
            synthetic += 1

    # Results lead the turn, in tool_use order
    order = {tid: n for n, tid in enumerate(_unique(expected_ids))}
    results.sort(key=lambda b: order.get(b.tool_use_id, len(order)))
    return results + others, duplicates, orphans, synthetic


def _synthetic_result(tool_use_id: str) -> ToolResultBlock:
    logger.warning(
        "transcript_repair: inserted synthetic result for tool_use %s",
        tool_use_id,
    )
    return ToolResultBlock(
        tool_use_id=tool_use_id,
        content=SYNTHETIC_TOOL_RESULT,
        is_error=True,
    )


def _unique(ids: List[str]) -> List[str]:
    out: List[str] = []
    for tid in ids:
        if tid not in out:
            out.append(tid)
    return out
