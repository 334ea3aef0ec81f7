"""
Callisto Orchestrator Module

Meeting-assistant core with support for:
- Tool-use loop over every connected tool server
- Approval gate for sending tools (email, chat messages)
- Transcript path with calendar/search/email/slack workflows
- Meeting context accumulated from tool results
- Context management and transcript repair before every model call

Quick Start:
    from callisto.orchestrator import MeetingOrchestrator, ApprovalGate

    orchestrator = MeetingOrchestrator(
        llm_client=llm_client,
        registry=registry,
        dispatcher=dispatcher,
        gate=ApprovalGate(dispatcher),
        history=history,
    )
    reply = await orchestrator.process_query("SCREEN: Are you free tomorrow at 2?")
"""

from .approval import (
    ActionKind,
    ApprovalGate,
    ApprovalOutcome,
    Decision,
    PendingAction,
    classify_action,
)
from .audit_logger import AuditLogger
from .context_manager import ContextManager
from .meeting_context import MeetingContext
from .orchestrator import MeetingOrchestrator, TranscriptChunk, parse_transcript_chunk
from .prompts import DEFAULT_SYSTEM_PROMPT, build_system_prompt
from .react_config import ReactLoopConfig, TokenUsage
from .transcript_repair import repair_transcript
from .workflows import Workflow, WorkflowStatus, WorkflowType

__all__ = [
    "ActionKind",
    "ApprovalGate",
    "ApprovalOutcome",
    "AuditLogger",
    "ContextManager",
    "Decision",
    "DEFAULT_SYSTEM_PROMPT",
    "MeetingContext",
    "MeetingOrchestrator",
    "PendingAction",
    "ReactLoopConfig",
    "TokenUsage",
    "TranscriptChunk",
    "Workflow",
    "WorkflowStatus",
    "WorkflowType",
    "build_system_prompt",
    "classify_action",
    "parse_transcript_chunk",
    "repair_transcript",
]
