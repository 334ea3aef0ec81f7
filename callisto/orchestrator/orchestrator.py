"""
Callisto Orchestrator - meeting assistant core using a tool-use loop

The orchestrator is an explicit session object: it owns one conversation
history, one approval gate and one meeting context, and talks to the tool
servers through a dispatcher. Every public operation returns a string for
the human-facing boundary; model and tool failures never propagate.

Input routing (process_query):
    - empty input: a prompt to provide a query
    - y / yes / n / no: resolve the current pending action
    - ``SCREEN:`` / ``MIC:`` prefix: transcript path (workflows)
    - anything else: the tool-use loop

Tool-use loop:
    1. Send history + system prompt + registered tools to the model
    2. Dispatch each requested tool in order, folding results back
    3. Stop at the first sending tool: stage it and return its preview
    4. Finish when the model stops requesting tools, or after max_turns

Example:
    orchestrator = MeetingOrchestrator(
        llm_client=llm,
        registry=registry,
        dispatcher=dispatcher,
        gate=ApprovalGate(dispatcher),
        history=history,
    )
    reply = await orchestrator.process_query("Who is on my calendar today?")
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional

from ..constants import (
    CALENDAR_KEYWORDS,
    CALENDAR_LIST_TOOL,
    CALENDAR_LOOKAHEAD_DAYS,
    CALENDAR_MAX_RESULTS,
    CONFIRM_WORDS,
    REJECT_WORDS,
    TRANSCRIPT_CHANNELS,
)
from ..conversation.history import ConversationHistory
from ..conversation.models import ContentBlock, Message, ToolResultBlock, ToolUseBlock
from ..llm.base import LLMResponse
from ..llm.messages import response_to_blocks, to_openai_messages
from ..protocols import LLMClientProtocol
from ..tools.executor import ToolDispatcher, requires_confirmation
from ..tools.registry import ToolRegistry
from .approval import ApprovalGate, ApprovalOutcome, Decision
from .context_manager import ContextManager
from .meeting_context import MeetingContext
from .prompts import build_system_prompt
from .react_config import ReactLoopConfig, TokenUsage
from .transcript_repair import repair_transcript
from .workflows import Workflow, WorkflowStatus, WorkflowType, new_workflow_id

logger = logging.getLogger(__name__)

EMPTY_QUERY_MESSAGE = "Please provide a query."
NO_PENDING_ACTIONS = "No pending actions to confirm or reject."
TRANSCRIPT_PROCESSED = "Transcript chunk processed."
MAX_TURNS_SUFFIX = "\nMaximum tool use loops reached. Returning current response."
DECLINED_RESULT = "The user declined to send this message."


@dataclass
class TranscriptChunk:
    """One piece of live transcript text from a capture channel"""
    speaker: str
    content: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def parse_transcript_chunk(query: str) -> Optional[TranscriptChunk]:
    """Return a chunk if *query* starts with a known ``CHANNEL:`` prefix."""
    text = query.strip()
    for channel in TRANSCRIPT_CHANNELS:
        prefix = f"{channel}:"
        if text.startswith(prefix):
            return TranscriptChunk(speaker=channel, content=text[len(prefix):].strip())
    return None


def mentions_calendar(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in CALENDAR_KEYWORDS)


def _iso_utc(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _cut_after_first_send(blocks: List[ContentBlock]) -> List[ContentBlock]:
    """Drop every block after the first tool use that needs confirmation."""
    for index, block in enumerate(blocks):
        if isinstance(block, ToolUseBlock) and requires_confirmation(block.name):
            return blocks[: index + 1]
    return blocks


class MeetingOrchestrator:
    """
    One meeting-assistant session.

    Args:
        llm_client: Model client (LLMClientProtocol)
        registry: Tools available to the model
        dispatcher: Dispatch path to the tool servers
        gate: Approval gate for sending tools
        history: Conversation state manager
        connector: Owner of the tool-server connections, closed on cleanup()
        meeting_context: Accumulated meeting knowledge
        react_config: Loop configuration
        audit: Optional AuditLogger
    """

    def __init__(
        self,
        llm_client: LLMClientProtocol,
        registry: ToolRegistry,
        dispatcher: ToolDispatcher,
        gate: ApprovalGate,
        history: ConversationHistory,
        connector: Optional[Any] = None,
        meeting_context: Optional[MeetingContext] = None,
        react_config: Optional[ReactLoopConfig] = None,
        audit: Optional[Any] = None,
    ):
        self.llm_client = llm_client
        self.registry = registry
        self.dispatcher = dispatcher
        self.gate = gate
        self.history = history
        self.connector = connector
        self.meeting_context = meeting_context or MeetingContext()
        self.config = react_config or ReactLoopConfig()
        self.context_manager = ContextManager(self.config)
        self.audit = audit

    @property
    def connected_servers(self) -> List[str]:
        if self.connector is None:
            return []
        return list(self.connector.clients)

    @property
    def has_pending(self) -> bool:
        return self.gate.has_pending()

    # ==========================================================================
    # Entry point
    # ==========================================================================

    async def process_query(self, query: str) -> str:
        """Route one human input and return the reply text."""
        if not query or not query.strip():
            return EMPTY_QUERY_MESSAGE

        normalized = query.strip().lower()
        if normalized in CONFIRM_WORDS or normalized in REJECT_WORDS:
            return await self.handle_decision(normalized in CONFIRM_WORDS)

        chunk = parse_transcript_chunk(query)
        if chunk is not None:
            return await self.process_transcript_chunk(chunk)

        self.history.append(Message.user(query))
        return await self._run_loop()

    # ==========================================================================
    # Tool-use loop
    # ==========================================================================

    async def _run_loop(self) -> str:
        response_text = ""
        usage = TokenUsage()

        for turn in range(1, self.config.max_turns + 1):
            try:
                response = await self._call_model()
            except Exception as e:
                logger.error(f"[ReAct] Model call failed on turn {turn}: {e}")
                self.history.pop_dangling_assistant()
                self.history.persist()
                return f"Error: {e}"
            usage.add(response.usage)

            blocks = response_to_blocks(response)
            tool_uses = [b for b in blocks if isinstance(b, ToolUseBlock)]
            turn_parts: List[str] = [response.content] if response.content else []
            results: List[ToolResultBlock] = []

            for tool_use in tool_uses:
                if requires_confirmation(tool_use.name):
                    return self._stage_from_turn(turn, blocks, tool_use, results)

                result = await self._dispatch(tool_use)
                results.append(result)
                turn_parts.append(result.content)

            if blocks:
                self.history.append(Message.assistant(blocks))
            turn_text = "\n".join(turn_parts)
            if turn_text:
                response_text = f"{response_text}\n{turn_text}" if response_text else turn_text

            if not tool_uses:
                self.history.persist()
                self._audit_turn(turn, [], final_answer=True)
                logger.info(
                    f"[ReAct] Final answer after {turn} turn(s), "
                    f"tokens in={usage.input_tokens} out={usage.output_tokens}"
                )
                return response_text

            if results:
                self.history.append(Message.user(list(results)))
            self.history.persist()
            self._audit_turn(turn, [t.name for t in tool_uses], final_answer=False)

        logger.warning(
            f"[ReAct] Reached max turns ({self.config.max_turns}), "
            f"tokens in={usage.input_tokens} out={usage.output_tokens}"
        )
        return response_text + MAX_TURNS_SUFFIX

    async def _call_model(self) -> LLMResponse:
        messages = self.context_manager.trim_if_needed(repair_transcript(self.history.messages))
        system_prompt = build_system_prompt(self.meeting_context.summary())
        payload = to_openai_messages(system_prompt, messages)
        tools = self.registry.tools

        logger.info(f"[ReAct] Calling model: messages={len(payload)}, tools={len(tools)}")
        response = await self.llm_client.chat_completion(
            payload,
            tools=tools or None,
            config={"tool_choice": self.config.tool_choice, "max_tokens": self.config.max_tokens},
        )
        return response

    def _stage_from_turn(
        self,
        turn: int,
        blocks: List[ContentBlock],
        tool_use: ToolUseBlock,
        results: List[ToolResultBlock],
    ) -> str:
        """
        Stage a sending tool met mid-turn and stop the loop.

        The assistant turn is kept up to and including the sending tool use;
        any later tool uses of that turn are not executed. Results already
        produced in this turn travel with the pending action.
        """
        kept = blocks[: blocks.index(tool_use) + 1]
        self.history.append(Message.assistant(kept))
        self.history.persist()

        action = self.gate.stage(
            tool_use.name,
            tool_use.input,
            tool_use_id=tool_use.id,
            prior_results=results,
        )
        self._audit_turn(
            turn,
            [b.name for b in kept if isinstance(b, ToolUseBlock)],
            final_answer=False,
        )
        return action.preview()

    async def _dispatch(self, tool_use: ToolUseBlock) -> ToolResultBlock:
        result = await self.dispatcher.execute(tool_use.name, tool_use.input, tool_use.id)
        if not result.is_error:
            self.meeting_context.absorb(result.content)
        content = self.context_manager.truncate_tool_result(result.content)
        return ToolResultBlock(tool_use_id=tool_use.id, content=content, is_error=result.is_error)

    # ==========================================================================
    # Approval decisions
    # ==========================================================================

    async def handle_decision(self, confirmed: bool) -> str:
        """Resolve the current pending action with a bare yes/no."""
        action = self.gate.current
        if action is None:
            return NO_PENDING_ACTIONS

        if confirmed:
            outcome = await self.gate.confirm(action.id)
        else:
            outcome = self.gate.reject(action.id)

        if outcome.resolved:
            self._record_decision(outcome)
        return outcome.message

    def _record_decision(self, outcome: ApprovalOutcome) -> None:
        action = outcome.action
        if outcome.decision == Decision.CONFIRMED:
            decision_block = ToolResultBlock(
                tool_use_id=action.tool_use_id,
                content=outcome.result.content,
            )
        else:
            decision_block = ToolResultBlock(
                tool_use_id=action.tool_use_id,
                content=DECLINED_RESULT,
                is_error=True,
            )

        if action.tool_use_id:
            self.history.append(Message.user(list(action.prior_results) + [decision_block]))
            self.history.persist()

        if action.workflow_id:
            workflow = self.meeting_context.pending_workflows.pop(action.workflow_id, None)
            if workflow is not None:
                workflow.results.append(decision_block)
                if outcome.decision == Decision.CONFIRMED:
                    workflow.status = WorkflowStatus.COMPLETED
                else:
                    workflow.status = WorkflowStatus.CANCELLED
                logger.info(f"[Workflow] {workflow.id} {workflow.status.value}")

    # ==========================================================================
    # Transcript path
    # ==========================================================================

    async def process_transcript_chunk(self, chunk: TranscriptChunk) -> str:
        """
        Fold a transcript chunk into the conversation and run the workflows
        it implies. Sending workflows are staged; their previews follow the
        acknowledgement in the reply.
        """
        self.history.pop_dangling_assistant()
        self.history.append(Message.user(chunk.content))
        logger.info(f"[Transcript] {chunk.speaker}: {len(chunk.content)} chars")

        try:
            workflows = await self._identify_workflows(chunk)
        except Exception as e:
            logger.error(f"[Transcript] Workflow identification failed: {e}")
            self.history.pop_dangling_assistant()
            self.history.persist()
            return f"Error: {e}"

        previews: List[str] = []
        results: List[ToolResultBlock] = []
        for workflow in workflows:
            if workflow.requires_approval:
                previews.append(self._stage_workflow(workflow, results))
                results = []
                break
            results.extend(await self._execute_workflow(workflow))

        if results:
            self.history.append(Message.user(results))
        self.history.persist()

        return "\n\n".join([TRANSCRIPT_PROCESSED] + previews)

    async def _identify_workflows(self, chunk: TranscriptChunk) -> List[Workflow]:
        if mentions_calendar(chunk.content):
            now = datetime.now(timezone.utc)
            workflow_id = new_workflow_id(WorkflowType.CALENDAR)
            tool_use = ToolUseBlock(
                id=workflow_id,
                name=CALENDAR_LIST_TOOL,
                input={
                    "timeMin": _iso_utc(now),
                    "timeMax": _iso_utc(now + timedelta(days=CALENDAR_LOOKAHEAD_DAYS)),
                    "maxResults": CALENDAR_MAX_RESULTS,
                },
            )
            self.history.append(Message.assistant([tool_use]))
            return [Workflow(
                id=workflow_id,
                type=WorkflowType.CALENDAR,
                tool_calls=[tool_use],
                requires_approval=False,
            )]

        response = await self._call_model()
        blocks = _cut_after_first_send(response_to_blocks(response))
        workflows = [
            Workflow.from_tool_use(block)
            for block in blocks
            if isinstance(block, ToolUseBlock)
        ]
        if workflows:
            self.history.append(Message.assistant(blocks))
        logger.info(f"[Transcript] Identified {len(workflows)} workflow(s)")
        return workflows

    async def _execute_workflow(self, workflow: Workflow) -> List[ToolResultBlock]:
        workflow.status = WorkflowStatus.READY
        self.meeting_context.active_workflows[workflow.id] = workflow

        for tool_use in workflow.tool_calls:
            workflow.results.append(await self._dispatch(tool_use))

        failed = any(r.is_error for r in workflow.results)
        workflow.status = WorkflowStatus.FAILED if failed else WorkflowStatus.COMPLETED
        self.meeting_context.active_workflows.pop(workflow.id, None)
        logger.info(f"[Workflow] {workflow.id} ({workflow.type.value}) {workflow.status.value}")
        return list(workflow.results)

    def _stage_workflow(self, workflow: Workflow, prior_results: List[ToolResultBlock]) -> str:
        tool_use = workflow.tool_calls[0]
        action = self.gate.stage(
            tool_use.name,
            tool_use.input,
            tool_use_id=tool_use.id,
            workflow_id=workflow.id,
            prior_results=prior_results,
        )
        workflow.status = WorkflowStatus.PENDING_APPROVAL
        workflow.action_id = action.id
        self.meeting_context.pending_workflows[workflow.id] = workflow
        return action.preview()

    # ==========================================================================
    # Session lifecycle
    # ==========================================================================

    def clear_history(self) -> None:
        """Reseed the conversation with the system prompt."""
        self.history.reset()
        logger.info("Conversation history cleared")

    async def cleanup(self) -> None:
        """Close every tool-server connection and reseed history."""
        if self.connector is not None:
            await self.connector.close_all()
        self.history.reset()

    def _audit_turn(self, turn: int, tool_calls: List[str], final_answer: bool) -> None:
        if self.audit is not None:
            self.audit.log_react_turn(turn=turn, tool_calls=tool_calls, final_answer=final_answer)
