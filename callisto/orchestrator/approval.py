"""
Approval Gate - human-in-the-loop staging of sending actions

Sending-type tool calls (email, chat messages, notifications) are never
dispatched directly. They are staged here as PendingActions, previewed to
the user and executed only on an explicit confirmation.

All pending actions live in one ordered queue. The most recently staged
unresolved action is "current" and is what a bare y/n resolves.
"""

import itertools
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from ..constants import EMAIL_SENDING_TOOLS
from ..conversation.models import ToolResultBlock
from ..tools.executor import ToolDispatcher
from ..tools.models import ToolResult

logger = logging.getLogger(__name__)

NO_SUCH_PENDING = "No such pending message found."


class ActionKind(str, Enum):
    EMAIL = "email"
    CHAT_MESSAGE = "chat-message"


class Decision(str, Enum):
    STAGED = "staged"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    FAILED = "failed"


def classify_action(tool_name: str) -> ActionKind:
    if tool_name in EMAIL_SENDING_TOOLS or "email" in tool_name:
        return ActionKind.EMAIL
    return ActionKind.CHAT_MESSAGE


@dataclass
class PendingAction:
    """
    A staged, not-yet-executed sending tool invocation

    Attributes:
        id: Queue key, ``{kind}-{timestamp_ms}-{n}``
        kind: email or chat-message
        tool_name: Sending tool to dispatch on confirmation
        arguments: Tool arguments exactly as requested by the model
        target: Recipient (email) or channel (chat)
        subject: Email subject, if any
        body: Rendered message text
        tool_use_id: Id of the model's tool_use block
        prior_results: Results produced earlier in the same model turn
        workflow_id: Owning workflow, when staged from a transcript
    """
    id: str
    kind: ActionKind
    tool_name: str
    arguments: Dict[str, Any]
    target: str
    subject: str = ""
    body: str = ""
    tool_use_id: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    prior_results: List[ToolResultBlock] = field(default_factory=list)
    workflow_id: Optional[str] = None

    def preview(self) -> str:
        """Human-readable staging prompt."""
        if self.kind == ActionKind.EMAIL:
            lines = ["Email Staged:", f"To: {self.target}"]
        else:
            lines = ["Slack Message Staged:", f"Channel: {self.target}"]
        if self.subject:
            lines.append(f"Subject: {self.subject}")
        lines.append(f"Message: {self.body}")
        lines.append("")
        lines.append("Send message? (Y/N)")
        return "\n".join(lines)

    def describe(self) -> str:
        if self.kind == ActionKind.EMAIL:
            return f"Email to {self.target}"
        return f"Slack message to {self.target}"


@dataclass
class ApprovalOutcome:
    """
    Result of resolving (or failing to resolve) a pending action

    Attributes:
        message: Text for the human
        action: The action addressed, None if nothing matched
        decision: What happened to it
        result: Dispatch result on confirmation
    """
    message: str
    action: Optional[PendingAction] = None
    decision: Optional[Decision] = None
    result: Optional[ToolResult] = None

    @property
    def resolved(self) -> bool:
        return self.decision in (Decision.CONFIRMED, Decision.REJECTED)


class ApprovalGate:
    """
    Pending-action queue with a single "current" pointer

    Example:
        gate = ApprovalGate(dispatcher)
        action = gate.stage("send_email", {"to": "a@b.com", "subject": "Hi", "body": "..."})
        print(action.preview())
        outcome = await gate.confirm()
    """

    def __init__(self, dispatcher: ToolDispatcher, audit: Optional[Any] = None):
        self.dispatcher = dispatcher
        self.audit = audit
        self._pending: Dict[str, PendingAction] = {}
        self._current_id: Optional[str] = None
        self._counter = itertools.count(1)

    @property
    def pending(self) -> List[PendingAction]:
        return list(self._pending.values())

    @property
    def current(self) -> Optional[PendingAction]:
        if self._current_id is None:
            return None
        return self._pending.get(self._current_id)

    def has_pending(self) -> bool:
        return bool(self._pending)

    def get(self, action_id: str) -> Optional[PendingAction]:
        return self._pending.get(action_id)

    def stage(
        self,
        tool_name: str,
        arguments: Dict[str, Any],
        tool_use_id: str = "",
        prior_results: Optional[List[ToolResultBlock]] = None,
        workflow_id: Optional[str] = None,
    ) -> PendingAction:
        """Queue a sending action and make it current."""
        kind = classify_action(tool_name)
        if kind == ActionKind.EMAIL:
            target = str(arguments.get("to") or "")
            body = str(arguments.get("body") or "")
        else:
            target = str(arguments.get("channel") or arguments.get("channel_id") or "")
            body = str(arguments.get("message") or arguments.get("text") or "")

        action = PendingAction(
            id=f"{kind.value}-{int(time.time() * 1000)}-{next(self._counter)}",
            kind=kind,
            tool_name=tool_name,
            arguments=dict(arguments),
            target=target,
            subject=str(arguments.get("subject") or ""),
            body=body,
            tool_use_id=tool_use_id,
            prior_results=list(prior_results or []),
            workflow_id=workflow_id,
        )
        self._pending[action.id] = action
        self._current_id = action.id
        logger.info(f"[Approval] Staged {action.id} ({tool_name} -> {target})")
        self._audit(action, Decision.STAGED)
        return action

    def _resolve_target(self, action_id: Optional[str]) -> Optional[PendingAction]:
        if action_id is None:
            return self.current
        return self._pending.get(action_id)

    def _remove(self, action: PendingAction) -> None:
        self._pending.pop(action.id, None)
        if self._current_id == action.id:
            self._current_id = next(reversed(list(self._pending)), None) if self._pending else None

    async def confirm(self, action_id: Optional[str] = None) -> ApprovalOutcome:
        """
        Execute a pending action through the dispatcher.

        A failed dispatch leaves the action pending so it can be retried
        or rejected.
        """
        action = self._resolve_target(action_id)
        if action is None:
            return ApprovalOutcome(message=NO_SUCH_PENDING)

        result = await self.dispatcher.execute(
            action.tool_name,
            action.arguments,
            tool_use_id=action.tool_use_id or f"confirm-{action.id}",
            confirmed=True,
        )
        if result.is_error:
            logger.warning(f"[Approval] Sending {action.id} failed: {result.content}")
            self._audit(action, Decision.FAILED)
            return ApprovalOutcome(
                message=f"Failed to send message: {result.content}",
                action=action,
                decision=Decision.FAILED,
                result=result,
            )

        self._remove(action)
        self._audit(action, Decision.CONFIRMED)
        return ApprovalOutcome(
            message=f"Message sent successfully:\n{result.content}",
            action=action,
            decision=Decision.CONFIRMED,
            result=result,
        )

    def reject(self, action_id: Optional[str] = None) -> ApprovalOutcome:
        """Discard a pending action without side effects."""
        action = self._resolve_target(action_id)
        if action is None:
            return ApprovalOutcome(message=NO_SUCH_PENDING)

        self._remove(action)
        self._audit(action, Decision.REJECTED)
        return ApprovalOutcome(
            message=f"Message cancelled: {action.describe()}",
            action=action,
            decision=Decision.REJECTED,
        )

    def clear(self) -> None:
        self._pending.clear()
        self._current_id = None

    def _audit(self, action: PendingAction, decision: Decision) -> None:
        if self.audit is not None:
            self.audit.log_approval_decision(
                action_id=action.id,
                tool_name=action.tool_name,
                kind=action.kind.value,
                target=action.target,
                decision=decision.value,
            )
