"""
Workflow models for the transcript path.

A workflow wraps the tool call(s) identified from one transcript chunk,
with an approval flag and a lifecycle status:

    staging -> pending_approval | ready -> completed | failed | cancelled
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from ..constants import SENDING_TOOLS
from ..conversation.models import ToolResultBlock, ToolUseBlock


class WorkflowType(str, Enum):
    SEARCH = "search"
    EMAIL = "email"
    CALENDAR = "calendar"
    SLACK = "slack"
    GENERAL = "general"


class WorkflowStatus(str, Enum):
    STAGING = "staging"
    PENDING_APPROVAL = "pending_approval"
    READY = "ready"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


def workflow_type_for_tool(tool_name: str) -> WorkflowType:
    """Map a tool name onto the workflow category it belongs to."""
    name = tool_name.lower()
    if name.startswith(("web_search", "company_research")):
        return WorkflowType.SEARCH
    if "email" in name:
        return WorkflowType.EMAIL
    if "event" in name or "calendar" in name:
        return WorkflowType.CALENDAR
    if "slack" in name or "message" in name:
        return WorkflowType.SLACK
    return WorkflowType.GENERAL


def new_workflow_id(workflow_type: WorkflowType) -> str:
    return f"{workflow_type.value}-{int(time.time() * 1000)}"


@dataclass
class Workflow:
    """
    One unit of work identified from a transcript chunk.

    Attributes:
        id: ``{type}-{timestamp_ms}`` for synthetic workflows, else the
            tool-use id the model assigned
        type: Workflow category
        tool_calls: Tool uses this workflow runs, in order
        requires_approval: Whether any tool call is a sending tool
        status: Lifecycle status
        results: Tool results collected while executing
        action_id: Approval-gate action id while pending approval
    """
    id: str
    type: WorkflowType
    tool_calls: List[ToolUseBlock] = field(default_factory=list)
    requires_approval: bool = False
    status: WorkflowStatus = WorkflowStatus.STAGING
    results: List[ToolResultBlock] = field(default_factory=list)
    action_id: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_tool_use(cls, tool_use: ToolUseBlock) -> "Workflow":
        return cls(
            id=tool_use.id,
            type=workflow_type_for_tool(tool_use.name),
            tool_calls=[tool_use],
            requires_approval=tool_use.name in SENDING_TOOLS,
        )
