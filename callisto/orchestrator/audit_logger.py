"""
Structured audit logging for orchestrator decisions.

Produces JSON log entries via Python's standard logging module under the
``callisto.audit`` logger name. Each entry includes a timestamp, the
event_type and event-specific fields.

Usage::

    audit = AuditLogger()
    audit.log_approval_decision(
        action_id="email-1718000000000-1",
        tool_name="send_email",
        kind="email",
        target="ana@example.com",
        decision="confirmed",
    )
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

_audit_logger = logging.getLogger("callisto.audit")


class AuditLogger:
    """Structured audit logger for connections, tool calls and approvals."""

    def __init__(self, session_id: Optional[str] = None) -> None:
        self._session_id = session_id

    def _emit(self, event_type: str, fields: Dict[str, Any]) -> None:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type,
        }
        if self._session_id:
            entry["session_id"] = self._session_id
        entry.update(fields)
        _audit_logger.info(json.dumps(entry, default=str))

    def log_server_connection(
        self,
        server: str,
        transport: str,
        success: bool,
        tool_count: int = 0,
        error: Optional[str] = None,
    ) -> None:
        fields: Dict[str, Any] = {
            "server": server,
            "transport": transport,
            "success": success,
            "tool_count": tool_count,
        }
        if error is not None:
            fields["error"] = error
        self._emit("server_connection", fields)

    def log_tool_execution(
        self,
        tool_name: str,
        server_name: str,
        args_summary: Dict[str, Any],
        success: bool,
        duration_ms: int,
        error: Optional[str] = None,
    ) -> None:
        """Log a tool execution result."""
        fields: Dict[str, Any] = {
            "tool_name": tool_name,
            "server": server_name,
            "args_summary": args_summary,
            "success": success,
            "duration_ms": duration_ms,
        }
        if error is not None:
            fields["error"] = error
        self._emit("tool_execution", fields)

    def log_approval_decision(
        self,
        action_id: str,
        tool_name: str,
        kind: str,
        target: str,
        decision: str,
    ) -> None:
        """Log staging, confirmation or rejection of a sending action."""
        self._emit("approval_decision", {
            "action_id": action_id,
            "tool_name": tool_name,
            "kind": kind,
            "target": target,
            "decision": decision,
        })

    def log_react_turn(
        self,
        turn: int,
        tool_calls: List[str],
        final_answer: bool,
    ) -> None:
        """Log a loop turn summary."""
        self._emit("react_turn", {
            "turn": turn,
            "tool_calls": tool_calls,
            "tool_calls_count": len(tool_calls),
            "final_answer": final_answer,
        })
