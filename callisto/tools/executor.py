"""
Tool Dispatcher - route a tool call to its owning server

Every failure is converted into an error-flagged ToolResult so the model
can react to it; nothing here raises to the caller.

Note:
    Sending-type tools are refused unless the call is marked as
    confirmed. Only the approval gate passes ``confirmed=True``.
"""

import asyncio
import json
import logging
import time
from typing import Any, Callable, Dict, Optional

from ..constants import SENDING_TOOLS, TOOL_EXECUTION_TIMEOUT
from ..mcp.protocol import MCPClientProtocol
from .models import ToolResult
from .registry import ToolRegistry
from .schemas import adapt_arguments

logger = logging.getLogger(__name__)

ClientLookup = Callable[[str], Optional[MCPClientProtocol]]


def canonicalize_content(content: Any) -> str:
    """
    Convert server content into the string handed to the model.

    Strings pass through; a list made only of text items becomes the texts
    joined by newlines; anything else is pretty-printed JSON.
    """
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list) and content and all(
        isinstance(item, dict) and item.get("type") == "text" and isinstance(item.get("text"), str)
        for item in content
    ):
        return "\n".join(item["text"] for item in content)
    return json.dumps(content, indent=2, ensure_ascii=False, default=str)


def requires_confirmation(tool_name: str) -> bool:
    return tool_name in SENDING_TOOLS


class ToolDispatcher:
    """
    Dispatches tool calls through the live tool-server connections

    Usage:
        dispatcher = ToolDispatcher(registry, connector.get_client)
        result = await dispatcher.execute("list-events", {"maxResults": 5}, "toolu_01")
    """

    def __init__(
        self,
        registry: ToolRegistry,
        client_lookup: ClientLookup,
        timeout: float = TOOL_EXECUTION_TIMEOUT,
        audit: Optional[Any] = None,
    ):
        self.registry = registry
        self.client_lookup = client_lookup
        self.timeout = timeout
        self.audit = audit

    async def execute(
        self,
        tool_name: str,
        arguments: Dict[str, Any],
        tool_use_id: str = "",
        confirmed: bool = False,
    ) -> ToolResult:
        tool = self.registry.get_tool(tool_name)
        if tool is None:
            return self._error(tool_use_id, f"Error: Tool {tool_name} not found.")

        if requires_confirmation(tool_name) and not confirmed:
            logger.warning(f"[Tool] Refusing unconfirmed call to sending tool {tool_name}")
            return self._error(tool_use_id, f"Error: Tool {tool_name} requires user confirmation.")

        client = self.client_lookup(tool.server_name)
        if client is None:
            return self._error(tool_use_id, f"Error: Client for server {tool.server_name} not found.")

        arguments = arguments if isinstance(arguments, dict) else {}
        missing = self.registry.missing_required_arguments(tool_name, arguments)
        if missing:
            return self._error(
                tool_use_id,
                f"Error: Missing required arguments for {tool_name}: {', '.join(missing)}",
            )

        call_args = adapt_arguments(tool.server_name, tool_name, arguments)
        logger.info(f"[Tool] Executing {tool_name} on {tool.server_name}")
        start = time.monotonic()
        try:
            result = await asyncio.wait_for(
                client.call_tool(tool_name, call_args),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            message = f"Error executing tool {tool_name}: timed out after {self.timeout}s"
            self._audit(tool_name, tool.server_name, arguments, False, start, message)
            return self._error(tool_use_id, message)
        except Exception as e:
            message = f"Error executing tool {tool_name}: {e}"
            logger.error(f"[Tool] {message}")
            self._audit(tool_name, tool.server_name, arguments, False, start, str(e))
            return self._error(tool_use_id, message)

        content = result.content
        if content is None and result.error_message:
            content = result.error_message
        text = canonicalize_content(content)

        self._audit(
            tool_name, tool.server_name, arguments, not result.is_error, start,
            text if result.is_error else None,
        )
        return ToolResult(
            tool_use_id=tool_use_id,
            content=text,
            is_error=bool(result.is_error),
            data=content if not isinstance(content, str) else None,
        )

    @staticmethod
    def _error(tool_use_id: str, message: str) -> ToolResult:
        return ToolResult(tool_use_id=tool_use_id, content=message, is_error=True)

    def _audit(
        self,
        tool_name: str,
        server_name: str,
        arguments: Dict[str, Any],
        success: bool,
        start: float,
        error: Optional[str],
    ) -> None:
        if self.audit is None:
            return
        self.audit.log_tool_execution(
            tool_name=tool_name,
            server_name=server_name,
            args_summary={k: type(v).__name__ for k, v in arguments.items()},
            success=success,
            duration_ms=int((time.monotonic() - start) * 1000),
            error=error,
        )
