"""
Tool Registry - discovered tools and the tool -> owning server map

One registry per session. Tool names are unique within a registry; when a
second server advertises a name already registered, the later
registration replaces the earlier one and a warning names both servers.
"""

import logging
from typing import Any, Dict, List, Optional

from ..mcp.models import MCPTool
from ..mcp.protocol import MCPClientProtocol
from .models import Tool
from .schemas import normalize_schema

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Registry of tools available to the model

    Example:
        registry = ToolRegistry()
        await registry.discover_tools("gsuite", gsuite_client)
        registry.get_server_for_tool("send_email")  # "gsuite"
    """

    def __init__(self):
        self._tools: Dict[str, Tool] = {}

    async def discover_tools(self, server_name: str, client: MCPClientProtocol) -> List[Tool]:
        """
        List a connected server's tools, normalize and register them.

        Returns:
            The normalized tools, in the order the server reported them
        """
        mcp_tools = await client.list_tools()
        logger.info(f"[MCP:{server_name}] Found {len(mcp_tools)} tools")
        return self.register_tools(server_name, mcp_tools)

    def register_tools(self, server_name: str, mcp_tools: List[MCPTool]) -> List[Tool]:
        registered: List[Tool] = []
        for mcp_tool in mcp_tools:
            tool = Tool(
                name=mcp_tool.name,
                description=mcp_tool.description or "",
                input_schema=normalize_schema(server_name, mcp_tool.name, mcp_tool.input_schema),
                server_name=server_name,
            )
            self._register(tool)
            registered.append(tool)
        return registered

    def _register(self, tool: Tool) -> None:
        existing = self._tools.get(tool.name)
        if existing is not None and existing.server_name != tool.server_name:
            logger.warning(
                f"Tool name collision: '{tool.name}' from server '{tool.server_name}' "
                f"replaces the one from server '{existing.server_name}'"
            )
        # Re-insert so iteration order reflects the winning registration
        self._tools.pop(tool.name, None)
        self._tools[tool.name] = tool
        logger.debug(f"Registered tool {tool.name} -> {tool.server_name}")

    def get_tool(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def get_server_for_tool(self, name: str) -> Optional[str]:
        tool = self._tools.get(name)
        return tool.server_name if tool else None

    @property
    def tools(self) -> List[Tool]:
        return list(self._tools.values())

    @property
    def tool_names(self) -> List[str]:
        return list(self._tools.keys())

    def tool_schemas(self) -> List[Dict[str, Any]]:
        return [t.to_schema() for t in self._tools.values()]

    def missing_required_arguments(self, name: str, arguments: Dict[str, Any]) -> List[str]:
        """Required fields of *name*'s schema that are absent or None."""
        tool = self._tools.get(name)
        if tool is None:
            return []
        return [field for field in tool.required if arguments.get(field) is None]

    def clear(self) -> None:
        self._tools.clear()

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __repr__(self) -> str:
        return f"ToolRegistry(tools={len(self._tools)})"
