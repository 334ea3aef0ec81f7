"""
MCP client protocol - the interface the connector and dispatcher rely on
"""

from typing import Any, Dict, List, Protocol, runtime_checkable

from .models import MCPTool, MCPCallResult


@runtime_checkable
class MCPClientProtocol(Protocol):
    """
    Abstract interface for a connection to one tool server

    Implement this protocol to plug a custom transport into the connector.
    """

    @property
    def server_name(self) -> str:
        ...

    @property
    def is_connected(self) -> bool:
        ...

    async def connect(self) -> None:
        """Open the connection and perform the protocol handshake"""
        ...

    async def disconnect(self) -> None:
        """Close the connection. Safe to call when not connected."""
        ...

    async def list_tools(self) -> List[MCPTool]:
        """Tools advertised by the server"""
        ...

    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> MCPCallResult:
        """Invoke a tool by its server-local name"""
        ...
