"""
MCP Client - Base implementation for tool-server communication

Subclasses supply the transport (see ``MCPSDKClient``); the base class
owns connection state, tool discovery and error conversion.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .models import MCPServerConfig, MCPTool, MCPCallResult, MCPTransportType
from .protocol import MCPClientProtocol

logger = logging.getLogger(__name__)


class ToolServerConnectionError(ConnectionError):
    """A tool server could not be reached or initialized"""

    def __init__(self, server_name: str, message: str):
        super().__init__(f"MCP connection failed for {server_name}: {message}")
        self.server_name = server_name


class MCPClient(MCPClientProtocol):
    """
    MCP Client implementation

    Example:
        config = MCPServerConfig(
            name="gsuite",
            transport=MCPTransportType.STDIO,
            command="npx",
            args=["-y", "@gongrzhe/server-gmail-autoauth-mcp"],
        )
        client = MCPSDKClient(config)
        await client.connect()

        tools = await client.list_tools()
        result = await client.call_tool("list_emails", {"maxResults": 5})

        await client.disconnect()
    """

    def __init__(self, config: MCPServerConfig):
        self.config = config
        self._connected = False
        self._tools: List[MCPTool] = []

    @property
    def server_name(self) -> str:
        return self.config.name

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        """
        Connect to the tool server and discover its tools

        Raises:
            ToolServerConnectionError: If the transport could not be established
        """
        if self._connected:
            logger.warning(f"Already connected to {self.server_name}")
            return

        logger.info(f"Connecting to MCP server: {self.server_name} ({self.config.transport.value})")

        try:
            if self.config.transport == MCPTransportType.STDIO:
                await self._connect_stdio()
            elif self.config.transport == MCPTransportType.STREAMABLE_HTTP:
                await self._connect_streamable_http()
            else:
                raise ValueError(f"Unsupported transport: {self.config.transport}")

            self._connected = True
            logger.info(f"Connected to MCP server: {self.server_name}")

            await self._discover_tools()

        except Exception as e:
            logger.error(f"Failed to connect to MCP server {self.server_name}: {e}")
            raise ToolServerConnectionError(self.server_name, str(e)) from e

    async def _connect_stdio(self) -> None:
        raise NotImplementedError("Override _connect_stdio() or use MCPSDKClient.")

    async def _connect_streamable_http(self) -> None:
        raise NotImplementedError("Override _connect_streamable_http() or use MCPSDKClient.")

    async def _discover_tools(self) -> None:
        try:
            self._tools = await self._fetch_tools()
            logger.info(f"Discovered {len(self._tools)} tools from {self.server_name}")
        except Exception as e:
            logger.warning(f"Failed to discover tools from {self.server_name}: {e}")
            self._tools = []

    async def _fetch_tools(self) -> List[MCPTool]:
        return []

    async def disconnect(self) -> None:
        """Disconnect from the tool server"""
        if not self._connected:
            return

        logger.info(f"Disconnecting from MCP server: {self.server_name}")
        try:
            await self._close_transport()
        finally:
            self._connected = False
            self._tools = []

    async def _close_transport(self) -> None:
        pass

    async def list_tools(self) -> List[MCPTool]:
        if not self._connected:
            raise ConnectionError(f"Not connected to MCP server {self.server_name}")
        return list(self._tools)

    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> MCPCallResult:
        """
        Call a tool on the server

        Transport failures propagate; a tool the server never advertised
        yields an error result.
        """
        if not self._connected:
            raise ConnectionError(f"Not connected to MCP server {self.server_name}")

        if not any(t.name == name for t in self._tools):
            return MCPCallResult(
                content=None,
                is_error=True,
                error_message=f"Unknown tool: {name}",
            )

        return await self._execute_tool(name, arguments)

    async def _execute_tool(self, name: str, arguments: Dict[str, Any]) -> MCPCallResult:
        raise NotImplementedError("Override _execute_tool() for actual implementation")

    def __repr__(self) -> str:
        status = "connected" if self._connected else "disconnected"
        return f"{type(self).__name__}(server='{self.server_name}', status={status})"


ToolHandler = Callable[[str, Dict[str, Any]], Awaitable[Any]]


class MockMCPClient(MCPClient):
    """
    In-memory tool server for tests

    Every call is recorded in ``calls`` as ``(tool_name, arguments)``.
    A handler returning an ``MCPCallResult`` is passed through; any other
    return value becomes the result content.

    Example:
        client = MockMCPClient(
            name="exa",
            tools=[MCPTool(name="web_search_exa", server_name="exa")],
            tool_handler=handler,
        )
        await client.connect()
    """

    def __init__(
        self,
        name: str = "mock-server",
        tools: Optional[List[MCPTool]] = None,
        tool_handler: Optional[ToolHandler] = None,
        fail_connect: bool = False,
        fail_disconnect: bool = False,
    ):
        super().__init__(MCPServerConfig(name=name, transport=MCPTransportType.STDIO, command="mock"))
        self._mock_tools = tools or []
        self._tool_handler = tool_handler
        self._fail_connect = fail_connect
        self._fail_disconnect = fail_disconnect
        self.calls: List[tuple] = []

    async def _connect_stdio(self) -> None:
        if self._fail_connect:
            raise OSError(f"mock server {self.server_name} refused connection")

    async def _fetch_tools(self) -> List[MCPTool]:
        return list(self._mock_tools)

    async def _close_transport(self) -> None:
        if self._fail_disconnect:
            raise RuntimeError(f"mock server {self.server_name} failed to close")

    async def _execute_tool(self, name: str, arguments: Dict[str, Any]) -> MCPCallResult:
        self.calls.append((name, dict(arguments)))
        if self._tool_handler is None:
            return MCPCallResult(content=[{"type": "text", "text": f"Mock result for {name}"}])
        result = await self._tool_handler(name, arguments)
        if isinstance(result, MCPCallResult):
            return result
        return MCPCallResult(content=result)
