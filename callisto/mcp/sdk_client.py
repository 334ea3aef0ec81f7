"""
MCP SDK Client - stdio and streamable-HTTP transports via the official SDK

The SDK's transports are async context managers backed by anyio task
groups, which must be exited by the task that entered them. Each client
therefore keeps its session open inside a dedicated runner task that
waits on a stop event; ``disconnect()`` signals the event and awaits the
runner instead of closing the contexts itself.
"""

import asyncio
import logging
import os
from contextlib import AsyncExitStack
from typing import Any, Callable, Dict, List, Optional

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client
from mcp.client.streamable_http import streamablehttp_client

from .client import MCPClient
from .models import MCPServerConfig, MCPTool, MCPCallResult

logger = logging.getLogger(__name__)

# Seconds to wait for the runner task to unwind before cancelling it
SHUTDOWN_TIMEOUT = 5.0


class MCPSDKClient(MCPClient):
    """
    Tool-server client using ``mcp.ClientSession``

    Example:
        client = MCPSDKClient(MCPServerConfig(
            name="exa",
            transport=MCPTransportType.STREAMABLE_HTTP,
            url="https://server.smithery.ai/exa/mcp?config=...&api_key=...",
        ))
        await client.connect()
    """

    def __init__(self, config: MCPServerConfig):
        super().__init__(config)
        self._session: Optional[ClientSession] = None
        self._runner: Optional[asyncio.Task] = None
        self._ready: Optional[asyncio.Future] = None
        self._stop: Optional[asyncio.Event] = None

    # ------------------------------------------------------------------
    # Transports
    # ------------------------------------------------------------------

    async def _connect_stdio(self) -> None:
        if not self.config.command:
            raise ValueError(f"Server {self.server_name} has no command configured")

        env = None
        if self.config.env:
            env = {**os.environ, **self.config.env}
        params = StdioServerParameters(
            command=self.config.command,
            args=list(self.config.args),
            env=env,
        )
        await self._start_session(lambda: stdio_client(params))

    async def _connect_streamable_http(self) -> None:
        if not self.config.url:
            raise ValueError(f"Server {self.server_name} has no url configured")

        url = self.config.url
        await self._start_session(lambda: streamablehttp_client(url))

    # ------------------------------------------------------------------
    # Session runner
    # ------------------------------------------------------------------

    async def _start_session(self, open_transport: Callable[[], Any]) -> None:
        loop = asyncio.get_running_loop()
        self._ready = loop.create_future()
        self._stop = asyncio.Event()
        self._runner = asyncio.create_task(
            self._run_session(open_transport),
            name=f"mcp_{self.server_name}",
        )
        try:
            await asyncio.wait_for(self._ready, timeout=self.config.init_timeout)
        except asyncio.TimeoutError:
            await self._stop_runner()
            raise TimeoutError(
                f"{self.server_name} did not initialize within {self.config.init_timeout}s"
            )
        except Exception:
            await self._stop_runner()
            raise

    async def _run_session(self, open_transport: Callable[[], Any]) -> None:
        """Hold the transport and session open until the stop event is set."""
        try:
            async with AsyncExitStack() as stack:
                streams = await stack.enter_async_context(open_transport())
                read_stream, write_stream = streams[0], streams[1]
                session = await stack.enter_async_context(ClientSession(read_stream, write_stream))
                await session.initialize()
                self._session = session
                if not self._ready.done():
                    self._ready.set_result(None)
                await self._stop.wait()
        except Exception as e:
            if not self._ready.done():
                self._ready.set_exception(e)
            else:
                logger.warning(f"[MCP:{self.server_name}] session ended with error: {e}")
        finally:
            self._session = None

    async def _stop_runner(self) -> None:
        if self._stop is not None:
            self._stop.set()
        runner = self._runner
        self._runner = None
        if runner is None or runner.done():
            return
        try:
            await asyncio.wait_for(runner, timeout=SHUTDOWN_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning(f"[MCP:{self.server_name}] runner did not stop in time, cancelled")

    async def _close_transport(self) -> None:
        await self._stop_runner()

    # ------------------------------------------------------------------
    # Protocol operations
    # ------------------------------------------------------------------

    def _require_session(self) -> ClientSession:
        if self._session is None:
            raise ConnectionError(f"Session for {self.server_name} is closed")
        return self._session

    async def _fetch_tools(self) -> List[MCPTool]:
        result = await self._require_session().list_tools()
        return [
            MCPTool(
                name=tool.name,
                description=tool.description or "",
                input_schema=tool.inputSchema,
                server_name=self.server_name,
            )
            for tool in result.tools
        ]

    async def _execute_tool(self, name: str, arguments: Dict[str, Any]) -> MCPCallResult:
        logger.debug(f"[MCP:{self.server_name}] call_tool {name} args={arguments}")
        result = await self._require_session().call_tool(name, arguments)
        content = [
            item.model_dump(mode="json", exclude_none=True)
            for item in result.content
        ]
        return MCPCallResult(content=content, is_error=bool(result.isError))
