"""
Transport Connector - connect every configured tool server concurrently

All connection attempts are launched together and joined; a server that
fails is logged and left out, the rest proceed. Tool discovery results are
registered in configuration order once every attempt has settled, so the
registry's last-wins collision rule follows declaration order rather than
connection timing.
"""

import asyncio
import base64
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, TYPE_CHECKING

import httpx

from ..config.models import McpConfig, McpServerConfig, SetupConfig
from .models import MCPServerConfig, MCPTransportType
from .placeholders import PlaceholderResolver, substitute_placeholders
from .protocol import MCPClientProtocol

if TYPE_CHECKING:
    from ..tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

ClientFactory = Callable[[MCPServerConfig], MCPClientProtocol]


def _default_client_factory(config: MCPServerConfig) -> MCPClientProtocol:
    from .sdk_client import MCPSDKClient

    return MCPSDKClient(config)


def encode_config_param(config: Dict[str, Any]) -> str:
    """Base64 of the compact JSON encoding of *config*."""
    payload = json.dumps(config, separators=(",", ":"), ensure_ascii=False)
    return base64.b64encode(payload.encode("utf-8")).decode("ascii")


def build_remote_url(
    server: McpServerConfig,
    resolver: PlaceholderResolver,
    setup: Optional[SetupConfig] = None,
) -> str:
    """
    Build the streamable-HTTP endpoint for a remote server.

    The declared config is placeholder-substituted, then the profile's
    google, slack and user-context fields are merged over it before it is
    base64-encoded into the ``config`` query parameter. The API key is
    attached as ``api_key``.
    """
    smithery = server.smithery
    if smithery is None:
        raise ValueError(f"Server {server.name} is not a remote server")

    config = substitute_placeholders(smithery.config, resolver)
    if setup is not None:
        config = {
            **config,
            **setup.google.to_dict(),
            **setup.slack.to_dict(),
            **setup.user_context.to_dict(),
        }
    api_key = substitute_placeholders(smithery.api_key, resolver)

    url = httpx.URL(smithery.url).copy_merge_params({
        "config": encode_config_param(config),
        "api_key": api_key,
    })
    return str(url)


@dataclass
class ConnectionOutcome:
    """Result of one connection attempt"""
    server: str
    transport: str
    success: bool
    tool_count: int = 0
    error: Optional[str] = None


class MCPConnector:
    """
    Owns the live tool-server connections for one session.

    Example:
        connector = MCPConnector(registry, setup=setup_config)
        outcomes = await connector.connect_all(mcp_config)
        client = connector.get_client("gsuite")
        await connector.close_all()
    """

    def __init__(
        self,
        registry: "ToolRegistry",
        setup: Optional[SetupConfig] = None,
        resolver: Optional[PlaceholderResolver] = None,
        client_factory: Optional[ClientFactory] = None,
        audit: Optional[Any] = None,
    ):
        self.registry = registry
        self.setup = setup
        self.resolver = resolver or PlaceholderResolver(setup=setup)
        self.client_factory = client_factory or _default_client_factory
        self.audit = audit
        self._clients: Dict[str, MCPClientProtocol] = {}

    @property
    def clients(self) -> Dict[str, MCPClientProtocol]:
        return dict(self._clients)

    def get_client(self, server_name: str) -> Optional[MCPClientProtocol]:
        return self._clients.get(server_name)

    def build_client_config(self, server: McpServerConfig) -> MCPServerConfig:
        """
        Translate a declared server into transport settings.

        Raises:
            ValueError: If a stdio server has no command or args.
        """
        if server.is_remote:
            return MCPServerConfig(
                name=server.name,
                transport=MCPTransportType.STREAMABLE_HTTP,
                url=build_remote_url(server, self.resolver, self.setup),
            )
        if not server.command or server.args is None:
            raise ValueError(f"Missing command or args for server {server.name}")
        return MCPServerConfig(
            name=server.name,
            transport=MCPTransportType.STDIO,
            command=server.command,
            args=list(server.args),
            env=substitute_placeholders(dict(server.env), self.resolver),
        )

    async def _connect_one(self, server: McpServerConfig) -> Tuple[Optional[MCPClientProtocol], Optional[str]]:
        logger.info(f"[MCP:{server.name}] Initializing connection...")
        try:
            client = self.client_factory(self.build_client_config(server))
            await client.connect()
            return client, None
        except Exception as e:
            logger.error(f"[MCP:{server.name}] Connection failed: {e}")
            return None, str(e)

    async def connect_all(self, config: McpConfig) -> List[ConnectionOutcome]:
        """
        Connect to every server concurrently and register their tools.

        Never raises because of an individual server; a server that fails
        contributes no tools.
        """
        logger.info(f"Starting MCP server connections ({len(config.servers)} configured)")
        attempts = await asyncio.gather(*(self._connect_one(s) for s in config.servers))

        outcomes: List[ConnectionOutcome] = []
        for server, (client, error) in zip(config.servers, attempts):
            transport = "streamable_http" if server.is_remote else "stdio"
            if client is None:
                outcome = ConnectionOutcome(server.name, transport, False, error=error)
                self._record(outcome)
                outcomes.append(outcome)
                continue

            self._clients[server.name] = client
            try:
                tools = await self.registry.discover_tools(server.name, client)
            except Exception as e:
                logger.error(f"[MCP:{server.name}] Tool discovery failed: {e}")
                tools = []
            outcome = ConnectionOutcome(server.name, transport, True, tool_count=len(tools))
            self._record(outcome)
            outcomes.append(outcome)

        connected = [o.server for o in outcomes if o.success]
        logger.info(
            f"Connected to {len(connected)}/{len(config.servers)} servers "
            f"({', '.join(connected) or 'none'}); {len(self.registry)} tools available"
        )
        return outcomes

    def _record(self, outcome: ConnectionOutcome) -> None:
        if self.audit is not None:
            self.audit.log_server_connection(
                server=outcome.server,
                transport=outcome.transport,
                success=outcome.success,
                tool_count=outcome.tool_count,
                error=outcome.error,
            )

    async def close_all(self) -> None:
        """Close every connection. One failing close does not block the others."""
        clients = list(self._clients.items())
        self._clients.clear()

        async def _close(name: str, client: MCPClientProtocol) -> None:
            try:
                await client.disconnect()
                logger.info(f"[MCP:{name}] Closed")
            except Exception as e:
                logger.error(f"[MCP:{name}] Error during close: {e}")

        await asyncio.gather(*(_close(name, client) for name, client in clients))

    def __repr__(self) -> str:
        return f"MCPConnector(servers={list(self._clients)})"
