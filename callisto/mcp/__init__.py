"""
Tool-server (MCP) integration: client abstraction, transports,
placeholder resolution and the concurrent connector.
"""

from .models import MCPServerConfig, MCPTool, MCPCallResult, MCPTransportType
from .protocol import MCPClientProtocol
from .client import MCPClient, MockMCPClient, ToolServerConnectionError
from .placeholders import (
    CredentialFieldRef,
    EnvVarRef,
    PlaceholderError,
    PlaceholderResolver,
    parse_placeholder,
    substitute_placeholders,
)
from .connector import ConnectionOutcome, MCPConnector, build_remote_url, encode_config_param

__all__ = [
    "MCPServerConfig",
    "MCPTool",
    "MCPCallResult",
    "MCPTransportType",
    "MCPClientProtocol",
    "MCPClient",
    "MockMCPClient",
    "ToolServerConnectionError",
    "CredentialFieldRef",
    "EnvVarRef",
    "PlaceholderError",
    "PlaceholderResolver",
    "parse_placeholder",
    "substitute_placeholders",
    "ConnectionOutcome",
    "MCPConnector",
    "build_remote_url",
    "encode_config_param",
]
