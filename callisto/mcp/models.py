"""
MCP data models - tool, call result and server configuration types
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class MCPTransportType(str, Enum):
    """How a tool server is reached"""
    STDIO = "stdio"                      # Local subprocess
    STREAMABLE_HTTP = "streamable_http"  # Remote HTTP streaming


@dataclass
class MCPServerConfig:
    """
    Connection settings for one tool server

    Attributes:
        name: Server name as declared in the tool-server config
        transport: Transport type
        command: Executable for stdio servers
        args: Arguments for stdio servers
        env: Extra environment for stdio servers
        url: Fully-built endpoint for remote servers (config and key attached)
        init_timeout: Seconds allowed for the protocol handshake
    """
    name: str
    transport: MCPTransportType = MCPTransportType.STDIO
    command: Optional[str] = None
    args: List[str] = field(default_factory=list)
    env: Dict[str, str] = field(default_factory=dict)
    url: Optional[str] = None
    init_timeout: float = 30.0


@dataclass
class MCPTool:
    """
    A tool as advertised by a server

    ``input_schema`` is whatever the server reported and may be missing
    or malformed; normalization happens in the tool registry.
    """
    name: str
    description: str = ""
    input_schema: Optional[Dict[str, Any]] = None
    server_name: str = ""


@dataclass
class MCPCallResult:
    """
    Raw outcome of a tools/call request

    Attributes:
        content: Server-reported content (string, list of content items, or structure)
        is_error: Whether the server flagged the result as an error
        error_message: Message when the call failed before producing content
    """
    content: Any = None
    is_error: bool = False
    error_message: Optional[str] = None
