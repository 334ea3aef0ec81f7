"""Configuration loading: tool servers, installation profile and runtime settings"""

from .models import (
    McpConfig,
    McpServerConfig,
    SmitheryConfig,
    SetupConfig,
    UserContext,
    SlackConfig,
    GoogleConfig,
)
from .loader import (
    ConfigurationError,
    load_mcp_config,
    load_setup_config,
    parse_mcp_config,
    parse_setup_config,
    resolve_path,
)
from .settings import Settings, missing_env_vars

__all__ = [
    "McpConfig",
    "McpServerConfig",
    "SmitheryConfig",
    "SetupConfig",
    "UserContext",
    "SlackConfig",
    "GoogleConfig",
    "ConfigurationError",
    "load_mcp_config",
    "load_setup_config",
    "parse_mcp_config",
    "parse_setup_config",
    "resolve_path",
    "Settings",
    "missing_env_vars",
]
