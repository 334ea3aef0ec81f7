"""
Config loading and validation for ``mcp-config.json`` and ``setup-config.json``.

Both files are parsed with ``yaml.safe_load``, so YAML renditions of the
same documents are accepted too. Any problem raises ConfigurationError,
which the CLI turns into a non-zero exit.
"""

import logging
import os
from typing import Any

import yaml

from .models import McpConfig, McpServerConfig, SetupConfig, SmitheryConfig

logger = logging.getLogger(__name__)

MCP_CONFIG_EXAMPLE = """{
  "mcpServers": {
    "serverName1": { "command": "...", "args": [...] },
    "serverName2": {
      "smithery": { "url": "...", "apiKey": "...", "config": {...} }
    }
  }
}"""


class ConfigurationError(ValueError):
    """Missing or malformed configuration. Fatal at startup."""


def _read_document(path: str, what: str) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"{what} not found at '{path}'")
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read or parse {what} at '{path}': {e}") from e


def parse_mcp_config(data: Any) -> McpConfig:
    """
    Validate and convert a raw ``mcpServers`` document.

    Each entry must be either a complete stdio definition (``command`` plus an
    ``args`` list) or a complete remote definition (``smithery`` with ``url``,
    ``apiKey`` and ``config``).
    """
    if not isinstance(data, dict) or not isinstance(data.get("mcpServers"), dict) or not data["mcpServers"]:
        raise ConfigurationError(
            "Invalid configuration: 'mcpServers' object missing or empty.\n"
            f"Expected structure:\n{MCP_CONFIG_EXAMPLE}"
        )

    servers = []
    for name, entry in data["mcpServers"].items():
        if not isinstance(entry, dict):
            raise ConfigurationError(f"Invalid config for server '{name}': expected an object")

        smithery = entry.get("smithery")
        if smithery is not None:
            if (
                not isinstance(smithery, dict)
                or not smithery.get("url")
                or not smithery.get("apiKey")
                or not smithery.get("config")
            ):
                raise ConfigurationError(
                    f"Invalid Smithery config for server '{name}': "
                    "missing required fields (url, apiKey, or config)"
                )
            if not isinstance(smithery["config"], dict):
                raise ConfigurationError(f"Invalid Smithery config for server '{name}': 'config' must be an object")
            servers.append(McpServerConfig(
                name=name,
                smithery=SmitheryConfig(
                    url=str(smithery["url"]),
                    api_key=str(smithery["apiKey"]),
                    config=dict(smithery["config"]),
                ),
            ))
            continue

        command = entry.get("command")
        args = entry.get("args")
        if not command or not isinstance(command, str) or not isinstance(args, list):
            raise ConfigurationError(f"Invalid stdio config for server '{name}': missing 'command' or 'args'")
        env = entry.get("env") or {}
        if not isinstance(env, dict):
            raise ConfigurationError(f"Invalid stdio config for server '{name}': 'env' must be an object")
        servers.append(McpServerConfig(
            name=name,
            command=command,
            args=[str(a) for a in args],
            env={str(k): str(v) for k, v in env.items()},
        ))

    logger.info(f"Loaded {len(servers)} tool server definitions: {', '.join(s.name for s in servers)}")
    return McpConfig(servers=servers)


def parse_setup_config(data: Any) -> SetupConfig:
    if not isinstance(data, dict):
        raise ConfigurationError("Invalid setup configuration: expected an object")
    google = data.get("google")
    if not isinstance(google, dict):
        raise ConfigurationError("Invalid setup configuration: missing 'google' section")
    for key in ("slack", "userContext"):
        if key in data and not isinstance(data[key], dict):
            raise ConfigurationError(f"Invalid setup configuration: '{key}' must be an object")
    if "calendars" in data and not isinstance(data["calendars"], list):
        raise ConfigurationError("Invalid setup configuration: 'calendars' must be a list")
    return SetupConfig.from_dict(data)


def load_mcp_config(path: str) -> McpConfig:
    return parse_mcp_config(_read_document(path, "tool server config"))


def load_setup_config(path: str) -> SetupConfig:
    """Load the installation profile. Run the setup wizard first if it is missing."""
    return parse_setup_config(_read_document(path, "setup config"))


def resolve_path(config_dir: str, filename: str) -> str:
    if os.path.isabs(filename):
        return filename
    return os.path.join(config_dir, filename)
