"""
Runtime settings from the environment.

A ``.env`` file (python-dotenv) is loaded first; variables already set in
the process environment win.
"""

import os
from dataclasses import dataclass
from typing import List, Mapping, Optional

from dotenv import load_dotenv

from ..constants import (
    CHAT_HISTORY_FILE,
    DEFAULT_LLM_MODEL,
    DEFAULT_LLM_PROVIDER,
    DEFAULT_MAX_TOKENS,
    LLM_REQUEST_TIMEOUT,
    QUERY_LLM_MODEL,
    QUERY_LLM_PROVIDER,
    REQUIRED_ENV_VARS,
    TOOL_EXECUTION_TIMEOUT,
)
from .loader import ConfigurationError


@dataclass
class Settings:
    """
    Process-wide settings

    Attributes:
        config_dir: Directory holding mcp-config.json, setup-config.json
            and stored credential files
        history_file: Chat history path (relative paths are cwd-relative)
        llm_provider: litellm provider name
        llm_model: Model name for the orchestration loop
        query_provider: litellm provider name for direct queries
        query_model: Model name for direct queries
        max_tokens: Response token limit per model call
        tool_timeout: Seconds allowed per tool call
        llm_timeout: Seconds allowed per model call
    """
    config_dir: str = "."
    history_file: str = CHAT_HISTORY_FILE
    llm_provider: str = DEFAULT_LLM_PROVIDER
    llm_model: str = DEFAULT_LLM_MODEL
    query_provider: str = QUERY_LLM_PROVIDER
    query_model: str = QUERY_LLM_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS
    tool_timeout: float = TOOL_EXECUTION_TIMEOUT
    llm_timeout: int = LLM_REQUEST_TIMEOUT

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        dotenv_path: Optional[str] = None,
    ) -> "Settings":
        if environ is None:
            load_dotenv(dotenv_path)
            environ = os.environ

        try:
            return cls(
                config_dir=environ.get("CALLISTO_CONFIG_DIR", "."),
                history_file=environ.get("CALLISTO_HISTORY_FILE", CHAT_HISTORY_FILE),
                llm_provider=environ.get("CALLISTO_LLM_PROVIDER", DEFAULT_LLM_PROVIDER),
                llm_model=environ.get("CALLISTO_LLM_MODEL", DEFAULT_LLM_MODEL),
                query_provider=environ.get("CALLISTO_QUERY_PROVIDER", QUERY_LLM_PROVIDER),
                query_model=environ.get("CALLISTO_QUERY_MODEL", QUERY_LLM_MODEL),
                max_tokens=int(environ.get("CALLISTO_MAX_TOKENS", DEFAULT_MAX_TOKENS)),
                tool_timeout=float(environ.get("CALLISTO_TOOL_TIMEOUT", TOOL_EXECUTION_TIMEOUT)),
                llm_timeout=int(environ.get("CALLISTO_LLM_TIMEOUT", LLM_REQUEST_TIMEOUT)),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}") from e


def missing_env_vars(environ: Optional[Mapping[str, str]] = None) -> List[str]:
    """Names from REQUIRED_ENV_VARS that are unset or empty."""
    environ = os.environ if environ is None else environ
    return [name for name in REQUIRED_ENV_VARS if not environ.get(name)]
