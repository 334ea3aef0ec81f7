"""
Callisto Application - single entry point for the meeting assistant.

Usage:
    from callisto import Callisto

    app = Callisto(Settings.from_env())
    reply = await app.chat("SCREEN: Are you free tomorrow at 2?")
    await app.shutdown()
"""

import logging
from typing import List, Optional

from .config import (
    McpConfig,
    SetupConfig,
    Settings,
    load_mcp_config,
    load_setup_config,
    resolve_path,
)
from .constants import MCP_CONFIG_FILE, QUERY_MAX_TOKENS, SETUP_CONFIG_FILE
from .conversation import ConversationHistory
from .llm.base import LLMConfig
from .mcp.connector import ClientFactory, ConnectionOutcome, MCPConnector
from .mcp.placeholders import PlaceholderResolver
from .orchestrator import (
    DEFAULT_SYSTEM_PROMPT,
    ApprovalGate,
    AuditLogger,
    MeetingOrchestrator,
    ReactLoopConfig,
)
from .protocols import LLMClientProtocol
from .query import QueryService
from .tools import ToolDispatcher, ToolRegistry

logger = logging.getLogger(__name__)


class Callisto:
    """
    Callisto application.

    The sync constructor reads and validates both config files, so a bad
    configuration fails before anything connects. Tool-server connections
    are opened on the first chat() call, or explicitly with initialize().

    Args:
        settings: Runtime settings (see Settings.from_env)
        llm_client: Model client override; defaults to LiteLLMClient
        client_factory: Tool-server client factory override

    Raises:
        ConfigurationError: If either config file is missing or malformed.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        llm_client: Optional[LLMClientProtocol] = None,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.settings = settings or Settings()
        self.mcp_config: McpConfig = load_mcp_config(
            resolve_path(self.settings.config_dir, MCP_CONFIG_FILE)
        )
        self.setup_config: SetupConfig = load_setup_config(
            resolve_path(self.settings.config_dir, SETUP_CONFIG_FILE)
        )

        self._llm_client = llm_client
        self._initialized = False

        self.react_config = ReactLoopConfig(
            max_tokens=self.settings.max_tokens,
            tool_execution_timeout=self.settings.tool_timeout,
        )
        self.audit = AuditLogger()
        self.registry = ToolRegistry()
        self.connector = MCPConnector(
            self.registry,
            setup=self.setup_config,
            resolver=PlaceholderResolver(
                setup=self.setup_config,
                credentials_dir=self.settings.config_dir,
            ),
            client_factory=client_factory,
            audit=self.audit,
        )
        self.dispatcher = ToolDispatcher(
            self.registry,
            self.connector.get_client,
            timeout=self.react_config.tool_execution_timeout,
            audit=self.audit,
        )
        self.history = ConversationHistory(self.settings.history_file, DEFAULT_SYSTEM_PROMPT)

        self._orchestrator: Optional[MeetingOrchestrator] = None
        self._query_service: Optional[QueryService] = None
        self.connection_outcomes: List[ConnectionOutcome] = []

    def _build_llm_client(self, provider: str, model: str, max_tokens: int) -> LLMClientProtocol:
        from .llm.litellm_client import LiteLLMClient

        config = LLMConfig(
            model=model,
            max_tokens=max_tokens,
            timeout=self.settings.llm_timeout,
        )
        return LiteLLMClient(config=config, provider_name=provider)

    async def initialize(self) -> None:
        """Connect every configured tool server and build the orchestrator."""
        if self._initialized:
            return

        llm_client = self._llm_client or self._build_llm_client(
            self.settings.llm_provider, self.settings.llm_model, self.settings.max_tokens,
        )
        logger.info(
            f"LLM client: provider={self.settings.llm_provider}, model={self.settings.llm_model}"
        )

        self.history.load()
        self.connection_outcomes = await self.connector.connect_all(self.mcp_config)

        self._orchestrator = MeetingOrchestrator(
            llm_client=llm_client,
            registry=self.registry,
            dispatcher=self.dispatcher,
            gate=ApprovalGate(self.dispatcher, audit=self.audit),
            history=self.history,
            connector=self.connector,
            react_config=self.react_config,
            audit=self.audit,
        )
        self._initialized = True

    @property
    def orchestrator(self) -> Optional[MeetingOrchestrator]:
        return self._orchestrator

    @property
    def connected_servers(self) -> List[str]:
        return list(self.connector.clients)

    async def chat(self, query: str) -> str:
        """Process one human input (query, y/n decision or transcript chunk)."""
        await self.initialize()
        return await self._orchestrator.process_query(query)

    async def make_query(self, prompt: str) -> str:
        """Direct single-prompt query, returned as a JSON document string."""
        if self._query_service is None:
            client = self._llm_client or self._build_llm_client(
                self.settings.query_provider, self.settings.query_model, QUERY_MAX_TOKENS,
            )
            self._query_service = QueryService(client)
        return await self._query_service.make_query(prompt)

    def clear_history(self) -> None:
        if self._orchestrator is not None:
            self._orchestrator.clear_history()
        else:
            self.history.reset()

    async def shutdown(self) -> None:
        """Close every tool-server connection and reseed history."""
        if not self._initialized:
            return
        try:
            await self._orchestrator.cleanup()
        except Exception as e:
            logger.warning(f"Error during shutdown: {e}")
        finally:
            self._initialized = False
            self._orchestrator = None
            logger.info("Callisto shut down")
