"""
Shared constants for the Callisto meeting assistant.

Centralizes file names, tool classifications and loop limits that are
needed by the orchestrator, the approval gate and the CLI.
"""

from typing import FrozenSet, Tuple

# ── Files ──
# Resolved relative to the configuration directory unless absolute.

CHAT_HISTORY_FILE = "chat_history.json"
MCP_CONFIG_FILE = "mcp-config.json"
SETUP_CONFIG_FILE = "setup-config.json"
GCP_SAVED_TOKENS_FILE = ".gcp-saved-tokens.json"

REQUIRED_ENV_VARS: Tuple[str, ...] = ("ANTHROPIC_API_KEY", "SMITHERY_API_KEY")

# ── Model defaults ──

DEFAULT_LLM_PROVIDER = "anthropic"
DEFAULT_LLM_MODEL = "claude-3-haiku-20240307"
DEFAULT_MAX_TOKENS = 2000

# Sibling direct-query path
QUERY_LLM_PROVIDER = "anthropic"
QUERY_LLM_MODEL = "claude-3-opus-20240229"
QUERY_MAX_TOKENS = 4096
QUERY_TEMPERATURE = 0.7
QUERY_MAX_RETRIES = 3
QUERY_RETRY_DELAY = 1.0

# ── Timeouts (seconds) ──

TOOL_EXECUTION_TIMEOUT = 15
LLM_REQUEST_TIMEOUT = 60

# ── Tool classification ──

# Tools with irreversible outbound side effects. Never dispatched without
# an explicit human confirmation through the approval gate.
SENDING_TOOLS: FrozenSet[str] = frozenset({
    "send_email",
    "send_slack_message",
    "send_message",
    "post_message",
    "create_message",
    "send_notification",
    "post_notification",
    "send_message_on_slack",
})

EMAIL_SENDING_TOOLS: FrozenSet[str] = frozenset({"send_email"})

# Transcript phrases that trigger an automatic calendar lookup
CALENDAR_KEYWORDS: Tuple[str, ...] = (
    "availability",
    "schedule",
    "meeting",
    "call",
    "appointment",
    "free",
    "busy",
)

CALENDAR_LIST_TOOL = "list-events"
CALENDAR_LOOKAHEAD_DAYS = 7
CALENDAR_MAX_RESULTS = 10

# ── Human-facing channel vocabulary ──

CONFIRM_WORDS: FrozenSet[str] = frozenset({"y", "yes"})
REJECT_WORDS: FrozenSet[str] = frozenset({"n", "no"})
TRANSCRIPT_CHANNELS: Tuple[str, ...] = ("SCREEN", "MIC")
