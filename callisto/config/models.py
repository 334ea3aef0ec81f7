"""
Configuration models for tool servers and the installation profile.

Field names on the wire follow the JSON files written by the setup
wizard (camelCase); ``to_dict()`` reproduces them.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class SmitheryConfig:
    """
    Remote streamable-HTTP server declaration

    Attributes:
        url: Base endpoint of the hosted server
        api_key: API key (may be a ``${...}`` placeholder)
        config: Declarative config object, placeholders unresolved
    """
    url: str
    api_key: str
    config: Dict[str, Any] = field(default_factory=dict)


@dataclass
class McpServerConfig:
    """One entry of ``mcpServers``: either stdio or remote"""
    name: str
    command: Optional[str] = None
    args: List[str] = field(default_factory=list)
    env: Dict[str, str] = field(default_factory=dict)
    smithery: Optional[SmitheryConfig] = None

    @property
    def is_remote(self) -> bool:
        return self.smithery is not None


@dataclass
class McpConfig:
    """Tool-server connection config, servers kept in declaration order"""
    servers: List[McpServerConfig] = field(default_factory=list)

    def get(self, name: str) -> Optional[McpServerConfig]:
        return next((s for s in self.servers if s.name == name), None)

    @property
    def server_names(self) -> List[str]:
        return [s.name for s in self.servers]


@dataclass
class UserContext:
    name: str = ""
    email: str = ""
    role: str = ""
    company: str = ""
    location: str = ""
    timezone: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserContext":
        return cls(
            name=data.get("name", ""),
            email=data.get("email", ""),
            role=data.get("role", ""),
            company=data.get("company", ""),
            location=data.get("location", ""),
            timezone=data.get("timezone", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "company": self.company,
            "location": self.location,
            "timezone": self.timezone,
        }


@dataclass
class SlackConfig:
    bot_token: str = ""
    team_id: str = ""
    channels: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SlackConfig":
        return cls(
            bot_token=data.get("botToken", ""),
            team_id=data.get("teamId", ""),
            channels=list(data.get("channels") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"botToken": self.bot_token, "teamId": self.team_id, "channels": list(self.channels)}


@dataclass
class GoogleConfig:
    client_id: str = ""
    client_secret: str = ""
    refresh_token: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GoogleConfig":
        return cls(
            client_id=data.get("clientId", ""),
            client_secret=data.get("clientSecret", ""),
            refresh_token=data.get("refreshToken", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "clientId": self.client_id,
            "clientSecret": self.client_secret,
            "refreshToken": self.refresh_token,
        }


@dataclass
class SetupConfig:
    """
    Installation profile written by the setup wizard

    Attributes:
        user_context: Identity, location and timezone of the user
        slack: Messaging credentials and channel list
        calendars: Calendar ids
        google: OAuth client id/secret/refresh-token triple
    """
    user_context: UserContext = field(default_factory=UserContext)
    slack: SlackConfig = field(default_factory=SlackConfig)
    calendars: List[str] = field(default_factory=list)
    google: GoogleConfig = field(default_factory=GoogleConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SetupConfig":
        return cls(
            user_context=UserContext.from_dict(data.get("userContext") or {}),
            slack=SlackConfig.from_dict(data.get("slack") or {}),
            calendars=list(data.get("calendars") or []),
            google=GoogleConfig.from_dict(data.get("google") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userContext": self.user_context.to_dict(),
            "slack": self.slack.to_dict(),
            "calendars": list(self.calendars),
            "google": self.google.to_dict(),
        }
