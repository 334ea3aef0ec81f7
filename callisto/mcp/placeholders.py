"""
Placeholder references in remote tool-server configs.

A config value that is exactly ``${...}`` is a reference. Two kinds exist:

- ``${NAME}``: an environment-style variable. A few names are backed by
  the installation profile rather than the process environment.
- ``${file.json.field.path}``: a field inside a locally stored credential
  file, looked up along the dotted path.

Resolution is lenient: anything that cannot be resolved becomes an empty
string and is logged.
"""

import json
import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from ..config.models import SetupConfig
from ..constants import GCP_SAVED_TOKENS_FILE

logger = logging.getLogger(__name__)

_WHOLE_REF = re.compile(r"^\$\{(.*)\}$")
_ENV_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_FILE_SUFFIX = ".json"


class PlaceholderError(ValueError):
    """A syntactically invalid placeholder reference"""


@dataclass(frozen=True)
class EnvVarRef:
    name: str


@dataclass(frozen=True)
class CredentialFieldRef:
    file: str
    path: Tuple[str, ...]


PlaceholderRef = Union[EnvVarRef, CredentialFieldRef]


def parse_placeholder(value: str) -> Optional[PlaceholderRef]:
    """
    Parse a whole-string placeholder.

    Returns None when *value* is not a placeholder at all.

    Raises:
        PlaceholderError: If the value looks like a placeholder but the
            reference inside it is malformed.
    """
    match = _WHOLE_REF.match(value)
    if not match:
        return None

    ref = match.group(1).strip()
    if not ref:
        raise PlaceholderError(f"Empty placeholder: {value!r}")

    marker = _FILE_SUFFIX + "."
    if marker in ref:
        file_part, _, field_part = ref.partition(marker)
        path = tuple(p for p in field_part.split(".") if p)
        if not file_part or not path:
            raise PlaceholderError(f"Malformed credential reference: {value!r}")
        return CredentialFieldRef(file=file_part + _FILE_SUFFIX, path=path)

    if not _ENV_NAME.match(ref):
        raise PlaceholderError(f"Malformed variable reference: {value!r}")
    return EnvVarRef(name=ref)


class PlaceholderResolver:
    """
    Resolves parsed references against the environment, the installation
    profile and credential files under ``credentials_dir``.

    Example:
        resolver = PlaceholderResolver(setup=setup_config, credentials_dir=".")
        resolver.resolve(EnvVarRef("SLACK_BOT_TOKEN"))
    """

    def __init__(
        self,
        setup: Optional[SetupConfig] = None,
        environ: Optional[Mapping[str, str]] = None,
        credentials_dir: Optional[str] = None,
    ):
        self.setup = setup
        self.environ = os.environ if environ is None else environ
        self.credentials_dir = credentials_dir
        self._profile_vars: Dict[str, Callable[[SetupConfig], str]] = {
            "GOOGLE_CLIENT_ID": lambda s: s.google.client_id,
            "GOOGLE_CLIENT_SECRET": lambda s: s.google.client_secret,
            "GOOGLE_REFRESH_TOKEN": lambda s: s.google.refresh_token,
            "SLACK_BOT_TOKEN": lambda s: s.slack.bot_token,
            "SLACK_TEAM_ID": lambda s: s.slack.team_id,
        }

    def resolve(self, ref: PlaceholderRef) -> Optional[str]:
        if isinstance(ref, EnvVarRef):
            return self._resolve_env(ref)
        return self._resolve_credential(ref)

    def _resolve_env(self, ref: EnvVarRef) -> Optional[str]:
        getter = self._profile_vars.get(ref.name)
        if getter is not None and self.setup is not None:
            value = getter(self.setup)
            if value:
                return value
        value = self.environ.get(ref.name)
        return value or None

    def _resolve_credential(self, ref: CredentialFieldRef) -> Optional[str]:
        is_gcp_tokens = ref.file.lstrip(".") == GCP_SAVED_TOKENS_FILE.lstrip(".")
        if is_gcp_tokens and self.setup is not None and ref.path[-1] in ("refresh_token", "refreshToken"):
            if self.setup.google.refresh_token:
                return self.setup.google.refresh_token

        data = self._read_credential_file(ref.file)
        if data is None and is_gcp_tokens:
            data = self._read_credential_file(GCP_SAVED_TOKENS_FILE)
        if data is None:
            return None

        node: Any = data
        for key in ref.path:
            if not isinstance(node, dict) or key not in node:
                return None
            node = node[key]
        if node is None or isinstance(node, (dict, list)):
            return None
        return str(node)

    def _read_credential_file(self, filename: str) -> Optional[Any]:
        if not self.credentials_dir:
            return None
        path = os.path.join(self.credentials_dir, filename)
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read credential file {path}: {e}")
            return None


def substitute_placeholders(value: Any, resolver: PlaceholderResolver) -> Any:
    """
    Recursively replace whole-string placeholders in lists and mappings.

    Unresolvable or malformed references become ``""``.
    """
    if isinstance(value, str):
        try:
            ref = parse_placeholder(value)
        except PlaceholderError as e:
            logger.warning(f"{e}; substituting empty string")
            return ""
        if ref is None:
            return value
        resolved = resolver.resolve(ref)
        if resolved is None:
            logger.warning(f"Unresolved placeholder {value}; substituting empty string")
            return ""
        return resolved
    if isinstance(value, list):
        return [substitute_placeholders(v, resolver) for v in value]
    if isinstance(value, dict):
        return {k: substitute_placeholders(v, resolver) for k, v in value.items()}
    return value
