"""
Input-schema normalization.

Some tool servers report permissive or missing schemas. A static table of
per-server, per-tool overrides takes precedence; otherwise the server's
``properties`` and ``required`` are copied onto a strict empty object
schema. Normalization never raises.
"""

import copy
import logging
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


def empty_schema() -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {},
        "required": [],
        "additionalProperties": False,
    }


def _object_schema(properties: Dict[str, Any], required=()) -> Dict[str, Any]:
    schema = empty_schema()
    schema["properties"] = properties
    schema["required"] = list(required)
    return schema


_EMAIL_LIST = _object_schema({
    "maxResults": {"type": "number", "default": 10},
    "query": {"type": "string"},
})

_EMAIL_SEND = _object_schema(
    {
        "to": {"type": "string"},
        "subject": {"type": "string"},
        "body": {"type": "string"},
    },
    required=("to", "subject", "body"),
)

_CALENDAR_LIST = _object_schema({
    "maxResults": {"type": "number", "default": 10},
    "timeMin": {"type": "string", "format": "date-time"},
    "timeMax": {"type": "string", "format": "date-time"},
})

_CALENDAR_CREATE = _object_schema(
    {
        "summary": {"type": "string"},
        "start": {"type": "string", "format": "date-time"},
        "end": {"type": "string", "format": "date-time"},
        "description": {"type": "string"},
    },
    required=("summary", "start", "end"),
)


def _search_schema(query_description: str) -> Dict[str, Any]:
    return _object_schema(
        {
            "query": {"type": "string", "description": query_description},
            "numResults": {"type": "number", "default": 5, "description": "Number of results to return"},
        },
        required=("query",),
    )


# (server, tool) -> schema
SCHEMA_OVERRIDES: Dict[Tuple[str, str], Dict[str, Any]] = {
    ("gsuite", "list_emails"): _EMAIL_LIST,
    ("gsuite", "search_emails"): _EMAIL_LIST,
    ("gsuite", "send_email"): _EMAIL_SEND,
    ("exa", "web_search_exa"): _search_schema("Search query"),
    ("exa", "company_research"): _search_schema("Company name or domain to research"),
    ("google-calendar", "list-events"): _CALENDAR_LIST,
    ("google-calendar", "search-events"): _CALENDAR_LIST,
    ("google-calendar", "create-event"): _CALENDAR_CREATE,
}


def normalize_schema(server_name: str, tool_name: str, reported: Optional[Any]) -> Dict[str, Any]:
    """
    Canonical input schema for a tool.

    Args:
        server_name: Owning server
        tool_name: Tool name
        reported: Schema the server advertised (may be None or malformed)
    """
    override = SCHEMA_OVERRIDES.get((server_name, tool_name))
    if override is not None:
        return copy.deepcopy(override)

    schema = empty_schema()
    if not isinstance(reported, dict):
        if reported is not None:
            logger.warning(f"Ignoring malformed schema for {server_name}/{tool_name}: {type(reported).__name__}")
        return schema

    properties = reported.get("properties")
    if isinstance(properties, dict):
        schema["properties"] = copy.deepcopy(properties)
    elif properties is not None:
        logger.warning(f"Ignoring malformed properties for {server_name}/{tool_name}")

    required = reported.get("required")
    if isinstance(required, list) and all(isinstance(r, str) for r in required):
        schema["required"] = list(required)
    elif required is not None:
        logger.warning(f"Ignoring malformed required list for {server_name}/{tool_name}")

    return schema


# ── Argument adapters ──
# Applied at dispatch time where the model-facing schema differs from what
# the server actually accepts.

def _exa_search_args(arguments: Dict[str, Any]) -> Dict[str, Any]:
    num_results = arguments.get("numResults")
    return {
        "query": arguments.get("query"),
        "num_results": num_results if num_results is not None else 5,
    }


ARGUMENT_ADAPTERS: Dict[Tuple[str, str], Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    ("exa", "web_search_exa"): _exa_search_args,
    ("exa", "company_research"): _exa_search_args,
}


def adapt_arguments(server_name: str, tool_name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
    adapter = ARGUMENT_ADAPTERS.get((server_name, tool_name))
    if adapter is None:
        return dict(arguments)
    return adapter(arguments)
