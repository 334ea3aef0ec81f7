"""
Tests for the tool registry and schema normalization

Tests cover:
- Schema overrides and strict-object normalization
- Malformed schemas
- Registration, collisions and required-argument checks
- Argument adapters
"""

import logging

import pytest

from callisto.mcp.client import MockMCPClient
from callisto.mcp.models import MCPTool
from callisto.tools.registry import ToolRegistry
from callisto.tools.schemas import adapt_arguments, empty_schema, normalize_schema


# =============================================================================
# Schema normalization
# =============================================================================

class TestNormalizeSchema:

    def test_override_wins_over_reported(self):
        reported = {"type": "object", "properties": {"anything": {}}}
        schema = normalize_schema("gsuite", "send_email", reported)
        assert schema["required"] == ["to", "subject", "body"]
        assert "anything" not in schema["properties"]
        assert schema["additionalProperties"] is False

    def test_override_is_a_copy(self):
        first = normalize_schema("gsuite", "send_email", None)
        first["required"].append("cc")
        assert normalize_schema("gsuite", "send_email", None)["required"] == ["to", "subject", "body"]

    def test_calendar_list_has_no_required(self):
        schema = normalize_schema("google-calendar", "list-events", None)
        assert schema["required"] == []
        assert set(schema["properties"]) == {"maxResults", "timeMin", "timeMax"}

    def test_reported_schema_copied_onto_strict_object(self):
        reported = {
            "type": "object",
            "properties": {"channel": {"type": "string"}},
            "required": ["channel"],
            "additionalProperties": True,
        }
        schema = normalize_schema("slack", "send_message_on_slack", reported)
        assert schema == {
            "type": "object",
            "properties": {"channel": {"type": "string"}},
            "required": ["channel"],
            "additionalProperties": False,
        }

    @pytest.mark.parametrize("reported", [None, "not a schema", 42, ["list"]])
    def test_missing_or_malformed(self, reported):
        assert normalize_schema("notes", "add_note", reported) == empty_schema()

    def test_malformed_parts_ignored(self):
        schema = normalize_schema("notes", "add_note", {"properties": [], "required": [1, 2]})
        assert schema == empty_schema()


class TestAdaptArguments:

    def test_exa_search_defaults_num_results(self):
        assert adapt_arguments("exa", "web_search_exa", {"query": "acme"}) == {
            "query": "acme",
            "num_results": 5,
        }

    def test_exa_search_keeps_num_results(self):
        out = adapt_arguments("exa", "company_research", {"query": "acme", "numResults": 2})
        assert out == {"query": "acme", "num_results": 2}

    def test_other_tools_pass_through(self):
        args = {"maxResults": 3}
        out = adapt_arguments("google-calendar", "list-events", args)
        assert out == args
        assert out is not args


# =============================================================================
# Registry
# =============================================================================

class TestToolRegistry:

    def test_register_and_lookup(self):
        registry = ToolRegistry()
        tools = registry.register_tools("gsuite", [
            MCPTool(name="send_email", description="Send an email", server_name="gsuite"),
            MCPTool(name="list_emails", server_name="gsuite"),
        ])
        assert [t.name for t in tools] == ["send_email", "list_emails"]
        assert registry.get_server_for_tool("send_email") == "gsuite"
        assert registry.get_server_for_tool("missing") is None
        assert "list_emails" in registry
        assert len(registry) == 2

    def test_tool_schema_shape(self):
        registry = ToolRegistry()
        registry.register_tools("gsuite", [MCPTool(name="send_email", description="Send")])
        [schema] = registry.tool_schemas()
        assert schema["name"] == "send_email"
        assert schema["description"] == "Send"
        assert schema["input_schema"]["type"] == "object"

    def test_collision_last_registration_wins(self, caplog):
        registry = ToolRegistry()
        registry.register_tools("first", [MCPTool(name="search")])
        with caplog.at_level(logging.WARNING):
            registry.register_tools("second", [MCPTool(name="search")])
        assert registry.get_server_for_tool("search") == "second"
        assert len(registry) == 1
        assert "collision" in caplog.text

    def test_missing_required_arguments(self):
        registry = ToolRegistry()
        registry.register_tools("gsuite", [MCPTool(name="send_email")])
        assert registry.missing_required_arguments("send_email", {"to": "a@b.com", "subject": None}) == [
            "subject",
            "body",
        ]
        assert registry.missing_required_arguments("unknown", {}) == []

    @pytest.mark.asyncio
    async def test_discover_tools(self):
        client = MockMCPClient(
            name="google-calendar",
            tools=[MCPTool(name="list-events", server_name="google-calendar")],
        )
        await client.connect()
        registry = ToolRegistry()
        tools = await registry.discover_tools("google-calendar", client)
        assert [t.server_name for t in tools] == ["google-calendar"]
        assert registry.get_tool("list-events").required == []
