"""Tests for callisto.orchestrator.orchestrator"""

import json
import logging
from datetime import datetime, timedelta

import pytest

from callisto.conversation.history import ConversationHistory
from callisto.conversation.models import Role, ToolResultBlock, ToolUseBlock
from callisto.llm.base import LLMResponse, ToolCall, Usage
from callisto.mcp.client import MockMCPClient
from callisto.mcp.models import MCPTool
from callisto.orchestrator.approval import ApprovalGate
from callisto.orchestrator.orchestrator import (
    DECLINED_RESULT,
    EMPTY_QUERY_MESSAGE,
    MAX_TURNS_SUFFIX,
    NO_PENDING_ACTIONS,
    TRANSCRIPT_PROCESSED,
    MeetingOrchestrator,
    parse_transcript_chunk,
)
from callisto.orchestrator.react_config import ReactLoopConfig
from callisto.orchestrator.workflows import WorkflowStatus
from callisto.tools.executor import ToolDispatcher
from callisto.tools.registry import ToolRegistry


# =============================================================================
# Helpers
# =============================================================================

SEED = "You are a meeting assistant."


class ScriptedLLM:
    """Returns queued responses in order; an Exception entry is raised."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    async def chat_completion(self, messages, tools=None, config=None):
        self.calls.append({"messages": messages, "tools": tools, "config": config})
        if not self.responses:
            return LLMResponse(content="done")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeConnector:
    def __init__(self, clients):
        self.clients = clients
        self.closed = False

    async def close_all(self):
        self.closed = True


class RecordingAudit:
    def __init__(self):
        self.turns = []

    def log_react_turn(self, **fields):
        self.turns.append(fields)

    def log_tool_execution(self, **fields):
        pass

    def log_approval_decision(self, **fields):
        pass


def _text(content):
    return LLMResponse(content=content)


def _tools(*calls, content=""):
    return LLMResponse(
        content=content,
        tool_calls=[ToolCall(id=call_id, name=name, arguments=args) for call_id, name, args in calls],
    )


EMAIL_ARGS = {"to": "ana@example.com", "subject": "Notes", "body": "Here are today's notes."}
SLACK_ARGS = {"channel": "#general", "message": "We ship Friday."}


async def _build(tmp_path, responses=None, handlers=None, max_turns=10, audit=None):
    handlers = handlers or {}
    servers = {
        "gsuite": ["send_email", "list_emails"],
        "google-calendar": ["list-events"],
        "exa": ["web_search_exa"],
        "slack": ["send_message_on_slack"],
    }
    clients = {}
    registry = ToolRegistry()
    for server, names in servers.items():
        client = MockMCPClient(
            name=server,
            tools=[MCPTool(name=n, server_name=server) for n in names],
            tool_handler=handlers.get(server),
        )
        await client.connect()
        await registry.discover_tools(server, client)
        clients[server] = client

    dispatcher = ToolDispatcher(registry, clients.get)
    history = ConversationHistory(str(tmp_path / "chat_history.json"), SEED)
    history.load()
    llm = ScriptedLLM(responses)
    orchestrator = MeetingOrchestrator(
        llm_client=llm,
        registry=registry,
        dispatcher=dispatcher,
        gate=ApprovalGate(dispatcher),
        history=history,
        connector=FakeConnector(clients),
        react_config=ReactLoopConfig(max_turns=max_turns),
        audit=audit,
    )
    return orchestrator, llm, clients


def _tool_messages(payload):
    return [m for m in payload if m["role"] == "tool"]


# =============================================================================
# Routing
# =============================================================================

class TestRouting:

    @pytest.mark.asyncio
    async def test_empty_query(self, tmp_path):
        orch, llm, _ = await _build(tmp_path)
        assert await orch.process_query("   ") == EMPTY_QUERY_MESSAGE
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_decision_without_pending(self, tmp_path):
        orch, llm, _ = await _build(tmp_path)
        assert await orch.process_query("y") == NO_PENDING_ACTIONS
        assert await orch.process_query("No") == NO_PENDING_ACTIONS
        assert llm.calls == []

    def test_parse_transcript_chunk(self):
        chunk = parse_transcript_chunk("  SCREEN: Slide 3: revenue  ")
        assert chunk.speaker == "SCREEN"
        assert chunk.content == "Slide 3: revenue"
        assert parse_transcript_chunk("MIC:hello").content == "hello"
        assert parse_transcript_chunk("screen: lowercase") is None
        assert parse_transcript_chunk("What is on screen?") is None


# =============================================================================
# Tool-use loop
# =============================================================================

class TestToolLoop:

    @pytest.mark.asyncio
    async def test_plain_answer_is_one_iteration(self, tmp_path):
        orch, llm, _ = await _build(tmp_path, [_text("Hello there.")])
        reply = await orch.process_query("Hi")
        assert reply == "Hello there."
        assert len(llm.calls) == 1
        roles = [m.role for m in orch.history.messages]
        assert roles == [Role.USER, Role.USER, Role.ASSISTANT]

        saved = json.loads((tmp_path / "chat_history.json").read_text())
        assert saved[-1]["role"] == "assistant"

    @pytest.mark.asyncio
    async def test_model_payload_shape(self, tmp_path):
        orch, llm, _ = await _build(tmp_path, [_text("ok")])
        await orch.process_query("Hi")
        call = llm.calls[0]
        assert call["messages"][0]["role"] == "system"
        assert call["messages"][-1] == {"role": "user", "content": "Hi"}
        assert call["config"] == {"tool_choice": "auto", "max_tokens": 2000}
        assert {t.name for t in call["tools"]} >= {"send_email", "list-events"}

    @pytest.mark.asyncio
    async def test_tool_result_fed_back(self, tmp_path):
        orch, llm, clients = await _build(tmp_path, [
            _tools(("call_1", "list-events", {"maxResults": 3}), content="Checking."),
            _text("You have a standup."),
        ])
        reply = await orch.process_query("What's on my calendar?")

        assert clients["google-calendar"].calls == [("list-events", {"maxResults": 3})]
        assert reply == "Checking.\nMock result for list-events\nYou have a standup."
        assert len(llm.calls) == 2
        tool_msgs = _tool_messages(llm.calls[1]["messages"])
        assert tool_msgs == [{
            "role": "tool",
            "tool_call_id": "call_1",
            "content": "Mock result for list-events",
        }]

    @pytest.mark.asyncio
    async def test_unknown_tool_reported_to_model(self, tmp_path):
        orch, llm, _ = await _build(tmp_path, [
            _tools(("call_1", "teleport", {})),
            _text("Sorry, I can't do that."),
        ])
        await orch.process_query("Teleport me")
        tool_msgs = _tool_messages(llm.calls[1]["messages"])
        assert tool_msgs[0]["content"] == "[ERROR] Error: Tool teleport not found."

    @pytest.mark.asyncio
    async def test_model_error_returns_error_text(self, tmp_path):
        orch, _, _ = await _build(tmp_path, [RuntimeError("boom")])
        reply = await orch.process_query("Hi")
        assert reply == "Error: boom"
        last = orch.history.last()
        assert last.role == Role.USER
        assert last.content == "Hi"

    @pytest.mark.asyncio
    async def test_max_turns(self, tmp_path):
        responses = [
            _tools((f"call_{i}", "web_search_exa", {"query": "acme"})) for i in range(5)
        ]
        orch, llm, clients = await _build(tmp_path, responses, max_turns=3)
        reply = await orch.process_query("Research Acme forever")
        assert reply.endswith(MAX_TURNS_SUFFIX)
        assert len(llm.calls) == 3
        assert len(clients["exa"].calls) == 3

    @pytest.mark.asyncio
    async def test_turns_are_audited(self, tmp_path):
        audit = RecordingAudit()
        orch, _, _ = await _build(tmp_path, [
            _tools(("call_1", "list-events", {})),
            _text("done"),
        ], audit=audit)
        await orch.process_query("Calendar?")
        assert audit.turns == [
            {"turn": 1, "tool_calls": ["list-events"], "final_answer": False},
            {"turn": 2, "tool_calls": [], "final_answer": True},
        ]

    @pytest.mark.asyncio
    async def test_token_usage_is_summed_per_query(self, tmp_path, caplog):
        first = _tools(("call_1", "list-events", {}))
        first.usage = Usage(prompt_tokens=100, completion_tokens=20, total_tokens=120)
        second = LLMResponse(content="done", usage=Usage(prompt_tokens=150, completion_tokens=5, total_tokens=155))
        orch, _, _ = await _build(tmp_path, [first, second])

        with caplog.at_level(logging.INFO, logger="callisto.orchestrator.orchestrator"):
            await orch.process_query("Calendar?")

        assert "Final answer after 2 turn(s), tokens in=250 out=25" in caplog.text

    @pytest.mark.asyncio
    async def test_meeting_context_reaches_system_prompt(self, tmp_path):
        async def company(name, args):
            return json.dumps({"company": "Acme", "industry": "Rockets"})

        orch, llm, _ = await _build(
            tmp_path,
            [_tools(("call_1", "web_search_exa", {"query": "Acme"})), _text("Acme builds rockets.")],
            handlers={"exa": company},
        )
        await orch.process_query("Who is Acme?")
        assert "Acme" in orch.meeting_context.company_info
        system = llm.calls[1]["messages"][0]["content"]
        assert "=== MEETING CONTEXT ===" in system
        assert "Companies discussed: Acme" in system


# =============================================================================
# Sending tools
# =============================================================================

class TestSendingTools:

    @pytest.mark.asyncio
    async def test_send_is_staged_not_executed(self, tmp_path):
        orch, llm, clients = await _build(tmp_path, [
            _tools(("call_1", "send_email", EMAIL_ARGS)),
        ])
        reply = await orch.process_query("Email Ana the notes")

        assert "To: ana@example.com" in reply
        assert "Subject: Notes" in reply
        assert reply.endswith("Send message? (Y/N)")
        assert clients["gsuite"].calls == []
        assert orch.has_pending
        assert len(llm.calls) == 1

    @pytest.mark.asyncio
    async def test_confirm_sends_once(self, tmp_path):
        orch, _, clients = await _build(tmp_path, [
            _tools(("call_1", "send_email", EMAIL_ARGS)),
        ])
        await orch.process_query("Email Ana the notes")
        reply = await orch.process_query("Y")

        assert reply == "Message sent successfully:\nMock result for send_email"
        assert clients["gsuite"].calls == [("send_email", EMAIL_ARGS)]
        assert not orch.has_pending
        last = orch.history.last()
        assert last.role == Role.USER
        assert last.tool_results() == [
            ToolResultBlock(tool_use_id="call_1", content="Mock result for send_email")
        ]

        assert await orch.process_query("y") == NO_PENDING_ACTIONS
        assert len(clients["gsuite"].calls) == 1

    @pytest.mark.asyncio
    async def test_reject_records_decline(self, tmp_path):
        orch, _, clients = await _build(tmp_path, [
            _tools(("call_1", "send_email", EMAIL_ARGS)),
        ])
        await orch.process_query("Email Ana the notes")
        reply = await orch.process_query("no")

        assert reply == "Message cancelled: Email to ana@example.com"
        assert clients["gsuite"].calls == []
        results = orch.history.last().tool_results()
        assert results[0].content == DECLINED_RESULT
        assert results[0].is_error

    @pytest.mark.asyncio
    async def test_staging_stops_the_turn(self, tmp_path):
        orch, _, clients = await _build(tmp_path, [
            _tools(
                ("call_1", "list-events", {}),
                ("call_2", "send_email", EMAIL_ARGS),
                ("call_3", "web_search_exa", {"query": "acme"}),
            ),
        ])
        await orch.process_query("Check my calendar, email Ana, then search")

        assert len(clients["google-calendar"].calls) == 1
        assert clients["exa"].calls == []
        assistant = orch.history.last()
        assert [b.id for b in assistant.tool_uses()] == ["call_1", "call_2"]

        await orch.process_query("n")
        results = orch.history.last().tool_results()
        assert [r.tool_use_id for r in results] == ["call_1", "call_2"]
        assert results[0].content == "Mock result for list-events"

    @pytest.mark.asyncio
    async def test_history_stays_well_formed_after_decision(self, tmp_path):
        orch, llm, _ = await _build(tmp_path, [
            _tools(("call_1", "send_email", EMAIL_ARGS)),
            _text("Anything else?"),
        ])
        await orch.process_query("Email Ana")
        await orch.process_query("y")
        await orch.process_query("Thanks")

        payload = llm.calls[1]["messages"]
        assistant = [m for m in payload if m.get("tool_calls")]
        tool_msgs = _tool_messages(payload)
        assert assistant[0]["tool_calls"][0]["id"] == "call_1"
        assert [m["tool_call_id"] for m in tool_msgs] == ["call_1"]


# =============================================================================
# Transcript path
# =============================================================================

class TestTranscript:

    @pytest.mark.asyncio
    async def test_calendar_keyword_lists_events(self, tmp_path):
        async def events(name, args):
            return json.dumps({"events": [{"summary": "Standup"}, {"summary": "1:1"}]})

        orch, llm, clients = await _build(tmp_path, handlers={"google-calendar": events})
        reply = await orch.process_query("SCREEN: Are you free tomorrow at 2?")

        assert reply == TRANSCRIPT_PROCESSED
        assert llm.calls == []
        [(name, args)] = clients["google-calendar"].calls
        assert name == "list-events"
        assert args["maxResults"] == 10
        start = datetime.fromisoformat(args["timeMin"].replace("Z", "+00:00"))
        end = datetime.fromisoformat(args["timeMax"].replace("Z", "+00:00"))
        assert end - start == timedelta(days=7)
        assert args["timeMin"].endswith("Z")
        assert len(orch.meeting_context.calendar_events) == 2

    @pytest.mark.asyncio
    async def test_calendar_turns_are_paired(self, tmp_path):
        orch, _, _ = await _build(tmp_path)
        await orch.process_query("MIC: Let's schedule a call")
        messages = orch.history.messages
        assistant, results = messages[-2], messages[-1]
        assert isinstance(assistant.content[0], ToolUseBlock)
        assert results.tool_results()[0].tool_use_id == assistant.content[0].id

    @pytest.mark.asyncio
    async def test_search_workflow_runs(self, tmp_path):
        async def company(name, args):
            return json.dumps({"company": "Acme Corp"})

        orch, llm, clients = await _build(
            tmp_path,
            [_tools(("toolu_1", "web_search_exa", {"query": "Acme Corp"}))],
            handlers={"exa": company},
        )
        reply = await orch.process_query("SCREEN: What does Acme Corp do?")

        assert reply == TRANSCRIPT_PROCESSED
        assert len(llm.calls) == 1
        assert clients["exa"].calls[0][0] == "web_search_exa"
        assert "Acme Corp" in orch.meeting_context.company_info
        assert orch.meeting_context.active_workflows == {}

    @pytest.mark.asyncio
    async def test_no_workflows(self, tmp_path):
        orch, _, _ = await _build(tmp_path, [_text("Nothing to do.")])
        reply = await orch.process_query("MIC: The weather is nice")
        assert reply == TRANSCRIPT_PROCESSED
        last = orch.history.last()
        assert last.role == Role.USER
        assert last.content == "The weather is nice"

    @pytest.mark.asyncio
    async def test_sending_workflow_is_staged(self, tmp_path):
        orch, _, clients = await _build(tmp_path, [
            _tools(("toolu_9", "send_message_on_slack", SLACK_ARGS)),
        ])
        reply = await orch.process_query("MIC: Please tell the team we ship Friday")

        assert reply.startswith(TRANSCRIPT_PROCESSED + "\n\nSlack Message Staged:")
        assert "Channel: #general" in reply
        assert clients["slack"].calls == []
        workflow = orch.meeting_context.pending_workflows["toolu_9"]
        assert workflow.status == WorkflowStatus.PENDING_APPROVAL

        assert await orch.process_query("yes") == "Message sent successfully:\nMock result for send_message_on_slack"
        assert clients["slack"].calls == [("send_message_on_slack", SLACK_ARGS)]
        assert orch.meeting_context.pending_workflows == {}
        assert workflow.status == WorkflowStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_rejected_workflow_is_cancelled(self, tmp_path):
        orch, _, clients = await _build(tmp_path, [
            _tools(("toolu_9", "send_message_on_slack", SLACK_ARGS)),
        ])
        await orch.process_query("MIC: Please tell the team we ship Friday")
        workflow = orch.meeting_context.pending_workflows["toolu_9"]
        assert await orch.process_query("n") == "Message cancelled: Slack message to #general"
        assert workflow.status == WorkflowStatus.CANCELLED
        assert clients["slack"].calls == []

    @pytest.mark.asyncio
    async def test_tools_after_staged_send_are_not_run(self, tmp_path):
        orch, llm, clients = await _build(tmp_path, [
            _tools(
                ("t1", "send_email", EMAIL_ARGS),
                ("t2", "web_search_exa", {"query": "acme"}),
            ),
        ])
        reply = await orch.process_query("SCREEN: Email Ana the notes and look up Acme")

        assert reply.startswith(TRANSCRIPT_PROCESSED + "\n\nEmail Staged:")
        assert clients["exa"].calls == []
        assert clients["gsuite"].calls == []
        assistant = orch.history.last()
        assert assistant.role == Role.ASSISTANT
        assert [b.id for b in assistant.tool_uses()] == ["t1"]

    @pytest.mark.asyncio
    async def test_confirmed_transcript_send_keeps_its_result(self, tmp_path):
        orch, llm, clients = await _build(tmp_path, [
            _tools(
                ("t1", "send_email", EMAIL_ARGS),
                ("t2", "web_search_exa", {"query": "acme"}),
            ),
            _text("Sent."),
        ])
        await orch.process_query("SCREEN: Email Ana the notes and look up Acme")
        await orch.process_query("y")
        await orch.process_query("Did it go out?")

        assert clients["gsuite"].calls == [("send_email", EMAIL_ARGS)]
        tool_msgs = _tool_messages(llm.calls[-1]["messages"])
        assert tool_msgs == [{
            "role": "tool",
            "tool_call_id": "t1",
            "content": "Mock result for send_email",
        }]

    @pytest.mark.asyncio
    async def test_results_before_staged_send_travel_with_it(self, tmp_path):
        orch, llm, clients = await _build(tmp_path, [
            _tools(
                ("t1", "web_search_exa", {"query": "acme"}),
                ("t2", "send_email", EMAIL_ARGS),
            ),
        ])
        await orch.process_query("SCREEN: Look up Acme and email Ana the notes")

        assert clients["exa"].calls[0][0] == "web_search_exa"
        assert orch.history.last().role == Role.ASSISTANT

        await orch.process_query("yes")
        results = orch.history.last().tool_results()
        assert [r.tool_use_id for r in results] == ["t1", "t2"]
        assert results[1].content == "Mock result for send_email"

    @pytest.mark.asyncio
    async def test_identification_error(self, tmp_path):
        orch, _, _ = await _build(tmp_path, [RuntimeError("model down")])
        reply = await orch.process_query("SCREEN: What does Acme Corp do?")
        assert reply == "Error: model down"
        assert orch.history.last().role == Role.USER


# =============================================================================
# Lifecycle
# =============================================================================

class TestLifecycle:

    @pytest.mark.asyncio
    async def test_clear_history(self, tmp_path):
        orch, _, _ = await _build(tmp_path, [_text("Hello.")])
        await orch.process_query("Hi")
        orch.clear_history()
        assert len(orch.history) == 1
        assert orch.history.messages[0].content == SEED

    @pytest.mark.asyncio
    async def test_cleanup_closes_connections(self, tmp_path):
        orch, _, _ = await _build(tmp_path, [_text("Hello.")])
        await orch.process_query("Hi")
        await orch.cleanup()
        assert orch.connector.closed
        assert len(orch.history) == 1
        assert orch.connected_servers == ["gsuite", "google-calendar", "exa", "slack"]
