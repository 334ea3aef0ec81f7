"""Tests for callisto.cli"""

import json

import pytest

from callisto import cli


# =========================================================================
# Helpers
# =========================================================================


class FakeApp:
    def __init__(self, replies=None):
        self.replies = replies or {}
        self.queries = []
        self.cleared = 0
        self.initialized = False
        self.connected_servers = ["gsuite", "exa"]

    async def initialize(self):
        self.initialized = True

    async def chat(self, query):
        self.queries.append(query)
        return self.replies.get(query, f"reply to {query}")

    def clear_history(self):
        self.cleared += 1


def _reader(*lines):
    pending = list(lines)

    def read_line(prompt):
        if not pending:
            raise EOFError
        return pending.pop(0)

    return read_line


def _write_configs(tmp_path):
    (tmp_path / "mcp-config.json").write_text(json.dumps({
        "mcpServers": {"gsuite": {"command": "npx", "args": []}}
    }))
    (tmp_path / "setup-config.json").write_text(json.dumps({"google": {}}))


# =========================================================================
# Parser
# =========================================================================


class TestParser:

    def test_defaults(self):
        args = cli.build_parser().parse_args([])
        assert args.config_dir is None
        assert args.history_file is None
        assert args.verbose is False

    def test_options(self):
        args = cli.build_parser().parse_args(["--config-dir", "conf", "--history-file", "h.json", "--verbose"])
        assert args.config_dir == "conf"
        assert args.history_file == "h.json"
        assert args.verbose


# =========================================================================
# chat_loop
# =========================================================================


class TestChatLoop:

    @pytest.mark.asyncio
    async def test_queries_until_eof(self):
        app = FakeApp()
        out = []
        await cli.chat_loop(app, read_line=_reader("Who is Ana?", "y"), write=out.append)
        assert app.initialized
        assert app.queries == ["Who is Ana?", "y"]
        assert "\nreply to Who is Ana?" in out
        assert "Connected to servers: gsuite, exa" in out

    @pytest.mark.asyncio
    async def test_clear_command(self):
        app = FakeApp()
        out = []
        await cli.chat_loop(app, read_line=_reader(" CLEAR "), write=out.append)
        assert app.cleared == 1
        assert app.queries == []
        assert "Conversation history cleared." in out

    @pytest.mark.asyncio
    async def test_quit_clears_and_stops(self):
        app = FakeApp()
        await cli.chat_loop(app, read_line=_reader("quit", "never read"), write=lambda _: None)
        assert app.cleared == 1
        assert app.queries == []


# =========================================================================
# main
# =========================================================================


class TestMain:

    @pytest.fixture(autouse=True)
    def no_dotenv(self, monkeypatch):
        monkeypatch.setattr("callisto.config.settings.load_dotenv", lambda *a, **k: False)

    def test_missing_env_vars(self, monkeypatch, capsys):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        monkeypatch.setenv("SMITHERY_API_KEY", "sk")
        assert cli.main([]) == 1
        err = capsys.readouterr().err
        assert "Configuration error: Missing required environment variables: ANTHROPIC_API_KEY" in err

    def test_missing_config_files(self, monkeypatch, tmp_path, capsys):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "k")
        monkeypatch.setenv("SMITHERY_API_KEY", "sk")
        assert cli.main(["--config-dir", str(tmp_path)]) == 1
        assert "tool server config not found" in capsys.readouterr().err

    def test_runs_the_app(self, monkeypatch, tmp_path):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "k")
        monkeypatch.setenv("SMITHERY_API_KEY", "sk")
        _write_configs(tmp_path)
        started = []

        async def fake_run(app):
            started.append(app)

        monkeypatch.setattr(cli, "_run", fake_run)
        history = str(tmp_path / "h.json")
        assert cli.main(["--config-dir", str(tmp_path), "--history-file", history]) == 0
        [app] = started
        assert app.settings.config_dir == str(tmp_path)
        assert app.settings.history_file == history
