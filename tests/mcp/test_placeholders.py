"""Tests for callisto.mcp.placeholders"""

import json

import pytest

from callisto.config.models import GoogleConfig, SetupConfig, SlackConfig
from callisto.mcp.placeholders import (
    CredentialFieldRef,
    EnvVarRef,
    PlaceholderError,
    PlaceholderResolver,
    parse_placeholder,
    substitute_placeholders,
)


# =============================================================================
# Parsing
# =============================================================================

class TestParsePlaceholder:

    def test_plain_string_is_not_a_placeholder(self):
        assert parse_placeholder("https://example.com") is None
        assert parse_placeholder("prefix ${FOO}") is None

    def test_env_var(self):
        assert parse_placeholder("${SLACK_BOT_TOKEN}") == EnvVarRef("SLACK_BOT_TOKEN")

    def test_credential_field(self):
        ref = parse_placeholder("${.gcp-saved-tokens.json.tokens.refresh_token}")
        assert ref == CredentialFieldRef(
            file=".gcp-saved-tokens.json",
            path=("tokens", "refresh_token"),
        )

    @pytest.mark.parametrize("value", ["${}", "${not a name}", "${creds.json.}"])
    def test_malformed(self, value):
        with pytest.raises(PlaceholderError):
            parse_placeholder(value)


# =============================================================================
# Resolution
# =============================================================================

class TestResolver:

    def test_environment_lookup(self):
        resolver = PlaceholderResolver(environ={"EXA_API_KEY": "ek-1"})
        assert resolver.resolve(EnvVarRef("EXA_API_KEY")) == "ek-1"
        assert resolver.resolve(EnvVarRef("MISSING")) is None

    def test_profile_backed_variables_win(self):
        setup = SetupConfig(
            slack=SlackConfig(bot_token="xoxb-profile", team_id="T1"),
            google=GoogleConfig(client_id="cid"),
        )
        resolver = PlaceholderResolver(setup=setup, environ={"SLACK_BOT_TOKEN": "xoxb-env"})
        assert resolver.resolve(EnvVarRef("SLACK_BOT_TOKEN")) == "xoxb-profile"
        assert resolver.resolve(EnvVarRef("GOOGLE_CLIENT_ID")) == "cid"

    def test_empty_profile_value_falls_back_to_env(self):
        resolver = PlaceholderResolver(setup=SetupConfig(), environ={"SLACK_TEAM_ID": "T-env"})
        assert resolver.resolve(EnvVarRef("SLACK_TEAM_ID")) == "T-env"

    def test_credential_file_field(self, tmp_path):
        (tmp_path / "creds.json").write_text(json.dumps({"installed": {"client_id": "abc", "port": 8080}}))
        resolver = PlaceholderResolver(environ={}, credentials_dir=str(tmp_path))
        assert resolver.resolve(CredentialFieldRef("creds.json", ("installed", "client_id"))) == "abc"
        assert resolver.resolve(CredentialFieldRef("creds.json", ("installed", "port"))) == "8080"
        assert resolver.resolve(CredentialFieldRef("creds.json", ("installed", "nope"))) is None
        assert resolver.resolve(CredentialFieldRef("creds.json", ("installed",))) is None

    def test_unreadable_credential_file(self, tmp_path):
        (tmp_path / "creds.json").write_text("{broken")
        resolver = PlaceholderResolver(environ={}, credentials_dir=str(tmp_path))
        assert resolver.resolve(CredentialFieldRef("creds.json", ("a",))) is None

    def test_gcp_refresh_token_prefers_profile(self, tmp_path):
        (tmp_path / ".gcp-saved-tokens.json").write_text(json.dumps({"refresh_token": "from-file"}))
        setup = SetupConfig(google=GoogleConfig(refresh_token="from-profile"))
        resolver = PlaceholderResolver(setup=setup, environ={}, credentials_dir=str(tmp_path))
        ref = CredentialFieldRef(".gcp-saved-tokens.json", ("refresh_token",))
        assert resolver.resolve(ref) == "from-profile"

        resolver = PlaceholderResolver(setup=SetupConfig(), environ={}, credentials_dir=str(tmp_path))
        assert resolver.resolve(ref) == "from-file"


# =============================================================================
# Substitution
# =============================================================================

class TestSubstitute:

    def test_nested_structures(self):
        resolver = PlaceholderResolver(environ={"A": "1", "B": "2"})
        value = {"a": "${A}", "list": ["${B}", "literal", 3], "nested": {"x": "${A}"}}
        assert substitute_placeholders(value, resolver) == {
            "a": "1",
            "list": ["2", "literal", 3],
            "nested": {"x": "1"},
        }

    def test_unresolved_becomes_empty(self):
        resolver = PlaceholderResolver(environ={})
        assert substitute_placeholders({"key": "${NOPE}"}, resolver) == {"key": ""}

    def test_malformed_becomes_empty(self):
        resolver = PlaceholderResolver(environ={})
        assert substitute_placeholders("${bad name}", resolver) == ""
