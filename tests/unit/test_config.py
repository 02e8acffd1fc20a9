# tests/unit/test_config.py
"""
Unit tests for configuration loading.
Tests defaults, YAML merging, security table replacement and env var overrides.
"""

import pytest
from pydantic import ValidationError

from cbx_mcp_shell.config import ShellMCPServerConfig, load_config
from cbx_mcp_shell.config.loader import (
    _deep_merge,
    _get_env_overrides,
    _parse_env_value,
)


class TestDeepMerge:
    """Tests for deep dictionary merging."""

    def test_simple_merge(self):
        """Simple non-nested merge."""
        result = _deep_merge({"a": 1, "b": 2}, {"b": 3, "c": 4})
        assert result == {"a": 1, "b": 3, "c": 4}

    def test_nested_merge(self):
        """Nested dictionary merge."""
        result = _deep_merge({"a": {"x": 1, "y": 2}, "b": 3}, {"a": {"y": 10, "z": 20}})
        assert result == {"a": {"x": 1, "y": 10, "z": 20}, "b": 3}

    def test_lists_are_replaced(self):
        """Lists are replaced wholesale, not appended."""
        result = _deep_merge({"a": [1, 2, 3]}, {"a": [9]})
        assert result == {"a": [9]}

    def test_base_is_not_mutated(self):
        base = {"a": {"x": 1}}
        _deep_merge(base, {"a": {"x": 2}})
        assert base == {"a": {"x": 1}}


class TestParseEnvValue:
    """Tests for environment variable value parsing."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("true", True),
            ("YES", True),
            ("false", False),
            ("no", False),
            ("9000", 9000),
            ("2.5", 2.5),
            ("streamable-http", "streamable-http"),
        ],
    )
    def test_parse(self, raw, expected):
        assert _parse_env_value(raw) == expected


class TestEnvOverrides:
    """Tests for CBX_MCP_<SECTION>__<KEY> variables."""

    def test_nested_keys(self):
        overrides = _get_env_overrides({
            "CBX_MCP_SERVER__PORT": "9000",
            "CBX_MCP_COMMAND__DEFAULT_TIMEOUT_MS": "5000",
            "UNRELATED": "x",
        })
        assert overrides == {
            "server": {"port": 9000},
            "command": {"default_timeout_ms": 5000},
        }

    def test_malformed_key_ignored(self):
        assert _get_env_overrides({"CBX_MCP_SERVER__": "1"}) == {}


class TestLoadConfig:
    """Tests for the full loading pipeline."""

    def test_builtin_defaults(self, config: ShellMCPServerConfig):
        assert config.server.transport == "stdio"
        assert config.command.default_timeout_ms == 60000
        assert config.command.default_max_output_bytes == 1048576
        assert config.command.max_command_length == 500
        assert config.filesystem.max_search_results == 1000
        assert config.environment.redaction_marker == "[REDACTED]"

    def test_builtin_security_table(self, config: ShellMCPServerConfig):
        assert "curl" in config.security.banned_commands
        assert "rm -rf" in config.security.banned_commands
        assert "ping" in config.security.network_commands
        assert config.security.dangerous_patterns

    def test_model_defaults_match_builtin_table(self, config: ShellMCPServerConfig):
        bare = ShellMCPServerConfig()
        assert "curl" in bare.security.banned_commands
        assert bare.security == config.security

    def test_explicit_empty_list_disables_rule(self, tmp_path):
        (tmp_path / "security.yaml").write_text("security:\n  network_commands: []\n")
        config = load_config(tmp_path, environ={})
        assert config.security.network_commands == []
        assert "curl" in config.security.banned_commands

    def test_user_config_overrides_defaults(self, tmp_path):
        (tmp_path / "config.yaml").write_text(
            "command:\n  max_command_length: 100\nserver:\n  port: 9100\n"
        )
        config = load_config(tmp_path, environ={})
        assert config.command.max_command_length == 100
        assert config.server.port == 9100
        # Untouched keys keep their defaults
        assert config.command.default_timeout_ms == 60000

    def test_user_security_replaces_lists(self, tmp_path):
        (tmp_path / "security.yaml").write_text(
            "security:\n  banned_commands:\n    - git\n"
        )
        config = load_config(tmp_path, environ={})
        assert config.security.banned_commands == ["git"]
        # Other lists keep the built-in table
        assert "ping" in config.security.network_commands

    def test_env_overrides_user_config(self, tmp_path):
        (tmp_path / "config.yaml").write_text("server:\n  port: 9100\n")
        config = load_config(tmp_path, environ={"CBX_MCP_SERVER__PORT": "9200"})
        assert config.server.port == 9200

    def test_invalid_yaml_falls_back(self, tmp_path):
        (tmp_path / "config.yaml").write_text("server: [unclosed\n")
        config = load_config(tmp_path, environ={})
        assert config.server.port == 8080

    def test_invalid_dangerous_pattern_rejected(self, tmp_path):
        (tmp_path / "security.yaml").write_text(
            "security:\n"
            "  dangerous_patterns:\n"
            "    - pattern: '(unclosed'\n"
            "      description: broken\n"
        )
        with pytest.raises(ValidationError):
            load_config(tmp_path, environ={})

    def test_out_of_range_timeout_rejected(self, tmp_path):
        with pytest.raises(ValidationError):
            load_config(tmp_path, environ={"CBX_MCP_COMMAND__DEFAULT_TIMEOUT_MS": "0"})
