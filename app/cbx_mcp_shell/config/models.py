"""
Pydantic models for server configuration.

Configuration is loaded once at startup and handed to components
explicitly; nothing reads a module-level config global.
"""

import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

BUILTIN_SECURITY_PATH = Path(__file__).parent / "defaults" / "security.yaml"


class ServerSettings(BaseModel):
    """Server configuration settings."""

    host: str = Field(
        default="127.0.0.1",
        description="Host to bind the server to",
    )
    port: int = Field(
        default=8080,
        ge=1,
        le=65535,
        description="Port to listen on",
    )
    transport: Literal["streamable-http", "stdio"] = Field(
        default="stdio",
        description="Transport protocol to use",
    )
    log_level: Literal["debug", "info", "warning", "error"] = Field(
        default="info",
        description="Logging level",
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional log file path (console logging always goes to stderr)",
    )


class CommandSettings(BaseModel):
    """Command execution settings."""

    default_timeout_ms: int = Field(
        default=60000,
        ge=1,
        le=600000,
        description="Timeout applied when a request does not specify one",
    )
    default_max_output_bytes: int = Field(
        default=1048576,
        ge=1,
        le=10485760,
        description="Output cap applied when a request does not specify one",
    )
    max_command_length: int = Field(
        default=500,
        ge=1,
        description="Commands longer than this are rejected outright",
    )


class DangerousPattern(BaseModel):
    """A regex rule in the command policy table."""

    pattern: str
    description: str

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        """Reject rules that do not compile."""
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"Invalid regex pattern '{v}': {e}") from e
        return v


@lru_cache(maxsize=1)
def _builtin_security_table() -> dict[str, Any]:
    """Read the packaged policy table once."""
    with open(BUILTIN_SECURITY_PATH) as f:
        content = yaml.safe_load(f) or {}
    return content.get("security") or {}


def _builtin_banned_commands() -> list[str]:
    return list(_builtin_security_table().get("banned_commands", []))


def _builtin_network_commands() -> list[str]:
    return list(_builtin_security_table().get("network_commands", []))


def _builtin_dangerous_patterns() -> list[DangerousPattern]:
    return [
        DangerousPattern(**rule)
        for rule in _builtin_security_table().get("dangerous_patterns", [])
    ]


class SecuritySettings(BaseModel):
    """
    Command policy table.

    Unset lists fall back to the built-in table in
    config/defaults/security.yaml, so a bare SecuritySettings() enforces the
    full policy. A user security.yaml replaces individual lists wholesale.
    """

    banned_commands: list[str] = Field(
        default_factory=_builtin_banned_commands,
        description="Command names (or multi-word prefixes) that are never executed",
    )
    network_commands: list[str] = Field(
        default_factory=_builtin_network_commands,
        description="Network diagnostic commands that require allow_network",
    )
    dangerous_patterns: list[DangerousPattern] = Field(
        default_factory=_builtin_dangerous_patterns,
        description="Shell metacharacter and compound patterns that are rejected",
    )


class FilesystemSettings(BaseModel):
    """Filesystem operation settings."""

    max_search_results: int = Field(
        default=1000,
        ge=1,
        description="Maximum paths or matching lines returned by a search",
    )


class EnvironmentSettings(BaseModel):
    """Environment reporter settings."""

    sensitive_patterns: list[str] = Field(
        default_factory=lambda: [
            "token",
            "key",
            "secret",
            "password",
            "credential",
            "auth",
        ],
        description="Case-insensitive substrings marking a variable as sensitive",
    )
    redaction_marker: str = Field(
        default="[REDACTED]",
        description="Value reported in place of a sensitive variable",
    )
    probe_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for each version probe subprocess",
    )


class ShellMCPServerConfig(BaseModel):
    """
    Main configuration container for CBX MCP Shell Server.

    Loaded from YAML files and environment variables, then passed to
    server components via dependency injection.
    """

    server: ServerSettings = Field(default_factory=ServerSettings)
    command: CommandSettings = Field(default_factory=CommandSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    filesystem: FilesystemSettings = Field(default_factory=FilesystemSettings)
    environment: EnvironmentSettings = Field(default_factory=EnvironmentSettings)

    # Allow extra fields to be ignored (forward compatibility)
    model_config = ConfigDict(extra="ignore")
