"""
Security validation for shell commands.

Checks run in a fixed order and the first failing check decides:
1. Empty command
2. Length ceiling
3. Banned base command (first whitespace token)
4. Banned command prefix (entry followed by whitespace or end of string)
5. Dangerous shell metacharacter and compound patterns
6. Network diagnostic commands without network opt-in
7. Accept, with timeout and output cap clamped into their bounds

The validator is a pure function of its input and policy table. It is a
deny-list plus pattern match, not a shell grammar.
"""

import posixpath
import re
from typing import Optional

from cbx_mcp_shell.config.models import CommandSettings, SecuritySettings
from cbx_mcp_shell.errors import ErrorKind
from cbx_mcp_shell.executor.types import (
    MAX_OUTPUT_BYTES,
    MAX_TIMEOUT_MS,
    MIN_OUTPUT_BYTES,
    MIN_TIMEOUT_MS,
    ExecutionPlan,
    ValidationResult,
)


def clamp(value: Optional[int], low: int, high: int, default: int) -> int:
    """Clamp an optional requested value into [low, high], using default for None."""
    if value is None:
        return default
    return max(low, min(high, int(value)))


def base_command(command: str) -> str:
    """Return the first whitespace-separated token of a command ("" if none)."""
    tokens = command.split()
    return tokens[0] if tokens else ""


class CommandValidator:
    """
    Validates commands against the command policy table.

    The validator is built once from configuration and shared by all
    requests; it holds only immutable, pre-compiled policy data.
    """

    def __init__(
        self,
        security: SecuritySettings,
        command_settings: Optional[CommandSettings] = None,
    ):
        """
        Initialize validator with policy and limits.

        Args:
            security: Policy table (banned commands, network commands, patterns)
            command_settings: Default limits and the command length ceiling
        """
        command_settings = command_settings or CommandSettings()
        self.max_command_length = command_settings.max_command_length
        self.default_timeout_ms = command_settings.default_timeout_ms
        self.default_max_output_bytes = command_settings.default_max_output_bytes

        self.banned_commands = frozenset(
            entry.strip() for entry in security.banned_commands if entry.strip()
        )
        self.network_commands = frozenset(
            entry.strip() for entry in security.network_commands if entry.strip()
        )

        # Compile regex patterns for performance
        self._banned_prefixes: list[tuple[re.Pattern, str]] = [
            (re.compile(re.escape(entry) + r"(\s|$)"), entry)
            for entry in sorted(self.banned_commands, key=len, reverse=True)
        ]
        self._dangerous_patterns: list[tuple[re.Pattern, str]] = [
            (re.compile(rule.pattern), rule.description)
            for rule in security.dangerous_patterns
        ]

    def validate(
        self,
        command: Optional[str],
        timeout_ms: Optional[int] = None,
        max_output_bytes: Optional[int] = None,
        allow_network: Optional[bool] = None,
    ) -> ValidationResult:
        """
        Validate a command and derive its execution plan.

        Args:
            command: The raw command string
            timeout_ms: Requested timeout in milliseconds
            max_output_bytes: Requested standard output cap in bytes
            allow_network: Opt-in for network diagnostic commands

        Returns:
            ValidationResult with an ExecutionPlan, or a classified denial
        """
        raw = command or ""
        stripped = raw.strip()

        if not stripped:
            return ValidationResult.block(
                ErrorKind.EMPTY_COMMAND,
                "Command must not be empty",
                command=raw,
            )

        if len(stripped) > self.max_command_length:
            return ValidationResult.block(
                ErrorKind.COMMAND_TOO_LONG,
                f"Command is {len(stripped)} characters long; "
                f"the limit is {self.max_command_length}",
                command=stripped,
            )

        name = base_command(stripped)
        banned = self._match_banned_name(name)
        if banned:
            return self._banned(banned, stripped)

        for prefix_re, entry in self._banned_prefixes:
            if prefix_re.match(stripped):
                return self._banned(entry, stripped)

        for pattern_re, description in self._dangerous_patterns:
            if pattern_re.search(stripped):
                return ValidationResult.block(
                    ErrorKind.DANGEROUS_PATTERN,
                    f"Command contains a dangerous pattern: {description}",
                    command=stripped,
                    detail=description,
                )

        if allow_network is not True:
            network = self._match_name(name, self.network_commands)
            if network:
                return ValidationResult.block(
                    ErrorKind.NETWORK_REQUIRES_OPT_IN,
                    f"The command '{network}' needs network access; "
                    "set allow_network to run it",
                    command=stripped,
                    detail=network,
                )

        plan = ExecutionPlan(
            command=stripped,
            timeout_ms=clamp(
                timeout_ms, MIN_TIMEOUT_MS, MAX_TIMEOUT_MS, self.default_timeout_ms
            ),
            max_output_bytes=clamp(
                max_output_bytes,
                MIN_OUTPUT_BYTES,
                MAX_OUTPUT_BYTES,
                self.default_max_output_bytes,
            ),
            allow_network=allow_network is True,
        )
        return ValidationResult.allow(plan)

    def _match_banned_name(self, name: str) -> Optional[str]:
        return self._match_name(name, self.banned_commands)

    @staticmethod
    def _match_name(name: str, names: frozenset[str]) -> Optional[str]:
        """
        Match a base command against a name set.

        '/usr/bin/curl' is treated like 'curl'.
        """
        if name in names:
            return name
        basename = posixpath.basename(name)
        if basename and basename in names:
            return basename
        return None

    @staticmethod
    def _banned(name: str, command: str) -> ValidationResult:
        return ValidationResult.block(
            ErrorKind.BANNED_COMMAND,
            f"The command '{name}' is not allowed for security reasons.",
            command=command,
            detail=name,
        )


def create_validator(
    security: SecuritySettings,
    command_settings: Optional[CommandSettings] = None,
) -> CommandValidator:
    """
    Factory function to create a CommandValidator.

    Args:
        security: Policy table
        command_settings: Optional default limits

    Returns:
        Configured CommandValidator instance
    """
    return CommandValidator(security, command_settings)
