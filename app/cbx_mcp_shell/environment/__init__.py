"""
Host and runtime metadata for diagnostic context.
"""

from cbx_mcp_shell.environment.reporter import (
    UNKNOWN,
    EnvironmentReporter,
    EnvironmentSnapshot,
    create_reporter,
    is_sensitive,
    redact_variables,
)

__all__ = [
    "UNKNOWN",
    "EnvironmentReporter",
    "EnvironmentSnapshot",
    "create_reporter",
    "is_sensitive",
    "redact_variables",
]
