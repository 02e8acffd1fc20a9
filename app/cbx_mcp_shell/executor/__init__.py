"""
Command execution engine with security validation.

This module handles:
- Command policy validation
- Async subprocess execution
- Timeout and output-size enforcement
"""

from cbx_mcp_shell.executor.types import (
    MAX_OUTPUT_BYTES,
    MAX_TIMEOUT_MS,
    MIN_OUTPUT_BYTES,
    MIN_TIMEOUT_MS,
    ExecutionPlan,
    ExecutionResult,
    ValidationResult,
)
from cbx_mcp_shell.executor.validator import (
    CommandValidator,
    base_command,
    clamp,
    create_validator,
)
from cbx_mcp_shell.executor.runner import (
    CommandRunner,
    create_runner,
)

__all__ = [
    # Types
    "ExecutionPlan",
    "ExecutionResult",
    "ValidationResult",
    # Limits
    "MIN_TIMEOUT_MS",
    "MAX_TIMEOUT_MS",
    "MIN_OUTPUT_BYTES",
    "MAX_OUTPUT_BYTES",
    # Validator
    "CommandValidator",
    "create_validator",
    "base_command",
    "clamp",
    # Runner
    "CommandRunner",
    "create_runner",
]
