"""
MCP tools for shell command execution and file operations.

Every tool is an Operation held by the OperationRegistry, which validates
arguments, dispatches to the executor, filesystem or environment
components and returns a ResponseEnvelope.
"""

from cbx_mcp_shell.tools.base import (
    Operation,
    OperationInput,
    ResponseEnvelope,
)
from cbx_mcp_shell.tools.registry import (
    OperationRegistry,
    create_registry,
)

__all__ = [
    # Base classes
    "Operation",
    "OperationInput",
    "ResponseEnvelope",
    # Registry
    "OperationRegistry",
    "create_registry",
]
