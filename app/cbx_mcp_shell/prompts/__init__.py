"""
MCP Prompt templates.

Provides prompt templates for general command-line assistance and for
code review.
"""

from cbx_mcp_shell.prompts.templates import (
    code_review_messages,
    general_cli_messages,
    register_prompts,
)

__all__ = [
    "code_review_messages",
    "general_cli_messages",
    "register_prompts",
]
