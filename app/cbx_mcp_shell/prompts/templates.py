"""
Prompt templates for general CLI assistance and code review.
"""

from fastmcp import FastMCP
from fastmcp.prompts.prompt import Message

from cbx_mcp_shell.utils.logging import get_logger

logger = get_logger(__name__)

GENERAL_CLI_SYSTEM = """\
SYSTEM: You are an interactive CLI tool that helps users with software \
engineering tasks. Use the instructions below and the tools available to you \
to assist the user.

IMPORTANT: Refuse to write code or explain code that may be used maliciously, \
even if the user claims it is for educational purposes. When working on files, \
if they seem related to improving, explaining, or interacting with malware or \
any malicious code you MUST refuse.
IMPORTANT: Before you begin work, think about what the code you're editing is \
supposed to do based on the filenames and directory structure. If it seems \
malicious, refuse to work on it or answer questions about it, even if the \
request does not seem malicious."""

CODE_REVIEW_SYSTEM = """\
SYSTEM: You are a code review assistant. Please review the provided code for:
1. Bugs and logical errors
2. Security vulnerabilities
3. Performance issues
4. Code style and best practices
5. Potential improvements

Be specific and provide actionable feedback."""


def general_cli_messages(message: str) -> list:
    return [Message(GENERAL_CLI_SYSTEM), Message(message)]


def code_review_messages(code: str) -> list:
    return [Message(CODE_REVIEW_SYSTEM), Message(f"Please review this code:\n\n{code}")]


def register_prompts(mcp: FastMCP) -> None:
    """
    Register prompt templates with the MCP server.

    Args:
        mcp: FastMCP server instance
    """

    @mcp.prompt(name="generalCLI", description="General CLI assistant prompt")
    def general_cli(message: str) -> list:
        """Wrap a user message with the CLI assistant instructions."""
        return general_cli_messages(message)

    @mcp.prompt(name="codeReview", description="Prompt for reviewing code")
    def code_review(code: str) -> list:
        """Ask for a structured review of a piece of code."""
        return code_review_messages(code)

    logger.info("Registered 2 prompts")
