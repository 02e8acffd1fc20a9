"""Shared helpers."""

from cbx_mcp_shell.utils.logging import get_logger, setup_logging

__all__ = [
    "get_logger",
    "setup_logging",
]
