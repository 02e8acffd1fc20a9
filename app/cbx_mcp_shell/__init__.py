"""
CBX MCP Shell Server.

This MCP server gives LLM agents a capability-gated interface to the host:
shell command execution, file read/write, file search and text search.
Every request passes through a validation layer before anything runs.
"""

__version__ = "0.1.0"
