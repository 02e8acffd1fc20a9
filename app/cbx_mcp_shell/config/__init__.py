"""
Configuration system for CBX MCP Shell Server.

Exports:
    ShellMCPServerConfig: Main configuration container
    load_config: Load configuration from YAML/env
"""

from cbx_mcp_shell.config.models import (
    CommandSettings,
    DangerousPattern,
    EnvironmentSettings,
    FilesystemSettings,
    SecuritySettings,
    ServerSettings,
    ShellMCPServerConfig,
)
from cbx_mcp_shell.config.loader import load_config

__all__ = [
    "ShellMCPServerConfig",
    "ServerSettings",
    "CommandSettings",
    "DangerousPattern",
    "SecuritySettings",
    "FilesystemSettings",
    "EnvironmentSettings",
    "load_config",
]
