"""
Filesystem operations: read, write, list, glob search and grep.
"""

from cbx_mcp_shell.filesystem.types import (
    NO_MATCHES,
    DirectoryEntry,
    SearchResult,
)
from cbx_mcp_shell.filesystem.operations import (
    FileSystemOperations,
    create_filesystem,
    expand_braces,
)

__all__ = [
    "NO_MATCHES",
    "DirectoryEntry",
    "SearchResult",
    "FileSystemOperations",
    "create_filesystem",
    "expand_braces",
]
