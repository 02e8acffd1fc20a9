"""
Type definitions for filesystem operations.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

NO_MATCHES = "No matches found"


@dataclass
class DirectoryEntry:
    """
    One child of a listed directory.

    When stat fails for the entry, only name, path and error are set.
    """

    name: str
    path: str
    is_directory: Optional[bool] = None
    size: Optional[int] = None
    modified_at: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        if self.error is not None:
            return {"name": self.name, "path": self.path, "error": self.error}
        return {
            "name": self.name,
            "path": self.path,
            "isDirectory": self.is_directory,
            "size": self.size,
            "modifiedAt": self.modified_at,
        }


@dataclass
class SearchResult:
    """
    Outcome of a glob or grep search.

    An empty `items` list is a valid result, rendered as the NO_MATCHES
    sentinel rather than an error.
    """

    items: list[str] = field(default_factory=list)
    truncated: bool = False
    limit: Optional[int] = None

    @property
    def has_matches(self) -> bool:
        return bool(self.items)

    def render(self) -> str:
        if not self.items:
            return NO_MATCHES
        text = "\n".join(self.items)
        if self.truncated:
            text += f"\n... (results truncated at {self.limit})"
        return text
