"""
Operation definitions and the response envelope.

Each capability is an Operation: a name, a pydantic input model and an
async handler returning an OperationResult already rendered to text.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from cbx_mcp_shell.errors import ErrorKind, OperationError, OperationResult


@dataclass
class ResponseEnvelope:
    """
    Uniform response returned for every operation call.

    Attributes:
        payload: Text returned to the caller (output, or rendered error)
        is_error: Whether the call failed
        error_kind: Classified failure kind, when is_error is set
    """

    payload: str
    is_error: bool = False
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def success(cls, payload: str) -> "ResponseEnvelope":
        return cls(payload=payload)

    @classmethod
    def from_error(cls, error: OperationError) -> "ResponseEnvelope":
        return cls(payload=error.render(), is_error=True, error_kind=error.kind)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"payload": self.payload, "isError": self.is_error}


OperationHandler = Callable[[Any], Awaitable[OperationResult[str]]]


@dataclass
class Operation:
    """A named capability bound to its input shape and handler."""

    name: str
    title: str
    description: str
    input_model: type[BaseModel]
    handler: OperationHandler
    read_only: bool = True
    destructive: bool = False


# =============================================================================
# Input models
# =============================================================================


class OperationInput(BaseModel):
    """
    Base for operation inputs.

    Fields accept both snake_case and camelCase names (timeout_ms or
    timeoutMs). Unknown fields are dropped.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class ExecuteCommandInput(OperationInput):
    command: str = Field(description="The shell command to execute")
    timeout_ms: Optional[int] = Field(
        default=None,
        description="Timeout in milliseconds (clamped to 1..600000, default 60000)",
    )
    max_output_bytes: Optional[int] = Field(
        default=None,
        description="Standard output cap in bytes (clamped to 1..10485760, default 1048576)",
    )
    allow_network: Optional[bool] = Field(
        default=None,
        description="Allow network diagnostic commands such as ping or dig",
    )


class ReadFileInput(OperationInput):
    path: str = Field(description="Path of the file to read")
    offset_line: Optional[int] = Field(
        default=None, ge=1, description="1-based line number to start reading from"
    )
    limit_lines: Optional[int] = Field(
        default=None, ge=1, description="Number of lines to read"
    )


class ListFilesInput(OperationInput):
    path: str = Field(description="Path of the directory to list")


class SearchGlobInput(OperationInput):
    pattern: str = Field(description="Glob pattern to match file names against")
    path: Optional[str] = Field(
        default=None,
        description="Directory to search in (defaults to the working directory)",
    )


class GrepSearchInput(OperationInput):
    pattern: str = Field(description="Regular expression to search for in file contents")
    path: Optional[str] = Field(
        default=None,
        description="File or directory to search in (defaults to the working directory)",
    )
    include: Optional[str] = Field(
        default=None,
        description='File name pattern to include (e.g. "*.py", "*.{ts,tsx}")',
    )


class WriteFileInput(OperationInput):
    path: str = Field(description="Path of the file to write")
    content: str = Field(description="Full new content of the file (may be empty)")


class EnvironmentSnapshotInput(OperationInput):
    pass


class ThinkInput(OperationInput):
    thought: str = Field(description="Your thoughts")


class CodeReviewInput(OperationInput):
    code: str = Field(description="The code to review")
