"""
Typed outcomes shared by every component.

Components never raise across module boundaries. They return an
OperationResult holding either a value or an OperationError, and the
operation registry renders that into the response envelope.

Taxonomy:
    ValidationError      EmptyCommand, CommandTooLong, InvalidInput, InvalidPattern
    PolicyDenied         BannedCommand, DangerousPattern, NetworkRequiresOptIn
    ExecutionFailure     Timeout, ProcessFailed, ProcessSignaled, OutputTruncated
    FileSystemFailure    NotFound, NotADirectory, NotReadable, NotWritable,
                         OffsetOutOfRange
    UnclassifiedFailure  anything else
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorCategory(str, Enum):
    """Top-level failure classes."""

    VALIDATION = "ValidationError"
    POLICY_DENIED = "PolicyDenied"
    EXECUTION = "ExecutionFailure"
    FILESYSTEM = "FileSystemFailure"
    UNCLASSIFIED = "UnclassifiedFailure"


class ErrorKind(str, Enum):
    """Specific failure kinds. The value is what callers see."""

    # Validation
    EMPTY_COMMAND = "EmptyCommand"
    COMMAND_TOO_LONG = "CommandTooLong"
    INVALID_INPUT = "InvalidInput"
    INVALID_PATTERN = "InvalidPattern"

    # Policy
    BANNED_COMMAND = "BannedCommand"
    DANGEROUS_PATTERN = "DangerousPattern"
    NETWORK_REQUIRES_OPT_IN = "NetworkRequiresOptIn"

    # Execution
    TIMEOUT = "Timeout"
    PROCESS_FAILED = "ProcessFailed"
    PROCESS_SIGNALED = "ProcessSignaled"
    OUTPUT_TRUNCATED = "OutputTruncated"

    # Filesystem
    NOT_FOUND = "NotFound"
    NOT_A_DIRECTORY = "NotADirectory"
    NOT_READABLE = "NotReadable"
    NOT_WRITABLE = "NotWritable"
    OFFSET_OUT_OF_RANGE = "OffsetOutOfRange"

    UNCLASSIFIED = "UnclassifiedFailure"

    @property
    def category(self) -> ErrorCategory:
        """The category this kind belongs to."""
        return _CATEGORIES[self]


_CATEGORIES: dict[ErrorKind, ErrorCategory] = {
    ErrorKind.EMPTY_COMMAND: ErrorCategory.VALIDATION,
    ErrorKind.COMMAND_TOO_LONG: ErrorCategory.VALIDATION,
    ErrorKind.INVALID_INPUT: ErrorCategory.VALIDATION,
    ErrorKind.INVALID_PATTERN: ErrorCategory.VALIDATION,
    ErrorKind.BANNED_COMMAND: ErrorCategory.POLICY_DENIED,
    ErrorKind.DANGEROUS_PATTERN: ErrorCategory.POLICY_DENIED,
    ErrorKind.NETWORK_REQUIRES_OPT_IN: ErrorCategory.POLICY_DENIED,
    ErrorKind.TIMEOUT: ErrorCategory.EXECUTION,
    ErrorKind.PROCESS_FAILED: ErrorCategory.EXECUTION,
    ErrorKind.PROCESS_SIGNALED: ErrorCategory.EXECUTION,
    ErrorKind.OUTPUT_TRUNCATED: ErrorCategory.EXECUTION,
    ErrorKind.NOT_FOUND: ErrorCategory.FILESYSTEM,
    ErrorKind.NOT_A_DIRECTORY: ErrorCategory.FILESYSTEM,
    ErrorKind.NOT_READABLE: ErrorCategory.FILESYSTEM,
    ErrorKind.NOT_WRITABLE: ErrorCategory.FILESYSTEM,
    ErrorKind.OFFSET_OUT_OF_RANGE: ErrorCategory.FILESYSTEM,
    ErrorKind.UNCLASSIFIED: ErrorCategory.UNCLASSIFIED,
}


@dataclass
class OperationError:
    """
    A classified failure.

    Attributes:
        kind: Specific failure kind
        message: Human-readable explanation
        command: The command involved, for execution and policy failures
        stderr: Captured standard error, for failed processes
        exit_code: Process exit status, for failed processes
        signal: Signal name, for processes killed by a signal
        detail: The offending item (banned name, pattern description, path)
    """

    kind: ErrorKind
    message: str
    command: Optional[str] = None
    stderr: Optional[str] = None
    exit_code: Optional[int] = None
    signal: Optional[str] = None
    detail: Optional[str] = None

    @property
    def category(self) -> ErrorCategory:
        return self.kind.category

    def render(self) -> str:
        """Render as the caller-facing '<Kind>: <message>' text."""
        text = f"{self.kind.value}: {self.message}"
        if self.stderr:
            text = f"{text}\n{self.stderr.rstrip()}"
        return text

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data: dict[str, Any] = {
            "kind": self.kind.value,
            "category": self.category.value,
            "message": self.message,
        }
        for name in ("command", "stderr", "exit_code", "signal", "detail"):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        return data


@dataclass
class OperationResult(Generic[T]):
    """Tagged success/error value returned by component calls."""

    value: Optional[T] = None
    error: Optional[OperationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "OperationResult[T]":
        """Create a successful result."""
        return cls(value=value)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        message: str,
        **fields: Any,
    ) -> "OperationResult[T]":
        """Create a failed result."""
        return cls(error=OperationError(kind=kind, message=message, **fields))
