"""
Type definitions for command execution.

This module defines the data structures used throughout the executor.
"""

from dataclasses import dataclass
from typing import Optional

from cbx_mcp_shell.errors import ErrorKind, OperationError

# Hard bounds for per-request limits. Requested values are clamped, not rejected.
MIN_TIMEOUT_MS = 1
MAX_TIMEOUT_MS = 600_000

MIN_OUTPUT_BYTES = 1
MAX_OUTPUT_BYTES = 10_485_760


@dataclass(frozen=True)
class ExecutionPlan:
    """
    Normalized, bounds-clamped parameters for running one approved command.

    Created by the validator for a single request and never persisted.

    Attributes:
        command: The trimmed command string passed to the shell
        timeout_ms: Wall-clock limit in milliseconds
        max_output_bytes: Standard output cap in bytes
        allow_network: Whether network diagnostic commands were opted in
    """

    command: str
    timeout_ms: int
    max_output_bytes: int
    allow_network: bool = False

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000


@dataclass
class ExecutionResult:
    """Captured standard output of a successful command, verbatim."""

    stdout: str

    def to_dict(self) -> dict:
        return {"stdout": self.stdout}


@dataclass
class ValidationResult:
    """
    Result of command policy validation.

    Attributes:
        allowed: Whether the command may run
        plan: Execution plan (only when allowed)
        error: Classified denial (only when not allowed)
    """

    allowed: bool
    plan: Optional[ExecutionPlan] = None
    error: Optional[OperationError] = None

    @property
    def reason(self) -> Optional[str]:
        return self.error.message if self.error else None

    @property
    def kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None

    @classmethod
    def allow(cls, plan: ExecutionPlan) -> "ValidationResult":
        """Create an allowing result."""
        return cls(allowed=True, plan=plan)

    @classmethod
    def block(
        cls,
        kind: ErrorKind,
        reason: str,
        command: str,
        detail: Optional[str] = None,
    ) -> "ValidationResult":
        """Create a blocking result."""
        return cls(
            allowed=False,
            error=OperationError(
                kind=kind,
                message=reason,
                command=command,
                detail=detail,
            ),
        )
