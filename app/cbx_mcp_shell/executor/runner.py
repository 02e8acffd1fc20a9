"""
Async command execution engine.

This module runs approved commands through /bin/sh using asyncio
subprocess management. It includes:
- Wall-clock timeout with termination of the process
- Standard output cap, enforced while reading so memory stays bounded
- Exit status and signal classification
"""

import asyncio
import signal
from typing import Optional

from cbx_mcp_shell.errors import ErrorKind, OperationResult
from cbx_mcp_shell.executor.types import ExecutionPlan, ExecutionResult
from cbx_mcp_shell.executor.validator import CommandValidator
from cbx_mcp_shell.utils.logging import get_logger

logger = get_logger(__name__)

READ_CHUNK_SIZE = 65536
STDERR_TAIL_BYTES = 65536
REAP_TIMEOUT_SECONDS = 1.0


async def _read_capped(
    stream: Optional[asyncio.StreamReader], limit: int
) -> tuple[bytes, bool]:
    """
    Read a stream to EOF, stopping early once more than `limit` bytes arrive.

    Returns:
        (data capped at limit, whether the limit was exceeded)
    """
    if stream is None:
        return b"", False

    buffer = bytearray()
    while True:
        chunk = await stream.read(READ_CHUNK_SIZE)
        if not chunk:
            return bytes(buffer), False
        buffer.extend(chunk)
        if len(buffer) > limit:
            return bytes(buffer[:limit]), True


async def _read_tail(
    stream: Optional[asyncio.StreamReader], keep: int = STDERR_TAIL_BYTES
) -> bytes:
    """
    Drain a stream to EOF, keeping only the last `keep` bytes.

    The pipe is always read to the end so the child never blocks on it.
    """
    if stream is None:
        return b""

    tail = bytearray()
    while True:
        chunk = await stream.read(READ_CHUNK_SIZE)
        if not chunk:
            return bytes(tail)
        tail.extend(chunk)
        if len(tail) > keep:
            del tail[: len(tail) - keep]


async def _communicate(
    process: asyncio.subprocess.Process, limit: int
) -> tuple[bytes, bytes, bool]:
    """
    Collect stdout and stderr concurrently and wait for exit.

    Only stdout counts against `limit`. Stderr is drained in full and its
    tail is kept for logging and error reports.

    Returns:
        (stdout, stderr_tail, stdout_overflowed). On overflow the process is
        left running for the caller to terminate.
    """
    stdout_task = asyncio.ensure_future(_read_capped(process.stdout, limit))
    stderr_task = asyncio.ensure_future(_read_tail(process.stderr))
    try:
        stdout_bytes, overflowed = await stdout_task
        if overflowed:
            return stdout_bytes, b"", True
        stderr_bytes = await stderr_task
        await process.wait()
        return stdout_bytes, stderr_bytes, False
    finally:
        for task in (stdout_task, stderr_task):
            if not task.done():
                task.cancel()


async def _terminate(process: asyncio.subprocess.Process) -> None:
    """Send a single terminate signal, then wait briefly for the exit."""
    if process.returncode is not None:
        return
    try:
        process.terminate()
    except ProcessLookupError:
        return
    try:
        await asyncio.wait_for(process.wait(), timeout=REAP_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        logger.warning("Process %s did not exit after SIGTERM", process.pid)


def _signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return f"signal {signum}"


class CommandRunner:
    """
    Executes shell commands with policy validation and resource limits.

    This class is the main entry point for command execution. It:
    1. Validates commands against the policy table
    2. Executes approved commands asynchronously through the shell
    3. Enforces timeouts and output limits
    4. Returns typed results
    """

    def __init__(self, validator: CommandValidator):
        """
        Initialize the command runner.

        Args:
            validator: CommandValidator instance for policy checks
        """
        self.validator = validator

    async def execute(
        self,
        command: Optional[str],
        timeout_ms: Optional[int] = None,
        max_output_bytes: Optional[int] = None,
        allow_network: Optional[bool] = None,
    ) -> OperationResult[ExecutionResult]:
        """
        Validate a command and run it if the policy allows.

        Denied commands never spawn a process.

        Args:
            command: The raw command string
            timeout_ms: Requested timeout in milliseconds
            max_output_bytes: Requested standard output cap
            allow_network: Opt-in for network diagnostic commands

        Returns:
            OperationResult with ExecutionResult, or a classified error
        """
        validation = self.validator.validate(
            command,
            timeout_ms=timeout_ms,
            max_output_bytes=max_output_bytes,
            allow_network=allow_network,
        )
        if not validation.allowed:
            logger.info(
                "Command denied (%s): %r - %s",
                validation.kind.value,
                command,
                validation.reason,
            )
            return OperationResult(error=validation.error)

        return await self.run(validation.plan)

    async def run(self, plan: ExecutionPlan) -> OperationResult[ExecutionResult]:
        """
        Run a vetted execution plan.

        Args:
            plan: Plan produced by CommandValidator.validate

        Returns:
            OperationResult with the verbatim standard output, or a
            Timeout / ProcessFailed / ProcessSignaled / OutputTruncated error
        """
        logger.debug(
            "Executing %r (timeout=%dms, max_output=%d bytes)",
            plan.command,
            plan.timeout_ms,
            plan.max_output_bytes,
        )

        try:
            process = await asyncio.create_subprocess_shell(
                plan.command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error("Failed to start shell for %r: %s", plan.command, e)
            return OperationResult.failure(
                ErrorKind.UNCLASSIFIED,
                f"Failed to start command: {e}",
                command=plan.command,
            )

        try:
            stdout_bytes, stderr_bytes, overflowed = await asyncio.wait_for(
                _communicate(process, plan.max_output_bytes),
                timeout=plan.timeout_seconds,
            )
        except asyncio.TimeoutError:
            await _terminate(process)
            logger.warning(
                "Command timed out after %dms: %r", plan.timeout_ms, plan.command
            )
            return OperationResult.failure(
                ErrorKind.TIMEOUT,
                f"Command timed out after {plan.timeout_ms}ms",
                command=plan.command,
            )

        if overflowed:
            await _terminate(process)
            logger.warning(
                "Command output exceeded %d bytes: %r",
                plan.max_output_bytes,
                plan.command,
            )
            return OperationResult.failure(
                ErrorKind.OUTPUT_TRUNCATED,
                f"Command output exceeded {plan.max_output_bytes} bytes",
                command=plan.command,
            )

        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")
        exit_code = process.returncode

        if exit_code is not None and exit_code < 0:
            name = _signal_name(-exit_code)
            logger.warning("Command terminated by %s: %r", name, plan.command)
            return OperationResult.failure(
                ErrorKind.PROCESS_SIGNALED,
                f"Command was terminated by {name}",
                command=plan.command,
                signal=name,
                stderr=stderr or None,
            )

        if exit_code != 0:
            logger.warning(
                "Command exited with status %s: %r", exit_code, plan.command
            )
            return OperationResult.failure(
                ErrorKind.PROCESS_FAILED,
                f"Command exited with status {exit_code}",
                command=plan.command,
                exit_code=exit_code,
                stderr=stderr,
            )

        if stderr:
            logger.warning("Command stderr for %r: %s", plan.command, stderr.rstrip())

        return OperationResult.success(ExecutionResult(stdout=stdout))


def create_runner(validator: CommandValidator) -> CommandRunner:
    """
    Factory function to create a CommandRunner.

    Args:
        validator: Configured CommandValidator

    Returns:
        CommandRunner instance
    """
    return CommandRunner(validator=validator)
