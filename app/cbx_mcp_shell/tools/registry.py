"""
Operation Registry.

Binds each operation name to its input model and handler, validates
incoming arguments, runs the handler and converts the typed outcome into
a ResponseEnvelope. Also registers the operations as FastMCP tools.
"""

import asyncio
import json
from typing import Annotated, Any, Callable, Mapping, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field, ValidationError

from cbx_mcp_shell.environment import EnvironmentReporter
from cbx_mcp_shell.errors import ErrorKind, OperationError, OperationResult
from cbx_mcp_shell.executor import CommandRunner
from cbx_mcp_shell.filesystem import FileSystemOperations
from cbx_mcp_shell.http.metrics import MetricsCollector
from cbx_mcp_shell.tools.base import (
    CodeReviewInput,
    EnvironmentSnapshotInput,
    ExecuteCommandInput,
    GrepSearchInput,
    ListFilesInput,
    Operation,
    ReadFileInput,
    ResponseEnvelope,
    SearchGlobInput,
    ThinkInput,
    WriteFileInput,
)
from cbx_mcp_shell.utils.logging import get_logger

logger = get_logger(__name__)

CODE_REVIEW_MESSAGE = "Code review functionality will be handled by the LLM through prompts."


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "arguments"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def _render(result: OperationResult, render: Callable[[Any], str]) -> OperationResult[str]:
    if not result.ok:
        return OperationResult(error=result.error)
    return OperationResult.success(render(result.value))


class OperationRegistry:
    """
    Dispatches operation calls.

    Every call, whatever its outcome, produces exactly one
    ResponseEnvelope. Unexpected exceptions from a handler are logged with
    their traceback and reported as UnclassifiedFailure.
    """

    def __init__(
        self,
        runner: CommandRunner,
        filesystem: FileSystemOperations,
        reporter: EnvironmentReporter,
        metrics: Optional[MetricsCollector] = None,
        environ: Optional[Callable[[], Mapping[str, str]]] = None,
    ):
        """
        Initialize registry with the builtin operations.

        Args:
            runner: Command runner for executeCommand
            filesystem: Filesystem operations
            reporter: Environment reporter for getEnvironmentSnapshot
            metrics: Optional metrics collector
            environ: Optional provider of the environment to report
                     (defaults to os.environ at call time)
        """
        self.runner = runner
        self.filesystem = filesystem
        self.reporter = reporter
        self.metrics = metrics
        self._environ = environ
        self._operations: dict[str, Operation] = {}
        self._register_builtin_operations()

    # ------------------------------------------------------------ registration

    def register(self, operation: Operation) -> None:
        """Add an operation. Names must be unique."""
        if operation.name in self._operations:
            raise ValueError(f"Operation already registered: {operation.name}")
        self._operations[operation.name] = operation

    def get(self, name: str) -> Optional[Operation]:
        """Get a registered operation by name."""
        return self._operations.get(name)

    @property
    def operation_names(self) -> list[str]:
        """Get names of all registered operations."""
        return list(self._operations.keys())

    def _register_builtin_operations(self) -> None:
        self.register(Operation(
            name="executeCommand",
            title="Execute Shell Command",
            description=(
                "Execute a shell command after policy validation. Returns "
                "standard output. Network diagnostics (ping, dig, ...) require "
                "allow_network=true."
            ),
            input_model=ExecuteCommandInput,
            handler=self._execute_command,
            read_only=False,
            destructive=True,
        ))
        self.register(Operation(
            name="readFile",
            title="Read File",
            description="Read a text file, optionally a range of lines.",
            input_model=ReadFileInput,
            handler=self._read_file,
        ))
        self.register(Operation(
            name="listFiles",
            title="List Directory",
            description="List directory entries with type, size and modification time.",
            input_model=ListFilesInput,
            handler=self._list_files,
        ))
        self.register(Operation(
            name="searchGlob",
            title="Find Files by Glob",
            description="Find files matching a glob pattern, recursively.",
            input_model=SearchGlobInput,
            handler=self._search_glob,
        ))
        self.register(Operation(
            name="grepSearch",
            title="Search File Contents",
            description="Search file contents for a regular expression.",
            input_model=GrepSearchInput,
            handler=self._grep_search,
        ))
        self.register(Operation(
            name="writeFile",
            title="Write File",
            description="Write content to a file, creating parent directories.",
            input_model=WriteFileInput,
            handler=self._write_file,
            read_only=False,
            destructive=True,
        ))
        self.register(Operation(
            name="getEnvironmentSnapshot",
            title="Environment Snapshot",
            description=(
                "Runtime, package manager and OS versions plus environment "
                "variables with sensitive values redacted."
            ),
            input_model=EnvironmentSnapshotInput,
            handler=self._environment_snapshot,
        ))
        self.register(Operation(
            name="think",
            title="Think",
            description="Record a thought. Nothing is executed or changed.",
            input_model=ThinkInput,
            handler=self._think,
        ))
        self.register(Operation(
            name="codeReview",
            title="Code Review",
            description="Request a review of a piece of code.",
            input_model=CodeReviewInput,
            handler=self._code_review,
        ))

    # ---------------------------------------------------------------- dispatch

    async def invoke(
        self, name: str, arguments: Optional[Mapping[str, Any]] = None
    ) -> ResponseEnvelope:
        """
        Validate arguments, run the operation and build the envelope.

        Args:
            name: Operation name
            arguments: Raw argument mapping

        Returns:
            ResponseEnvelope; is_error is set for every failure
        """
        envelope = await self._dispatch(name, arguments or {})
        if self.metrics is not None:
            self.metrics.record(name, envelope.error_kind)
        return envelope

    async def _dispatch(self, name: str, arguments: Mapping[str, Any]) -> ResponseEnvelope:
        operation = self._operations.get(name)
        if operation is None:
            return ResponseEnvelope.from_error(OperationError(
                kind=ErrorKind.INVALID_INPUT,
                message=f"Unknown operation: {name}",
                detail=name,
            ))

        try:
            request = operation.input_model.model_validate(dict(arguments))
        except ValidationError as e:
            return ResponseEnvelope.from_error(OperationError(
                kind=ErrorKind.INVALID_INPUT,
                message=f"Invalid arguments for {name}: {_format_validation_error(e)}",
            ))

        try:
            result = await operation.handler(request)
        except Exception as e:
            logger.exception("Operation %s failed unexpectedly", name)
            return ResponseEnvelope.from_error(OperationError(
                kind=ErrorKind.UNCLASSIFIED,
                message=str(e) or type(e).__name__,
            ))

        if not result.ok:
            logger.debug("Operation %s returned %s", name, result.error.kind.value)
            return ResponseEnvelope.from_error(result.error)
        return ResponseEnvelope.success(result.value)

    # ---------------------------------------------------------------- handlers

    async def _execute_command(self, request: ExecuteCommandInput) -> OperationResult[str]:
        result = await self.runner.execute(
            request.command,
            timeout_ms=request.timeout_ms,
            max_output_bytes=request.max_output_bytes,
            allow_network=request.allow_network,
        )
        return _render(result, lambda value: value.stdout)

    async def _read_file(self, request: ReadFileInput) -> OperationResult[str]:
        return await asyncio.to_thread(
            self.filesystem.read, request.path, request.offset_line, request.limit_lines
        )

    async def _list_files(self, request: ListFilesInput) -> OperationResult[str]:
        result = await asyncio.to_thread(self.filesystem.list_directory, request.path)
        return _render(
            result,
            lambda entries: json.dumps([entry.to_dict() for entry in entries], indent=2),
        )

    async def _search_glob(self, request: SearchGlobInput) -> OperationResult[str]:
        result = await asyncio.to_thread(
            self.filesystem.search_glob, request.pattern, request.path
        )
        return _render(result, lambda value: value.render())

    async def _grep_search(self, request: GrepSearchInput) -> OperationResult[str]:
        result = await asyncio.to_thread(
            self.filesystem.grep_search, request.pattern, request.path, request.include
        )
        return _render(result, lambda value: value.render())

    async def _write_file(self, request: WriteFileInput) -> OperationResult[str]:
        return await asyncio.to_thread(self.filesystem.write, request.path, request.content)

    async def _environment_snapshot(
        self, request: EnvironmentSnapshotInput
    ) -> OperationResult[str]:
        environ = self._environ() if self._environ is not None else None
        snapshot = await self.reporter.snapshot(environ)
        return OperationResult.success(json.dumps(snapshot.to_dict(), indent=2))

    async def _think(self, request: ThinkInput) -> OperationResult[str]:
        return OperationResult.success(f"Thought process: {request.thought}")

    async def _code_review(self, request: CodeReviewInput) -> OperationResult[str]:
        return OperationResult.success(CODE_REVIEW_MESSAGE)

    # ----------------------------------------------------------------- FastMCP

    def register_with_mcp(self, mcp: FastMCP) -> None:
        """
        Register every operation as a FastMCP tool.

        Failed calls raise ToolError with the rendered error so the client
        receives an isError result.
        """

        async def call(name: str, **arguments: Any) -> str:
            envelope = await self.invoke(name, arguments)
            if envelope.is_error:
                raise ToolError(envelope.payload)
            return envelope.payload

        def annotations(name: str) -> dict[str, Any]:
            operation = self._operations[name]
            return {
                "title": operation.title,
                "readOnlyHint": operation.read_only,
                "destructiveHint": operation.destructive,
            }

        def description(name: str) -> str:
            return self._operations[name].description

        @mcp.tool(
            name="executeCommand",
            description=description("executeCommand"),
            annotations={**annotations("executeCommand"), "openWorldHint": True},
        )
        async def execute_command(
            command: Annotated[str, Field(description="The shell command to execute")],
            timeout_ms: Annotated[
                Optional[int],
                Field(description="Timeout in milliseconds (1..600000, default 60000)"),
            ] = None,
            max_output_bytes: Annotated[
                Optional[int],
                Field(description="Standard output cap in bytes (default 1048576)"),
            ] = None,
            allow_network: Annotated[
                Optional[bool],
                Field(description="Allow network diagnostic commands"),
            ] = None,
        ) -> str:
            return await call(
                "executeCommand",
                command=command,
                timeout_ms=timeout_ms,
                max_output_bytes=max_output_bytes,
                allow_network=allow_network,
            )

        @mcp.tool(
            name="readFile",
            description=description("readFile"),
            annotations=annotations("readFile"),
        )
        async def read_file(
            path: Annotated[str, Field(description="Path of the file to read")],
            offset_line: Annotated[
                Optional[int], Field(description="1-based first line to read")
            ] = None,
            limit_lines: Annotated[
                Optional[int], Field(description="Number of lines to read")
            ] = None,
        ) -> str:
            return await call(
                "readFile", path=path, offset_line=offset_line, limit_lines=limit_lines
            )

        @mcp.tool(
            name="listFiles",
            description=description("listFiles"),
            annotations=annotations("listFiles"),
        )
        async def list_files(
            path: Annotated[str, Field(description="Path of the directory to list")],
        ) -> str:
            return await call("listFiles", path=path)

        @mcp.tool(
            name="searchGlob",
            description=description("searchGlob"),
            annotations=annotations("searchGlob"),
        )
        async def search_glob(
            pattern: Annotated[str, Field(description="Glob pattern, e.g. *.py")],
            path: Annotated[
                Optional[str], Field(description="Directory to search in")
            ] = None,
        ) -> str:
            return await call("searchGlob", pattern=pattern, path=path)

        @mcp.tool(
            name="grepSearch",
            description=description("grepSearch"),
            annotations=annotations("grepSearch"),
        )
        async def grep_search(
            pattern: Annotated[str, Field(description="Regular expression to search for")],
            path: Annotated[
                Optional[str], Field(description="File or directory to search in")
            ] = None,
            include: Annotated[
                Optional[str], Field(description='File name filter, e.g. "*.{ts,tsx}"')
            ] = None,
        ) -> str:
            return await call("grepSearch", pattern=pattern, path=path, include=include)

        @mcp.tool(
            name="writeFile",
            description=description("writeFile"),
            annotations=annotations("writeFile"),
        )
        async def write_file(
            path: Annotated[str, Field(description="Path of the file to write")],
            content: Annotated[str, Field(description="Full new content of the file")],
        ) -> str:
            return await call("writeFile", path=path, content=content)

        @mcp.tool(
            name="getEnvironmentSnapshot",
            description=description("getEnvironmentSnapshot"),
            annotations=annotations("getEnvironmentSnapshot"),
        )
        async def get_environment_snapshot() -> str:
            return await call("getEnvironmentSnapshot")

        @mcp.tool(
            name="think",
            description=description("think"),
            annotations=annotations("think"),
        )
        async def think(
            thought: Annotated[str, Field(description="Your thoughts")],
        ) -> str:
            return await call("think", thought=thought)

        @mcp.tool(
            name="codeReview",
            description=description("codeReview"),
            annotations=annotations("codeReview"),
        )
        async def code_review(
            code: Annotated[str, Field(description="The code to review")],
        ) -> str:
            return await call("codeReview", code=code)

        logger.info("Registered %d tools", len(self._operations))


def create_registry(
    runner: CommandRunner,
    filesystem: FileSystemOperations,
    reporter: EnvironmentReporter,
    metrics: Optional[MetricsCollector] = None,
) -> OperationRegistry:
    """Factory function to create an OperationRegistry."""
    return OperationRegistry(runner, filesystem, reporter, metrics)
