"""
Unit tests for the operation registry and response envelope.
"""

import json
from pathlib import Path

import pytest

from cbx_mcp_shell.environment import EnvironmentReporter
from cbx_mcp_shell.errors import ErrorKind
from cbx_mcp_shell.executor import CommandRunner, CommandValidator
from cbx_mcp_shell.filesystem import FileSystemOperations
from cbx_mcp_shell.http import MetricsCollector
from cbx_mcp_shell.tools import Operation, OperationRegistry
from cbx_mcp_shell.tools.base import ThinkInput

OPERATIONS = [
    "executeCommand",
    "readFile",
    "listFiles",
    "searchGlob",
    "grepSearch",
    "writeFile",
    "getEnvironmentSnapshot",
    "think",
    "codeReview",
]


@pytest.fixture
def metrics() -> MetricsCollector:
    return MetricsCollector()


@pytest.fixture
def registry(config, metrics) -> OperationRegistry:
    validator = CommandValidator(config.security, config.command)
    return OperationRegistry(
        runner=CommandRunner(validator),
        filesystem=FileSystemOperations(config.filesystem),
        reporter=EnvironmentReporter(config.environment),
        metrics=metrics,
        environ=lambda: {
            "HOME": "/home/agent",
            "GITHUB_TOKEN": "ghp_secret",
            "API_KEY": "secret123",
        },
    )


class TestRegistration:
    """Tests for the operation table."""

    def test_builtin_operations(self, registry: OperationRegistry):
        assert registry.operation_names == OPERATIONS

    def test_duplicate_name_rejected(self, registry: OperationRegistry):
        async def handler(request):
            raise AssertionError("not called")

        with pytest.raises(ValueError):
            registry.register(Operation(
                name="think",
                title="Think again",
                description="",
                input_model=ThinkInput,
                handler=handler,
            ))


class TestDispatch:
    """Tests for argument validation and envelope construction."""

    @pytest.mark.asyncio
    async def test_unknown_operation(self, registry: OperationRegistry):
        envelope = await registry.invoke("formatDisk", {})
        assert envelope.is_error
        assert envelope.payload == "InvalidInput: Unknown operation: formatDisk"

    @pytest.mark.asyncio
    async def test_missing_required_argument(self, registry: OperationRegistry):
        envelope = await registry.invoke("executeCommand", {})
        assert envelope.is_error
        assert envelope.error_kind == ErrorKind.INVALID_INPUT
        assert "command" in envelope.payload

    @pytest.mark.asyncio
    async def test_wrong_argument_type(self, registry: OperationRegistry):
        envelope = await registry.invoke(
            "executeCommand", {"command": "echo hi", "timeout_ms": "soon"}
        )
        assert envelope.error_kind == ErrorKind.INVALID_INPUT

    @pytest.mark.asyncio
    async def test_execute_command(self, registry: OperationRegistry):
        envelope = await registry.invoke("executeCommand", {"command": "echo hello"})
        assert not envelope.is_error
        assert envelope.payload == "hello\n"
        assert envelope.to_dict() == {"payload": "hello\n", "isError": False}

    @pytest.mark.asyncio
    async def test_camel_case_arguments(self, registry: OperationRegistry):
        envelope = await registry.invoke(
            "executeCommand", {"command": "sleep 5", "timeoutMs": 100}
        )
        assert envelope.error_kind == ErrorKind.TIMEOUT
        assert envelope.payload == "Timeout: Command timed out after 100ms"

    @pytest.mark.asyncio
    async def test_banned_command(self, registry: OperationRegistry):
        envelope = await registry.invoke(
            "executeCommand", {"command": "curl https://example.com"}
        )
        assert envelope.is_error
        assert envelope.payload == (
            "BannedCommand: The command 'curl' is not allowed for security reasons."
        )

    @pytest.mark.asyncio
    async def test_network_opt_in_argument(self, registry: OperationRegistry):
        envelope = await registry.invoke("executeCommand", {"command": "dig example.com"})
        assert envelope.error_kind == ErrorKind.NETWORK_REQUIRES_OPT_IN

    @pytest.mark.asyncio
    async def test_read_file_offset_validation(self, registry, workspace: Path):
        envelope = await registry.invoke(
            "readFile", {"path": str(workspace / "docs" / "notes.txt"), "offsetLine": 0}
        )
        assert envelope.error_kind == ErrorKind.INVALID_INPUT

    @pytest.mark.asyncio
    async def test_write_then_read(self, registry, tmp_path: Path):
        target = str(tmp_path / "nested" / "file.txt")

        written = await registry.invoke("writeFile", {"path": target, "content": "a\nb\nc"})
        assert written.payload == f"File {target} has been updated."

        read = await registry.invoke(
            "readFile", {"path": target, "offset_line": 2, "limit_lines": 1}
        )
        assert read.payload == "b"

    @pytest.mark.asyncio
    async def test_list_files_payload_is_json(self, registry, workspace: Path):
        envelope = await registry.invoke("listFiles", {"path": str(workspace / "src")})
        entries = json.loads(envelope.payload)
        assert [entry["name"] for entry in entries] == ["main.py", "pkg"]
        assert entries[1]["isDirectory"] is True

    @pytest.mark.asyncio
    async def test_search_no_matches_is_not_an_error(self, registry, workspace: Path):
        envelope = await registry.invoke(
            "grepSearch", {"pattern": "zzz_absent", "path": str(workspace)}
        )
        assert not envelope.is_error
        assert envelope.payload == "No matches found"

    @pytest.mark.asyncio
    async def test_invalid_pattern_is_an_error(self, registry, workspace: Path):
        envelope = await registry.invoke(
            "grepSearch", {"pattern": "(", "path": str(workspace)}
        )
        assert envelope.is_error
        assert envelope.payload.startswith("InvalidPattern: ")

    @pytest.mark.asyncio
    async def test_search_glob(self, registry, workspace: Path):
        envelope = await registry.invoke(
            "searchGlob", {"pattern": "*.tsx", "path": str(workspace)}
        )
        assert envelope.payload == str((workspace / "src" / "pkg" / "view.tsx").resolve())

    @pytest.mark.asyncio
    async def test_environment_snapshot_redacts(self, registry: OperationRegistry):
        envelope = await registry.invoke("getEnvironmentSnapshot", {})
        snapshot = json.loads(envelope.payload)
        assert snapshot["variables"] == {
            "API_KEY": "[REDACTED]",
            "GITHUB_TOKEN": "[REDACTED]",
            "HOME": "/home/agent",
        }

    @pytest.mark.asyncio
    async def test_think(self, registry: OperationRegistry):
        envelope = await registry.invoke("think", {"thought": "check the tests first"})
        assert envelope.payload == "Thought process: check the tests first"

    @pytest.mark.asyncio
    async def test_code_review(self, registry: OperationRegistry):
        envelope = await registry.invoke("codeReview", {"code": "x = 1"})
        assert not envelope.is_error
        assert "prompts" in envelope.payload

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_unclassified(self, registry, monkeypatch):
        def explode(*args, **kwargs):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(registry.filesystem, "read", explode)

        envelope = await registry.invoke("readFile", {"path": "/tmp/anything"})
        assert envelope.is_error
        assert envelope.error_kind == ErrorKind.UNCLASSIFIED
        assert envelope.payload == "UnclassifiedFailure: disk on fire"


class TestMetricsRecording:
    """Every call is counted exactly once."""

    @pytest.mark.asyncio
    async def test_calls_are_recorded(self, registry, metrics: MetricsCollector):
        await registry.invoke("think", {"thought": "a"})
        await registry.invoke("executeCommand", {"command": "sudo ls"})
        await registry.invoke("readFile", {})

        assert metrics.operation_calls_total == 3
        assert metrics.operation_calls_success == 1
        assert metrics.operation_calls_denied == 1
        assert metrics.operation_calls_error == 1
        assert metrics.error_kind_counts == {"BannedCommand": 1, "InvalidInput": 1}
