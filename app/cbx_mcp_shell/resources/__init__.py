"""
MCP Resources for files, directories and the host environment.

Provides read-only alternates to the read tools:
- file://{path} - File content
- dir://{path} - Directory listing as JSON
- env://info - Environment snapshot as JSON

Resources go through the operation registry, so they share its
validation, error rendering and metrics.
"""

from fastmcp import FastMCP
from fastmcp.exceptions import ResourceError

from cbx_mcp_shell.tools.registry import OperationRegistry
from cbx_mcp_shell.utils.logging import get_logger

logger = get_logger(__name__)


async def _read(registry: OperationRegistry, operation: str, **arguments) -> str:
    envelope = await registry.invoke(operation, arguments)
    if envelope.is_error:
        raise ResourceError(envelope.payload)
    return envelope.payload


def register_resources(mcp: FastMCP, registry: OperationRegistry) -> None:
    """
    Register file, directory and environment resources.

    Args:
        mcp: FastMCP server instance
        registry: Operation registry serving the reads
    """

    @mcp.resource(
        uri="file://{path*}",
        name="File Content",
        description="Content of a text file",
        mime_type="text/plain",
    )
    async def file_content(path: str) -> str:
        """Read a file by absolute path."""
        return await _read(registry, "readFile", path=path)

    @mcp.resource(
        uri="dir://{path*}",
        name="Directory Listing",
        description="Entries of a directory with type, size and modification time",
        mime_type="application/json",
    )
    async def directory_listing(path: str) -> str:
        """List a directory by absolute path."""
        return await _read(registry, "listFiles", path=path)

    @mcp.resource(
        uri="env://info",
        name="Environment Info",
        description="Runtime and OS versions plus redacted environment variables",
        mime_type="application/json",
    )
    async def environment_info() -> str:
        """Get the environment snapshot."""
        return await _read(registry, "getEnvironmentSnapshot")

    logger.info("Registered 3 resources")


__all__ = [
    "register_resources",
]
