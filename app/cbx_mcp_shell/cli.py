"""
Command-line entry point.

Supports both stdio and streamable-http transports.
"""

import argparse
import sys
from typing import Optional, Sequence

import uvicorn
from pydantic import ValidationError

from cbx_mcp_shell import __version__
from cbx_mcp_shell.config import load_config
from cbx_mcp_shell.server import create_server
from cbx_mcp_shell.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="cbx-mcp-shell",
        description="CBX MCP Server for shell commands and file operations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start with stdio transport (default for local dev)
  cbx-mcp-shell --transport stdio

  # Start with HTTP transport
  cbx-mcp-shell --transport streamable-http --port 8080

  # Use custom config directory
  cbx-mcp-shell --config-dir /path/to/config
        """,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"cbx-mcp-shell {__version__}",
    )
    parser.add_argument(
        "--config-dir",
        type=str,
        help="Configuration directory path (default: ~/.cbx-mcp-shell/)",
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "streamable-http"],
        help="Transport protocol (overrides config)",
    )
    parser.add_argument(
        "--host",
        type=str,
        help="Host to bind to (for HTTP transport, overrides config)",
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Port to listen on (for HTTP transport, overrides config)",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        type=str.lower,
        help="Log level (overrides config)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        config = load_config(args.config_dir)
    except ValidationError as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1

    # Apply CLI overrides
    if args.transport:
        config.server.transport = args.transport
    if args.host:
        config.server.host = args.host
    if args.port:
        config.server.port = args.port
    if args.log_level:
        config.server.log_level = args.log_level

    setup_logging(config.server.log_level, config.server.log_file)

    try:
        bundle = create_server(config)

        logger.info("Starting CBX MCP Shell Server v%s", __version__)
        logger.info("Transport: %s", config.server.transport)

        if config.server.transport == "stdio":
            bundle.server.run(transport="stdio")
        else:
            logger.info(
                "Running on http://%s:%s", config.server.host, config.server.port
            )
            uvicorn.run(
                bundle.server.http_app(transport="streamable-http"),
                host=config.server.host,
                port=config.server.port,
                log_level=config.server.log_level.lower(),
            )
    except KeyboardInterrupt:
        logger.info("Shutting down...")
        return 0
    except Exception:
        logger.exception("Server error")
        return 1

    return 0
