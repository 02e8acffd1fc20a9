"""
FastMCP Server Setup.

This module creates and configures the MCP server instance.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Callable

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse

from cbx_mcp_shell import __version__
from cbx_mcp_shell.config import ShellMCPServerConfig
from cbx_mcp_shell.environment import create_reporter
from cbx_mcp_shell.executor import create_runner, create_validator
from cbx_mcp_shell.filesystem import create_filesystem
from cbx_mcp_shell.http.metrics import MetricsCollector
from cbx_mcp_shell.tools import OperationRegistry
from cbx_mcp_shell.utils.logging import get_logger

logger = get_logger(__name__)

SERVICE_NAME = "cbx_mcp_shell"


@dataclass
class ServerBundle:
    """Bundle containing server and the components it dispatches to."""

    server: FastMCP
    registry: OperationRegistry
    metrics: MetricsCollector


def create_server(config: ShellMCPServerConfig) -> ServerBundle:
    """
    Create and configure the MCP server.

    Args:
        config: Server configuration

    Returns:
        ServerBundle containing the FastMCP instance and its registry
    """
    metrics = MetricsCollector()

    validator = create_validator(config.security, config.command)
    registry = OperationRegistry(
        runner=create_runner(validator),
        filesystem=create_filesystem(config.filesystem),
        reporter=create_reporter(config.environment),
        metrics=metrics,
    )

    @asynccontextmanager
    async def lifespan(server: FastMCP) -> AsyncIterator[dict]:
        """
        Server lifespan manager.

        The server keeps no state between calls; the yielded dict only
        exposes shared components to request contexts.
        """
        logger.info("CBX MCP Shell Server v%s starting...", __version__)
        yield {"config": config, "metrics": metrics, "registry": registry}
        logger.info("CBX MCP Shell Server shutting down...")

    mcp = FastMCP(name=SERVICE_NAME, lifespan=lifespan)

    registry.register_with_mcp(mcp)
    _register_prompts(mcp)
    _register_resources(mcp, registry)
    _register_http_routes(mcp, metrics, lambda: registry.operation_names)

    return ServerBundle(server=mcp, registry=registry, metrics=metrics)


def _register_http_routes(
    mcp: FastMCP,
    metrics: MetricsCollector,
    get_operation_names: Callable[[], list[str]],
) -> None:
    """Register custom HTTP routes for health checks and metrics."""

    @mcp.custom_route("/health", methods=["GET"])
    async def health_check(request: Request) -> JSONResponse:
        """Liveness probe endpoint."""
        return JSONResponse({
            "status": "healthy",
            "version": __version__,
            "service": SERVICE_NAME,
        })

    @mcp.custom_route("/ready", methods=["GET"])
    async def ready_check(request: Request) -> JSONResponse:
        """Readiness probe endpoint."""
        operations = get_operation_names()
        checks = {
            "server": True,
            "tools_registered": len(operations) > 0,
        }
        is_ready = all(checks.values())
        return JSONResponse(
            {
                "status": "ready" if is_ready else "not_ready",
                "checks": checks,
                "registered_tools": operations,
            },
            status_code=200 if is_ready else 503,
        )

    @mcp.custom_route("/metrics", methods=["GET"])
    async def metrics_endpoint(request: Request) -> PlainTextResponse:
        """Prometheus metrics endpoint."""
        return PlainTextResponse(
            metrics.format_prometheus(),
            media_type="text/plain; version=0.0.4; charset=utf-8",
        )


def _register_prompts(mcp: FastMCP) -> None:
    """Register the generalCLI and codeReview prompt templates."""
    from cbx_mcp_shell.prompts import register_prompts

    register_prompts(mcp)


def _register_resources(mcp: FastMCP, registry: OperationRegistry) -> None:
    """Register file, directory and environment resources."""
    from cbx_mcp_shell.resources import register_resources

    register_resources(mcp, registry)
