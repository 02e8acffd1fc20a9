"""
Integration test fixtures.

Provides a fully wired server bundle and an HTTP client bound to its
ASGI app.
"""

from typing import Generator

import httpx
import pytest
from starlette.testclient import TestClient

from cbx_mcp_shell.config import ShellMCPServerConfig
from cbx_mcp_shell.server import ServerBundle, create_server


@pytest.fixture
def bundle(config: ShellMCPServerConfig) -> ServerBundle:
    """Server built from the built-in defaults."""
    return create_server(config)


@pytest.fixture
def client(bundle: ServerBundle) -> Generator[httpx.Client, None, None]:
    """HTTP client for the streamable-http app (custom routes only)."""
    app = bundle.server.http_app(transport="streamable-http")
    with TestClient(app) as test_client:
        yield test_client
