"""
Pytest configuration and shared fixtures.
"""

import sys
from pathlib import Path

import pytest

# Add app directory to path
APP_DIR = Path(__file__).parent.parent / "app"
sys.path.insert(0, str(APP_DIR))

from cbx_mcp_shell.config import ShellMCPServerConfig, load_config  # noqa: E402


def pytest_configure(config):
    """Configure pytest."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as an async test"
    )


@pytest.fixture
def config(tmp_path_factory: pytest.TempPathFactory) -> ShellMCPServerConfig:
    """Built-in defaults only: empty user config dir, no env overrides."""
    config_dir = tmp_path_factory.mktemp("config")
    return load_config(config_dir, environ={})


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A small source tree for filesystem tests."""
    root = tmp_path / "workspace"
    (root / "src" / "pkg").mkdir(parents=True)
    (root / "docs").mkdir()
    (root / "src" / "main.py").write_text(
        "import os\n\n\ndef main():\n    return os.getcwd()\n"
    )
    (root / "src" / "pkg" / "util.py").write_text(
        "def helper(value):\n    return value * 2\n"
    )
    (root / "src" / "pkg" / "view.tsx").write_text("export const View = () => null;\n")
    (root / "docs" / "notes.txt").write_text("first line\nsecond line\nthird line")
    return root
