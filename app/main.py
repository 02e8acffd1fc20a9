#!/usr/bin/env python3
"""
CBX MCP Shell Server - Entry Point

Runs the server from a source checkout without installing the package.
Supports both stdio and streamable-http transports.
"""

import sys
from pathlib import Path

# Add app directory to path for imports when running directly
APP_DIR = Path(__file__).parent
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from cbx_mcp_shell.cli import main

if __name__ == "__main__":
    sys.exit(main())
