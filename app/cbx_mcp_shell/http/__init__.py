"""
HTTP-side observability for the streamable-http transport.

Provides:
- MetricsCollector: counters rendered for the /metrics endpoint
"""

from cbx_mcp_shell.http.metrics import MetricsCollector

__all__ = [
    "MetricsCollector",
]
