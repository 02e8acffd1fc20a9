"""
Prometheus metrics for operation calls.

Rendered by the /metrics route in Prometheus exposition format.
"""

import time
from dataclasses import dataclass, field
from typing import Optional

from cbx_mcp_shell import __version__
from cbx_mcp_shell.errors import ErrorCategory, ErrorKind


@dataclass
class MetricsCollector:
    """
    Simple metrics collector for Prometheus exposition.

    Counters only; the values never feed back into request handling.
    """

    # Counters
    operation_calls_total: int = 0
    operation_calls_success: int = 0
    operation_calls_error: int = 0
    operation_calls_denied: int = 0

    # Startup time
    start_time: float = field(default_factory=time.time)

    # Breakdowns
    operation_counts: dict[str, int] = field(default_factory=dict)
    error_kind_counts: dict[str, int] = field(default_factory=dict)

    def record(self, operation: str, error_kind: Optional[ErrorKind] = None) -> None:
        """Record one operation call and, for failures, its error kind."""
        self.operation_calls_total += 1
        self.operation_counts[operation] = self.operation_counts.get(operation, 0) + 1

        if error_kind is None:
            self.operation_calls_success += 1
            return

        if error_kind.category == ErrorCategory.POLICY_DENIED:
            self.operation_calls_denied += 1
        else:
            self.operation_calls_error += 1
        self.error_kind_counts[error_kind.value] = (
            self.error_kind_counts.get(error_kind.value, 0) + 1
        )

    def format_prometheus(self) -> str:
        """
        Format metrics in Prometheus exposition format.

        Returns:
            Metrics as text in Prometheus format
        """
        uptime = time.time() - self.start_time

        lines = [
            "# HELP cbx_mcp_info Server information",
            "# TYPE cbx_mcp_info gauge",
            f'cbx_mcp_info{{version="{__version__}"}} 1',
            "",
            "# HELP cbx_mcp_uptime_seconds Server uptime in seconds",
            "# TYPE cbx_mcp_uptime_seconds gauge",
            f"cbx_mcp_uptime_seconds {uptime:.2f}",
            "",
            "# HELP cbx_mcp_operation_calls_total Total operation calls",
            "# TYPE cbx_mcp_operation_calls_total counter",
            f"cbx_mcp_operation_calls_total {self.operation_calls_total}",
            "",
            "# HELP cbx_mcp_operation_calls_success_total Successful operation calls",
            "# TYPE cbx_mcp_operation_calls_success_total counter",
            f"cbx_mcp_operation_calls_success_total {self.operation_calls_success}",
            "",
            "# HELP cbx_mcp_operation_calls_error_total Failed operation calls",
            "# TYPE cbx_mcp_operation_calls_error_total counter",
            f"cbx_mcp_operation_calls_error_total {self.operation_calls_error}",
            "",
            "# HELP cbx_mcp_operation_calls_denied_total Calls denied by command policy",
            "# TYPE cbx_mcp_operation_calls_denied_total counter",
            f"cbx_mcp_operation_calls_denied_total {self.operation_calls_denied}",
        ]

        if self.operation_counts:
            lines.extend([
                "",
                "# HELP cbx_mcp_operation_calls_by_name Operation calls by name",
                "# TYPE cbx_mcp_operation_calls_by_name counter",
            ])
            for name, count in sorted(self.operation_counts.items()):
                lines.append(f'cbx_mcp_operation_calls_by_name{{operation="{name}"}} {count}')

        if self.error_kind_counts:
            lines.extend([
                "",
                "# HELP cbx_mcp_errors_by_kind Failed or denied calls by error kind",
                "# TYPE cbx_mcp_errors_by_kind counter",
            ])
            for kind, count in sorted(self.error_kind_counts.items()):
                lines.append(f'cbx_mcp_errors_by_kind{{kind="{kind}"}} {count}')

        return "\n".join(lines) + "\n"
