"""
Unit tests for the metrics collector.
"""

from cbx_mcp_shell.errors import ErrorKind
from cbx_mcp_shell.http import MetricsCollector


class TestMetricsCollector:
    """Tests for counters and Prometheus output."""

    def test_record_success(self):
        metrics = MetricsCollector()
        metrics.record("readFile")

        assert metrics.operation_calls_total == 1
        assert metrics.operation_calls_success == 1
        assert metrics.operation_counts == {"readFile": 1}

    def test_policy_denials_counted_separately(self):
        metrics = MetricsCollector()
        metrics.record("executeCommand", ErrorKind.BANNED_COMMAND)
        metrics.record("executeCommand", ErrorKind.TIMEOUT)

        assert metrics.operation_calls_denied == 1
        assert metrics.operation_calls_error == 1
        assert metrics.error_kind_counts == {"BannedCommand": 1, "Timeout": 1}

    def test_prometheus_format(self):
        metrics = MetricsCollector()
        metrics.record("executeCommand")
        metrics.record("grepSearch", ErrorKind.INVALID_PATTERN)

        text = metrics.format_prometheus()
        assert "cbx_mcp_info" in text
        assert "cbx_mcp_uptime_seconds" in text
        assert "cbx_mcp_operation_calls_total 2" in text
        assert 'cbx_mcp_operation_calls_by_name{operation="grepSearch"} 1' in text
        assert 'cbx_mcp_errors_by_kind{kind="InvalidPattern"} 1' in text
        assert text.endswith("\n")
