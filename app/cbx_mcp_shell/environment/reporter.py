"""
Environment snapshot with redaction of sensitive variables.

Each data point (runtime version, package manager version, OS string) is
collected independently. A failing probe degrades to a placeholder value
instead of failing the snapshot.
"""

import asyncio
import os
import platform
import sys
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

from cbx_mcp_shell.config.models import EnvironmentSettings
from cbx_mcp_shell.utils.logging import get_logger

logger = get_logger(__name__)

UNKNOWN = "unknown"


@dataclass
class EnvironmentSnapshot:
    """Runtime and OS metadata plus redacted environment variables."""

    runtime_version: str
    package_manager_version: str
    os_info: str
    variables: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "runtimeVersion": self.runtime_version,
            "packageManagerVersion": self.package_manager_version,
            "osInfo": self.os_info,
            "variables": self.variables,
        }


def is_sensitive(name: str, patterns: Sequence[str]) -> bool:
    """Check whether a variable name contains any sensitivity marker."""
    lowered = name.lower()
    return any(pattern.lower() in lowered for pattern in patterns)


def redact_variables(
    environ: Mapping[str, str],
    patterns: Sequence[str],
    marker: str,
) -> dict[str, str]:
    """Copy an environment mapping, replacing sensitive values with the marker."""
    return {
        name: marker if is_sensitive(name, patterns) else value
        for name, value in sorted(environ.items())
    }


async def _probe(*args: str, timeout: float) -> str:
    """
    Run a version probe and return its trimmed output.

    Raises:
        RuntimeError: If the probe exits nonzero or prints nothing
        asyncio.TimeoutError, OSError: From process management
    """
    process = await asyncio.create_subprocess_exec(
        *args,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        try:
            process.kill()
            await process.wait()
        except ProcessLookupError:
            pass
        raise

    output = stdout.decode("utf-8", errors="replace").strip()
    if process.returncode != 0 or not output:
        raise RuntimeError(
            f"{args[0]} exited with status {process.returncode}: "
            f"{stderr.decode('utf-8', errors='replace').strip()}"
        )
    return output


class EnvironmentReporter:
    """
    Builds EnvironmentSnapshot values.

    The process environment is passed in per call (or read from os.environ
    at call time), never captured at import.
    """

    def __init__(self, settings: Optional[EnvironmentSettings] = None):
        self.settings = settings or EnvironmentSettings()

    async def snapshot(
        self, environ: Optional[Mapping[str, str]] = None
    ) -> EnvironmentSnapshot:
        """
        Collect a snapshot.

        Args:
            environ: Environment to report (defaults to os.environ)

        Returns:
            EnvironmentSnapshot with sensitive variables redacted
        """
        environ = os.environ if environ is None else environ

        runtime_version, package_manager_version, os_info = await asyncio.gather(
            self._collect("runtime version", self._runtime_version),
            self._collect("package manager version", self._package_manager_version),
            self._collect("OS info", self._os_info),
        )

        return EnvironmentSnapshot(
            runtime_version=runtime_version,
            package_manager_version=package_manager_version,
            os_info=os_info,
            variables=redact_variables(
                environ,
                self.settings.sensitive_patterns,
                self.settings.redaction_marker,
            ),
        )

    async def _collect(self, label: str, collector) -> str:
        try:
            return await collector()
        except Exception as e:
            logger.warning("Could not determine %s: %s", label, e)
            return UNKNOWN

    async def _runtime_version(self) -> str:
        return f"{platform.python_implementation()} {platform.python_version()}"

    async def _package_manager_version(self) -> str:
        return await _probe(
            sys.executable,
            "-m",
            "pip",
            "--version",
            timeout=self.settings.probe_timeout_seconds,
        )

    async def _os_info(self) -> str:
        try:
            return await _probe("uname", "-a", timeout=self.settings.probe_timeout_seconds)
        except (OSError, RuntimeError, asyncio.TimeoutError) as e:
            logger.debug("uname unavailable (%s), using platform module", e)
            return platform.platform()


def create_reporter(settings: Optional[EnvironmentSettings] = None) -> EnvironmentReporter:
    """Factory function to create an EnvironmentReporter."""
    return EnvironmentReporter(settings)
