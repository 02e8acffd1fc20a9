"""
Configuration loader with YAML and environment variable support.

Priority (highest to lowest):
1. Environment variables: CBX_MCP_SERVER__PORT=9000
2. User config: --config-dir path / ~/.cbx-mcp-shell/{config,security}.yaml
3. Built-in defaults: cbx_mcp_shell/config/defaults/
"""

import os
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from cbx_mcp_shell.config.models import ShellMCPServerConfig
from cbx_mcp_shell.utils.logging import get_logger

logger = get_logger(__name__)

# Default config locations
DEFAULT_CONFIG_DIR = Path.home() / ".cbx-mcp-shell"
PACKAGE_DEFAULTS_DIR = Path(__file__).parent / "defaults"

# Environment variable prefix
ENV_PREFIX = "CBX_MCP_"
ENV_DELIMITER = "__"


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Values from 'override' take precedence over 'base'.
    Nested dicts are merged recursively; lists are replaced.
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning empty dict if not found."""
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            content = yaml.safe_load(f)
            return content if content else {}
    except yaml.YAMLError as e:
        logger.warning("Failed to parse %s: %s", path, e)
        return {}


def _get_env_overrides(environ: Optional[Mapping[str, str]] = None) -> dict[str, Any]:
    """
    Extract configuration overrides from environment variables.

    Variables are expected in the format CBX_MCP_SECTION__KEY=value:
    CBX_MCP_SERVER__PORT=9000 -> {"server": {"port": 9000}}
    CBX_MCP_COMMAND__DEFAULT_TIMEOUT_MS=5000 -> {"command": {"default_timeout_ms": 5000}}
    """
    environ = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}

    for key, value in environ.items():
        if not key.startswith(ENV_PREFIX):
            continue

        key_path = key[len(ENV_PREFIX) :].lower().split(ENV_DELIMITER)
        if not all(key_path):
            logger.warning("Ignoring malformed config variable %s", key)
            continue

        current = overrides
        for part in key_path[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        current[key_path[-1]] = _parse_env_value(value)

    return overrides


def _parse_env_value(value: str) -> Any:
    """Parse environment variable value to appropriate Python type."""
    if value.lower() in ("true", "yes"):
        return True
    if value.lower() in ("false", "no"):
        return False

    try:
        return int(value)
    except ValueError:
        pass

    try:
        return float(value)
    except ValueError:
        pass

    return value


def load_config(
    config_dir: Optional[str | Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ShellMCPServerConfig:
    """
    Load configuration from multiple sources.

    Args:
        config_dir: Optional path to configuration directory.
                   If not provided, uses ~/.cbx-mcp-shell/
        environ: Environment mapping used for overrides (defaults to os.environ)

    Returns:
        ShellMCPServerConfig: Validated configuration object

    Raises:
        pydantic.ValidationError: If configuration is invalid
    """
    config_data = _load_yaml_file(PACKAGE_DEFAULTS_DIR / "settings.yaml")

    security_data = _load_yaml_file(PACKAGE_DEFAULTS_DIR / "security.yaml")
    config_data = _deep_merge(config_data, security_data)

    user_config_dir = Path(config_dir) if config_dir else DEFAULT_CONFIG_DIR
    user_config = _load_yaml_file(user_config_dir / "config.yaml")
    config_data = _deep_merge(config_data, user_config)

    user_security = _load_yaml_file(user_config_dir / "security.yaml")
    config_data = _deep_merge(config_data, user_security)

    env_overrides = _get_env_overrides(environ)
    config_data = _deep_merge(config_data, env_overrides)

    return ShellMCPServerConfig.model_validate(config_data)
