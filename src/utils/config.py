"""Configuration utility for the Notion MCP gateway.

All configuration comes from environment variables. Tenant credentials are never
configuration: they arrive with each request.
"""

import os
from typing import Any

DEFAULT_NOTION_REQUEST_TIMEOUT = 30


def parse_config_value(value: str) -> str | bool | int | float:
    if value.lower() == "true":
        return True
    elif value.lower() == "false":
        return False
    else:
        # Try to parse as a number
        try:
            return int(value)
        except ValueError:
            try:
                return float(value)
            except ValueError:
                # Return as string
                return value


def get_config_value(key: str, default: Any = None) -> Any:
    """Get a configuration value from environment variables.

    Args:
        key: Configuration key name (e.g., "NOTION_REQUEST_TIMEOUT")
        default: Default value if key not found

    Returns:
        Configuration value or default
    """
    env_value = os.environ.get(key)
    if env_value is not None:
        return parse_config_value(env_value)

    return default


def get_notion_mcp_environment() -> str:
    """Get deployment environment name from env var ("local", "staging", "production", ...)."""
    return str(get_config_value("NOTION_MCP_ENVIRONMENT", "local"))


def get_notion_request_timeout() -> float:
    """Get the transport timeout, in seconds, for a single Notion API call."""
    timeout = get_config_value("NOTION_REQUEST_TIMEOUT", DEFAULT_NOTION_REQUEST_TIMEOUT)
    if isinstance(timeout, bool) or not isinstance(timeout, int | float) or timeout <= 0:
        raise ValueError(f"NOTION_REQUEST_TIMEOUT must be a positive number, got {timeout!r}")
    return float(timeout)
