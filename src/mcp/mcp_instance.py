"""Shared MCP instance module to avoid circular imports."""

from fastmcp import FastMCP

from src.utils.logging import get_logger

SERVER_NAME = "notion-mcp-gateway"
SERVER_VERSION = "1.0.0"

_mcp_instance: FastMCP | None = None
logger = get_logger(__name__)


def get_mcp() -> FastMCP:
    global _mcp_instance
    if _mcp_instance is None:
        # No auth provider: tenants authenticate to Notion with their own token header
        _mcp_instance = FastMCP(SERVER_NAME, version=SERVER_VERSION)
        logger.debug("Created MCP instance", server_name=SERVER_NAME)

    return _mcp_instance
