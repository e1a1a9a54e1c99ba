"""MCP Tools Package - All tool modules are imported here to register with the MCP server."""

from src.utils.logging import get_logger

logger = get_logger(__name__)

__all__ = [
    "blocks",
    "comments",
    "connection",
    "databases",
    "pages",
    "search",
    "users",
]


def register_tools():
    """Register all tools with the MCP server."""
    # Import all tools to ensure their decorators execute and register with the MCP instance
    from . import (  # noqa: F401
        # These "unused" imports are intentional here for decorator registration
        blocks,
        comments,
        connection,
        databases,
        pages,
        search,
        users,
    )

    logger.info("Registered Notion tools")
