"""MCP middleware for FastMCP server."""

from .request_logging import RequestLoggingMiddleware
from .tenant_credentials import TenantCredentialsMiddleware, notion_client_from_context

__all__ = [
    "RequestLoggingMiddleware",
    "TenantCredentialsMiddleware",
    "notion_client_from_context",
]
