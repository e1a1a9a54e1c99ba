"""Middleware to read the tenant's Notion credentials from the inbound HTTP request.

The integration token comes from the `X-Notion-Integration-Token` header of every request
and is stored under `context.state["tenant_credentials"]`. Tools build a fresh NotionClient
from it with `notion_client_from_context`; no client is ever shared between requests.
"""

from __future__ import annotations

from typing import Any

from fastmcp.server.context import Context
from fastmcp.server.dependencies import get_http_request
from fastmcp.server.middleware import Middleware, MiddlewareContext
from fastmcp.server.middleware.middleware import CallNext

from src.clients.notion import NotionClient
from src.clients.notion_models import TenantCredentials
from src.utils.config import get_notion_request_timeout
from src.utils.logging import get_logger

logger = get_logger(__name__)

TENANT_CREDENTIALS_STATE_KEY = "tenant_credentials"


def _extract_credentials_from_request() -> TenantCredentials:
    try:
        request = get_http_request()
    except RuntimeError:
        # Not running under an HTTP transport (e.g. stdio or in-memory client)
        return TenantCredentials()
    return TenantCredentials.from_headers(request.headers)


def credentials_from_context(context: Context) -> TenantCredentials:
    """Get the tenant credentials stored by TenantCredentialsMiddleware (empty if none)."""
    credentials = context.get_state(TENANT_CREDENTIALS_STATE_KEY)
    if isinstance(credentials, TenantCredentials):
        return credentials
    return TenantCredentials()


def notion_client_from_context(context: Context) -> NotionClient:
    """Build a NotionClient bound to the calling tenant.

    A missing token is not an error here: the client raises AuthenticationError on first
    use, before any request is sent.
    """
    return NotionClient(credentials_from_context(context), timeout=get_notion_request_timeout())


class TenantCredentialsMiddleware(Middleware):
    async def on_call_tool(
        self,
        middleware_context: MiddlewareContext[Any],
        call_next: CallNext[Any, Any],
    ) -> Any:
        context = middleware_context.fastmcp_context
        if context is None:
            logger.info("TenantCredentialsMiddleware - No FastMCP context, skipping")
            return await call_next(middleware_context)

        credentials = _extract_credentials_from_request()
        context.set_state(TENANT_CREDENTIALS_STATE_KEY, credentials)

        if credentials.integration_token:
            logger.debug(
                "TenantCredentialsMiddleware - Credentials attached",
                token_preview=credentials.token_preview,
            )
        else:
            logger.warning("TenantCredentialsMiddleware - No integration token on request")

        return await call_next(middleware_context)
