"""MCP middleware for setting up logging context from request context.

This middleware extracts relevant information from the FastMCP request context
(like the tool being called and a redacted token preview) and sets it up in the
logging contextvars so that all subsequent logging calls in the request
automatically include this context.
"""

from __future__ import annotations

import json
import time
from typing import Any

from fastmcp.exceptions import ToolError
from fastmcp.server.middleware import Middleware, MiddlewareContext
from fastmcp.server.middleware.middleware import CallNext

from src.clients.notion_models import TenantCredentials
from src.mcp.middleware.tenant_credentials import TENANT_CREDENTIALS_STATE_KEY
from src.utils.logging import LogContext, clear_log_context, get_logger

logger = get_logger(__name__)

# Tool arguments that may carry page content; never logged in full
REDACTED_ARGUMENT_KEYS = frozenset({"properties", "children", "content", "rich_text"})


class RequestLoggingMiddleware(Middleware):
    """Middleware that sets up logging context from FastMCP request context.

    This middleware:
    1. Clears any existing logging context at the start of each message
    2. Binds method, source, type, tool name and token preview for the message
    3. Logs MCP message start/end with duration
    """

    def __init__(self, include_payloads: bool = False, max_payload_length: int = 1000):
        """Initialize the middleware.

        Args:
            include_payloads: Whether to include tool arguments in logs
            max_payload_length: Maximum length of payload to log (prevents huge logs)
        """
        self.include_payloads = include_payloads
        self.max_payload_length = max_payload_length

    def _payload_for(self, message: Any) -> str:
        arguments = getattr(message, "arguments", None) or {}
        try:
            payload = json.dumps(
                {
                    key: "<omitted>" if key in REDACTED_ARGUMENT_KEYS else value
                    for key, value in arguments.items()
                },
                default=str,
            )
        except (TypeError, ValueError, AttributeError):
            return "<non-serializable>"
        if len(payload) > self.max_payload_length:
            payload = payload[: self.max_payload_length] + "..."
        return payload

    async def on_message(self, context: MiddlewareContext, call_next: CallNext) -> Any:
        clear_log_context()

        token_preview = None
        fastmcp_context = context.fastmcp_context
        if fastmcp_context is not None:
            credentials = fastmcp_context.get_state(TENANT_CREDENTIALS_STATE_KEY)
            if isinstance(credentials, TenantCredentials):
                token_preview = credentials.token_preview

        tool_name_attr = {}
        if context.method == "tools/call" and hasattr(context.message, "name"):
            tool_name_attr["tool_name"] = context.message.name

        with LogContext(
            token_preview=token_preview,
            source=context.source,
            type=context.type,
            method=context.method,
            **tool_name_attr,
        ):
            payload_attrs = {}
            if self.include_payloads:
                payload_attrs = {"payload": self._payload_for(context.message)}

            logger.info("Processing MCP message", **payload_attrs)

            start_time = time.time()
            try:
                result = await call_next(context)
                duration_ms = (time.time() - start_time) * 1000
                logger.info(
                    "Completed MCP message",
                    result_type=type(result).__name__ if result else None,
                    duration_ms=round(duration_ms, 2),
                )
                return result
            except ToolError as e:
                # Classified tool failures were already logged by the tool with their details
                logger.warning(
                    "Failed MCP message",
                    error_type=type(e).__name__,
                    duration_ms=round((time.time() - start_time) * 1000, 2),
                )
                raise
            except Exception as e:
                duration_ms = (time.time() - start_time) * 1000
                logger.error(
                    "Failed MCP message",
                    error_type=type(e).__name__,
                    error_message=str(e),
                    duration_ms=round(duration_ms, 2),
                )
                raise

    async def __call__(self, middleware_context: MiddlewareContext, call_next: CallNext) -> Any:
        return await self.on_message(middleware_context, call_next)
