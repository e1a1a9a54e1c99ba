"""Tests for RequestLoggingMiddleware."""

import json
import logging
from datetime import datetime
from io import StringIO
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastmcp.exceptions import ToolError
from fastmcp.server.context import Context
from fastmcp.server.middleware import MiddlewareContext

from src.clients.notion_models import TenantCredentials
from src.mcp.middleware.request_logging import RequestLoggingMiddleware
from src.utils.logging import configure_logging, get_logger

TOKEN = "secret_0123456789abcd"


class _ToolCall:
    def __init__(self, name: str, arguments: dict | None = None):
        self.name = name
        self.arguments = arguments or {}


def create_middleware_context(
    fastmcp_context="auto",
    method="tools/call",
    message=None,
):
    """Helper to create a mock MiddlewareContext.

    Args:
        fastmcp_context: Pass None for no context, "auto" to create a MagicMock,
                        or provide your own mock.
    """
    ctx = MagicMock(spec=MiddlewareContext)

    if fastmcp_context == "auto":
        ctx.fastmcp_context = MagicMock(spec=Context)
        ctx.fastmcp_context.get_state = MagicMock(return_value=None)
    else:
        ctx.fastmcp_context = fastmcp_context

    ctx.source = "client"
    ctx.type = "request"
    ctx.method = method
    ctx.timestamp = datetime.now()
    ctx.message = message if message is not None else _ToolCall("notion_search")
    return ctx


@pytest.fixture
def call_next():
    return AsyncMock(return_value="next_result")


class TestRequestLoggingMiddleware:
    def setup_method(self):
        self.log_stream = StringIO()
        self.handler = logging.StreamHandler(self.log_stream)

    def teardown_method(self):
        if hasattr(self, "handler"):
            logging.getLogger().removeHandler(self.handler)

    def _setup_json_logging_with_test_handler(self):
        """Helper to configure JSON logging and redirect to test handler."""
        configure_logging()

        root_logger = logging.getLogger()
        formatter = root_logger.handlers[0].formatter

        self.handler.setFormatter(formatter)
        root_logger.handlers.clear()
        root_logger.addHandler(self.handler)

    def _get_logged_json_values(self) -> list[dict]:
        log_output = self.log_stream.getvalue().strip()
        if not log_output:
            return []
        return [json.loads(line) for line in log_output.split("\n") if line.strip()]

    @patch("src.utils.logging._is_local_environment", return_value=False)
    @pytest.mark.asyncio
    async def test_token_preview_and_tool_name_in_logs(self, _, call_next):
        self._setup_json_logging_with_test_handler()
        middleware_context = create_middleware_context()
        middleware_context.fastmcp_context.get_state.return_value = TenantCredentials(
            integration_token=TOKEN
        )

        async def mock_call_next(_):
            get_logger(__name__).info("Calling Notion")
            return "next_result"

        call_next.side_effect = mock_call_next

        await RequestLoggingMiddleware()(middleware_context, call_next)

        logs = self._get_logged_json_values()
        assert [log["message"] for log in logs] == [
            "Processing MCP message",
            "Calling Notion",
            "Completed MCP message",
        ]
        for log in logs:
            assert log["token_preview"] == "secr...abcd"
            assert log["tool_name"] == "notion_search"
        assert TOKEN not in self.log_stream.getvalue()
        assert logs[2]["duration_ms"] >= 0

    @pytest.mark.asyncio
    async def test_middleware_with_none_context(self, call_next):
        middleware_context = create_middleware_context(
            fastmcp_context=None, method="tools/list", message=object()
        )

        with (
            patch("src.mcp.middleware.request_logging.clear_log_context") as mock_clear,
            patch("src.mcp.middleware.request_logging.LogContext") as mock_log_context,
        ):
            result = await RequestLoggingMiddleware()(middleware_context, call_next)

        mock_clear.assert_called_once()
        mock_log_context.assert_called_once_with(
            token_preview=None, source="client", type="request", method="tools/list"
        )
        call_next.assert_called_once_with(middleware_context)
        assert result == "next_result"

    @pytest.mark.asyncio
    async def test_context_is_rebound_per_request(self, call_next):
        middleware = RequestLoggingMiddleware()
        middleware_context = create_middleware_context()

        with (
            patch("src.mcp.middleware.request_logging.clear_log_context") as mock_clear,
            patch("src.mcp.middleware.request_logging.LogContext") as mock_log_context,
        ):
            middleware_context.fastmcp_context.get_state.return_value = TenantCredentials(
                integration_token=TOKEN
            )
            await middleware(middleware_context, call_next)

            middleware_context.fastmcp_context.get_state.return_value = TenantCredentials()
            await middleware(middleware_context, call_next)

        assert mock_clear.call_count == 2
        first, second = mock_log_context.call_args_list
        assert first.kwargs["token_preview"] == "secr...abcd"
        assert second.kwargs["token_preview"] == "<missing>"
        assert first.kwargs["tool_name"] == "notion_search"

    @patch("src.utils.logging._is_local_environment", return_value=False)
    @pytest.mark.asyncio
    async def test_payload_omits_page_content(self, _, call_next):
        self._setup_json_logging_with_test_handler()
        message = _ToolCall(
            "notion_create_page",
            {"parent_id": "page-0", "properties": {"title": {"title": []}}},
        )
        middleware_context = create_middleware_context(message=message)

        await RequestLoggingMiddleware(include_payloads=True)(middleware_context, call_next)

        payload = json.loads(self._get_logged_json_values()[0]["payload"])
        assert payload == {"parent_id": "page-0", "properties": "<omitted>"}

    @patch("src.utils.logging._is_local_environment", return_value=False)
    @pytest.mark.asyncio
    async def test_payload_truncation(self, _, call_next):
        self._setup_json_logging_with_test_handler()
        middleware_context = create_middleware_context(
            message=_ToolCall("notion_search", {"query": "x" * 100})
        )

        await RequestLoggingMiddleware(include_payloads=True, max_payload_length=20)(
            middleware_context, call_next
        )

        payload = self._get_logged_json_values()[0]["payload"]
        assert payload.endswith("...")
        assert len(payload) == 23

    @patch("src.utils.logging._is_local_environment", return_value=False)
    @pytest.mark.asyncio
    async def test_payload_excluded_by_default(self, _, call_next):
        self._setup_json_logging_with_test_handler()
        middleware_context = create_middleware_context(
            message=_ToolCall("notion_search", {"query": "roadmap"})
        )

        await RequestLoggingMiddleware()(middleware_context, call_next)

        assert "payload" not in self._get_logged_json_values()[0]

    @patch("src.utils.logging._is_local_environment", return_value=False)
    @pytest.mark.asyncio
    async def test_error_logging(self, _, call_next):
        self._setup_json_logging_with_test_handler()
        middleware_context = create_middleware_context()
        call_next.side_effect = ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            await RequestLoggingMiddleware()(middleware_context, call_next)

        failed_log = self._get_logged_json_values()[-1]
        assert failed_log["message"] == "Failed MCP message"
        assert failed_log["error_type"] == "ValueError"
        assert failed_log["error_message"] == "boom"
        assert failed_log["level"] == "error"

    @patch("src.utils.logging._is_local_environment", return_value=False)
    @pytest.mark.asyncio
    async def test_tool_error_logged_as_warning_without_payload(self, _, call_next):
        self._setup_json_logging_with_test_handler()
        middleware_context = create_middleware_context()
        call_next.side_effect = ToolError('{"error": "Error: Page not found: p1 (/pages/p1)"}')

        with pytest.raises(ToolError):
            await RequestLoggingMiddleware()(middleware_context, call_next)

        failed_log = self._get_logged_json_values()[-1]
        assert failed_log["message"] == "Failed MCP message"
        assert failed_log["level"] == "warning"
        assert failed_log["error_type"] == "ToolError"
        assert "error_message" not in failed_log
