"""Tests for TenantCredentialsMiddleware and the per-request client factory."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastmcp.server.context import Context
from fastmcp.server.middleware import MiddlewareContext
from starlette.requests import Request

from src.clients.notion import NotionClient
from src.clients.notion_models import TenantCredentials
from src.mcp.middleware.tenant_credentials import (
    TENANT_CREDENTIALS_STATE_KEY,
    TenantCredentialsMiddleware,
    credentials_from_context,
    notion_client_from_context,
)


def _request(headers: dict[str, str]) -> Request:
    return Request(
        {
            "type": "http",
            "method": "POST",
            "path": "/mcp",
            "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
        }
    )


def _middleware_context(fastmcp_context="auto"):
    ctx = MagicMock(spec=MiddlewareContext)
    ctx.fastmcp_context = MagicMock(spec=Context) if fastmcp_context == "auto" else fastmcp_context
    return ctx


@pytest.fixture
def call_next():
    return AsyncMock(return_value="next_result")


class TestTenantCredentialsMiddleware:
    @pytest.mark.asyncio
    async def test_credentials_stored_in_state(self, call_next):
        middleware_context = _middleware_context()

        with patch(
            "src.mcp.middleware.tenant_credentials.get_http_request",
            return_value=_request({"X-Notion-Integration-Token": "secret_tenant_a"}),
        ):
            result = await TenantCredentialsMiddleware().on_call_tool(middleware_context, call_next)

        middleware_context.fastmcp_context.set_state.assert_called_once_with(
            TENANT_CREDENTIALS_STATE_KEY, TenantCredentials(integration_token="secret_tenant_a")
        )
        call_next.assert_called_once_with(middleware_context)
        assert result == "next_result"

    @pytest.mark.asyncio
    async def test_missing_header_stores_empty_credentials(self, call_next):
        middleware_context = _middleware_context()

        with patch(
            "src.mcp.middleware.tenant_credentials.get_http_request",
            return_value=_request({}),
        ):
            await TenantCredentialsMiddleware().on_call_tool(middleware_context, call_next)

        middleware_context.fastmcp_context.set_state.assert_called_once_with(
            TENANT_CREDENTIALS_STATE_KEY, TenantCredentials()
        )
        call_next.assert_called_once()

    @pytest.mark.asyncio
    async def test_no_http_request_stores_empty_credentials(self, call_next):
        middleware_context = _middleware_context()

        with patch(
            "src.mcp.middleware.tenant_credentials.get_http_request",
            side_effect=RuntimeError("No active HTTP request found."),
        ):
            await TenantCredentialsMiddleware().on_call_tool(middleware_context, call_next)

        middleware_context.fastmcp_context.set_state.assert_called_once_with(
            TENANT_CREDENTIALS_STATE_KEY, TenantCredentials()
        )

    @pytest.mark.asyncio
    async def test_no_fastmcp_context(self, call_next):
        middleware_context = _middleware_context(fastmcp_context=None)

        with patch("src.mcp.middleware.tenant_credentials.get_http_request") as mock_request:
            result = await TenantCredentialsMiddleware().on_call_tool(middleware_context, call_next)

        mock_request.assert_not_called()
        call_next.assert_called_once_with(middleware_context)
        assert result == "next_result"


class TestClientFromContext:
    def test_credentials_from_context(self):
        context = MagicMock(spec=Context)
        context.get_state.return_value = TenantCredentials(integration_token="secret_a")

        assert credentials_from_context(context).integration_token == "secret_a"
        context.get_state.assert_called_once_with(TENANT_CREDENTIALS_STATE_KEY)

    def test_credentials_from_context_without_state(self):
        context = MagicMock(spec=Context)
        context.get_state.return_value = None

        assert credentials_from_context(context) == TenantCredentials()

    def test_each_call_builds_a_fresh_tenant_client(self):
        context_a = MagicMock(spec=Context)
        context_a.get_state.return_value = TenantCredentials(integration_token="secret_tenant_a")
        context_b = MagicMock(spec=Context)
        context_b.get_state.return_value = TenantCredentials(integration_token="secret_tenant_b")

        client_a = notion_client_from_context(context_a)
        client_b = notion_client_from_context(context_b)

        assert isinstance(client_a, NotionClient)
        assert client_a is not client_b
        assert client_a._credentials.integration_token == "secret_tenant_a"
        assert client_b._credentials.integration_token == "secret_tenant_b"
