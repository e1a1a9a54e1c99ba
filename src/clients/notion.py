"""Tenant-scoped async client for the Notion API.

A NotionClient is bound to exactly one tenant's credentials and is created fresh for
every inbound request; it must never be shared across tenants. Each operation makes a
single HTTP call and never follows pagination cursors or retries on its own. Failures
are raised as the classified errors in `src.clients.notion_errors` so the caller can
decide whether (and when) to retry.
"""

import json
from typing import Any, Literal

import httpx
from pydantic import BaseModel, ValidationError

from src.clients.notion_errors import (
    AuthenticationError,
    ForbiddenError,
    NotFoundError,
    NotionApiError,
    NotionTransportError,
    RateLimitError,
)
from src.clients.notion_models import (
    INTEGRATION_TOKEN_HEADER,
    Block,
    Comment,
    ConnectionStatus,
    Database,
    Page,
    PagingEnvelope,
    SearchResult,
    TenantCredentials,
    User,
)

DEFAULT_RETRY_AFTER_SECONDS = 60
DEFAULT_TIMEOUT_SECONDS = 30.0


def parse_retry_after(value: str | None) -> int:
    """Parse a Retry-After header as whole seconds, falling back to the default."""
    if value is None:
        return DEFAULT_RETRY_AFTER_SECONDS
    try:
        seconds = int(value.strip())
    except ValueError:
        return DEFAULT_RETRY_AFTER_SECONDS
    return seconds if seconds >= 0 else DEFAULT_RETRY_AFTER_SECONDS


def _error_message_from_body(response: httpx.Response) -> tuple[str | None, str | None]:
    """Extract (message, code) from a Notion error body, if it is JSON."""
    try:
        body = json.loads(response.text)
    except ValueError:
        return None, None
    if not isinstance(body, dict):
        return None, None

    message = body.get("message") or body.get("error")
    code = body.get("code")
    return (
        message if isinstance(message, str) else None,
        code if isinstance(code, str) else None,
    )


def classify_response(
    response: httpx.Response,
    endpoint: str,
    resource: str = "Resource",
    identifier: str | None = None,
) -> NotionApiError | None:
    """Map a non-success response to a classified error, or None for 2xx.

    Checked in priority order: 429, 401, 403, 404, then any other non-2xx status.
    """
    status = response.status_code

    if status == 429:
        return RateLimitError(
            "Rate limit exceeded", parse_retry_after(response.headers.get("Retry-After"))
        )

    if status == 401:
        return AuthenticationError("Authentication failed. Check your Notion integration token.")

    if status == 403:
        return ForbiddenError(
            "Access forbidden. Ensure your integration has the required permissions "
            "and the resource is shared with it."
        )

    if status == 404:
        return NotFoundError(resource, identifier or endpoint, endpoint)

    if not response.is_success:
        message, code = _error_message_from_body(response)
        return NotionApiError(message or f"API error: {status}", status_code=status, code=code)

    return None


def _pagination_params(start_cursor: str | None, page_size: int | None) -> dict[str, Any]:
    params: dict[str, Any] = {}
    if start_cursor:
        params["start_cursor"] = start_cursor
    if page_size is not None:
        if not 1 <= page_size <= NotionClient.MAX_PAGE_SIZE:
            raise ValueError(
                f"page_size must be between 1 and {NotionClient.MAX_PAGE_SIZE}, got {page_size}"
            )
        params["page_size"] = page_size
    return params


class NotionClient:
    BASE_URL = "https://api.notion.com/v1"
    # Revision of the Notion API this client and its models were built against
    API_VERSION = "2022-06-28"
    # https://developers.notion.com/reference/request-limits
    MAX_PAGE_SIZE = 100

    def __init__(
        self,
        credentials: TenantCredentials,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            credentials: The tenant's credentials, parsed from the inbound request
            timeout: Transport timeout in seconds for each call
            transport: Optional httpx transport (for testing)
        """
        self._credentials = credentials
        self._timeout = timeout if timeout is not None else DEFAULT_TIMEOUT_SECONDS
        self._transport = transport

    def __repr__(self) -> str:
        return f"NotionClient(token={self._credentials.token_preview})"

    def _get_auth_headers(self) -> dict[str, str]:
        token = self._credentials.integration_token
        if not token:
            raise AuthenticationError(
                f"No credentials provided. Include {INTEGRATION_TOKEN_HEADER} header.",
                status_code=None,
            )

        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Notion-Version": self.API_VERSION,
        }

    async def _request(
        self,
        method: Literal["GET", "POST", "PATCH", "DELETE"],
        endpoint: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
        resource: str = "Resource",
        identifier: str | None = None,
    ) -> Any:
        # Raises before any network I/O when the tenant sent no token
        headers = self._get_auth_headers()

        try:
            async with httpx.AsyncClient(
                base_url=self.BASE_URL, timeout=self._timeout, transport=self._transport
            ) as http:
                response = await http.request(
                    method, endpoint, params=params or None, json=json_body, headers=headers
                )
        except httpx.TimeoutException as e:
            raise NotionTransportError(f"Request to Notion timed out: {method} {endpoint}") from e
        except httpx.RequestError as e:
            raise NotionTransportError(f"Request to Notion failed: {e}") from e

        error = classify_response(response, endpoint, resource, identifier)
        if error is not None:
            raise error

        try:
            return response.json()
        except ValueError as e:
            raise NotionTransportError(
                f"Notion returned an unreadable response body for {method} {endpoint}"
            ) from e

    @staticmethod
    def _parse[M: BaseModel](model: type[M], body: Any) -> M:
        try:
            return model.model_validate(body)
        except ValidationError as e:
            raise NotionTransportError(
                f"Notion returned an unexpected {model.__name__} shape "
                f"({e.error_count()} validation errors)"
            ) from e

    @staticmethod
    def _parse_list[M: BaseModel](model: type[M], body: Any) -> PagingEnvelope[M]:
        if not isinstance(body, dict):
            raise NotionTransportError("Notion returned a list response that is not an object")
        try:
            return PagingEnvelope[model].from_upstream(body)  # type: ignore[valid-type]
        except ValidationError as e:
            raise NotionTransportError(
                f"Notion returned an unexpected list of {getattr(model, '__name__', 'results')} "
                f"({e.error_count()} validation errors)"
            ) from e

    # ===========================================================================
    # Connection
    # ===========================================================================

    async def test_connection(self) -> ConnectionStatus:
        """Best-effort connectivity check. Never raises: failures become the status message."""
        try:
            user = await self.get_me()
        except Exception as e:
            return ConnectionStatus(connected=False, message=str(e) or "Connection failed")

        return ConnectionStatus(
            connected=True,
            message=f"Successfully connected to Notion as {user.name or user.id}",
        )

    # ===========================================================================
    # Users
    # ===========================================================================

    async def list_users(
        self, start_cursor: str | None = None, page_size: int | None = None
    ) -> PagingEnvelope[User]:
        body = await self._request(
            "GET", "/users", params=_pagination_params(start_cursor, page_size)
        )
        return self._parse_list(User, body)

    async def get_user(self, user_id: str) -> User:
        body = await self._request(
            "GET", f"/users/{user_id}", resource="User", identifier=user_id
        )
        return self._parse(User, body)

    async def get_me(self) -> User:
        """Get the bot user of the integration the token belongs to."""
        body = await self._request("GET", "/users/me", resource="User", identifier="me")
        return self._parse(User, body)

    # ===========================================================================
    # Pages
    # ===========================================================================

    async def get_page(self, page_id: str) -> Page:
        body = await self._request("GET", f"/pages/{page_id}", resource="Page", identifier=page_id)
        return self._parse(Page, body)

    async def create_page(
        self,
        parent_id: str,
        parent_type: Literal["database_id", "page_id"],
        properties: dict[str, Any],
        children: list[dict[str, Any]] | None = None,
        icon: dict[str, Any] | None = None,
        cover: dict[str, Any] | None = None,
    ) -> Page:
        payload: dict[str, Any] = {
            "parent": {parent_type: parent_id},
            "properties": properties,
        }
        if children:
            payload["children"] = children
        if icon:
            payload["icon"] = icon
        if cover:
            payload["cover"] = cover

        body = await self._request(
            "POST", "/pages", json_body=payload, resource="Parent", identifier=parent_id
        )
        return self._parse(Page, body)

    async def update_page(
        self,
        page_id: str,
        properties: dict[str, Any] | None = None,
        archived: bool | None = None,
        icon: dict[str, Any] | None = None,
        cover: dict[str, Any] | None = None,
    ) -> Page:
        payload: dict[str, Any] = {}
        if properties:
            payload["properties"] = properties
        if archived is not None:
            payload["archived"] = archived
        if icon is not None:
            payload["icon"] = icon
        if cover is not None:
            payload["cover"] = cover

        body = await self._request(
            "PATCH", f"/pages/{page_id}", json_body=payload, resource="Page", identifier=page_id
        )
        return self._parse(Page, body)

    async def trash_page(self, page_id: str) -> Page:
        body = await self._request(
            "DELETE", f"/pages/{page_id}", resource="Page", identifier=page_id
        )
        return self._parse(Page, body)

    async def get_page_property(
        self,
        page_id: str,
        property_id: str,
        start_cursor: str | None = None,
        page_size: int | None = None,
    ) -> dict[str, Any]:
        """Get a single property item, or a paginated property item list for long values.

        Returned as Notion sends it: the shape depends on the property type.
        """
        return await self._request(
            "GET",
            f"/pages/{page_id}/properties/{property_id}",
            params=_pagination_params(start_cursor, page_size),
            resource="Page property",
            identifier=property_id,
        )

    # ===========================================================================
    # Databases
    # ===========================================================================

    async def get_database(self, database_id: str) -> Database:
        body = await self._request(
            "GET", f"/databases/{database_id}", resource="Database", identifier=database_id
        )
        return self._parse(Database, body)

    async def query_database(
        self,
        database_id: str,
        filter_obj: dict[str, Any] | None = None,
        sorts: list[dict[str, Any]] | None = None,
        start_cursor: str | None = None,
        page_size: int | None = None,
    ) -> PagingEnvelope[Page]:
        payload: dict[str, Any] = {}
        if filter_obj:
            payload["filter"] = filter_obj
        if sorts:
            payload["sorts"] = sorts
        payload.update(_pagination_params(start_cursor, page_size))

        body = await self._request(
            "POST",
            f"/databases/{database_id}/query",
            json_body=payload,
            resource="Database",
            identifier=database_id,
        )
        return self._parse_list(Page, body)

    async def create_database(
        self,
        parent_page_id: str,
        title: list[dict[str, Any]],
        properties: dict[str, Any],
        icon: dict[str, Any] | None = None,
        cover: dict[str, Any] | None = None,
    ) -> Database:
        payload: dict[str, Any] = {
            "parent": {"type": "page_id", "page_id": parent_page_id},
            "title": title,
            "properties": properties,
        }
        if icon:
            payload["icon"] = icon
        if cover:
            payload["cover"] = cover

        body = await self._request(
            "POST", "/databases", json_body=payload, resource="Page", identifier=parent_page_id
        )
        return self._parse(Database, body)

    async def update_database(
        self,
        database_id: str,
        title: list[dict[str, Any]] | None = None,
        description: list[dict[str, Any]] | None = None,
        properties: dict[str, Any] | None = None,
        icon: dict[str, Any] | None = None,
        cover: dict[str, Any] | None = None,
    ) -> Database:
        payload: dict[str, Any] = {}
        if title:
            payload["title"] = title
        if description:
            payload["description"] = description
        if properties:
            payload["properties"] = properties
        if icon is not None:
            payload["icon"] = icon
        if cover is not None:
            payload["cover"] = cover

        body = await self._request(
            "PATCH",
            f"/databases/{database_id}",
            json_body=payload,
            resource="Database",
            identifier=database_id,
        )
        return self._parse(Database, body)

    # ===========================================================================
    # Blocks
    # ===========================================================================

    async def get_block(self, block_id: str) -> Block:
        body = await self._request(
            "GET", f"/blocks/{block_id}", resource="Block", identifier=block_id
        )
        return self._parse(Block, body)

    async def update_block(self, block_id: str, content: dict[str, Any]) -> Block:
        body = await self._request(
            "PATCH", f"/blocks/{block_id}", json_body=content, resource="Block", identifier=block_id
        )
        return self._parse(Block, body)

    async def delete_block(self, block_id: str) -> Block:
        body = await self._request(
            "DELETE", f"/blocks/{block_id}", resource="Block", identifier=block_id
        )
        return self._parse(Block, body)

    async def get_block_children(
        self, block_id: str, start_cursor: str | None = None, page_size: int | None = None
    ) -> PagingEnvelope[Block]:
        body = await self._request(
            "GET",
            f"/blocks/{block_id}/children",
            params=_pagination_params(start_cursor, page_size),
            resource="Block",
            identifier=block_id,
        )
        return self._parse_list(Block, body)

    async def append_block_children(
        self, block_id: str, children: list[dict[str, Any]]
    ) -> PagingEnvelope[Block]:
        body = await self._request(
            "PATCH",
            f"/blocks/{block_id}/children",
            json_body={"children": children},
            resource="Block",
            identifier=block_id,
        )
        return self._parse_list(Block, body)

    # ===========================================================================
    # Search
    # ===========================================================================

    async def search(
        self,
        query: str | None = None,
        filter_obj: dict[str, Any] | None = None,
        sort: dict[str, Any] | None = None,
        start_cursor: str | None = None,
        page_size: int | None = None,
    ) -> PagingEnvelope[SearchResult]:
        payload: dict[str, Any] = {}
        if query:
            payload["query"] = query
        if filter_obj:
            payload["filter"] = filter_obj
        if sort:
            payload["sort"] = sort
        payload.update(_pagination_params(start_cursor, page_size))

        body = await self._request("POST", "/search", json_body=payload)
        return self._parse_list(SearchResult, body)  # type: ignore[arg-type]

    # ===========================================================================
    # Comments
    # ===========================================================================

    async def get_comments(
        self, block_id: str, start_cursor: str | None = None, page_size: int | None = None
    ) -> PagingEnvelope[Comment]:
        params = {"block_id": block_id, **_pagination_params(start_cursor, page_size)}
        body = await self._request(
            "GET", "/comments", params=params, resource="Block", identifier=block_id
        )
        return self._parse_list(Comment, body)

    async def create_comment(
        self,
        parent_id: str,
        parent_type: Literal["page_id", "discussion_id"],
        rich_text: list[dict[str, Any]],
    ) -> Comment:
        if parent_type == "page_id":
            payload: dict[str, Any] = {"parent": {"page_id": parent_id}}
        else:
            payload = {"discussion_id": parent_id}
        payload["rich_text"] = rich_text

        body = await self._request(
            "POST", "/comments", json_body=payload, resource="Parent", identifier=parent_id
        )
        return self._parse(Comment, body)

    async def get_comment(self, comment_id: str) -> Comment:
        body = await self._request(
            "GET", f"/comments/{comment_id}", resource="Comment", identifier=comment_id
        )
        return self._parse(Comment, body)
