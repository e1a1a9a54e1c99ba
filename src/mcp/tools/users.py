from fastmcp.server.context import Context

from src.mcp.mcp_instance import get_mcp
from src.mcp.middleware.tenant_credentials import notion_client_from_context
from src.mcp.tools.notion_params import (
    PageSizeAnnotation,
    ResponseFormatAnnotation,
    StartCursorAnnotation,
    UserIdAnnotation,
)
from src.mcp.tools.tool_errors import notion_tool_errors
from src.mcp.utils.formatters import format_response


@get_mcp().tool(
    description="""List all users in the Notion workspace the integration belongs to.

Returns people and bots, one page of results at a time. If `hasMore` is true, call again with `start_cursor` set to the returned `nextCursor`.

Returns:
- Paginated list of users: {object, results, hasMore, nextCursor}
"""
)
async def notion_list_users(
    context: Context,
    start_cursor: StartCursorAnnotation = None,
    page_size: PageSizeAnnotation = 100,
    format: ResponseFormatAnnotation = "json",
) -> str:
    with notion_tool_errors("notion_list_users"):
        client = notion_client_from_context(context)
        result = await client.list_users(start_cursor=start_cursor, page_size=page_size)
    return format_response(result, format, "users").text


@get_mcp().tool(
    description="""Retrieve a Notion user by ID.

Returns:
- The user object: {id, type, name, avatar_url, person | bot}
"""
)
async def notion_get_user(
    user_id: UserIdAnnotation,
    context: Context,
    format: ResponseFormatAnnotation = "json",
) -> str:
    with notion_tool_errors("notion_get_user"):
        client = notion_client_from_context(context)
        user = await client.get_user(user_id)
    return format_response(user, format, "user").text


@get_mcp().tool(
    description="""Retrieve the bot user for the current integration token.

Useful to check which integration and workspace the token belongs to.
"""
)
async def notion_get_me(context: Context, format: ResponseFormatAnnotation = "json") -> str:
    with notion_tool_errors("notion_get_me"):
        client = notion_client_from_context(context)
        user = await client.get_me()
    return format_response(user, format, "user").text
