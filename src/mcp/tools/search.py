from typing import Annotated, Any

from fastmcp.server.context import Context
from pydantic import Field

from src.mcp.mcp_instance import get_mcp
from src.mcp.middleware.tenant_credentials import notion_client_from_context
from src.mcp.tools.notion_params import (
    PageSizeAnnotation,
    ResponseFormatAnnotation,
    StartCursorAnnotation,
)
from src.mcp.tools.tool_errors import notion_tool_errors
from src.mcp.utils.formatters import format_response


@get_mcp().tool(
    description="""Search the pages and databases shared with the integration by title.

Only pages and databases the integration has been given access to are searched. Leave `query` empty to list everything shared.

Filter example (pages only):
{"property": "object", "value": "page"}

Sort example:
{"direction": "descending", "timestamp": "last_edited_time"}

Returns:
- Paginated list of pages and databases: {object, results, hasMore, nextCursor}
"""
)
async def notion_search(
    context: Context,
    query: Annotated[str | None, Field(description="Search query string")] = None,
    filter: Annotated[
        dict[str, Any] | None, Field(description="Filter for pages or databases only")
    ] = None,
    sort: Annotated[dict[str, Any] | None, Field(description="Sort configuration")] = None,
    start_cursor: StartCursorAnnotation = None,
    page_size: PageSizeAnnotation = 100,
    format: ResponseFormatAnnotation = "json",
) -> str:
    with notion_tool_errors("notion_search"):
        client = notion_client_from_context(context)
        result = await client.search(query, filter, sort, start_cursor, page_size)
    return format_response(result, format, "search results").text
