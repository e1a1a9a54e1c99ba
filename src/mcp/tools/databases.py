from typing import Annotated, Any

from fastmcp.server.context import Context
from pydantic import Field

from src.mcp.mcp_instance import get_mcp
from src.mcp.middleware.tenant_credentials import notion_client_from_context
from src.mcp.tools.notion_params import (
    CoverAnnotation,
    DatabaseIdAnnotation,
    IconAnnotation,
    PageIdAnnotation,
    PageSizeAnnotation,
    ResponseFormatAnnotation,
    RichTextAnnotation,
    StartCursorAnnotation,
)
from src.mcp.tools.tool_errors import notion_tool_errors
from src.mcp.utils.formatters import format_mutation, format_response


@get_mcp().tool(
    description="""Retrieve a Notion database by its ID.

Returns:
- The database object, including its title and property schema
"""
)
async def notion_get_database(
    database_id: DatabaseIdAnnotation,
    context: Context,
    format: ResponseFormatAnnotation = "json",
) -> str:
    with notion_tool_errors("notion_get_database"):
        client = notion_client_from_context(context)
        database = await client.get_database(database_id)
    return format_response(database, format, "database").text


@get_mcp().tool(
    description="""Query a Notion database for pages, optionally filtered and sorted.

Filter example:
{"property": "Status", "select": {"equals": "Done"}}

Compound filter example:
{"and": [{"property": "Done", "checkbox": {"equals": true}}, {"property": "Tags", "multi_select": {"contains": "A"}}]}

Sorts example:
[{"property": "Name", "direction": "ascending"}, {"timestamp": "created_time", "direction": "descending"}]

Returns:
- Paginated list of pages: {object, results, hasMore, nextCursor}
"""
)
async def notion_query_database(
    database_id: DatabaseIdAnnotation,
    context: Context,
    filter: Annotated[dict[str, Any] | None, Field(description="Filter object")] = None,
    sorts: Annotated[
        list[dict[str, Any]] | None, Field(description="Array of sort objects")
    ] = None,
    start_cursor: StartCursorAnnotation = None,
    page_size: PageSizeAnnotation = 100,
    format: ResponseFormatAnnotation = "json",
) -> str:
    with notion_tool_errors("notion_query_database"):
        client = notion_client_from_context(context)
        result = await client.query_database(database_id, filter, sorts, start_cursor, page_size)
    return format_response(result, format, "pages").text


@get_mcp().tool(
    description="""Create a new database as a child of an existing page.

Properties example:
{"Name": {"title": {}}, "Status": {"select": {"options": [{"name": "Todo"}, {"name": "Done"}]}}, "Due": {"date": {}}}

Every database needs exactly one title property.

Returns:
- {success, message, database} with the created database object
"""
)
async def notion_create_database(
    parent_page_id: PageIdAnnotation,
    title: RichTextAnnotation,
    properties: Annotated[dict[str, Any], Field(description="Database schema/properties")],
    context: Context,
    icon: IconAnnotation = None,
    cover: CoverAnnotation = None,
) -> str:
    with notion_tool_errors("notion_create_database"):
        client = notion_client_from_context(context)
        database = await client.create_database(parent_page_id, title, properties, icon, cover)
    return format_mutation("Database created", "database", database)


@get_mcp().tool(
    description="""Update a database's title, description, or property schema.

To remove a property, set it to null in `properties`. To rename one, use {"Old Name": {"name": "New Name"}}.

Returns:
- {success, message, database} with the updated database object
"""
)
async def notion_update_database(
    database_id: DatabaseIdAnnotation,
    context: Context,
    title: Annotated[
        list[dict[str, Any]] | None, Field(description="New title as rich text")
    ] = None,
    description: Annotated[
        list[dict[str, Any]] | None, Field(description="New description as rich text")
    ] = None,
    properties: Annotated[
        dict[str, Any] | None, Field(description="Properties to update")
    ] = None,
    icon: IconAnnotation = None,
    cover: CoverAnnotation = None,
) -> str:
    with notion_tool_errors("notion_update_database"):
        client = notion_client_from_context(context)
        database = await client.update_database(
            database_id, title, description, properties, icon, cover
        )
    return format_mutation("Database updated", "database", database)
