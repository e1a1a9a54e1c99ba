import json
from typing import Annotated, Any, Literal

from fastmcp.server.context import Context
from pydantic import Field

from src.mcp.mcp_instance import get_mcp
from src.mcp.middleware.tenant_credentials import notion_client_from_context
from src.mcp.tools.notion_params import (
    CoverAnnotation,
    IconAnnotation,
    PageIdAnnotation,
    ResponseFormatAnnotation,
    StartCursorAnnotation,
)
from src.mcp.tools.tool_errors import notion_tool_errors
from src.mcp.utils.formatters import format_mutation, format_response


@get_mcp().tool(
    description="""Retrieve a Notion page by its ID.

Returns:
- The page object with all properties, metadata, and parent information
"""
)
async def notion_get_page(
    page_id: PageIdAnnotation,
    context: Context,
    format: ResponseFormatAnnotation = "json",
) -> str:
    with notion_tool_errors("notion_get_page"):
        client = notion_client_from_context(context)
        page = await client.get_page(page_id)
    return format_response(page, format, "page").text


@get_mcp().tool(
    description="""Create a new Notion page.

The page can be created as a row of a database (`parent_type="database_id"`) or as a child of another page (`parent_type="page_id"`).

- For database pages, `properties` must match the database schema.
- For child pages, typically just {"title": {"title": [{"text": {"content": "Page Title"}}]}}

Returns:
- {success, message, page} with the created page object
"""
)
async def notion_create_page(
    parent_id: Annotated[str, Field(description="Parent database or page ID")],
    parent_type: Annotated[
        Literal["database_id", "page_id"], Field(description="Type of parent: database_id or page_id")
    ],
    properties: Annotated[dict[str, Any], Field(description="Page properties object")],
    context: Context,
    children: Annotated[
        list[dict[str, Any]] | None, Field(description="Array of block objects for page content")
    ] = None,
    icon: IconAnnotation = None,
    cover: CoverAnnotation = None,
) -> str:
    with notion_tool_errors("notion_create_page"):
        client = notion_client_from_context(context)
        page = await client.create_page(parent_id, parent_type, properties, children, icon, cover)
    return format_mutation("Page created", "page", page)


@get_mcp().tool(
    description="""Update an existing Notion page's properties.

Only include the properties you want to change. Set `archived` to true to archive the page, false to restore it.

Returns:
- {success, message, page} with the updated page object
"""
)
async def notion_update_page(
    page_id: PageIdAnnotation,
    context: Context,
    properties: Annotated[
        dict[str, Any] | None, Field(description="Properties to update")
    ] = None,
    archived: Annotated[bool | None, Field(description="Archive or unarchive the page")] = None,
    icon: IconAnnotation = None,
    cover: CoverAnnotation = None,
) -> str:
    with notion_tool_errors("notion_update_page"):
        client = notion_client_from_context(context)
        page = await client.update_page(page_id, properties, archived, icon, cover)
    return format_mutation("Page updated", "page", page)


@get_mcp().tool(
    description="""Move a Notion page to trash.

This is equivalent to deleting the page. The page can be restored from trash within Notion.

Returns:
- {success, message, page} with the trashed page object
"""
)
async def notion_trash_page(page_id: PageIdAnnotation, context: Context) -> str:
    with notion_tool_errors("notion_trash_page"):
        client = notion_client_from_context(context)
        page = await client.trash_page(page_id)
    return format_mutation("Page moved to trash", "page", page)


@get_mcp().tool(
    description="""Retrieve a specific property value from a page.

Useful for paginated properties like title, rich_text, relation, and people, where the page object may not contain the full value.

Returns:
- The property item, or a paginated list of property items, exactly as Notion returns it
"""
)
async def notion_get_page_property(
    page_id: PageIdAnnotation,
    property_id: Annotated[str, Field(description="The property ID (from the page's properties object)")],
    context: Context,
    start_cursor: StartCursorAnnotation = None,
    page_size: Annotated[int | None, Field(ge=1, le=100, description="Page size")] = None,
) -> str:
    with notion_tool_errors("notion_get_page_property"):
        client = notion_client_from_context(context)
        result = await client.get_page_property(page_id, property_id, start_cursor, page_size)
    return json.dumps(result, indent=2, ensure_ascii=False)
