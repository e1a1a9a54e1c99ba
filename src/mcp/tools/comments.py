from typing import Annotated, Literal

from fastmcp.server.context import Context
from pydantic import Field

from src.mcp.mcp_instance import get_mcp
from src.mcp.middleware.tenant_credentials import notion_client_from_context
from src.mcp.tools.notion_params import (
    BlockIdAnnotation,
    CommentIdAnnotation,
    PageSizeAnnotation,
    ResponseFormatAnnotation,
    RichTextAnnotation,
    StartCursorAnnotation,
)
from src.mcp.tools.tool_errors import notion_tool_errors
from src.mcp.utils.formatters import format_mutation, format_response


@get_mcp().tool(
    description="""List the unresolved comments on a page or block.

Returns:
- Paginated list of comments: {object, results, hasMore, nextCursor}
"""
)
async def notion_get_comments(
    block_id: BlockIdAnnotation,
    context: Context,
    start_cursor: StartCursorAnnotation = None,
    page_size: PageSizeAnnotation = 100,
    format: ResponseFormatAnnotation = "json",
) -> str:
    with notion_tool_errors("notion_get_comments"):
        client = notion_client_from_context(context)
        result = await client.get_comments(block_id, start_cursor, page_size)
    return format_response(result, format, "comments").text


@get_mcp().tool(
    description="""Add a comment to a page, or reply in an existing discussion thread.

- `parent_type="page_id"` starts a new comment on the page
- `parent_type="discussion_id"` replies in the thread (use the `discussion_id` of an existing comment)

Returns:
- {success, message, comment} with the created comment object
"""
)
async def notion_create_comment(
    parent_id: Annotated[str, Field(description="Page ID or discussion ID")],
    parent_type: Annotated[
        Literal["page_id", "discussion_id"], Field(description="Type of parent")
    ],
    rich_text: RichTextAnnotation,
    context: Context,
) -> str:
    with notion_tool_errors("notion_create_comment"):
        client = notion_client_from_context(context)
        comment = await client.create_comment(parent_id, parent_type, rich_text)
    return format_mutation("Comment created", "comment", comment)


@get_mcp().tool(
    description="""Retrieve a single comment by its ID.

Returns:
- The comment object, including its discussion_id and rich text
"""
)
async def notion_get_comment(
    comment_id: CommentIdAnnotation,
    context: Context,
    format: ResponseFormatAnnotation = "json",
) -> str:
    with notion_tool_errors("notion_get_comment"):
        client = notion_client_from_context(context)
        comment = await client.get_comment(comment_id)
    return format_response(comment, format, "comment").text
