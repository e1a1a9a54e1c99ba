from typing import Annotated, Any

from fastmcp.server.context import Context
from pydantic import Field

from src.mcp.mcp_instance import get_mcp
from src.mcp.middleware.tenant_credentials import notion_client_from_context
from src.mcp.tools.notion_params import (
    BlockIdAnnotation,
    PageSizeAnnotation,
    ResponseFormatAnnotation,
    StartCursorAnnotation,
)
from src.mcp.tools.tool_errors import notion_tool_errors
from src.mcp.utils.formatters import format_mutation, format_response


@get_mcp().tool(
    description="""Retrieve a single Notion block by its ID.

Returns:
- The block object; its content is under the key named by `type` (e.g. `paragraph`)
"""
)
async def notion_get_block(
    block_id: BlockIdAnnotation,
    context: Context,
    format: ResponseFormatAnnotation = "json",
) -> str:
    with notion_tool_errors("notion_get_block"):
        client = notion_client_from_context(context)
        block = await client.get_block(block_id)
    return format_response(block, format, "block").text


@get_mcp().tool(
    description="""List the child blocks of a block or page, i.e. the page content.

Only direct children are returned. Blocks with `has_children: true` need their own call.

Returns:
- Paginated list of blocks: {object, results, hasMore, nextCursor}
"""
)
async def notion_get_block_children(
    block_id: BlockIdAnnotation,
    context: Context,
    start_cursor: StartCursorAnnotation = None,
    page_size: PageSizeAnnotation = 100,
    format: ResponseFormatAnnotation = "json",
) -> str:
    with notion_tool_errors("notion_get_block_children"):
        client = notion_client_from_context(context)
        result = await client.get_block_children(block_id, start_cursor, page_size)
    return format_response(result, format, "blocks").text


@get_mcp().tool(
    description="""Append content blocks to a page or block.

Block example:
{"object": "block", "type": "paragraph", "paragraph": {"rich_text": [{"type": "text", "text": {"content": "Hello"}}]}}

Other common types: heading_1, heading_2, heading_3, bulleted_list_item, numbered_list_item, to_do, toggle, code, quote, callout, divider.

Returns:
- {success, message, blocks} with the list of appended blocks
"""
)
async def notion_append_blocks(
    block_id: BlockIdAnnotation,
    children: Annotated[
        list[dict[str, Any]], Field(description="Array of block objects to append")
    ],
    context: Context,
) -> str:
    with notion_tool_errors("notion_append_blocks"):
        client = notion_client_from_context(context)
        result = await client.append_block_children(block_id, children)
    return format_mutation(f"Appended {len(result.results)} blocks", "blocks", result)


@get_mcp().tool(
    description="""Update the content of a block.

The content is keyed by the block type, e.g. {"paragraph": {"rich_text": [{"text": {"content": "New text"}}]}}, or {"to_do": {"checked": true}}.

Returns:
- {success, message, block} with the updated block object
"""
)
async def notion_update_block(
    block_id: BlockIdAnnotation,
    content: Annotated[dict[str, Any], Field(description="Block content to update")],
    context: Context,
) -> str:
    with notion_tool_errors("notion_update_block"):
        client = notion_client_from_context(context)
        block = await client.update_block(block_id, content)
    return format_mutation("Block updated", "block", block)


@get_mcp().tool(
    description="""Delete (archive) a block.

Returns:
- {success, message, block} with the deleted block object
"""
)
async def notion_delete_block(block_id: BlockIdAnnotation, context: Context) -> str:
    with notion_tool_errors("notion_delete_block"):
        client = notion_client_from_context(context)
        block = await client.delete_block(block_id)
    return format_mutation("Block deleted", "block", block)
