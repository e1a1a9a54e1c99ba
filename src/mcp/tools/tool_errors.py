from collections.abc import Iterator
from contextlib import contextmanager

from fastmcp.exceptions import ToolError

from src.clients.notion_errors import NotionApiError, format_error_for_logging
from src.mcp.utils.formatters import format_error
from src.utils.logging import get_logger

logger = get_logger(__name__)


@contextmanager
def notion_tool_errors(tool_name: str) -> Iterator[None]:
    """Turn any failure inside the block into a ToolError carrying the rendered error payload.

    Usage:
        with notion_tool_errors("notion_get_page"):
            page = await client.get_page(page_id)
    """
    try:
        yield
    except ToolError:
        raise
    except Exception as e:
        error_info = format_error_for_logging(e)
        if isinstance(e, NotionApiError | ValueError):
            logger.warning(f"{tool_name} failed", error=error_info)
        else:
            logger.exception(f"{tool_name} failed unexpectedly", error=error_info)
        raise ToolError(format_error(e).text) from e
