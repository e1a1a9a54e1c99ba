from fastmcp.server.context import Context

from src.clients.notion_models import ConnectionStatus
from src.mcp.mcp_instance import get_mcp
from src.mcp.middleware.tenant_credentials import notion_client_from_context
from src.utils.logging import get_logger

logger = get_logger(__name__)


@get_mcp().tool(
    description="""Test the connection to Notion with the provided integration token.

Never fails: problems (missing or invalid token, network errors) are reported in `message`.

Returns:
- {connected, message}
"""
)
async def notion_test_connection(context: Context) -> str:
    try:
        status = await notion_client_from_context(context).test_connection()
    except Exception as e:
        # Client construction reads configuration and can fail before test_connection runs
        status = ConnectionStatus(connected=False, message=str(e) or "Connection failed")
    if not status.connected:
        logger.info("Notion connection test failed", reason=status.message)
    return status.model_dump_json(indent=2)
