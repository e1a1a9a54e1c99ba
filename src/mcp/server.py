"""Multi-tenant MCP server exposing the Notion API as tools.

Each request carries its tenant's Notion integration token in the
`X-Notion-Integration-Token` header; nothing tenant-specific is stored in the process.
"""

import argparse
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send

from src.clients.notion_models import INTEGRATION_TOKEN_HEADER
from src.mcp.health import register_health_routes
from src.mcp.mcp_instance import SERVER_NAME, SERVER_VERSION, get_mcp
from src.mcp.middleware import RequestLoggingMiddleware, TenantCredentialsMiddleware
from src.mcp.tools import register_tools
from src.utils.config import get_notion_mcp_environment
from src.utils.logging import get_logger, get_uvicorn_log_config

# Get logger for this module
logger = get_logger(__name__)

MCP_PATH = "/mcp"


class RequireIntegrationTokenMiddleware:
    """Reject MCP calls that carry no integration token before they reach the MCP app.

    Only `POST /mcp` is checked; every other route (health, info) is open.
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["method"] == "POST":
            path = scope["path"].rstrip("/") or "/"
            if path == MCP_PATH:
                request = Request(scope)
                if not request.headers.get(INTEGRATION_TOKEN_HEADER, "").strip():
                    logger.warning("Rejected MCP request without integration token", path=path)
                    response = JSONResponse(
                        {
                            "error": "Unauthorized",
                            "message": f"Missing {INTEGRATION_TOKEN_HEADER} header",
                            "required_headers": [INTEGRATION_TOKEN_HEADER],
                        },
                        status_code=401,
                    )
                    await response(scope, receive, send)
                    return

        await self.app(scope, receive, send)


# Create MCP instance, register tools and get its HTTP app
mcp = get_mcp()
register_tools()
# Stateless: no MCP session (and so no tenant state) outlives a single request
mcp_app = mcp.http_app(path=MCP_PATH, stateless_http=True)

# Add FastMCP-specific middleware to the MCP instance
# Order matters:
# 1. TenantCredentialsMiddleware attaches the tenant's credentials to the context
# 2. RequestLoggingMiddleware reads them for the redacted token preview in logs
mcp.add_middleware(TenantCredentialsMiddleware())
# Only log tool arguments in local for debugging
include_payloads = get_notion_mcp_environment() == "local"
mcp.add_middleware(
    RequestLoggingMiddleware(include_payloads=include_payloads, max_payload_length=1000)
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with mcp_app.lifespan(app):
        logger.info("MCP server ready", server=SERVER_NAME, version=SERVER_VERSION)
        yield
    logger.info("Graceful shutdown complete")


# Create FastAPI app with the MCP lifespan
app = FastAPI(
    title="Notion MCP Gateway",
    description="Multi-tenant MCP server for the Notion API",
    version=SERVER_VERSION,
    lifespan=lifespan,
)

app.add_middleware(RequireIntegrationTokenMiddleware)

# Register health check routes on FastAPI app
register_health_routes(app)


@app.get("/")
async def server_info(request: Request) -> JSONResponse:
    """Describe the server: endpoints, required headers and available tools."""
    tools = await mcp.get_tools()
    return JSONResponse(
        {
            "name": SERVER_NAME,
            "version": SERVER_VERSION,
            "description": "Multi-tenant Notion MCP server",
            "endpoints": {
                "mcp": f"{MCP_PATH} (POST) - Streamable HTTP MCP endpoint",
                "health": "/health - Health check",
            },
            "authentication": {
                "description": "Pass the tenant's Notion integration token with every request",
                "required_headers": {
                    INTEGRATION_TOKEN_HEADER: "Notion integration token (secret_... or ntn_...)",
                },
            },
            "tools": sorted(tools),
        }
    )


# Mount the MCP app last so the routes above take precedence
app.mount("/", mcp_app)


def main():
    """Main function to start the MCP server."""
    parser = argparse.ArgumentParser(description="Multi-tenant Notion MCP Gateway")
    parser.add_argument("--port", type=int, default=8000, help="Port to listen on (default: 8000)")
    parser.add_argument(
        "--host", type=str, default="0.0.0.0", help="Host to listen on (default: 0.0.0.0)"
    )
    parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development (default: False)"
    )
    args = parser.parse_args()

    logger = get_logger("mcp.server")
    logger.info(
        "Starting Notion MCP Gateway",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )
    logger.info(
        "Server endpoints available",
        health_endpoints=["/health - Health check", "/ - Server info"],
        mcp_endpoints=[f"{MCP_PATH} - All MCP tool calls"],
    )

    # Start the FastAPI server with custom logging configuration
    uvicorn.run(
        "src.mcp.server:app",
        host=args.host,
        port=args.port,
        log_level="info",
        reload=args.reload,
        log_config=get_uvicorn_log_config(),
    )


if __name__ == "__main__":
    main()
