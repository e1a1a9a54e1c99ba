"""Health check endpoints for the MCP server."""

from datetime import UTC, datetime

from starlette.requests import Request
from starlette.responses import JSONResponse

from src.mcp.mcp_instance import SERVER_NAME


def register_health_routes(app):
    """Register health check routes with the FastAPI app instance."""

    @app.get("/health")
    async def health_check(request: Request) -> JSONResponse:
        """Liveness check. The gateway has no dependencies of its own to probe: Notion is
        reached with per-tenant credentials only."""
        return JSONResponse(
            {
                "status": "ok",
                "server": SERVER_NAME,
                "timestamp": datetime.now(UTC).isoformat(),
            }
        )
