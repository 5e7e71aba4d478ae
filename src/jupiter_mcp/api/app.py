"""FastAPI application factory."""

from typing import Optional

from fastapi import FastAPI

from jupiter_mcp import __version__
from jupiter_mcp.config import Settings, get_settings
from jupiter_mcp.mcp.server import McpServer


def create_app(server: McpServer, settings: Optional[Settings] = None) -> FastAPI:
    """Create the HTTP transport around an MCP server."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Jupiter MCP",
        description="Solana balances, Jupiter quotes and swaps over MCP",
        version=__version__,
        debug=settings.debug,
    )
    app.state.settings = settings
    app.state.mcp_server = server

    # Register routes
    from jupiter_mcp.api.routes import health, mcp

    app.include_router(health.router, tags=["Health"])
    app.include_router(mcp.router, tags=["MCP"])

    return app
