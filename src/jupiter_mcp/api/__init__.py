"""HTTP transport."""

from jupiter_mcp.api.app import create_app

__all__ = ["create_app"]
