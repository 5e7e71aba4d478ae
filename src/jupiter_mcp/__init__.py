"""Jupiter MCP server: Solana balances, quotes and swaps as MCP tools."""

__version__ = "0.1.0"
