"""Application services."""

from jupiter_mcp.services.balance_service import BalanceService, balance_to_dict

__all__ = ["BalanceService", "balance_to_dict"]
