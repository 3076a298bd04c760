"""
TimeStake Token Balances

Provides:
  - TokenBalances : in-memory BalanceService (balances.py)
"""

from .balances import (
    InsufficientAllowanceError,
    InsufficientBalanceError,
    TokenBalances,
    TokenError,
    TransferRecord,
)

__all__ = [
    "InsufficientAllowanceError",
    "InsufficientBalanceError",
    "TokenBalances",
    "TokenError",
    "TransferRecord",
]
