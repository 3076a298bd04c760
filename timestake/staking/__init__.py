"""
TimeStake Staking Module

Provides:
  - StakeLedger  : bond lifecycle (ledger.py)
  - ServerBond, ServerStatus, RegionStats, BondState (types.py)
"""

from .types import BondState, RegionStats, ServerBond, ServerStatus
from .ledger import StakeLedger

__all__ = [
    "BondState",
    "RegionStats",
    "ServerBond",
    "ServerStatus",
    "StakeLedger",
]
