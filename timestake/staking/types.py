"""
Stake Ledger Types
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, NamedTuple


class BondState(Enum):
    """Derived lifecycle state of a bond."""
    ACTIVE = "active"           # Bonded, may be slashed
    UNBONDING = "unbonding"     # Inactive, funds locked until the period elapses
    WITHDRAWN = "withdrawn"     # Drained, kept as a historical record


@dataclass
class ServerBond:
    """
    Collateral posted by one server.

    Attributes:
        server_id: Unique server id (bytes32 hex), immutable
        owner: Address that posted the bond, immutable
        staked_amount: Remaining collateral (whole tokens)
        is_active: Whether the server is bonded
        unbonding_start_time: Timestamp the unbonding clock started, 0 if not unbonding
        region: Region the server operates in
        public_key: Optional operator key supplied at registration
        registered_at: Timestamp of the latest registration
    """
    server_id: str
    owner: str
    staked_amount: Decimal
    region: str
    is_active: bool = True
    unbonding_start_time: int = 0
    public_key: bytes = b""
    registered_at: int = 0

    @property
    def state(self) -> BondState:
        if self.is_active:
            return BondState.ACTIVE
        if self.staked_amount > 0:
            return BondState.UNBONDING
        return BondState.WITHDRAWN

    def withdrawable_at(self, unbonding_period: int) -> int:
        return self.unbonding_start_time + unbonding_period

    def to_dict(self) -> Dict[str, Any]:
        return {
            'server_id': self.server_id,
            'owner': self.owner,
            'staked_amount': str(self.staked_amount),
            'is_active': self.is_active,
            'unbonding_start_time': self.unbonding_start_time,
            'region': self.region,
            'public_key': '0x' + self.public_key.hex(),
            'registered_at': self.registered_at,
            'state': self.state.value,
        }


class ServerStatus(NamedTuple):
    """(is_active, staked_amount, unbonding_start_time)."""
    is_active: bool
    staked_amount: Decimal
    unbonding_start_time: int


class RegionStats(NamedTuple):
    """Aggregate over a region's member bonds."""
    total_servers: int
    active_servers: int
    total_stake: Decimal
