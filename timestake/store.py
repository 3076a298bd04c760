"""
Ledger Store

The single shared mutable store every operation handler receives. It holds
bonds, regions, oracles, proposals, global parameters and the pause flag.

Each mutating operation runs inside a journal opened with `begin()`.
Handlers `touch` a record before changing it and route set membership
through `mark`, so only the records an operation actually changes are
copied. `rollback()` puts those records back; `commit()` drops the journal.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, fields
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Set, Tuple

from .constants import (
    DEFAULT_MIN_ORACLE_SIGNATURES,
    DEFAULT_MIN_STAKE,
    DEFAULT_UNBONDING_PERIOD,
)

if TYPE_CHECKING:
    from .governance.proposals import Proposal
    from .staking.types import ServerBond

_MISSING = object()

# Keyed record tables and membership sets an operation may change
_TABLES = ("bonds", "regions", "proposals")
_SETS = ("oracles", "processed_reports")


@dataclass
class GlobalParams:
    """Economic parameters, written only by governance execution."""
    min_stake: Decimal = DEFAULT_MIN_STAKE
    unbonding_period: int = DEFAULT_UNBONDING_PERIOD
    min_oracle_signatures: int = DEFAULT_MIN_ORACLE_SIGNATURES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "minStake": str(self.min_stake),
            "unbondingPeriod": self.unbonding_period,
            "minOracleSignatures": self.min_oracle_signatures,
        }


@dataclass
class Region:
    """
    Operating region.

    Attributes:
        name: Region name (e.g. "us-east-1")
        active: Whether new bonds may register here
        members: Bond ids in registration order
    """
    name: str
    active: bool = True
    members: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "active": self.active, "members": list(self.members)}


class _Journal:
    """Prior values of everything one operation changed."""

    def __init__(self, store: "LedgerStore"):
        self.records: Dict[Tuple[str, Any], Any] = {}   # (table, key) -> prior record
        self.marks: List[Tuple[str, Any, bool]] = []    # (set, item, added)
        self.params = copy.copy(store.params)
        self.next_proposal_id = store.next_proposal_id
        self.paused = store.paused


@dataclass
class LedgerStore:
    params: GlobalParams = field(default_factory=GlobalParams)
    bonds: Dict[str, "ServerBond"] = field(default_factory=dict)
    regions: Dict[str, Region] = field(default_factory=dict)
    oracles: Set[str] = field(default_factory=set)
    proposals: Dict[int, "Proposal"] = field(default_factory=dict)
    next_proposal_id: int = 0
    processed_reports: Set[bytes] = field(default_factory=set)
    paused: bool = False
    _journal: Optional[_Journal] = field(default=None, repr=False, compare=False)

    # ── Operation journal ─────────────────────────────────────────────

    def begin(self) -> None:
        if self._journal is not None:
            raise RuntimeError("Ledger store journal already open")
        self._journal = _Journal(self)

    def commit(self) -> None:
        self._journal = None

    def rollback(self) -> None:
        """Undo every change recorded since `begin()`."""
        journal = self._journal
        if journal is None:
            return
        self._journal = None

        for (table, key), prior in journal.records.items():
            records = getattr(self, table)
            if prior is _MISSING:
                records.pop(key, None)
            else:
                records[key] = prior
        for set_name, item, added in reversed(journal.marks):
            members = getattr(self, set_name)
            if added:
                members.discard(item)
            else:
                members.add(item)
        for f in fields(GlobalParams):
            setattr(self.params, f.name, getattr(journal.params, f.name))
        self.next_proposal_id = journal.next_proposal_id
        self.paused = journal.paused

    def touch(self, table: str, key: Any) -> Any:
        """
        Record `table[key]` before it is changed or created.

        Returns the current record (None if absent).
        """
        if table not in _TABLES:
            raise KeyError(f"Unknown table: {table}")
        records = getattr(self, table)
        current = records.get(key)
        if self._journal is not None and (table, key) not in self._journal.records:
            self._journal.records[(table, key)] = (
                _MISSING if current is None else copy.deepcopy(current)
            )
        return current

    def mark(self, set_name: str, item: Any, present: bool = True) -> bool:
        """
        Add (`present`) or discard an item of a membership set.

        Returns whether membership changed.
        """
        if set_name not in _SETS:
            raise KeyError(f"Unknown set: {set_name}")
        members = getattr(self, set_name)
        if (item in members) == present:
            return False
        if present:
            members.add(item)
        else:
            members.discard(item)
        if self._journal is not None:
            self._journal.marks.append((set_name, item, present))
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "params": self.params.to_dict(),
            "bonds": {sid: b.to_dict() for sid, b in self.bonds.items()},
            "regions": {name: r.to_dict() for name, r in self.regions.items()},
            "oracles": sorted(self.oracles),
            "proposals": {pid: p.to_dict() for pid, p in self.proposals.items()},
            "nextProposalId": self.next_proposal_id,
            "processedReports": len(self.processed_reports),
            "paused": self.paused,
        }
