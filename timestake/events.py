"""
Ledger Events

One immutable event per successful state transition. Operations stage
events in an `EventBuffer`; the service commits the buffer to the
`EventLog` only after the operation has fully applied.
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, ClassVar, Dict, List, Optional, Type, TypeVar

E = TypeVar("E", bound="LedgerEvent")


@dataclass(frozen=True)
class LedgerEvent:
    """Common envelope: ledger timestamp and log sequence number."""
    name: ClassVar[str] = "LedgerEvent"

    timestamp: int
    sequence: int = field(default=-1, kw_only=True)

    def payload(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        data = {"event": self.name, "sequence": self.sequence, "timestamp": self.timestamp}
        data.update(self.payload())
        return data


# ── Stake ledger ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class ServerRegistered(LedgerEvent):
    name: ClassVar[str] = "ServerRegistered"
    server_id: str
    owner: str
    region: str
    amount: Decimal

    def payload(self) -> Dict[str, Any]:
        return {
            "serverId": self.server_id,
            "owner": self.owner,
            "region": self.region,
            "amount": str(self.amount),
        }


@dataclass(frozen=True)
class UnbondingInitiated(LedgerEvent):
    name: ClassVar[str] = "UnbondingInitiated"
    server_id: str
    unbonding_start_time: int

    def payload(self) -> Dict[str, Any]:
        return {"serverId": self.server_id, "unbondingStartTime": self.unbonding_start_time}


@dataclass(frozen=True)
class UnbondingCompleted(LedgerEvent):
    name: ClassVar[str] = "UnbondingCompleted"
    server_id: str
    owner: str
    amount: Decimal

    def payload(self) -> Dict[str, Any]:
        return {"serverId": self.server_id, "owner": self.owner, "amount": str(self.amount)}


@dataclass(frozen=True)
class ServerSlashed(LedgerEvent):
    name: ClassVar[str] = "ServerSlashed"
    server_id: str
    amount: Decimal
    report_hash: str
    signers: tuple
    deactivated: bool

    def payload(self) -> Dict[str, Any]:
        return {
            "serverId": self.server_id,
            "amount": str(self.amount),
            "reportHash": self.report_hash,
            "signers": list(self.signers),
            "deactivated": self.deactivated,
        }


@dataclass(frozen=True)
class EmergencyRecoveryExecuted(LedgerEvent):
    name: ClassVar[str] = "EmergencyRecoveryExecuted"
    server_id: str
    reason: str

    def payload(self) -> Dict[str, Any]:
        return {"serverId": self.server_id, "reason": self.reason}


# ── Regions & oracles ─────────────────────────────────────────────────

@dataclass(frozen=True)
class RegionAdded(LedgerEvent):
    name: ClassVar[str] = "RegionAdded"
    region: str

    def payload(self) -> Dict[str, Any]:
        return {"region": self.region}


@dataclass(frozen=True)
class RegionRemoved(LedgerEvent):
    name: ClassVar[str] = "RegionRemoved"
    region: str

    def payload(self) -> Dict[str, Any]:
        return {"region": self.region}


@dataclass(frozen=True)
class OracleAdded(LedgerEvent):
    name: ClassVar[str] = "OracleAdded"
    oracle: str

    def payload(self) -> Dict[str, Any]:
        return {"oracle": self.oracle}


@dataclass(frozen=True)
class OracleRemoved(LedgerEvent):
    name: ClassVar[str] = "OracleRemoved"
    oracle: str

    def payload(self) -> Dict[str, Any]:
        return {"oracle": self.oracle}


# ── Governance ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ProposalCreated(LedgerEvent):
    name: ClassVar[str] = "ProposalCreated"
    proposal_id: int
    proposer: str
    parameter_name: str
    proposed_value: Any
    voting_deadline: int

    def payload(self) -> Dict[str, Any]:
        return {
            "proposalId": self.proposal_id,
            "proposer": self.proposer,
            "parameterName": self.parameter_name,
            "proposedValue": str(self.proposed_value),
            "votingDeadline": self.voting_deadline,
        }


@dataclass(frozen=True)
class VoteCast(LedgerEvent):
    name: ClassVar[str] = "VoteCast"
    proposal_id: int
    voter: str
    support: bool

    def payload(self) -> Dict[str, Any]:
        return {"proposalId": self.proposal_id, "voter": self.voter, "support": self.support}


@dataclass(frozen=True)
class ProposalExecuted(LedgerEvent):
    name: ClassVar[str] = "ProposalExecuted"
    proposal_id: int
    parameter_name: str
    old_value: Any
    new_value: Any
    applied: bool

    def payload(self) -> Dict[str, Any]:
        return {
            "proposalId": self.proposal_id,
            "parameterName": self.parameter_name,
            "oldValue": None if self.old_value is None else str(self.old_value),
            "newValue": None if self.new_value is None else str(self.new_value),
            "applied": self.applied,
        }


# ── Pause switch ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class Paused(LedgerEvent):
    name: ClassVar[str] = "Paused"
    account: str

    def payload(self) -> Dict[str, Any]:
        return {"account": self.account}


@dataclass(frozen=True)
class Unpaused(LedgerEvent):
    name: ClassVar[str] = "Unpaused"
    account: str

    def payload(self) -> Dict[str, Any]:
        return {"account": self.account}


# ══════════════════════════════════════════════════════════════════════
#  BUFFER & LOG
# ══════════════════════════════════════════════════════════════════════

class EventBuffer:
    """Events staged by one operation, discarded if it fails."""

    def __init__(self):
        self._pending: List[LedgerEvent] = []

    def emit(self, event: LedgerEvent) -> None:
        self._pending.append(event)

    def drain(self) -> List[LedgerEvent]:
        pending, self._pending = self._pending, []
        return pending

    def __len__(self) -> int:
        return len(self._pending)


class EventLog:
    """Append-only, ordered log of committed events."""

    def __init__(self):
        self._events: List[LedgerEvent] = []

    def commit(self, events: List[LedgerEvent]) -> List[LedgerEvent]:
        committed = []
        for event in events:
            event = replace(event, sequence=len(self._events))
            self._events.append(event)
            committed.append(event)
        return committed

    @property
    def events(self) -> List[LedgerEvent]:
        return list(self._events)

    def of_type(self, event_type: Type[E]) -> List[E]:
        return [e for e in self._events if isinstance(e, event_type)]

    def last(self) -> Optional[LedgerEvent]:
        return self._events[-1] if self._events else None

    def __len__(self) -> int:
        return len(self._events)
