"""
Governance Proposals

A proposal asks to set one global parameter to a new value. Voting is open
until the deadline; the outcome is evaluated lazily when someone executes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Set

from ..constants import GOVERNANCE_VOTING_PERIOD_SECONDS
from ..events import EventBuffer, ProposalCreated
from ..exceptions import ValidationError
from ..logger import get_logger
from ..store import LedgerStore

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class GovernanceError(ValidationError):
    """Base governance exception."""


class ProposalNotFoundError(GovernanceError):
    """No proposal with that id."""


class VotingClosedError(GovernanceError):
    """Voting deadline has passed."""


class AlreadyVotedError(GovernanceError):
    """Voter has already voted on the proposal."""


class VotingNotOverError(GovernanceError):
    """Execution attempted before the voting deadline."""


class AlreadyExecutedError(GovernanceError):
    """Proposal has already been executed."""


class ProposalRejectedError(GovernanceError):
    """Votes for did not exceed votes against."""


class InvalidParameterValueError(GovernanceError):
    """Proposed value cannot be applied to the target parameter."""


# ══════════════════════════════════════════════════════════════════════
#  ENUMS
# ══════════════════════════════════════════════════════════════════════

class ProposalStatus(Enum):
    """Derived lifecycle stage."""
    PENDING = "pending"      # Voting open (now <= deadline)
    PASSED = "passed"        # Closed, for > against, not yet executed
    REJECTED = "rejected"    # Closed, for <= against (permanent)
    EXECUTED = "executed"    # Terminal


# ══════════════════════════════════════════════════════════════════════
#  PROPOSAL
# ══════════════════════════════════════════════════════════════════════

@dataclass
class Proposal:
    """
    Parameter change proposal.

    Fields:
        id:              Monotonic identifier, starting at 0
        parameter_name:  Governance name of the target parameter
        proposed_value:  Value to write on execution
        voting_deadline: Last timestamp at which votes are accepted
        proposer:        Address that created the proposal
        created_at:      Creation timestamp
        executed:        Terminal flag
        for_votes:       One per supporting voter
        against_votes:   One per opposing voter
        voters:          Addresses that have voted
    """
    id: int
    parameter_name: str
    proposed_value: Any
    voting_deadline: int
    proposer: str = ""
    created_at: int = 0
    executed: bool = False
    for_votes: int = 0
    against_votes: int = 0
    voters: Set[str] = field(default_factory=set)

    def status(self, now: int) -> ProposalStatus:
        if self.executed:
            return ProposalStatus.EXECUTED
        if now <= self.voting_deadline:
            return ProposalStatus.PENDING
        if self.for_votes > self.against_votes:
            return ProposalStatus.PASSED
        return ProposalStatus.REJECTED

    def has_voted(self, voter: str) -> bool:
        return voter in self.voters

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "parameterName": self.parameter_name,
            "proposedValue": str(self.proposed_value),
            "votingDeadline": self.voting_deadline,
            "proposer": self.proposer,
            "createdAt": self.created_at,
            "executed": self.executed,
            "forVotes": self.for_votes,
            "againstVotes": self.against_votes,
            "voterCount": len(self.voters),
        }

    def __repr__(self) -> str:
        return (
            f"<Proposal #{self.id} {self.parameter_name}={self.proposed_value} "
            f"for={self.for_votes} against={self.against_votes} executed={self.executed}>"
        )


class ProposalBook:
    """Creates and looks up proposals in the ledger store."""

    @staticmethod
    def get(store: LedgerStore, proposal_id: int) -> Optional[Proposal]:
        return store.proposals.get(proposal_id)

    @staticmethod
    def require(store: LedgerStore, proposal_id: int) -> Proposal:
        proposal = store.proposals.get(proposal_id)
        if proposal is None:
            raise ProposalNotFoundError(f"Proposal #{proposal_id} not found")
        return proposal

    def create(
        self,
        store: LedgerStore,
        parameter_name: str,
        proposed_value: Any,
        proposer: str,
        now: int,
        events: EventBuffer,
    ) -> Proposal:
        if not parameter_name:
            raise GovernanceError("Parameter name cannot be empty")

        proposal = Proposal(
            id=store.next_proposal_id,
            parameter_name=parameter_name,
            proposed_value=proposed_value,
            voting_deadline=now + GOVERNANCE_VOTING_PERIOD_SECONDS,
            proposer=proposer,
            created_at=now,
        )
        store.touch("proposals", proposal.id)
        store.proposals[proposal.id] = proposal
        store.next_proposal_id += 1

        events.emit(ProposalCreated(
            timestamp=now,
            proposal_id=proposal.id,
            proposer=proposer,
            parameter_name=parameter_name,
            proposed_value=proposed_value,
            voting_deadline=proposal.voting_deadline,
        ))
        logger.info(
            f"Proposal #{proposal.id} created by {proposer}: "
            f"{parameter_name} -> {proposed_value} (voting until {proposal.voting_deadline})"
        )
        return proposal
