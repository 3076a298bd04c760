"""
Governance Execution

Applies a passed proposal to the global parameters. The proposal's
governance name selects the GlobalParams field; names that match no field
are accepted and leave the parameters unchanged.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Tuple

from ..constants import GOVERNANCE_PARAMETERS
from ..events import EventBuffer, ProposalExecuted
from ..logger import get_logger
from ..store import LedgerStore
from .proposals import (
    AlreadyExecutedError,
    InvalidParameterValueError,
    Proposal,
    ProposalBook,
    ProposalRejectedError,
    VotingNotOverError,
)

logger = get_logger(__name__)

# GlobalParams field -> value type
_FIELD_TYPES = {
    "min_stake": Decimal,
    "unbonding_period": int,
    "min_oracle_signatures": int,
}


def coerce_parameter(field_name: str, value: Any):
    """
    Convert a proposed value to the type of a GlobalParams field.

    Raises:
        InvalidParameterValueError: Not a finite, non-negative number of the
            right kind
    """
    if isinstance(value, bool):
        raise InvalidParameterValueError(f"Invalid value for {field_name}: {value!r}")
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidParameterValueError(f"Invalid value for {field_name}: {value!r}")
    if not number.is_finite() or number < 0:
        raise InvalidParameterValueError(f"Invalid value for {field_name}: {value!r}")

    if _FIELD_TYPES[field_name] is int:
        if number != number.to_integral_value():
            raise InvalidParameterValueError(
                f"{field_name} must be a whole number, got {value!r}"
            )
        return int(number)
    return number


class GovernanceExecutor:
    """Executes passed proposals against the ledger store."""

    @staticmethod
    def resolve(parameter_name: str) -> Optional[str]:
        """GlobalParams field for a governance name (exact match), or None."""
        return GOVERNANCE_PARAMETERS.get(parameter_name)

    def execute(
        self, store: LedgerStore, proposal_id: int, now: int, events: EventBuffer
    ) -> Dict[str, Any]:
        """
        Execute a proposal.

        Checks:
            1. Voting deadline has passed
            2. Proposal was not executed before
            3. Votes for exceed votes against

        Returns:
            Change record {"parameter", "old", "new", "applied"}
        """
        proposal = ProposalBook.require(store, proposal_id)

        if now <= proposal.voting_deadline:
            raise VotingNotOverError(
                f"Voting for proposal #{proposal.id} is still open "
                f"({proposal.voting_deadline - now}s remaining)"
            )
        if proposal.executed:
            raise AlreadyExecutedError(f"Proposal #{proposal.id} already executed")
        if proposal.for_votes <= proposal.against_votes:
            raise ProposalRejectedError(
                f"Proposal #{proposal.id} rejected "
                f"({proposal.for_votes} for / {proposal.against_votes} against)"
            )

        store.touch("proposals", proposal.id)
        old, new, applied = self._apply_proposal(store, proposal)
        proposal.executed = True

        events.emit(ProposalExecuted(
            timestamp=now,
            proposal_id=proposal.id,
            parameter_name=proposal.parameter_name,
            old_value=old,
            new_value=new,
            applied=applied,
        ))
        if applied:
            logger.info(
                f"Proposal #{proposal.id} EXECUTED: {proposal.parameter_name} {old} -> {new}"
            )
        else:
            logger.info(
                f"Proposal #{proposal.id} EXECUTED: unknown parameter "
                f"'{proposal.parameter_name}', no change"
            )
        return {
            "parameter": proposal.parameter_name,
            "old": old,
            "new": new,
            "applied": applied,
        }

    def _apply_proposal(self, store: LedgerStore, proposal: Proposal) -> Tuple[Any, Any, bool]:
        field_name = self.resolve(proposal.parameter_name)
        if field_name is None:
            return None, None, False

        value = coerce_parameter(field_name, proposal.proposed_value)
        old = getattr(store.params, field_name)
        setattr(store.params, field_name, value)
        return old, value, True
