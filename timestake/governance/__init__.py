"""
TimeStake Parameter Governance

Provides:
  - Proposal / ProposalStatus / ProposalBook  (proposals.py)
  - VotingEngine                              (voting.py)
  - GovernanceExecutor / coerce_parameter     (execution.py)
"""

from .proposals import (
    AlreadyExecutedError,
    AlreadyVotedError,
    GovernanceError,
    InvalidParameterValueError,
    Proposal,
    ProposalBook,
    ProposalNotFoundError,
    ProposalRejectedError,
    ProposalStatus,
    VotingClosedError,
    VotingNotOverError,
)
from .voting import VotingEngine
from .execution import GovernanceExecutor, coerce_parameter

__all__ = [
    # Proposals
    "AlreadyExecutedError",
    "AlreadyVotedError",
    "GovernanceError",
    "InvalidParameterValueError",
    "Proposal",
    "ProposalBook",
    "ProposalNotFoundError",
    "ProposalRejectedError",
    "ProposalStatus",
    "VotingClosedError",
    "VotingNotOverError",
    # Voting
    "VotingEngine",
    # Execution
    "GovernanceExecutor",
    "coerce_parameter",
]
