"""
Governance Voting

One account, one vote. Votes are accepted up to and including the
proposal's deadline.
"""

from ..events import EventBuffer, VoteCast
from ..logger import get_logger
from ..store import LedgerStore
from .proposals import AlreadyVotedError, Proposal, ProposalBook, VotingClosedError

logger = get_logger(__name__)


class VotingEngine:
    """Records votes on proposals held in the ledger store."""

    def cast_vote(
        self,
        store: LedgerStore,
        proposal_id: int,
        support: bool,
        voter: str,
        now: int,
        events: EventBuffer,
    ) -> Proposal:
        """
        Cast a vote on a proposal.

        Raises:
            ProposalNotFoundError: Unknown proposal id
            VotingClosedError: now > voting deadline
            AlreadyVotedError: voter has already voted on this proposal
        """
        proposal = ProposalBook.require(store, proposal_id)

        if now > proposal.voting_deadline:
            raise VotingClosedError(
                f"Voting period for proposal #{proposal.id} has ended"
            )
        if proposal.has_voted(voter):
            raise AlreadyVotedError(
                f"{voter} has already voted on proposal #{proposal.id}"
            )

        support = bool(support)
        store.touch("proposals", proposal.id)
        proposal.voters.add(voter)
        if support:
            proposal.for_votes += 1
        else:
            proposal.against_votes += 1

        events.emit(VoteCast(
            timestamp=now, proposal_id=proposal.id, voter=voter, support=support
        ))
        logger.info(
            f"Vote: {voter} -> {'FOR' if support else 'AGAINST'} on Proposal #{proposal.id} "
            f"({proposal.for_votes} for / {proposal.against_votes} against)"
        )
        return proposal
