"""
Parameter governance: proposals, one-account-one-vote, deferred execution.

Coverage:
  - 7-day voting window, execution only after the deadline
  - minStake lowered from 2000 to 200 by a passed proposal
  - double votes, closed voting, ties, double execution
  - unknown parameter names and uncoercible values
"""

from decimal import Decimal

import pytest

from conftest import ALICE, BOB, CAROL, DAY, START, register

from timestake.events import ProposalCreated, ProposalExecuted, VoteCast
from timestake.governance import (
    AlreadyExecutedError,
    AlreadyVotedError,
    GovernanceError,
    InvalidParameterValueError,
    ProposalNotFoundError,
    ProposalRejectedError,
    ProposalStatus,
    VotingClosedError,
    VotingNotOverError,
    coerce_parameter,
)
from timestake.exceptions import ValidationError


def passed_proposal(service, name, value, voters=(ALICE, BOB)):
    proposal_id = service.create_proposal(name, value, caller=ALICE)
    for voter in voters:
        service.vote(proposal_id, True, caller=voter)
    return proposal_id


# ══════════════════════════════════════════════════════════════════════
#  PROPOSALS
# ══════════════════════════════════════════════════════════════════════

class TestProposals:

    def test_ids_start_at_zero(self, service):
        assert service.create_proposal("minStake", 200, caller=ALICE) == 0
        assert service.create_proposal("unbondingPeriod", DAY, caller=BOB) == 1

    def test_created_proposal(self, service):
        proposal_id = service.create_proposal("minStake", 200, caller=ALICE)
        proposal = service.get_proposal(proposal_id)

        assert proposal.voting_deadline == START + 7 * DAY
        assert proposal.proposer == ALICE
        assert (proposal.for_votes, proposal.against_votes) == (0, 0)
        assert not proposal.executed
        assert service.proposal_status(proposal_id) == ProposalStatus.PENDING
        assert isinstance(service.event_log.last(), ProposalCreated)

    def test_empty_parameter_name(self, service):
        with pytest.raises(GovernanceError):
            service.create_proposal("", 1, caller=ALICE)

    def test_unknown_proposal(self, service):
        with pytest.raises(ProposalNotFoundError):
            service.vote(42, True, caller=ALICE)
        with pytest.raises(ProposalNotFoundError):
            service.execute_proposal(42, caller=ALICE)
        assert service.get_proposal(42) is None

    def test_governance_errors_are_validation_errors(self):
        assert issubclass(GovernanceError, ValidationError)


# ══════════════════════════════════════════════════════════════════════
#  VOTING
# ══════════════════════════════════════════════════════════════════════

class TestVoting:

    def test_one_vote_per_account(self, service):
        proposal_id = service.create_proposal("minStake", 200, caller=ALICE)
        service.vote(proposal_id, True, caller=BOB)
        with pytest.raises(AlreadyVotedError):
            service.vote(proposal_id, False, caller=BOB)

        proposal = service.get_proposal(proposal_id)
        assert (proposal.for_votes, proposal.against_votes) == (1, 0)
        assert isinstance(service.event_log.last(), VoteCast)

    def test_vote_on_deadline_accepted(self, service, clock):
        proposal_id = service.create_proposal("minStake", 200, caller=ALICE)
        clock.set(START + 7 * DAY)
        service.vote(proposal_id, False, caller=CAROL)
        assert service.get_proposal(proposal_id).against_votes == 1

    def test_vote_after_deadline_rejected(self, service, clock):
        proposal_id = service.create_proposal("minStake", 200, caller=ALICE)
        clock.set(START + 7 * DAY + 1)
        with pytest.raises(VotingClosedError):
            service.vote(proposal_id, True, caller=BOB)


# ══════════════════════════════════════════════════════════════════════
#  EXECUTION
# ══════════════════════════════════════════════════════════════════════

class TestExecution:

    def test_min_stake_lowered_after_window(self, service, clock, balances):
        proposal_id = passed_proposal(service, "minStake", 200)
        service.vote(proposal_id, False, caller=CAROL)

        clock.set(START + 6 * DAY)
        with pytest.raises(VotingNotOverError):
            service.execute_proposal(proposal_id, caller=ALICE)

        clock.set(START + 8 * DAY)
        assert service.proposal_status(proposal_id) == ProposalStatus.PASSED
        change = service.execute_proposal(proposal_id, caller=BOB)

        assert change == {
            "parameter": "minStake", "old": Decimal("2000"), "new": Decimal("200"), "applied": True,
        }
        assert service.params().min_stake == Decimal("200")
        assert service.proposal_status(proposal_id) == ProposalStatus.EXECUTED

        server_id = register(service, CAROL)
        assert service.get_bond(server_id).staked_amount == Decimal("200")

        event = service.event_log.events[-2]
        assert isinstance(event, ProposalExecuted)
        assert event.applied

    def test_execute_on_deadline_rejected(self, service, clock):
        proposal_id = passed_proposal(service, "minStake", 200)
        clock.set(START + 7 * DAY)
        with pytest.raises(VotingNotOverError):
            service.execute_proposal(proposal_id, caller=ALICE)

    def test_executes_at_most_once(self, service, clock):
        proposal_id = passed_proposal(service, "minStake", 200)
        clock.set(START + 8 * DAY)
        service.execute_proposal(proposal_id, caller=ALICE)
        with pytest.raises(AlreadyExecutedError):
            service.execute_proposal(proposal_id, caller=ALICE)

    def test_tie_is_rejected(self, service, clock):
        proposal_id = passed_proposal(service, "minStake", 200, voters=(ALICE,))
        service.vote(proposal_id, False, caller=BOB)
        clock.set(START + 8 * DAY)

        assert service.proposal_status(proposal_id) == ProposalStatus.REJECTED
        with pytest.raises(ProposalRejectedError):
            service.execute_proposal(proposal_id, caller=ALICE)
        assert service.params().min_stake == Decimal("2000")

    def test_no_votes_is_rejected(self, service, clock):
        proposal_id = service.create_proposal("minStake", 200, caller=ALICE)
        clock.set(START + 8 * DAY)
        with pytest.raises(ProposalRejectedError):
            service.execute_proposal(proposal_id, caller=ALICE)

    def test_unbonding_period_and_quorum(self, service, clock):
        period = passed_proposal(service, "unbondingPeriod", "86400")
        quorum = passed_proposal(service, "minOracleSignatures", 3)
        clock.set(START + 8 * DAY)
        service.execute_proposal(period, caller=ALICE)
        service.execute_proposal(quorum, caller=ALICE)

        assert service.params().unbonding_period == 86400
        assert service.params().min_oracle_signatures == 3

    def test_unknown_parameter_is_noop_but_executed(self, service, clock):
        proposal_id = passed_proposal(service, "maxServers", 10)
        before = service.params().to_dict()
        clock.set(START + 8 * DAY)

        change = service.execute_proposal(proposal_id, caller=ALICE)
        assert change["applied"] is False
        assert service.params().to_dict() == before
        assert service.get_proposal(proposal_id).executed
        with pytest.raises(AlreadyExecutedError):
            service.execute_proposal(proposal_id, caller=ALICE)

    def test_parameter_names_match_exactly(self, service, clock):
        proposal_id = passed_proposal(service, "minstake", 1)
        clock.set(START + 8 * DAY)
        assert service.execute_proposal(proposal_id, caller=ALICE)["applied"] is False
        assert service.params().min_stake == Decimal("2000")

    def test_invalid_value_changes_nothing(self, service, clock):
        proposal_id = passed_proposal(service, "unbondingPeriod", "three days")
        clock.set(START + 8 * DAY)
        with pytest.raises(InvalidParameterValueError):
            service.execute_proposal(proposal_id, caller=ALICE)

        assert not service.get_proposal(proposal_id).executed
        assert service.proposal_status(proposal_id) == ProposalStatus.PASSED
        assert service.params().unbonding_period == 3 * DAY


class TestCoercion:

    @pytest.mark.parametrize("value, expected", [
        (200, Decimal("200")),
        ("1500.5", Decimal("1500.5")),
        (Decimal("0"), Decimal("0")),
    ])
    def test_stake_values(self, value, expected):
        assert coerce_parameter("min_stake", value) == expected

    @pytest.mark.parametrize("value, expected", [(3, 3), ("86400", 86400), (Decimal("2"), 2)])
    def test_integer_values(self, value, expected):
        assert coerce_parameter("unbonding_period", value) == expected

    @pytest.mark.parametrize("value", ["1.5", -1, True, None, "abc", "Infinity"])
    def test_rejected_integer_values(self, value):
        with pytest.raises(InvalidParameterValueError):
            coerce_parameter("min_oracle_signatures", value)
