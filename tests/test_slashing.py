"""
Oracle-driven slashing.

Coverage:
  - 2-of-N quorum with a duplicated signature counted once
  - malformed signature entries rejected without aborting
  - slash bounds (no clamping) and inactive bonds
  - deactivation below the minimum stake
  - report replay protection
  - no partial effect when verification fails
"""

from decimal import Decimal

import pytest

from conftest import (
    ALICE,
    BOB,
    MIN_STAKE,
    ORACLES,
    ORACLE_KEYS,
    OUTSIDER_KEY,
    REGION,
    START,
    register,
    sign_report,
)

from timestake.events import ServerSlashed
from timestake.exceptions import (
    InvalidAmountError,
    NotActiveError,
    QuorumNotReachedError,
    ReportAlreadyProcessedError,
    ServerNotFoundError,
    SlashExceedsStakeError,
    VerificationError,
)
from timestake.verification import derive_server_id


def slash(service, server_id, amount, keys=ORACLE_KEYS[:2], report_hash=None, caller=BOB):
    report, signatures = sign_report(service, keys, server_id, amount, report_hash)
    return service.report_violation(server_id, amount, report, signatures, caller=caller)


class TestQuorum:

    def test_duplicate_signature_is_not_quorum(self, service):
        server_id = register(service)
        report, signatures = sign_report(service, ORACLE_KEYS[:1], server_id, 500)

        with pytest.raises(QuorumNotReachedError, match="Insufficient oracle signatures"):
            service.report_violation(
                server_id, 500, report, signatures + signatures, caller=BOB
            )
        assert service.get_server_status(server_id) == (True, MIN_STAKE, 0)

    def test_two_distinct_oracles_slash(self, service, clock):
        server_id = register(service)
        clock.advance(60)
        result = slash(service, server_id, 500)

        assert result.signers == tuple(ORACLES[:2])
        assert service.get_server_status(server_id) == (False, Decimal("1500"), START + 60)

        event = service.event_log.last()
        assert isinstance(event, ServerSlashed)
        assert event.deactivated
        assert event.signers == tuple(ORACLES[:2])

    def test_outsider_signature_does_not_count(self, service):
        server_id = register(service)
        with pytest.raises(QuorumNotReachedError):
            slash(service, server_id, 500, keys=[ORACLE_KEYS[0], OUTSIDER_KEY])

    def test_threshold_follows_parameters(self, service):
        server_id = register(service)
        service.store.params.min_oracle_signatures = 3
        with pytest.raises(QuorumNotReachedError):
            slash(service, server_id, 500)
        slash(service, server_id, 500, keys=ORACLE_KEYS)

    def test_zero_threshold_is_hard_failure(self, service):
        server_id = register(service)
        service.store.params.min_oracle_signatures = 0
        with pytest.raises(VerificationError, match="Invalid signature threshold"):
            slash(service, server_id, 500)
        assert service.get_server_status(server_id).staked_amount == MIN_STAKE

    def test_signatures_for_other_amount_rejected(self, service):
        server_id = register(service)
        report, signatures = sign_report(service, ORACLE_KEYS[:2], server_id, 500)
        with pytest.raises(QuorumNotReachedError):
            service.report_violation(server_id, 1000, report, signatures, caller=BOB)

    def test_malformed_entries_count_as_rejected(self, service):
        server_id = register(service)
        report, signatures = sign_report(service, ORACLE_KEYS[:2], server_id, 500)
        entries = ["0x" + signatures[0].hex(), None, 12345, b"\x01\x02"] + signatures

        result = service.report_violation(server_id, 500, report, entries, caller=BOB)
        assert result.signers == tuple(ORACLES[:2])
        assert result.rejected == 4
        assert service.get_server_status(server_id).staked_amount == Decimal("1500")

    def test_only_malformed_entries_miss_quorum(self, service):
        server_id = register(service)
        report, _ = sign_report(service, ORACLE_KEYS[:2], server_id, 500)
        with pytest.raises(QuorumNotReachedError):
            service.report_violation(server_id, 500, report, ["0xdead", None], caller=BOB)
        assert service.get_server_status(server_id).staked_amount == MIN_STAKE

    def test_signatures_for_other_server_rejected(self, service):
        alice = register(service, ALICE)
        bob = register(service, BOB)
        report, signatures = sign_report(service, ORACLE_KEYS[:2], alice, 500)
        with pytest.raises(QuorumNotReachedError):
            service.report_violation(bob, 500, report, signatures, caller=BOB)


class TestSlashBounds:

    def test_slash_exceeding_stake_is_rejected(self, service):
        server_id = register(service)
        with pytest.raises(SlashExceedsStakeError):
            slash(service, server_id, MIN_STAKE + 1)
        assert service.get_server_status(server_id) == (True, MIN_STAKE, 0)

    def test_slash_entire_stake(self, service):
        server_id = register(service)
        slash(service, server_id, MIN_STAKE)
        assert service.get_server_status(server_id).staked_amount == 0

    def test_inactive_bond_cannot_be_slashed(self, service):
        server_id = register(service)
        service.initiate_unbonding(server_id, caller=ALICE)
        with pytest.raises(NotActiveError):
            slash(service, server_id, 100)

    @pytest.mark.parametrize("amount", [0, "-5", "0.0000000000000000001"])
    def test_invalid_amounts(self, service, amount):
        server_id = register(service)
        with pytest.raises(InvalidAmountError):
            service.report_violation(server_id, amount, "0x" + "00" * 32, [], caller=BOB)

    def test_stays_active_above_minimum(self, service):
        server_id = register(service)
        service.store.params.min_stake = Decimal("1000")
        slash(service, server_id, 400)
        assert service.get_server_status(server_id) == (True, Decimal("1600"), 0)
        assert not service.event_log.last().deactivated

    def test_slashed_stake_is_withdrawable_remainder(self, service, clock):
        server_id = register(service)
        slash(service, server_id, 500)
        clock.advance(3 * 24 * 60 * 60)
        assert service.complete_unbonding(server_id, caller=ALICE) == Decimal("1500")


class TestReplay:

    def test_same_report_cannot_slash_twice(self, service):
        server_id = register(service)
        service.store.params.min_stake = Decimal("100")
        report, signatures = sign_report(service, ORACLE_KEYS[:2], server_id, 100)

        service.report_violation(server_id, 100, report, signatures, caller=BOB)
        with pytest.raises(ReportAlreadyProcessedError):
            service.report_violation(server_id, 100, report, signatures, caller=BOB)
        assert service.get_server_status(server_id).staked_amount == Decimal("1900")

    def test_distinct_report_hash_is_new_report(self, service):
        server_id = register(service)
        service.store.params.min_stake = Decimal("100")
        slash(service, server_id, 100, report_hash="0x" + "01" * 32)
        slash(service, server_id, 100, report_hash="0x" + "02" * 32)
        assert service.get_server_status(server_id).staked_amount == Decimal("1800")

    def test_failed_slash_does_not_consume_report(self, service):
        server_id = register(service)
        report, signatures = sign_report(service, ORACLE_KEYS[:2], server_id, 100)
        with pytest.raises(QuorumNotReachedError):
            service.report_violation(server_id, 100, report, signatures[:1], caller=BOB)
        assert service.store.processed_reports == set()
        service.report_violation(server_id, 100, report, signatures, caller=BOB)


class TestUnknownServer:

    def test_slash_unknown_server(self, service):
        unknown = derive_server_id(BOB, REGION)
        with pytest.raises(ServerNotFoundError):
            slash(service, unknown, 100)
