"""
Threshold verification and violation report encoding.

Coverage:
  - quorum counting: distinct signers, non-oracles, malformed signatures
  - threshold validation
  - domain separation of report digests (server, amount, report, chain, ledger)
  - base-unit conversion and id helpers
"""

from decimal import Decimal

import pytest

from conftest import ALICE, BOB, LEDGER, ORACLE_KEYS, ORACLES, OUTSIDER_KEY, REGION

from timestake.exceptions import (
    InvalidAmountError,
    QuorumNotReachedError,
    ValidationError,
    VerificationError,
)
from timestake.interfaces import EcdsaRecoverer, SignatureRecoverer
from timestake.verification import (
    ReportDomain,
    ThresholdVerifier,
    derive_server_id,
    normalize_server_id,
    sign_violation_report,
    to_base_units,
    violation_report_hash,
)


DOMAIN = ReportDomain(chain_id=1, ledger_address=LEDGER)
SERVER_ID = derive_server_id(ALICE, REGION)
AMOUNT = Decimal("500")
REPORT = violation_report_hash(SERVER_ID, AMOUNT)
DIGEST = DOMAIN.digest(SERVER_ID, AMOUNT, REPORT)
ORACLE_SET = frozenset(ORACLES)


def sigs(*keys, domain=DOMAIN, server_id=SERVER_ID, amount=AMOUNT, report=REPORT):
    return [domain.sign(k, server_id, amount, report) for k in keys]


class TableRecoverer(SignatureRecoverer):
    """Maps signature bytes straight to identities."""

    def __init__(self, table):
        self.table = table

    def recover(self, digest, signature):
        return self.table.get(signature)


# ══════════════════════════════════════════════════════════════════════
#  QUORUM COUNTING
# ══════════════════════════════════════════════════════════════════════

class TestThresholdVerifier:

    def setup_method(self):
        self.verifier = ThresholdVerifier(EcdsaRecoverer())

    def test_quorum_reached(self):
        result = self.verifier.verify(DIGEST, sigs(*ORACLE_KEYS[:2]), ORACLE_SET, 2)
        assert result.reached
        assert result.signers == tuple(ORACLES[:2])
        assert result.rejected == 0

    def test_duplicate_signature_counted_once(self):
        sig = sigs(ORACLE_KEYS[0])[0]
        result = self.verifier.evaluate(DIGEST, [sig, sig], ORACLE_SET, 2)
        assert result.valid_count == 1
        assert result.rejected == 1
        assert not result.reached
        with pytest.raises(QuorumNotReachedError, match="Insufficient oracle signatures"):
            self.verifier.verify(DIGEST, [sig, sig], ORACLE_SET, 2)

    def test_non_oracle_ignored(self):
        result = self.verifier.evaluate(
            DIGEST, sigs(ORACLE_KEYS[0], OUTSIDER_KEY), ORACLE_SET, 2
        )
        assert result.signers == (ORACLES[0],)
        assert result.rejected == 1

    def test_malformed_signatures_do_not_abort(self):
        good = sigs(*ORACLE_KEYS[:2])
        junk = [b"", b"\x01" * 64, good[0][:64] + bytes([9])]
        result = self.verifier.verify(DIGEST, junk + good, ORACLE_SET, 2)
        assert result.valid_count == 2
        assert result.rejected == 3

    def test_non_bytes_entries_do_not_abort(self):
        good = sigs(*ORACLE_KEYS[:2])
        junk = ["0x" + good[0].hex(), None, 12345, bytearray(good[0][:10])]
        result = self.verifier.verify(DIGEST, junk + good, ORACLE_SET, 2)
        assert result.signers == tuple(ORACLES[:2])
        assert result.rejected == 4

    def test_all_oracles_counted(self):
        result = self.verifier.verify(DIGEST, sigs(*ORACLE_KEYS), ORACLE_SET, 2)
        assert result.valid_count == 3

    def test_empty_signature_list(self):
        with pytest.raises(QuorumNotReachedError) as exc:
            self.verifier.verify(DIGEST, [], ORACLE_SET, 1)
        assert exc.value.valid == 0
        assert exc.value.threshold == 1

    @pytest.mark.parametrize("threshold", [0, -1])
    def test_non_positive_threshold_is_hard_error(self, threshold):
        with pytest.raises(VerificationError, match="Invalid signature threshold"):
            self.verifier.verify(DIGEST, sigs(*ORACLE_KEYS), ORACLE_SET, threshold)

    def test_injected_recoverer(self):
        verifier = ThresholdVerifier(TableRecoverer({b"a": "X", b"b": "Y", b"c": "X"}))
        result = verifier.evaluate(b"\x00" * 32, [b"a", b"b", b"c", b"d"], {"X", "Y"}, 2)
        assert result.signers == ("X", "Y")
        assert result.rejected == 2
        assert result.to_dict()["reached"] is True


# ══════════════════════════════════════════════════════════════════════
#  DOMAIN SEPARATION
# ══════════════════════════════════════════════════════════════════════

class TestReportDigest:

    def setup_method(self):
        self.verifier = ThresholdVerifier(EcdsaRecoverer())

    def _count(self, digest, signatures):
        return self.verifier.evaluate(digest, signatures, ORACLE_SET, 1).valid_count

    def test_signature_bound_to_amount(self):
        other = DOMAIN.digest(SERVER_ID, Decimal("501"), REPORT)
        assert self._count(other, sigs(ORACLE_KEYS[0])) == 0

    def test_signature_bound_to_server(self):
        other_server = derive_server_id(BOB, REGION)
        other = DOMAIN.digest(other_server, AMOUNT, REPORT)
        assert self._count(other, sigs(ORACLE_KEYS[0])) == 0

    def test_signature_bound_to_report(self):
        other = DOMAIN.digest(SERVER_ID, AMOUNT, "0x" + "ab" * 32)
        assert self._count(other, sigs(ORACLE_KEYS[0])) == 0

    def test_signature_bound_to_chain_and_ledger(self):
        other_chain = ReportDomain(chain_id=2, ledger_address=LEDGER)
        other_ledger = ReportDomain(
            chain_id=1, ledger_address="0x2222222222222222222222222222222222222222"
        )
        signatures = sigs(ORACLE_KEYS[0])
        assert self._count(other_chain.digest(SERVER_ID, AMOUNT, REPORT), signatures) == 0
        assert self._count(other_ledger.digest(SERVER_ID, AMOUNT, REPORT), signatures) == 0
        assert self._count(DIGEST, signatures) == 1

    def test_digest_accepts_bytes_report_hash(self):
        raw = bytes.fromhex(REPORT[2:])
        assert DOMAIN.digest(SERVER_ID, AMOUNT, raw) == DIGEST

    def test_module_signing_helper(self):
        signature = sign_violation_report(ORACLE_KEYS[1], SERVER_ID, AMOUNT, REPORT, DOMAIN)
        assert signature == sigs(ORACLE_KEYS[1])[0]


# ══════════════════════════════════════════════════════════════════════
#  ENCODING HELPERS
# ══════════════════════════════════════════════════════════════════════

class TestEncoding:

    def test_base_units(self):
        assert to_base_units(Decimal("1")) == 10 ** 18
        assert to_base_units("0.5") == 5 * 10 ** 17
        assert to_base_units(2000) == 2000 * 10 ** 18

    def test_too_precise_amount(self):
        with pytest.raises(InvalidAmountError, match="more precise"):
            to_base_units(Decimal("0.0000000000000000001"))

    @pytest.mark.parametrize("bad", ["-1", "abc", "NaN", "Infinity"])
    def test_invalid_amounts(self, bad):
        with pytest.raises(InvalidAmountError):
            to_base_units(bad)

    def test_server_id_is_deterministic_per_owner_and_region(self):
        assert derive_server_id(ALICE, REGION) == SERVER_ID
        assert derive_server_id(ALICE, "eu-west-1") != SERVER_ID
        assert derive_server_id(BOB, REGION) != SERVER_ID
        assert len(SERVER_ID) == 66

    def test_normalize_server_id(self):
        assert normalize_server_id(SERVER_ID.upper().replace("0X", "0x")) == SERVER_ID
        assert normalize_server_id(bytes.fromhex(SERVER_ID[2:])) == SERVER_ID

    @pytest.mark.parametrize("bad", ["server-1", "0x1234", "0x" + "zz" * 32, 42])
    def test_invalid_server_ids(self, bad):
        with pytest.raises(ValidationError, match="Invalid server id"):
            normalize_server_id(bad)

    def test_report_hash_depends_on_amount(self):
        assert violation_report_hash(SERVER_ID, 1) != violation_report_hash(SERVER_ID, 2)
