"""
Shared fixtures and helpers for the TimeStake test suite.
"""

import os
import sys
from decimal import Decimal

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from timestake.config import DomainConfig, LedgerConfig, StakingConfig
from timestake.crypto import PrivateKey
from timestake.interfaces import ManualClock, OwnerAccessControl
from timestake.service import TimeStaking
from timestake.tokens import TokenBalances
from timestake.verification import derive_server_id, violation_report_hash


# ══════════════════════════════════════════════════════════════════════
#  CONSTANTS
# ══════════════════════════════════════════════════════════════════════

DAY = 24 * 60 * 60
START = 1_700_000_000
REGION = "us-east-1"
LEDGER = "0x1111111111111111111111111111111111111111"
MIN_STAKE = Decimal("2000")
FUNDING = Decimal("10000")

OWNER_KEY = PrivateKey.from_int(1)
OWNER = OWNER_KEY.address
ALICE = PrivateKey.from_int(2).address
BOB = PrivateKey.from_int(3).address
CAROL = PrivateKey.from_int(4).address

ORACLE_KEYS = [PrivateKey.from_int(100 + i) for i in range(3)]
ORACLES = [k.address for k in ORACLE_KEYS]
OUTSIDER_KEY = PrivateKey.from_int(999)


# ══════════════════════════════════════════════════════════════════════
#  HELPERS
# ══════════════════════════════════════════════════════════════════════

def make_config(prune_withdrawn_members: bool = False, **staking) -> LedgerConfig:
    return LedgerConfig(
        staking=StakingConfig(prune_withdrawn_members=prune_withdrawn_members, **staking),
        domain=DomainConfig(ledger_address=LEDGER),
    )


def make_service(clock, balances, config=None, oracles=ORACLES, regions=(REGION,)) -> TimeStaking:
    service = TimeStaking(
        balances,
        OwnerAccessControl(OWNER),
        clock,
        config=config or make_config(),
    )
    for region in regions:
        service.add_region(region, caller=OWNER)
    for oracle in oracles:
        service.add_oracle(oracle, caller=OWNER)
    return service


def fund(balances: TokenBalances, account: str, amount=FUNDING, allowance=None):
    balances.mint(account, amount)
    balances.approve(account, LEDGER, amount if allowance is None else allowance)


def register(service: TimeStaking, owner: str = ALICE, region: str = REGION) -> str:
    server_id = derive_server_id(owner, region)
    service.register_server(server_id, region, caller=owner)
    return server_id


def sign_report(service: TimeStaking, keys, server_id: str, amount, report_hash=None):
    """Oracle signatures over a violation report; returns (report_hash, signatures)."""
    if report_hash is None:
        report_hash = violation_report_hash(server_id, amount)
    signatures = [service.domain.sign(k, server_id, amount, report_hash) for k in keys]
    return report_hash, signatures


# ══════════════════════════════════════════════════════════════════════
#  FIXTURES
# ══════════════════════════════════════════════════════════════════════

@pytest.fixture
def clock():
    return ManualClock(START)


@pytest.fixture
def balances():
    tokens = TokenBalances(LEDGER)
    for account in (ALICE, BOB, CAROL):
        fund(tokens, account)
    return tokens


@pytest.fixture
def service(clock, balances):
    return make_service(clock, balances)
