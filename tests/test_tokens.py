"""
Reference balance service and host adapters.

Coverage:
  - mint / approve / send / transfer / transfer_from, zero transfers
  - insufficient balance and allowance
  - transfer hook failures undo the move
  - wall clock and logger wiring
"""

import logging
from decimal import Decimal

import pytest

from conftest import ALICE, BOB, LEDGER

from timestake.interfaces import WallClock
from timestake.logger import get_logger
from timestake.tokens import (
    InsufficientAllowanceError,
    InsufficientBalanceError,
    TokenBalances,
    TokenError,
)


@pytest.fixture
def tokens():
    t = TokenBalances(LEDGER)
    t.mint(ALICE, 1000)
    return t


class TestTokenBalances:

    def test_mint_and_send(self, tokens):
        assert tokens.send(ALICE, BOB, "250.5")
        assert tokens.balance_of(ALICE) == Decimal("749.5")
        assert tokens.balance_of(BOB) == Decimal("250.5")
        assert tokens.total_supply == Decimal("1000")

        record = tokens.transfers[-1]
        assert record.to_dict() == {
            "sender": ALICE, "recipient": BOB, "amount": "250.5", "spender": None,
        }

    def test_transfer_from_spends_ledger_allowance(self, tokens):
        tokens.approve(ALICE, LEDGER, 600)
        tokens.transfer_from(ALICE, LEDGER, Decimal("400"))

        assert tokens.allowance(ALICE, LEDGER) == Decimal("200")
        assert tokens.balance_of(LEDGER) == Decimal("400")
        assert tokens.transfers[-1].spender == LEDGER

        tokens.transfer(BOB, Decimal("150"))
        assert tokens.balance_of(BOB) == Decimal("150")
        assert tokens.total_supply == Decimal("1000")

    def test_insufficient_allowance(self, tokens):
        tokens.approve(ALICE, LEDGER, 10)
        with pytest.raises(InsufficientAllowanceError):
            tokens.transfer_from(ALICE, LEDGER, Decimal("11"))
        assert tokens.balance_of(ALICE) == Decimal("1000")

    def test_insufficient_balance_keeps_allowance(self, tokens):
        tokens.approve(ALICE, LEDGER, 5000)
        with pytest.raises(InsufficientBalanceError):
            tokens.transfer_from(ALICE, LEDGER, Decimal("1001"))
        assert tokens.allowance(ALICE, LEDGER) == Decimal("5000")

    def test_invalid_amounts(self, tokens):
        with pytest.raises(TokenError):
            tokens.mint(BOB, 0)
        with pytest.raises(TokenError):
            tokens.approve(ALICE, LEDGER, -1)
        with pytest.raises(TokenError):
            tokens.send(ALICE, BOB, -1)
        with pytest.raises(TokenError):
            TokenBalances("")

    def test_zero_transfers_succeed_without_moving(self, tokens):
        tokens.approve(ALICE, LEDGER, 0)
        assert tokens.transfer_from(ALICE, LEDGER, Decimal(0))
        assert tokens.send(ALICE, BOB, 0)
        assert tokens.transfer(BOB, 0)

        assert tokens.balance_of(ALICE) == Decimal("1000")
        assert tokens.balance_of(LEDGER) == 0
        assert tokens.transfers == []

    def test_failing_hook_undoes_move(self, tokens):
        tokens.approve(ALICE, LEDGER, 500)

        def hook(record):
            raise RuntimeError("observer down")

        tokens.on_transfer = hook
        with pytest.raises(RuntimeError):
            tokens.transfer_from(ALICE, LEDGER, Decimal("500"))

        assert tokens.balance_of(ALICE) == Decimal("1000")
        assert tokens.balance_of(LEDGER) == 0
        assert tokens.allowance(ALICE, LEDGER) == Decimal("500")
        assert tokens.transfers == []


class TestHostAdapters:

    def test_wall_clock_never_decreases(self):
        clock = WallClock()
        first = clock.now()
        assert first > 0
        assert clock.now() >= first

    def test_module_loggers_share_root_handlers(self):
        logger = get_logger("timestake.tests")
        assert isinstance(logger, logging.Logger)
        assert logging.getLogger().handlers
