"""
In-memory TIME token balances.

ERC-20 style reference implementation of the BalanceService the ledger
pulls stake from. `transfer` and `transfer_from` act on behalf of the
ledger account; holders use `send` and `approve`.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..constants import TOKEN_SYMBOL
from ..interfaces import BalanceService
from ..logger import get_logger

logger = get_logger(__name__)

TransferHook = Callable[["TransferRecord"], None]


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class TokenError(Exception):
    """Base exception for token operations."""


class InsufficientBalanceError(TokenError):
    """Raised when sender balance is too low."""


class InsufficientAllowanceError(TokenError):
    """Raised when spender allowance is too low."""


# ══════════════════════════════════════════════════════════════════════
#  RECORDS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TransferRecord:
    sender: str
    recipient: str
    amount: Decimal
    spender: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sender": self.sender,
            "recipient": self.recipient,
            "amount": str(self.amount),
            "spender": self.spender,
        }


class TokenBalances(BalanceService):
    """
    Balances and allowances for one ledger account.

    Args:
        ledger_address: Account the ledger holds stake in
        on_transfer: Optional hook run after every balance move. If it
            raises, the move is undone and the exception propagates.
    """

    def __init__(self, ledger_address: str, on_transfer: Optional[TransferHook] = None):
        if not ledger_address:
            raise TokenError("Ledger address is required")
        self.ledger_address = ledger_address
        self.on_transfer = on_transfer
        self._balances: Dict[str, Decimal] = {}
        self._allowances: Dict[Tuple[str, str], Decimal] = {}  # (owner, spender)
        self._transfers: List[TransferRecord] = []

    # ── Read-only views ───────────────────────────────────────────────

    @property
    def total_supply(self) -> Decimal:
        return sum(self._balances.values(), Decimal("0"))

    def balance_of(self, address: str) -> Decimal:
        return self._balances.get(address, Decimal("0"))

    def allowance(self, owner: str, spender: str) -> Decimal:
        return self._allowances.get((owner, spender), Decimal("0"))

    @property
    def transfers(self) -> List[TransferRecord]:
        return list(self._transfers)

    # ── Holder operations ─────────────────────────────────────────────

    def mint(self, to: str, amount) -> None:
        amount = Decimal(str(amount))
        if amount <= 0:
            raise TokenError("Mint amount must be positive")
        self._balances[to] = self.balance_of(to) + amount
        logger.debug(f"mint: {to} +{amount} {TOKEN_SYMBOL}")

    def approve(self, owner: str, spender: str, amount) -> None:
        amount = Decimal(str(amount))
        if amount < 0:
            raise TokenError("Allowance amount cannot be negative")
        self._allowances[(owner, spender)] = amount
        logger.debug(f"approve: {owner} -> {spender} {amount} {TOKEN_SYMBOL}")

    def send(self, sender: str, recipient: str, amount) -> bool:
        """Holder-initiated transfer."""
        self._move(sender, recipient, Decimal(str(amount)))
        return True

    # ── BalanceService (ledger account) ───────────────────────────────

    def transfer(self, to: str, amount: Decimal) -> bool:
        self._move(self.ledger_address, to, Decimal(str(amount)))
        return True

    def transfer_from(self, owner: str, to: str, amount: Decimal) -> bool:
        amount = Decimal(str(amount))
        spender = self.ledger_address
        allow = self.allowance(owner, spender)
        if allow < amount:
            raise InsufficientAllowanceError(
                f"Allowance {allow} < transfer amount {amount}"
            )
        self._allowances[(owner, spender)] = allow - amount
        try:
            self._move(owner, to, amount, spender=spender)
        except Exception:
            self._allowances[(owner, spender)] = allow
            raise
        return True

    # ── Internals ─────────────────────────────────────────────────────

    def _move(self, sender: str, recipient: str, amount: Decimal, spender: Optional[str] = None):
        if amount < 0:
            raise TokenError("Transfer amount cannot be negative")
        if amount == 0:
            return  # ERC-20 style: a zero transfer succeeds and moves nothing
        bal = self.balance_of(sender)
        if bal < amount:
            raise InsufficientBalanceError(
                f"{sender} balance {bal} < transfer amount {amount}"
            )

        self._balances[sender] = bal - amount
        self._balances[recipient] = self.balance_of(recipient) + amount
        record = TransferRecord(sender=sender, recipient=recipient, amount=amount, spender=spender)

        if self.on_transfer is not None:
            try:
                self.on_transfer(record)
            except Exception:
                self._balances[recipient] -= amount
                self._balances[sender] = bal
                raise

        self._transfers.append(record)
        logger.debug(f"transfer: {sender} -> {recipient} {amount} {TOKEN_SYMBOL}")
