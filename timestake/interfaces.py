"""
TimeStake Collaborator Interfaces

The ledger consumes four external collaborators. Each is an abstract base
class; the hosting environment supplies implementations. Reference adapters
for tests and simulations live alongside them.
"""

import time
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional

from .crypto.signing import recover_signer
from .exceptions import NotPrivilegedError, ValidationError


class BalanceService(ABC):
    """
    Token balances the ledger pulls stake from and pays withdrawals with.

    Calls are made on behalf of the ledger: `transfer` moves the ledger's own
    funds, `transfer_from` spends an allowance the owner granted the ledger.
    """

    @abstractmethod
    def transfer(self, to: str, amount: Decimal) -> bool:
        ...

    @abstractmethod
    def transfer_from(self, owner: str, to: str, amount: Decimal) -> bool:
        ...

    @abstractmethod
    def balance_of(self, address: str) -> Decimal:
        ...

    @abstractmethod
    def allowance(self, owner: str, spender: str) -> Decimal:
        ...


class Clock(ABC):
    """Monotonically non-decreasing timestamp source, in seconds."""

    @abstractmethod
    def now(self) -> int:
        ...


class SignatureRecoverer(ABC):
    """Maps (digest, signature) to a signer identity, or None."""

    @abstractmethod
    def recover(self, digest: bytes, signature: bytes) -> Optional[str]:
        ...


class AccessControl(ABC):
    """Gates owner-only operations."""

    @abstractmethod
    def is_privileged(self, caller: str) -> bool:
        ...


# ══════════════════════════════════════════════════════════════════════
#  REFERENCE ADAPTERS
# ══════════════════════════════════════════════════════════════════════

class ManualClock(Clock):
    """
    Clock advanced explicitly by the host or a test.

    Refuses to move backwards.
    """

    def __init__(self, start: int = 0):
        self._now = int(start)

    def now(self) -> int:
        return self._now

    def set(self, timestamp: int) -> None:
        timestamp = int(timestamp)
        if timestamp < self._now:
            raise ValidationError(
                f"Clock cannot move backwards ({timestamp} < {self._now})"
            )
        self._now = timestamp

    def advance(self, seconds: int) -> int:
        self.set(self._now + int(seconds))
        return self._now

    def __repr__(self) -> str:
        return f"<ManualClock now={self._now}>"


class WallClock(Clock):
    """Host adapter over the system clock, clamped to never decrease."""

    def __init__(self):
        self._last = 0

    def now(self) -> int:
        self._last = max(self._last, int(time.time()))
        return self._last


class EcdsaRecoverer(SignatureRecoverer):
    """secp256k1 signer recovery returning EIP-55 addresses."""

    def recover(self, digest: bytes, signature: bytes) -> Optional[str]:
        return recover_signer(digest, signature)


class OwnerAccessControl(AccessControl):
    """Single privileged owner, transferable."""

    def __init__(self, owner: str):
        if not owner:
            raise ValidationError("Owner address is required")
        self._owner = owner

    @property
    def owner(self) -> str:
        return self._owner

    def is_privileged(self, caller: str) -> bool:
        return bool(caller) and caller.lower() == self._owner.lower()

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        if not self.is_privileged(caller):
            raise NotPrivilegedError(f"{caller} is not the owner")
        if not new_owner:
            raise ValidationError("New owner address is required")
        self._owner = new_owner
