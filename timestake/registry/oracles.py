"""
Oracle Set

Authorized signer membership. Identities are stored as EIP-55 checksum
addresses so lookups are case-insensitive on input.
"""

from typing import FrozenSet

from ..crypto.address import is_valid_address, normalize_address
from ..events import EventBuffer, OracleAdded, OracleRemoved
from ..exceptions import InvalidAddressError, OracleExistsError, OracleNotFoundError
from ..logger import get_logger
from ..store import LedgerStore

logger = get_logger(__name__)


def _checked(address: str) -> str:
    if not is_valid_address(address):
        raise InvalidAddressError(f"Invalid oracle address: {address!r}")
    return normalize_address(address)


class OracleSet:
    """Oracle membership handler."""

    @staticmethod
    def members(store: LedgerStore) -> FrozenSet[str]:
        return frozenset(store.oracles)

    @staticmethod
    def is_oracle(store: LedgerStore, address: str) -> bool:
        if not is_valid_address(address):
            return False
        return normalize_address(address) in store.oracles

    def add_oracle(self, store: LedgerStore, address: str, now: int, events: EventBuffer) -> str:
        oracle = _checked(address)
        if oracle in store.oracles:
            raise OracleExistsError(f"Already oracle: {oracle}")
        store.mark("oracles", oracle)
        events.emit(OracleAdded(timestamp=now, oracle=oracle))
        logger.info(f"Oracle added: {oracle} (committee size {len(store.oracles)})")
        return oracle

    def remove_oracle(self, store: LedgerStore, address: str, now: int, events: EventBuffer) -> str:
        oracle = _checked(address)
        if oracle not in store.oracles:
            raise OracleNotFoundError(f"Not oracle: {oracle}")
        store.mark("oracles", oracle, present=False)
        events.emit(OracleRemoved(timestamp=now, oracle=oracle))
        logger.info(f"Oracle removed: {oracle} (committee size {len(store.oracles)})")
        return oracle
