"""
TimeStaking Service

Public operation surface of the ledger. The service owns the shared store
and is the apply-or-discard boundary: every mutating operation runs under
the single-writer lock inside a store journal, and its events are published
only if it completes. Queries from other threads wait for the writer.
"""

import copy
import threading
from enum import Flag, auto
from typing import Any, Callable, Dict, Iterable, List, Optional

from .config.loader import LedgerConfig
from .crypto.address import is_valid_address, normalize_address
from .events import EventBuffer, EventLog, LedgerEvent, Paused, Unpaused
from .exceptions import (
    AlreadyPausedError,
    InvalidAddressError,
    NotPausedError,
    NotPrivilegedError,
    PausedError,
    ReentrancyError,
    TimeStakeError,
    ValidationError,
)
from .governance import (
    GovernanceExecutor,
    Proposal,
    ProposalBook,
    ProposalStatus,
    VotingEngine,
)
from .interfaces import AccessControl, BalanceService, Clock, EcdsaRecoverer, SignatureRecoverer
from .logger import get_logger, set_log_level
from .registry import OracleSet, RegionRegistry
from .staking import RegionStats, ServerBond, ServerStatus, StakeLedger
from .store import GlobalParams, LedgerStore
from .verification import QuorumResult, ThresholdVerifier

logger = get_logger(__name__)


class Capability(Flag):
    """Operation tags consulted by the service and the dispatcher."""
    MUTATING = auto()       # Runs under the writer lock with rollback
    PRIVILEGED = auto()     # Requires AccessControl.is_privileged(caller)
    QUERY = auto()          # Read-only, no caller, no lock
    PAUSE_EXEMPT = auto()   # Allowed while paused


_M = Capability.MUTATING
_P = Capability.PRIVILEGED
_X = Capability.PAUSE_EXEMPT

OPERATIONS: Dict[str, Capability] = {
    # Bonds
    "register_server":     _M,
    "initiate_unbonding":  _M,
    "complete_unbonding":  _M,
    "report_violation":    _M,
    # Registries
    "add_oracle":          _M | _P,
    "remove_oracle":       _M | _P,
    "add_region":          _M | _P,
    "remove_region":       _M | _P,
    # Governance
    "create_proposal":     _M,
    "vote":                _M,
    "execute_proposal":    _M,
    # Emergency
    "emergency_pause":     _M | _P | _X,
    "emergency_unpause":   _M | _P | _X,
    "emergency_recovery":  _M | _P | _X,
    # Queries
    "get_server_status":   Capability.QUERY,
    "get_region_stats":    Capability.QUERY,
    "get_bond":            Capability.QUERY,
    "get_proposal":        Capability.QUERY,
    "proposal_status":     Capability.QUERY,
    "is_oracle":           Capability.QUERY,
    "is_region_active":    Capability.QUERY,
    "params":              Capability.QUERY,
    "paused":              Capability.QUERY,
    "events":              Capability.QUERY,
}


def _account(caller: str) -> str:
    if not is_valid_address(caller):
        raise InvalidAddressError(f"Invalid caller address: {caller!r}")
    return normalize_address(caller)


class TimeStaking:
    """
    Collateralized server registry with oracle slashing and parameter
    governance.

    Args:
        balances: Balance service stake is pulled from and paid to
        access_control: Gate for privileged operations
        clock: Source of ledger time
        recoverer: Signature recoverer used for oracle reports
        config: Ledger configuration (defaults apply when omitted)
    """

    def __init__(
        self,
        balances: BalanceService,
        access_control: AccessControl,
        clock: Clock,
        recoverer: Optional[SignatureRecoverer] = None,
        config: Optional[LedgerConfig] = None,
    ):
        self.config = config or LedgerConfig()
        self.config.validate()
        set_log_level(self.config.log_level)

        self.balances = balances
        self.access_control = access_control
        self.clock = clock
        self.domain = self.config.domain.to_domain()

        self.store = LedgerStore(params=self.config.staking.to_params())
        self.event_log = EventLog()

        self.regions = RegionRegistry(self.config.staking.prune_withdrawn_members)
        self.oracles = OracleSet()
        self.verifier = ThresholdVerifier(recoverer or EcdsaRecoverer())
        self.ledger = StakeLedger(self.regions, self.verifier, balances, self.domain)
        self.proposals = ProposalBook()
        self.voting = VotingEngine()
        self.executor = GovernanceExecutor()

        self._lock = threading.Lock()
        self._writer: Optional[int] = None

        logger.info(
            f"TimeStaking ledger {self.domain.ledger_address} on chain {self.domain.chain_id} "
            f"(min stake {self.store.params.min_stake}, "
            f"quorum {self.store.params.min_oracle_signatures})"
        )

    # =========================================================================
    # OPERATION BOUNDARY
    # =========================================================================

    def _mutate(self, operation: str, caller: str, fn: Callable[[str, int, EventBuffer], Any]):
        """
        Run one mutating operation atomically.

        Every record `fn` changes is journaled by the store; the journal is
        rolled back and staged events are dropped if `fn` raises.
        """
        capabilities = OPERATIONS[operation]
        if self._writer == threading.get_ident():
            logger.warning(f"{operation} rejected: re-entrant call")
            raise ReentrancyError(f"Re-entrant call to {operation}")

        with self._lock:
            self._writer = threading.get_ident()
            self.store.begin()
            try:
                events = EventBuffer()
                try:
                    account = _account(caller)
                    if Capability.PRIVILEGED in capabilities and \
                            not self.access_control.is_privileged(account):
                        raise NotPrivilegedError(f"{account} is not privileged")
                    if self.store.paused and Capability.PAUSE_EXEMPT not in capabilities:
                        raise PausedError(f"Ledger is paused, {operation} unavailable")
                    result = fn(account, self.clock.now(), events)
                except TimeStakeError as e:
                    self.store.rollback()
                    logger.warning(f"{operation} rejected: {type(e).__name__}: {e}")
                    raise
                except Exception as e:
                    self.store.rollback()
                    logger.error(f"{operation} failed: {type(e).__name__}: {e}")
                    raise
                self.store.commit()
                self.event_log.commit(events.drain())
                return result
            finally:
                self.store.rollback()  # no-op once committed
                self._writer = None

    def _query(self, fn: Callable[[], Any]) -> Any:
        """
        Run a read against committed state.

        Other threads wait for the running operation to finish. Callbacks on
        the writer thread read the operation's staged state without the lock.
        """
        if self._writer == threading.get_ident():
            return fn()
        with self._lock:
            return fn()

    # =========================================================================
    # BONDS
    # =========================================================================

    def register_server(
        self, server_id: str, region: str, caller: str, public_key: bytes = b""
    ) -> ServerBond:
        return self._mutate(
            "register_server", caller,
            lambda account, now, events: self.ledger.register(
                self.store, server_id, region, account, now, events, public_key
            ),
        )

    def initiate_unbonding(self, server_id: str, caller: str) -> ServerBond:
        return self._mutate(
            "initiate_unbonding", caller,
            lambda account, now, events: self.ledger.initiate_unbonding(
                self.store, server_id, account, now, events
            ),
        )

    def complete_unbonding(self, server_id: str, caller: str):
        return self._mutate(
            "complete_unbonding", caller,
            lambda account, now, events: self.ledger.complete_unbonding(
                self.store, server_id, account, now, events
            ),
        )

    def report_violation(
        self,
        server_id: str,
        amount,
        report_hash,
        signatures: Iterable[bytes],
        caller: str,
    ) -> QuorumResult:
        """Slash a server on a report co-signed by the oracle quorum."""
        signatures = list(signatures)
        return self._mutate(
            "report_violation", caller,
            lambda account, now, events: self.ledger.slash(
                self.store, server_id, amount, report_hash, signatures, now, events
            ),
        )

    # =========================================================================
    # REGISTRIES
    # =========================================================================

    def add_oracle(self, oracle: str, caller: str) -> str:
        return self._mutate(
            "add_oracle", caller,
            lambda account, now, events: self.oracles.add_oracle(self.store, oracle, now, events),
        )

    def remove_oracle(self, oracle: str, caller: str) -> str:
        return self._mutate(
            "remove_oracle", caller,
            lambda account, now, events: self.oracles.remove_oracle(self.store, oracle, now, events),
        )

    def add_region(self, region: str, caller: str):
        return self._mutate(
            "add_region", caller,
            lambda account, now, events: self.regions.add_region(self.store, region, now, events),
        )

    def remove_region(self, region: str, caller: str) -> None:
        return self._mutate(
            "remove_region", caller,
            lambda account, now, events: self.regions.remove_region(self.store, region, now, events),
        )

    # =========================================================================
    # GOVERNANCE
    # =========================================================================

    def create_proposal(self, parameter_name: str, value: Any, caller: str) -> int:
        """Returns the new proposal id."""
        return self._mutate(
            "create_proposal", caller,
            lambda account, now, events: self.proposals.create(
                self.store, parameter_name, value, account, now, events
            ).id,
        )

    def vote(self, proposal_id: int, support: bool, caller: str) -> Proposal:
        return self._mutate(
            "vote", caller,
            lambda account, now, events: self.voting.cast_vote(
                self.store, proposal_id, support, account, now, events
            ),
        )

    def execute_proposal(self, proposal_id: int, caller: str) -> Dict[str, Any]:
        return self._mutate(
            "execute_proposal", caller,
            lambda account, now, events: self.executor.execute(
                self.store, proposal_id, now, events
            ),
        )

    # =========================================================================
    # EMERGENCY
    # =========================================================================

    def emergency_pause(self, caller: str) -> None:
        def pause(account: str, now: int, events: EventBuffer) -> None:
            if self.store.paused:
                raise AlreadyPausedError("Ledger already paused")
            self.store.paused = True
            events.emit(Paused(timestamp=now, account=account))
            logger.warning(f"Ledger PAUSED by {account}")

        return self._mutate("emergency_pause", caller, pause)

    def emergency_unpause(self, caller: str) -> None:
        def unpause(account: str, now: int, events: EventBuffer) -> None:
            if not self.store.paused:
                raise NotPausedError("Ledger not paused")
            self.store.paused = False
            events.emit(Unpaused(timestamp=now, account=account))
            logger.warning(f"Ledger unpaused by {account}")

        return self._mutate("emergency_unpause", caller, unpause)

    def emergency_recovery(self, server_id: str, reason: str, caller: str) -> ServerBond:
        return self._mutate(
            "emergency_recovery", caller,
            lambda account, now, events: self.ledger.emergency_recovery(
                self.store, server_id, reason, now, events
            ),
        )

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_server_status(self, server_id: str) -> ServerStatus:
        return self._query(lambda: self.ledger.get_server_status(self.store, server_id))

    def get_region_stats(self, region: str) -> RegionStats:
        return self._query(lambda: self.ledger.get_region_stats(self.store, region))

    def get_bond(self, server_id: str) -> Optional[ServerBond]:
        """Copy of the bond record, or None."""
        return self._query(lambda: copy.copy(self.ledger.get_bond(self.store, server_id)))

    def get_proposal(self, proposal_id: int) -> Optional[Proposal]:
        """Copy of the proposal, or None."""
        return self._query(lambda: copy.deepcopy(self.proposals.get(self.store, proposal_id)))

    def proposal_status(self, proposal_id: int) -> ProposalStatus:
        return self._query(
            lambda: ProposalBook.require(self.store, proposal_id).status(self.clock.now())
        )

    def is_oracle(self, address: str) -> bool:
        return self._query(lambda: self.oracles.is_oracle(self.store, address))

    def is_region_active(self, region: str) -> bool:
        return self._query(lambda: self.regions.is_active(self.store, region))

    def params(self) -> GlobalParams:
        return self._query(lambda: copy.copy(self.store.params))

    def paused(self) -> bool:
        return self._query(lambda: self.store.paused)

    def events(self) -> List[LedgerEvent]:
        return self._query(lambda: self.event_log.events)

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def dispatch(self, name: str, caller: Optional[str] = None, **kwargs) -> Any:
        """
        Invoke an operation by name.

        Queries ignore `caller`; every other operation receives it.
        """
        capabilities = OPERATIONS.get(name)
        if capabilities is None:
            raise ValidationError(f"Unknown operation: {name}")
        method = getattr(self, name)
        if Capability.QUERY in capabilities:
            return method(**kwargs)
        return method(caller=caller, **kwargs)

    @staticmethod
    def capabilities(name: str) -> Capability:
        if name not in OPERATIONS:
            raise ValidationError(f"Unknown operation: {name}")
        return OPERATIONS[name]

    def to_dict(self) -> Dict[str, Any]:
        return self._query(lambda: {
            "domain": {
                "name": self.domain.name,
                "version": self.domain.version,
                "chainId": self.domain.chain_id,
                "ledgerAddress": self.domain.ledger_address,
            },
            "state": self.store.to_dict(),
            "eventCount": len(self.event_log),
        })

    def __repr__(self) -> str:
        return (
            f"<TimeStaking bonds={len(self.store.bonds)} oracles={len(self.store.oracles)} "
            f"paused={self.store.paused}>"
        )
