"""
TimeStake Stake Ledger

Bond lifecycle for registered servers:

    register ──> ACTIVE ──initiate_unbonding / slash below min / recovery──> UNBONDING
    UNBONDING ──complete_unbonding (after unbonding period)──> WITHDRAWN

Handlers operate on the shared LedgerStore and stage events in the caller's
buffer. Callers (the service) provide the rollback boundary; every handler
mutates local state before it calls out to the balance service.
"""

from decimal import Decimal
from typing import Iterable, Optional, Union

from ..constants import TOKEN_SYMBOL
from ..events import (
    EmergencyRecoveryExecuted,
    EventBuffer,
    ServerRegistered,
    ServerSlashed,
    UnbondingCompleted,
    UnbondingInitiated,
)
from ..exceptions import (
    AlreadyRegisteredError,
    InsufficientFundsError,
    InvalidAmountError,
    NoFundsToWithdrawError,
    NotActiveError,
    NotOwnerError,
    PeriodNotElapsedError,
    ReportAlreadyProcessedError,
    ServerNotFoundError,
    SlashExceedsStakeError,
    StillActiveError,
    TimeStakeError,
    TransferFailedError,
)
from ..interfaces import BalanceService
from ..logger import get_logger
from ..registry.regions import RegionRegistry
from ..store import LedgerStore
from ..verification.reports import ReportDomain, normalize_server_id, to_base_units, to_bytes32
from ..verification.threshold import QuorumResult, ThresholdVerifier
from .types import RegionStats, ServerBond, ServerStatus

logger = get_logger(__name__)


class StakeLedger:
    """
    Bond records keyed by server id.

    Args:
        regions: Region registry the ledger registers members with
        verifier: Threshold verifier guarding slashing
        balances: Balance service stake is pulled from and paid to
        domain: Signing domain of this ledger deployment
    """

    def __init__(
        self,
        regions: RegionRegistry,
        verifier: ThresholdVerifier,
        balances: BalanceService,
        domain: ReportDomain,
    ):
        self.regions = regions
        self.verifier = verifier
        self.balances = balances
        self.domain = domain

    @property
    def ledger_address(self) -> str:
        return self.domain.ledger_address

    # =========================================================================
    # QUERIES
    # =========================================================================

    @staticmethod
    def get_bond(store: LedgerStore, server_id: str) -> Optional[ServerBond]:
        return store.bonds.get(normalize_server_id(server_id))

    @staticmethod
    def require_bond(store: LedgerStore, server_id: str) -> ServerBond:
        bond = store.bonds.get(normalize_server_id(server_id))
        if bond is None:
            raise ServerNotFoundError(f"Server not found: {server_id}")
        return bond

    @staticmethod
    def get_server_status(store: LedgerStore, server_id: str) -> ServerStatus:
        """Unknown server ids report an empty, inactive status."""
        bond = store.bonds.get(normalize_server_id(server_id))
        if bond is None:
            return ServerStatus(False, Decimal(0), 0)
        return ServerStatus(bond.is_active, bond.staked_amount, bond.unbonding_start_time)

    @staticmethod
    def get_region_stats(store: LedgerStore, region: str) -> RegionStats:
        total = 0
        active = 0
        stake = Decimal(0)
        for server_id in RegionRegistry.members(store, region):
            bond = store.bonds.get(server_id)
            if bond is None or bond.region != region:  # moved to another region
                continue
            total += 1
            if bond.is_active:
                active += 1
                stake += bond.staked_amount
        return RegionStats(total, active, stake)

    # =========================================================================
    # BONDING
    # =========================================================================

    def register(
        self,
        store: LedgerStore,
        server_id: str,
        region: str,
        caller: str,
        now: int,
        events: EventBuffer,
        public_key: bytes = b"",
    ) -> ServerBond:
        """
        Bond `min_stake` from the caller for a server in an active region.

        A fully withdrawn bond may be registered again by its owner.

        Raises:
            InvalidRegionError: Region is not active
            AlreadyRegisteredError: Server is bonded, unbonding, or owned by someone else
            InsufficientFundsError: Balance or allowance below min_stake
            TransferFailedError: Balance service refused the pull
        """
        server_id = normalize_server_id(server_id)
        self.regions.require_active(store, region)

        existing = store.bonds.get(server_id)
        if existing is not None:
            if existing.owner != caller:
                raise AlreadyRegisteredError(f"Server already registered: {server_id}")
            if existing.is_active or existing.staked_amount > 0:
                raise AlreadyRegisteredError(
                    f"Server already registered: {server_id} ({existing.state.value})"
                )

        min_stake = store.params.min_stake
        available = min(
            self.balances.balance_of(caller),
            self.balances.allowance(caller, self.ledger_address),
        )
        if available < min_stake:
            raise InsufficientFundsError(min_stake, available)

        if existing is not None and existing.region != region:
            self.regions.on_withdrawn(store, existing.region, server_id)

        bond = ServerBond(
            server_id=server_id,
            owner=caller,
            staked_amount=min_stake,
            region=region,
            public_key=bytes(public_key),
            registered_at=now,
        )
        store.touch("bonds", server_id)
        store.bonds[server_id] = bond
        self.regions.add_member(store, region, server_id)

        if min_stake > 0:
            self._pull(caller, min_stake)

        events.emit(ServerRegistered(
            timestamp=now,
            server_id=server_id,
            owner=caller,
            region=region,
            amount=min_stake,
        ))
        logger.info(
            f"Server {server_id} registered in {region} by {caller} "
            f"with {min_stake} {TOKEN_SYMBOL}"
        )
        return bond

    def initiate_unbonding(
        self, store: LedgerStore, server_id: str, caller: str, now: int, events: EventBuffer
    ) -> ServerBond:
        bond = self.require_bond(store, server_id)
        if bond.owner != caller:
            raise NotOwnerError(f"Not owner of server {bond.server_id}")
        if not bond.is_active:
            raise NotActiveError(f"Server not active: {bond.server_id}")

        store.touch("bonds", bond.server_id)
        bond.is_active = False
        bond.unbonding_start_time = now

        events.emit(UnbondingInitiated(
            timestamp=now, server_id=bond.server_id, unbonding_start_time=now
        ))
        logger.info(f"Server {bond.server_id} unbonding from {now}")
        return bond

    def complete_unbonding(
        self, store: LedgerStore, server_id: str, caller: str, now: int, events: EventBuffer
    ) -> Decimal:
        """
        Pay the remaining stake back to the owner.

        Returns:
            Amount withdrawn

        Raises:
            NotOwnerError, StillActiveError, NoFundsToWithdrawError,
            PeriodNotElapsedError, TransferFailedError
        """
        bond = self.require_bond(store, server_id)
        if bond.owner != caller:
            raise NotOwnerError(f"Not owner of server {bond.server_id}")
        if bond.is_active:
            raise StillActiveError(f"Server still active: {bond.server_id}")
        if bond.staked_amount <= 0:
            raise NoFundsToWithdrawError(f"No funds to withdraw: {bond.server_id}")

        unlock_at = bond.withdrawable_at(store.params.unbonding_period)
        if now < unlock_at:
            raise PeriodNotElapsedError(
                f"Unbonding period not elapsed: {unlock_at - now}s remaining"
            )

        amount = bond.staked_amount
        store.touch("bonds", bond.server_id)
        bond.staked_amount = Decimal(0)
        self.regions.on_withdrawn(store, bond.region, bond.server_id)

        self._pay(bond.owner, amount)

        events.emit(UnbondingCompleted(
            timestamp=now, server_id=bond.server_id, owner=bond.owner, amount=amount
        ))
        logger.info(f"Server {bond.server_id} withdrew {amount} {TOKEN_SYMBOL} to {bond.owner}")
        return amount

    # =========================================================================
    # SLASHING & RECOVERY
    # =========================================================================

    def slash(
        self,
        store: LedgerStore,
        server_id: str,
        amount: Union[Decimal, int, str],
        report_hash: Union[str, bytes],
        signatures: Iterable[bytes],
        now: int,
        events: EventBuffer,
    ) -> QuorumResult:
        """
        Slash a bond on an oracle-signed violation report.

        Raises:
            NotActiveError: Bond is not active
            SlashExceedsStakeError: Amount larger than the remaining stake
            ReportAlreadyProcessedError: Report digest already consumed
            QuorumNotReachedError: Too few distinct oracle signers
        """
        bond = self.require_bond(store, server_id)
        if to_base_units(amount) == 0:
            raise InvalidAmountError(f"Slash amount must be positive: {amount}")
        amount = Decimal(str(amount))
        report = to_bytes32(report_hash, "report hash")
        digest = self.domain.digest(bond.server_id, amount, report)

        if not bond.is_active:
            raise NotActiveError(f"Server not active: {bond.server_id}")
        if amount > bond.staked_amount:
            raise SlashExceedsStakeError(
                f"Slash of {amount} {TOKEN_SYMBOL} exceeds stake of "
                f"{bond.staked_amount} {TOKEN_SYMBOL}"
            )
        if digest in store.processed_reports:
            raise ReportAlreadyProcessedError(f"Report already processed: 0x{report.hex()}")

        quorum = self.verifier.verify(
            digest, signatures, store.oracles, store.params.min_oracle_signatures
        )

        store.touch("bonds", bond.server_id)
        bond.staked_amount -= amount
        deactivated = bond.staked_amount < store.params.min_stake
        if deactivated:
            bond.is_active = False
            bond.unbonding_start_time = now
        store.mark("processed_reports", digest)

        events.emit(ServerSlashed(
            timestamp=now,
            server_id=bond.server_id,
            amount=amount,
            report_hash="0x" + report.hex(),
            signers=quorum.signers,
            deactivated=deactivated,
        ))
        logger.warning(
            f"Server {bond.server_id} slashed {amount} {TOKEN_SYMBOL} "
            f"({quorum.valid_count}/{quorum.threshold} oracle signatures)"
            + (", deactivated" if deactivated else "")
        )
        return quorum

    def emergency_recovery(
        self, store: LedgerStore, server_id: str, reason: str, now: int, events: EventBuffer
    ) -> ServerBond:
        bond = self.require_bond(store, server_id)
        if not bond.is_active:
            raise NotActiveError(f"Server not active: {bond.server_id}")

        store.touch("bonds", bond.server_id)
        bond.is_active = False
        bond.unbonding_start_time = now

        events.emit(EmergencyRecoveryExecuted(
            timestamp=now, server_id=bond.server_id, reason=reason
        ))
        logger.warning(f"Emergency recovery of server {bond.server_id}: {reason}")
        return bond

    # =========================================================================
    # BALANCE SERVICE
    # =========================================================================

    def _pull(self, owner: str, amount: Decimal) -> None:
        try:
            ok = self.balances.transfer_from(owner, self.ledger_address, amount)
        except TimeStakeError:
            raise
        except Exception as e:
            raise TransferFailedError(f"Stake transfer from {owner} failed: {e}") from e
        if not ok:
            raise TransferFailedError(f"Stake transfer from {owner} failed")

    def _pay(self, to: str, amount: Decimal) -> None:
        try:
            ok = self.balances.transfer(to, amount)
        except TimeStakeError:
            raise
        except Exception as e:
            raise TransferFailedError(f"Withdrawal to {to} failed: {e}") from e
        if not ok:
            raise TransferFailedError(f"Withdrawal to {to} failed")
