"""
Region Registry

Active regions and their member-bond lists. Add and remove are privileged;
the service enforces the privilege before calling in.
"""

from typing import List

from ..events import EventBuffer, RegionAdded, RegionRemoved
from ..exceptions import (
    InvalidRegionError,
    RegionExistsError,
    RegionHasActiveServersError,
    RegionNotFoundError,
    ValidationError,
)
from ..logger import get_logger
from ..store import LedgerStore, Region

logger = get_logger(__name__)


class RegionRegistry:
    """
    Region membership handler.

    Membership is append-only unless `prune_withdrawn_members` is set, in
    which case fully withdrawn bonds leave their region's member list.
    """

    def __init__(self, prune_withdrawn_members: bool = False):
        self.prune_withdrawn_members = prune_withdrawn_members

    # ── Queries ───────────────────────────────────────────────────────

    @staticmethod
    def is_active(store: LedgerStore, name: str) -> bool:
        region = store.regions.get(name)
        return region is not None and region.active

    @staticmethod
    def members(store: LedgerStore, name: str) -> List[str]:
        region = store.regions.get(name)
        return list(region.members) if region else []

    # ── Privileged management ─────────────────────────────────────────

    def add_region(self, store: LedgerStore, name: str, now: int, events: EventBuffer) -> Region:
        if not name or not isinstance(name, str):
            raise ValidationError("Region name cannot be empty")
        region = store.regions.get(name)
        if region is not None and region.active:
            raise RegionExistsError(f"Region exists: {name}")

        store.touch("regions", name)
        if region is None:
            region = Region(name=name)
            store.regions[name] = region
        else:
            region.active = True

        events.emit(RegionAdded(timestamp=now, region=name))
        logger.info(f"Region added: {name}")
        return region

    def remove_region(self, store: LedgerStore, name: str, now: int, events: EventBuffer) -> None:
        region = store.regions.get(name)
        if region is None or not region.active:
            raise RegionNotFoundError(f"Region not found: {name}")
        # Length check, not active count: historical members block removal too
        if region.members:
            raise RegionHasActiveServersError(
                f"Region has active servers: {name} ({len(region.members)} member(s))"
            )

        store.touch("regions", name)
        region.active = False
        events.emit(RegionRemoved(timestamp=now, region=name))
        logger.info(f"Region removed: {name}")

    # ── Membership (called by the stake ledger) ───────────────────────

    def require_active(self, store: LedgerStore, name: str) -> Region:
        region = store.regions.get(name)
        if region is None or not region.active:
            raise InvalidRegionError(f"Invalid region: {name}")
        return region

    def add_member(self, store: LedgerStore, name: str, server_id: str) -> None:
        region = self.require_active(store, name)
        if server_id not in region.members:
            store.touch("regions", name)
            region.members.append(server_id)

    def on_withdrawn(self, store: LedgerStore, name: str, server_id: str) -> None:
        """Hook for a fully withdrawn bond."""
        if not self.prune_withdrawn_members:
            return
        region = store.regions.get(name)
        if region is not None and server_id in region.members:
            store.touch("regions", name)
            region.members.remove(server_id)
            logger.debug(f"Pruned withdrawn server {server_id} from region {name}")
