"""Keeps mounted inventory views in step with storage.

Four triggers converge on ``InventorySync.refresh``:

* ``InventoryChanged`` events from the event bus (writes in this process),
* storage changes written by other contexts (``check_storage``),
* a periodic poll (``poll``), a backstop for missed notifications,
* regaining focus (``on_focus``).

Event and storage triggers carry the storage revision of their write; those at
or below the watermark (the revision the last refresh loaded) are dropped.
Poll and focus always refresh. Only one refresh runs at a time; a trigger
firing while a refresh is in flight is dropped rather than queued.
"""

import asyncio
import logging
import threading
from datetime import datetime
from enum import Enum as PyEnum
from typing import Callable, Protocol

from warehouse.config import settings
from warehouse.models.base import utcnow
from warehouse.services.record_store import INVENTORY_WATCHED_KEYS, Stores
from warehouse.storage import StorageChange
from warehouse.sync.events import InventoryChanged
from warehouse.sync.views import InventorySnapshot, load_snapshot

logger = logging.getLogger(__name__)


class SyncStatus(str, PyEnum):
    IDLE = "idle"  # never synced, or the last refresh failed
    SYNCING = "syncing"
    SYNCED = "synced"


class View(Protocol):
    def apply(self, snapshot: InventorySnapshot) -> None: ...


class InventorySync:
    def __init__(
        self,
        stores: Stores,
        views: list[View] | None = None,
        poll_interval: float | None = None,
        watch_interval: float | None = None,
    ):
        self.stores = stores
        self.views: list[View] = list(views or [])
        self.poll_interval = poll_interval if poll_interval is not None else settings.SYNC_POLL_INTERVAL_SECONDS
        self.watch_interval = watch_interval if watch_interval is not None else settings.STORAGE_WATCH_INTERVAL_SECONDS

        self.status = SyncStatus.IDLE
        self.watermark = 0
        self.last_synced: datetime | None = None
        self.last_source: str | None = None
        self.snapshot: InventorySnapshot | None = None
        self.refresh_count = 0

        self._busy = threading.Lock()
        self._storage_revision = 0
        self._unsubscribe: Callable[[], None] | None = None
        self._tasks: list[asyncio.Task] = []

    # --- views ---

    def mount(self, view: View) -> None:
        self.views.append(view)
        if self.snapshot is not None:
            view.apply(self.snapshot)

    def unmount(self, view: View) -> None:
        if view in self.views:
            self.views.remove(view)

    # --- triggers ---

    def attach(self) -> None:
        """Subscribe to in-process events and start watching storage from now."""
        if self._unsubscribe is None:
            self._unsubscribe = self.stores.bus.subscribe(InventoryChanged, self.on_inventory_changed)
        self._storage_revision = self.stores.storage.revision()

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def on_inventory_changed(self, event: InventoryChanged) -> bool:
        if event.revision <= self.watermark:
            logger.debug("Ignoring stale inventory event from %s (revision %d)", event.source, event.revision)
            return False
        return self.refresh(f"event: {event.source}")

    def on_storage_change(self, change: StorageChange) -> bool:
        if change.key not in INVENTORY_WATCHED_KEYS:
            return False
        if change.revision <= self.watermark:
            return False
        return self.refresh(f"storage: {change.key}")

    def check_storage(self) -> int:
        """Dispatch writes made by other contexts since the last check. Returns refreshes run."""
        changes = self.stores.storage.changes_since(self._storage_revision)
        if not changes:
            return 0
        self._storage_revision = max(c.revision for c in changes)
        return sum(1 for change in changes if self.on_storage_change(change))

    def on_focus(self) -> bool:
        return self.refresh("focus")

    def poll(self) -> bool:
        return self.refresh("interval")

    # --- refresh ---

    def refresh(self, source: str = "manual") -> bool:
        """Reload from storage and recompute every mounted view.

        Returns False if another refresh was in flight or this one failed.
        """
        if not self._busy.acquire(blocking=False):
            logger.debug("Refresh from %s skipped: already syncing", source)
            return False
        try:
            self.status = SyncStatus.SYNCING
            try:
                snapshot = load_snapshot(self.stores)
                for view in list(self.views):
                    view.apply(snapshot)
            except Exception:
                logger.exception("Failed to refresh inventory data (%s)", source)
                self.status = SyncStatus.IDLE
                return False

            self.snapshot = snapshot
            self.watermark = max(self.watermark, snapshot.revision)
            self.last_synced = utcnow()
            self.last_source = source
            self.refresh_count += 1
            self.status = SyncStatus.SYNCED
            logger.info("Inventory refreshed from %s at revision %d", source, snapshot.revision)
            return True
        finally:
            self._busy.release()

    # --- background loop ---

    async def start(self) -> None:
        self.attach()
        await asyncio.to_thread(self.refresh, "initial")
        self._tasks = [
            asyncio.create_task(self._every(self.poll_interval, self.poll), name="inventory-poll"),
            asyncio.create_task(self._every(self.watch_interval, self.check_storage), name="storage-watch"),
        ]

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self.detach()

    async def _every(self, interval: float, fn: Callable[[], object]) -> None:
        # Triggers take the storage write lock, so they run on a worker thread
        while True:
            await asyncio.sleep(interval)
            try:
                await asyncio.to_thread(fn)
            except Exception:
                logger.exception("Sync trigger %s failed", getattr(fn, "__name__", fn))

    def as_dict(self) -> dict:
        return {
            "status": self.status.value,
            "watermark": self.watermark,
            "last_synced": self.last_synced.isoformat() if self.last_synced else None,
            "last_source": self.last_source,
        }
